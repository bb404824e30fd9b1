"""
Jupiter API Client for quotes and swap instructions.
"""
import base64
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

import httpx
from solders.instruction import AccountMeta, Instruction
from solders.pubkey import Pubkey

from .errors import InstructionBuildError, QuoteUnavailable
from .lookup_tables import LookupTableRef, select_leg_lookup_tables
from .utils import retry_with_backoff

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "https://quote-api.jup.ag/v6"


@dataclass(frozen=True)
class JupiterQuote:
    """Quote response from Jupiter API."""
    input_mint: str
    output_mint: str
    in_amount: int
    out_amount: int
    price_impact_pct: float
    route_plan: List[Dict[str, Any]]
    raw: Dict[str, Any] = field(default_factory=dict, repr=False, compare=False)
    time_taken: Optional[float] = None


@dataclass
class SwapAccountMeta:
    """Account metadata for swap instruction."""
    pubkey: str
    is_signer: bool
    is_writable: bool


@dataclass
class SwapInstruction:
    """Single swap instruction from Jupiter API."""
    program_id: str
    accounts: List[SwapAccountMeta]
    data: str

    def to_instruction(self) -> Instruction:
        """Convert to a solders Instruction (data is base64 in the API)."""
        try:
            data = base64.b64decode(self.data)
        except Exception as e:
            raise ValueError(f"Failed to decode instruction data from base64: {e}") from e

        return Instruction(
            program_id=Pubkey.from_string(self.program_id),
            accounts=[
                AccountMeta(
                    pubkey=Pubkey.from_string(meta.pubkey),
                    is_signer=meta.is_signer,
                    is_writable=meta.is_writable
                )
                for meta in self.accounts
            ],
            data=data
        )


@dataclass
class InstructionSet:
    """Executable instructions of one or more legs plus their lookup tables."""
    instructions: List[Instruction]
    lookup_tables: List[LookupTableRef] = field(default_factory=list)

    @classmethod
    def combine(cls, *legs: 'InstructionSet') -> 'InstructionSet':
        """Concatenate legs in the given order (buy leg first)."""
        instructions: List[Instruction] = []
        lookup_tables: List[LookupTableRef] = []
        for leg in legs:
            instructions.extend(leg.instructions)
            lookup_tables.extend(leg.lookup_tables)
        return cls(instructions=instructions, lookup_tables=lookup_tables)


class JupiterClient:
    """Client for Jupiter Aggregator API with linear-backoff retries."""

    def __init__(
        self,
        api_url: Optional[str] = None,
        user_public_key: Optional[str] = None,
        slippage_bps: int = 1,
        compute_unit_price_micro_lamports: int = 1000,
        max_retries: int = 3,
        backoff_seconds: float = 1.0,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        """
        Initialize Jupiter API client.

        Args:
            api_url: Base API URL (default: public v6 endpoint)
            user_public_key: Signer public key (base58) sent to swap-instructions
            slippage_bps: Slippage tolerance in basis points
            compute_unit_price_micro_lamports: Priority fee hint for swap-instructions
            max_retries: Attempts per request (default: 3)
            backoff_seconds: Base for linear backoff (attempt * backoff_seconds)
            timeout: Request timeout in seconds
            client: Optional preconfigured httpx.AsyncClient
        """
        self.api_url = (api_url or DEFAULT_API_URL).rstrip('/')
        self.user_public_key = user_public_key
        self.slippage_bps = slippage_bps
        self.compute_unit_price_micro_lamports = compute_unit_price_micro_lamports
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds
        self.timeout = timeout
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _fetch_quote(self, params: Dict[str, Any]) -> JupiterQuote:
        start_time = time.time()
        response = await self.client.get(f"{self.api_url}/quote", params=params)
        response.raise_for_status()
        data = response.json()

        if not isinstance(data, dict) or not data.get("outAmount"):
            raise ValueError("Failed to get quote: response has no outAmount")
        if int(data["outAmount"]) <= 0:
            raise ValueError(f"Failed to get quote: non-positive outAmount {data['outAmount']}")

        quote = JupiterQuote(
            input_mint=data.get("inputMint", params["inputMint"]),
            output_mint=data.get("outputMint", params["outputMint"]),
            in_amount=int(data.get("inAmount", params["amount"])),
            out_amount=int(data["outAmount"]),
            price_impact_pct=float(data.get("priceImpactPct", 0) or 0),
            route_plan=data.get("routePlan", []),
            raw=data,
            time_taken=time.time() - start_time
        )

        logger.debug(
            f"Quote: {params['inputMint'][:8]}... -> {params['outputMint'][:8]}... "
            f"in={quote.in_amount} out={quote.out_amount} "
            f"impact={quote.price_impact_pct:.2f}% ({quote.time_taken:.3f}s)"
        )
        return quote

    async def get_quote(
        self,
        input_mint: str,
        output_mint: str,
        amount: int
    ) -> JupiterQuote:
        """
        Get a direct-route quote for swapping tokens.

        Multi-hop routes pull in more accounts and lookup tables, so only
        direct routes are requested to keep the atomic transaction small.

        Args:
            input_mint: Input token mint address
            output_mint: Output token mint address
            amount: Amount in smallest units (must be positive)

        Returns:
            JupiterQuote

        Raises:
            ValueError: If amount is not a positive integer
            QuoteUnavailable: If no usable quote was returned after all retries
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise ValueError(f"amount must be a positive integer, got {amount!r}")

        params = {
            "inputMint": input_mint,
            "outputMint": output_mint,
            "amount": str(amount),
            "slippageBps": self.slippage_bps,
            "onlyDirectRoutes": "true"
        }

        return await retry_with_backoff(
            lambda: self._fetch_quote(params),
            retries=self.max_retries,
            stage="Quote",
            error_cls=QuoteUnavailable,
            backoff_seconds=self.backoff_seconds
        )

    def _parse_accounts(self, accounts_data: Union[List[str], List[Dict[str, Any]]]) -> List[SwapAccountMeta]:
        """
        Parse accounts from Jupiter API response.

        Accounts must be objects: {"pubkey": "...", "isSigner": bool, "isWritable": bool}.

        Raises:
            ValueError: If accounts come as bare strings (missing meta flags)
        """
        parsed_accounts = []
        for account_data in accounts_data or []:
            if not isinstance(account_data, dict):
                raise ValueError(
                    f"Unexpected account format: {type(account_data).__name__} "
                    f"(isSigner/isWritable flags required)"
                )
            parsed_accounts.append(SwapAccountMeta(
                pubkey=account_data.get("pubkey", ""),
                is_signer=bool(account_data.get("isSigner", False)),
                is_writable=bool(account_data.get("isWritable", False))
            ))
        return parsed_accounts

    async def _fetch_swap_instructions(self, payload: Dict[str, Any]) -> InstructionSet:
        response = await self.client.post(f"{self.api_url}/swap-instructions", json=payload)
        response.raise_for_status()
        data = response.json()

        swap_instr_data = data.get("swapInstruction") if isinstance(data, dict) else None
        if not swap_instr_data:
            raise ValueError("Failed to get swap instructions: response has no swapInstruction")

        swap_instruction = SwapInstruction(
            program_id=swap_instr_data.get("programId", ""),
            accounts=self._parse_accounts(swap_instr_data.get("accounts", [])),
            data=swap_instr_data.get("data", "")
        )

        lookup_tables = select_leg_lookup_tables(data.get("addressLookupTableAccounts") or [])

        logger.debug(
            f"Swap instructions OK: 1 swap, {len(swap_instruction.accounts)} accounts, "
            f"{len(lookup_tables)} ALTs"
        )
        return InstructionSet(
            instructions=[swap_instruction.to_instruction()],
            lookup_tables=lookup_tables
        )

    async def get_swap_instructions(self, quote: JupiterQuote) -> InstructionSet:
        """
        Get swap instructions for a quote (for building an atomic VersionedTransaction).

        Args:
            quote: JupiterQuote returned by get_quote

        Returns:
            InstructionSet with the swap instruction and up to 2 lookup tables

        Raises:
            InstructionBuildError: If instructions could not be built after all retries
        """
        if not self.user_public_key:
            raise InstructionBuildError("No user public key configured for swap instructions")

        payload = {
            "quoteResponse": quote.raw or {
                "inputMint": quote.input_mint,
                "inAmount": str(quote.in_amount),
                "outputMint": quote.output_mint,
                "outAmount": str(quote.out_amount),
                "slippageBps": self.slippage_bps,
                "priceImpactPct": quote.price_impact_pct,
                "routePlan": quote.route_plan
            },
            "userPublicKey": self.user_public_key,
            "wrapAndUnwrapSol": True,
            "computeUnitPriceMicroLamports": self.compute_unit_price_micro_lamports
        }

        return await retry_with_backoff(
            lambda: self._fetch_swap_instructions(payload),
            retries=self.max_retries,
            stage="Swap instructions",
            error_cls=InstructionBuildError,
            backoff_seconds=self.backoff_seconds
        )

    async def close(self):
        """Close HTTP client."""
        await self.client.aclose()
