"""
Pytest configuration and fixtures for atomic arbitrage bot tests.
"""
import base64

import pytest
from unittest.mock import AsyncMock, MagicMock
from solders.keypair import Keypair
from solders.pubkey import Pubkey

from atomic_arb.config import BotConfig
from atomic_arb.jupiter_client import JupiterQuote


@pytest.fixture
def sol_mint():
    """Wrapped SOL mint address."""
    return "So11111111111111111111111111111111111111112"


@pytest.fixture
def usdc_mint():
    """USDC mint address."""
    return "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v"


@pytest.fixture
def payer():
    """Signing keypair for transaction tests."""
    return Keypair()


@pytest.fixture
def bot_config(usdc_mint, sol_mint):
    """Default USDC -> SOL -> USDC configuration."""
    return BotConfig(
        base_mint=usdc_mint,
        quote_mint=sol_mint,
        input_amount=10_000_000,
        min_profit=1200,
        slippage_bps=1,
        max_retries=3,
        cycle_delay_seconds=5.0,
        max_consecutive_failures=5,
        cooldown_seconds=30.0
    )


@pytest.fixture
def mock_jupiter_client():
    """Create a mock JupiterClient for testing."""
    return AsyncMock()


@pytest.fixture
def mock_solana_client():
    """Create a mock SolanaClient for testing."""
    return AsyncMock()


@pytest.fixture
def make_quote():
    """Factory for JupiterQuote objects."""
    def _make(input_mint, output_mint, in_amount, out_amount):
        return JupiterQuote(
            input_mint=input_mint,
            output_mint=output_mint,
            in_amount=in_amount,
            out_amount=out_amount,
            price_impact_pct=0.01,
            route_plan=[],
            raw={
                "inputMint": input_mint,
                "outputMint": output_mint,
                "inAmount": str(in_amount),
                "outAmount": str(out_amount)
            }
        )
    return _make


@pytest.fixture
def swap_instruction_json():
    """Factory for swapInstruction JSON as returned by Jupiter."""
    def _make(signer: Pubkey, data: bytes = b"\x01\x02\x03", extra_accounts: int = 2):
        accounts = [{"pubkey": str(signer), "isSigner": True, "isWritable": True}]
        for _ in range(extra_accounts):
            accounts.append({
                "pubkey": str(Keypair().pubkey()),
                "isSigner": False,
                "isWritable": True
            })
        return {
            "programId": "JUP6LkbZbjS1jKKwapdHNy74zcZ3tLUZoi5QNyVTaV4",
            "accounts": accounts,
            "data": base64.b64encode(data).decode()
        }
    return _make


@pytest.fixture
def http_response():
    """Factory for mocked httpx responses."""
    def _make(payload):
        response = MagicMock()
        response.json.return_value = payload
        response.raise_for_status = MagicMock()
        return response
    return _make
