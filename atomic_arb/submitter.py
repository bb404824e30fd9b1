"""
Simulate-then-send submission of assembled transactions, and confirmation.
"""
import asyncio
import logging
from typing import Optional, Type

from .errors import ArbitrageError, ConfirmationFailed, SendFailed, SimulationFailed
from .solana_client import SolanaClient
from .transaction_builder import TransactionCandidate
from .utils import get_terminal_colors

colors = get_terminal_colors()
logger = logging.getLogger(__name__)


class TransactionSubmitter:
    """
    Sends a TransactionCandidate only after it simulated cleanly.

    Each attempt simulates and then broadcasts the same signed transaction;
    a failed step fails the whole attempt, and the next attempt starts again
    from simulation. Confirmation is separate and never triggers a resend.
    """

    def __init__(
        self,
        solana_client: SolanaClient,
        max_retries: int = 3,
        backoff_seconds: float = 1.0
    ):
        self.solana = solana_client
        self.max_retries = max_retries
        self.backoff_seconds = backoff_seconds

    async def simulate(self, candidate: TransactionCandidate) -> None:
        """
        Simulate the candidate once.

        Raises:
            SimulationFailed: If the RPC call failed or the simulation returned an error
        """
        sim_result = await self.solana.simulate_versioned_transaction(candidate.transaction)
        if sim_result is None:
            raise SimulationFailed("Simulation RPC call failed")
        if sim_result.get("err"):
            logs = sim_result.get("logs") or []
            tail = "\n".join(f"  {line}" for line in logs[-10:])
            if tail:
                logger.debug(f"Simulation logs (tail):\n{tail}")
            raise SimulationFailed(f"Simulation error: {sim_result['err']}")
        logger.info(
            f"{colors['GREEN']}Simulation successful{colors['RESET']} "
            f"(units consumed: {sim_result.get('units_consumed')})"
        )

    async def submit(self, candidate: TransactionCandidate) -> str:
        """
        Simulate and broadcast the candidate, retrying the full sequence.

        Args:
            candidate: Signed transaction within the size limit

        Returns:
            Transaction signature (base58)

        Raises:
            SimulationFailed: If the last attempt failed during simulation
            SendFailed: If the last attempt failed during broadcast
        """
        last_error: Optional[ArbitrageError] = None

        for attempt in range(1, self.max_retries + 1):
            logger.info(f"Simulating transaction (attempt {attempt}/{self.max_retries})...")
            try:
                await self.simulate(candidate)

                tx_sig = await self.solana.send_versioned_transaction(candidate.transaction)
                if not tx_sig:
                    raise SendFailed("Broadcast returned no signature")

                logger.info(
                    f"{colors['GREEN']}Transaction sent{colors['RESET']} (attempt {attempt}): "
                    f"{colors['CYAN']}{tx_sig}{colors['RESET']}"
                )
                return tx_sig
            except (SimulationFailed, SendFailed) as e:
                last_error = e
            except Exception as e:
                last_error = SendFailed(str(e))

            logger.warning(f"Submission attempt {attempt}/{self.max_retries} failed: {last_error}")
            if attempt < self.max_retries:
                await asyncio.sleep(self.backoff_seconds * attempt)

        error_cls: Type[ArbitrageError] = type(last_error) if last_error else SendFailed
        raise error_cls(f"{last_error} (after {self.max_retries} attempts)") from last_error

    async def confirm(self, signature: str, candidate: TransactionCandidate) -> str:
        """
        Wait for confirmation bound to the candidate's blockhash validity window.

        Raises:
            ConfirmationFailed: If the transaction was not confirmed (never resent)
        """
        confirmed = await self.solana.confirm_transaction(
            signature,
            last_valid_block_height=candidate.last_valid_block_height
        )
        if not confirmed:
            raise ConfirmationFailed(f"Transaction not confirmed: {signature}")

        logger.info(
            f"{colors['GREEN']}Atomic transaction confirmed:{colors['RESET']} "
            f"{colors['CYAN']}{signature}{colors['RESET']}"
        )
        return signature
