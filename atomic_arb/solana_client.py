"""
Solana RPC client for blockhashes, simulation, sending and confirmation.
"""
import logging
from typing import Any, Dict, Optional, Tuple

from solders.hash import Hash
from solders.pubkey import Pubkey
from solders.signature import Signature
from solders.transaction import VersionedTransaction
from solana.rpc.async_api import AsyncClient
from solana.rpc.commitment import Confirmed
from solana.rpc.types import TxOpts

logger = logging.getLogger(__name__)

FAILOVER_ERROR_TYPES = ('ConnectError', 'ConnectTimeout', 'NetworkError', 'TimeoutError', 'ReadTimeout')
FAILOVER_MARKERS = ('429', 'rate limit', 'quota', 'timeout', 'timed out', 'connection', 'network')


def _domain(url: str) -> str:
    """Host part of an RPC URL (full URLs may carry API keys)."""
    return url.split('//')[1].split('/')[0] if '//' in url else url


class SolanaClient:
    """Client for Solana RPC operations with failover support."""

    def __init__(self, rpc_url: str, fallback_rpc_url: Optional[str] = None):
        self.rpc_url_primary = rpc_url
        self.rpc_url_fallback = fallback_rpc_url
        self._active_rpc_url = rpc_url
        self._failover_used = False
        self.client = AsyncClient(rpc_url)

    async def _switch_to_fallback(self, reason: str) -> bool:
        """
        Switch to fallback RPC if available.

        Returns:
            True if switched to fallback, False if no fallback available
        """
        if not self.rpc_url_fallback or self._active_rpc_url != self.rpc_url_primary:
            return False

        if not self._failover_used:
            logger.warning(
                f"RPC failover: PRIMARY ({_domain(self.rpc_url_primary)}) -> "
                f"FALLBACK ({_domain(self.rpc_url_fallback)}), reason: {reason}"
            )
            self._failover_used = True

        try:
            await self.client.close()
        except Exception as e:
            logger.debug(f"Error closing primary RPC client: {e}")

        self._active_rpc_url = self.rpc_url_fallback
        self.client = AsyncClient(self.rpc_url_fallback)
        return True

    def _is_failover_error(self, error: Exception) -> bool:
        """Rate limit, timeout and connection errors trigger failover."""
        if type(error).__name__ in FAILOVER_ERROR_TYPES:
            return True
        message = str(error).lower()
        return any(marker in message for marker in FAILOVER_MARKERS)

    async def _with_failover(self, coro_func, *args, **kwargs):
        """
        Execute coroutine with failover support.

        Retries once against the fallback RPC when the primary fails with a
        failover-triggering error; otherwise re-raises.
        """
        try:
            return await coro_func(*args, **kwargs)
        except Exception as e:
            if self._is_failover_error(e) and await self._switch_to_fallback(str(e)):
                try:
                    return await coro_func(*args, **kwargs)
                except Exception as e2:
                    logger.error(f"Both primary and fallback RPC failed. Last error: {e2}")
                    raise e2 from e
            raise

    async def get_balance(self, pubkey: Pubkey) -> int:
        """
        Get SOL balance in lamports.

        Returns:
            Balance in lamports, 0 on error
        """
        async def _fetch():
            resp = await self.client.get_balance(pubkey, commitment=Confirmed)
            return resp.value

        try:
            return await self._with_failover(_fetch)
        except Exception as e:
            logger.error(f"Error getting balance: {e}")
            return 0

    async def get_latest_blockhash(self) -> Tuple[Hash, int]:
        """
        Get latest blockhash together with its last valid block height.

        Raises:
            RuntimeError: If the RPC returned no blockhash
        """
        async def _fetch():
            result = await self.client.get_latest_blockhash(commitment=Confirmed)
            if not result.value:
                raise RuntimeError("get_latest_blockhash returned no value")
            return result.value.blockhash, result.value.last_valid_block_height

        return await self._with_failover(_fetch)

    async def simulate_versioned_transaction(
        self,
        tx: VersionedTransaction
    ) -> Optional[Dict[str, Any]]:
        """
        Simulate a signed VersionedTransaction with failover support.

        Returns:
            Simulation result dict (err, logs, units_consumed), or None if the
            RPC call itself failed
        """
        async def _simulate():
            result = await self.client.simulate_transaction(tx, commitment=Confirmed)

            sim_result = {
                "err": result.value.err,
                "logs": result.value.logs or [],
                "units_consumed": result.value.units_consumed
            }

            if result.value.err:
                logger.warning(f"Simulation error: {result.value.err}")

            return sim_result

        try:
            return await self._with_failover(_simulate)
        except Exception as e:
            logger.error(f"Error simulating VersionedTransaction: {e}")
            return None

    async def send_versioned_transaction(
        self,
        tx: VersionedTransaction,
        skip_preflight: bool = True
    ) -> Optional[str]:
        """
        Send a signed VersionedTransaction with failover support.

        Args:
            tx: VersionedTransaction object (already signed)
            skip_preflight: Skip preflight checks (default: True, since we simulate before sending)

        Returns:
            Transaction signature (base58 string) if successful, None otherwise
        """
        async def _send():
            opts = TxOpts(skip_preflight=skip_preflight, max_retries=0)
            result = await self.client.send_transaction(tx, opts=opts)
            return str(result.value) if result.value else None

        try:
            sig = await self._with_failover(_send)
        except Exception as e:
            logger.error(f"Error sending VersionedTransaction: {e}")
            return None

        if sig:
            logger.debug(f"Transaction sent: {sig}")
        else:
            logger.warning("Transaction send returned no signature")
        return sig

    async def confirm_transaction(
        self,
        signature: str,
        last_valid_block_height: Optional[int] = None
    ) -> bool:
        """
        Wait for transaction confirmation at 'confirmed' commitment.

        Waiting stops once the chain passes ``last_valid_block_height``.

        Returns:
            True if confirmed without error, False otherwise
        """
        async def _confirm():
            return await self.client.confirm_transaction(
                Signature.from_string(signature),
                commitment=Confirmed,
                last_valid_block_height=last_valid_block_height
            )

        try:
            result = await self._with_failover(_confirm)
        except Exception as e:
            logger.error(f"Error confirming transaction: {e}")
            return False

        status = result.value[0] if result.value else None
        if status is None:
            return False
        if status.err:
            logger.warning(f"Transaction {signature} landed with error: {status.err}")
            return False
        return status.confirmation_status is not None

    async def close(self):
        """Close RPC client."""
        await self.client.close()
