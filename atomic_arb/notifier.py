"""
Telegram opportunity alerts (fire-and-forget).
"""
import asyncio
import json
import logging
from dataclasses import asdict, dataclass
from typing import Optional, Set

import httpx

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OpportunityRecord:
    """Payload of an opportunity alert. Contains no credentials."""
    profit: int
    input_amount: int
    fee_estimate_sol: float
    input_mint: str
    output_mint: str

    def to_message(self) -> str:
        return json.dumps(asdict(self))


class TelegramNotifier:
    """
    Non-blocking Telegram notifications.

    ``notify`` schedules delivery on the running event loop and returns
    immediately; delivery errors are logged at DEBUG and otherwise ignored.
    """

    API_URL = "https://api.telegram.org"

    def __init__(
        self,
        bot_token: Optional[str],
        chat_id: Optional[str],
        timeout: float = 5.0,
        client: Optional[httpx.AsyncClient] = None
    ):
        self._bot_token = bot_token
        self.chat_id = chat_id
        self.enabled = bool(bot_token and chat_id)
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._pending: Set[asyncio.Task] = set()

        if not self.enabled:
            logger.info("Telegram BOT_TOKEN/CHAT_ID not set. Notifications disabled.")

    def __repr__(self) -> str:
        return f"TelegramNotifier(chat_id={self.chat_id!r}, enabled={self.enabled})"

    async def _send(self, text: str) -> None:
        try:
            response = await self.client.post(
                f"{self.API_URL}/bot{self._bot_token}/sendMessage",
                json={"chat_id": self.chat_id, "text": text}
            )
            response.raise_for_status()
        except Exception as e:
            # Never surface alert failures to the trading pipeline
            logger.debug(f"Telegram notification failed: {type(e).__name__}")

    def notify(self, record: OpportunityRecord) -> Optional[asyncio.Task]:
        """Schedule an alert without waiting for it."""
        if not self.enabled:
            return None
        try:
            task = asyncio.get_running_loop().create_task(self._send(record.to_message()))
        except RuntimeError as e:
            logger.debug(f"Telegram notification not scheduled: {e}")
            return None
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return task

    async def close(self, timeout: float = 2.0):
        """Give in-flight alerts a short grace period, then close the HTTP client."""
        if self._pending:
            await asyncio.wait(set(self._pending), timeout=timeout)
        for task in list(self._pending):
            task.cancel()
        await self.client.aclose()
