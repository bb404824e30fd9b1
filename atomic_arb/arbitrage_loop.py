"""
Opportunity loop: one round-trip check per cycle, atomic execution when
profitable, and a consecutive-failure circuit breaker.
"""
import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .config import BotConfig
from .errors import ArbitrageError
from .jupiter_client import InstructionSet, JupiterClient
from .lookup_tables import optimize_lookup_tables
from .notifier import OpportunityRecord, TelegramNotifier
from .solana_client import SolanaClient
from .submitter import TransactionSubmitter
from .transaction_builder import TransactionAssembler
from .utils import get_terminal_colors

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

MODES = ('scan', 'simulate', 'live')


class CycleStage(Enum):
    IDLE = "idle"
    QUOTING = "quoting"
    PROFIT_CHECK = "profit_check"
    BUILDING = "building"
    ASSEMBLING = "assembling"
    SUBMITTING = "submitting"
    CONFIRMED = "confirmed"
    FAILED = "failed"


@dataclass(frozen=True)
class CycleOutcome:
    """Result of one cycle. ``stage`` is the last stage the cycle reached."""
    succeeded: bool
    reason: str
    stage: CycleStage
    signature: Optional[str] = None
    profit: Optional[int] = None

    @property
    def final_state(self) -> CycleStage:
        return CycleStage.CONFIRMED if self.succeeded else CycleStage.FAILED


@dataclass
class CircuitBreaker:
    """Counts consecutive failed cycles; a success resets the count."""
    threshold: int = 5
    cooldown_seconds: float = 30.0
    consecutive_failures: int = 0

    def record(self, outcome: CycleOutcome) -> bool:
        """
        Update the counter with a cycle outcome.

        Returns:
            True if the failure threshold has been reached and a cooldown is due
        """
        if outcome.succeeded:
            self.consecutive_failures = 0
            return False
        self.consecutive_failures += 1
        return self.consecutive_failures >= self.threshold

    def reset(self) -> None:
        self.consecutive_failures = 0


class ArbitrageLoop:
    """
    Runs buy-then-sell round-trip checks between two mints, strictly one
    cycle at a time.

    Modes:
        scan: stop after the profit check (no wallet needed)
        simulate: build and simulate the atomic transaction, never send it
        live: simulate, send and confirm
    """

    def __init__(
        self,
        config: BotConfig,
        jupiter_client: JupiterClient,
        solana_client: Optional[SolanaClient] = None,
        assembler: Optional[TransactionAssembler] = None,
        submitter: Optional[TransactionSubmitter] = None,
        notifier: Optional[TelegramNotifier] = None,
        mode: str = 'scan'
    ):
        mode = mode.lower()
        if mode not in MODES:
            raise ValueError(f"Unknown mode: {mode}. Use: {', '.join(MODES)}")
        if mode != 'scan' and (solana_client is None or assembler is None or submitter is None):
            raise ValueError(f"Mode '{mode}' requires solana_client, assembler and submitter")

        self.config = config
        self.jupiter = jupiter_client
        self.solana = solana_client
        self.assembler = assembler
        self.submitter = submitter
        self.notifier = notifier
        self.mode = mode
        self.breaker = CircuitBreaker(
            threshold=config.max_consecutive_failures,
            cooldown_seconds=config.cooldown_seconds
        )
        self.stage = CycleStage.IDLE

    def _notify(self, profit: int) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier.notify(OpportunityRecord(
                profit=profit,
                input_amount=self.config.input_amount,
                fee_estimate_sol=self.config.fee_estimate_sol,
                input_mint=self.config.base_mint,
                output_mint=self.config.quote_mint
            ))
        except Exception as e:
            logger.debug(f"Notification dispatch failed: {e}")

    async def _execute(self, buy_quote, sell_quote, profit: int) -> CycleOutcome:
        self.stage = CycleStage.BUILDING
        buy_leg = await self.jupiter.get_swap_instructions(buy_quote)
        sell_leg = await self.jupiter.get_swap_instructions(sell_quote)
        combined = InstructionSet.combine(buy_leg, sell_leg)
        tables = optimize_lookup_tables(combined.lookup_tables)
        logger.info(
            f"Creating atomic transaction with {colors['GREEN']}{len(combined.instructions)}{colors['RESET']} "
            f"instructions, {colors['GREEN']}{len(tables)}{colors['RESET']} ALTs "
            f"(of {len(combined.lookup_tables)} total)"
        )

        self.stage = CycleStage.ASSEMBLING
        blockhash, last_valid_block_height = await self.solana.get_latest_blockhash()
        candidate = self.assembler.assemble(combined, tables, blockhash, last_valid_block_height)

        self.stage = CycleStage.SUBMITTING
        if self.mode == 'simulate':
            await self.submitter.simulate(candidate)
            return CycleOutcome(True, "simulation successful (simulate mode)", self.stage, profit=profit)

        signature = await self.submitter.submit(candidate)
        try:
            await self.submitter.confirm(signature, candidate)
        except ArbitrageError as e:
            logger.error(f"{colors['RED']}Confirmation failed (not resending):{colors['RESET']} {e}")
            return CycleOutcome(False, str(e), self.stage, signature=signature, profit=profit)

        self.stage = CycleStage.CONFIRMED
        return CycleOutcome(True, "confirmed", self.stage, signature=signature, profit=profit)

    async def run_cycle(self) -> CycleOutcome:
        """
        Run one full cycle. Never raises: every failure becomes a failed outcome.
        """
        cfg = self.config
        profit: Optional[int] = None
        logger.info(f"{colors['DIM']}Checking arbitrage opportunity...{colors['RESET']}")

        try:
            self.stage = CycleStage.QUOTING
            buy_quote = await self.jupiter.get_quote(cfg.base_mint, cfg.quote_mint, cfg.input_amount)
            sell_quote = await self.jupiter.get_quote(cfg.quote_mint, cfg.base_mint, buy_quote.out_amount)

            self.stage = CycleStage.PROFIT_CHECK
            profit = sell_quote.out_amount - cfg.input_amount
            if sell_quote.out_amount < cfg.input_amount + cfg.min_profit:
                logger.info(
                    f"{colors['RED']}No opportunity:{colors['RESET']} insufficient profit "
                    f"(net {colors['YELLOW']}{profit}{colors['RESET']}, "
                    f"required {colors['YELLOW']}{cfg.min_profit}{colors['RESET']})"
                )
                return CycleOutcome(False, "insufficient profit", self.stage, profit=profit)

            logger.info(
                f"{colors['GREEN']}Profit detected:{colors['RESET']} "
                f"{colors['YELLOW']}{profit}{colors['RESET']} "
                f"(in={cfg.input_amount}, mid={buy_quote.out_amount}, out={sell_quote.out_amount})"
            )
            self._notify(profit)

            if self.mode == 'scan':
                return CycleOutcome(True, "opportunity found (scan mode)", self.stage, profit=profit)

            return await self._execute(buy_quote, sell_quote, profit)

        except ArbitrageError as e:
            logger.error(f"{colors['RED']}Cycle failed at {self.stage.value}:{colors['RESET']} {e}")
            return CycleOutcome(False, str(e), self.stage, profit=profit)
        except Exception as e:
            logger.error(
                f"{colors['RED']}Unexpected error at {self.stage.value}:{colors['RESET']} {e}",
                exc_info=True
            )
            return CycleOutcome(False, f"unexpected error: {e}", self.stage, profit=profit)
        finally:
            self.stage = CycleStage.IDLE

    async def run_forever(self, max_cycles: Optional[int] = None) -> None:
        """
        Run cycles back to back with a fixed delay after each one.

        After ``max_consecutive_failures`` failed cycles in a row the loop
        pauses for ``cooldown_seconds`` and resets the counter.

        Args:
            max_cycles: Stop after this many cycles (None = run until cancelled)
        """
        cycles = 0
        while max_cycles is None or cycles < max_cycles:
            outcome = await self.run_cycle()
            cycles += 1

            if outcome.succeeded:
                logger.info(f"Cycle {cycles}: {colors['GREEN']}{outcome.reason}{colors['RESET']}")
            else:
                logger.info(
                    f"Cycle {cycles}: {colors['RED']}{outcome.reason}{colors['RESET']} "
                    f"({self.breaker.consecutive_failures + 1}/{self.breaker.threshold} consecutive failures)"
                )

            if self.breaker.record(outcome):
                logger.error(
                    f"Too many consecutive failures ({self.breaker.consecutive_failures}/"
                    f"{self.breaker.threshold}), pausing for {self.breaker.cooldown_seconds:.0f} seconds..."
                )
                await asyncio.sleep(self.breaker.cooldown_seconds)
                self.breaker.reset()

            await asyncio.sleep(self.config.cycle_delay_seconds)
