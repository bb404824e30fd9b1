"""
Atomic v0 transaction assembly under the Solana wire-size limit.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from solders.hash import Hash
from solders.keypair import Keypair
from solders.message import MessageV0
from solders.transaction import VersionedTransaction

from .errors import NoViableTransaction
from .jupiter_client import InstructionSet
from .lookup_tables import LookupTableRef
from .utils import get_terminal_colors

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

MAX_TX_SIZE = 1232

STRATEGY_WITH_ALTS = "with_lookup_tables"
STRATEGY_WITHOUT_ALTS = "without_lookup_tables"


@dataclass
class TransactionCandidate:
    """
    Signed v0 transaction bound to one blockhash and one set of lookup tables.

    ``size_bytes`` is always <= MAX_TX_SIZE: the assembler never hands out
    anything larger.
    """
    transaction: VersionedTransaction
    blockhash: Hash
    last_valid_block_height: int
    size_bytes: int
    strategy: str
    lookup_tables: List[LookupTableRef] = field(default_factory=list)


class TransactionAssembler:
    """Compiles both swap legs into one signed VersionedTransaction."""

    def __init__(self, payer: Keypair, max_tx_size: int = MAX_TX_SIZE):
        self.payer = payer
        self.max_tx_size = max_tx_size

    def _compile(
        self,
        instruction_set: InstructionSet,
        tables: List[LookupTableRef],
        blockhash: Hash
    ) -> Tuple[VersionedTransaction, int]:
        message = MessageV0.try_compile(
            payer=self.payer.pubkey(),
            instructions=instruction_set.instructions,
            address_lookup_table_accounts=[table.account for table in tables],
            recent_blockhash=blockhash
        )
        tx = VersionedTransaction(message, [self.payer])
        return tx, len(bytes(tx))

    def _try_strategy(
        self,
        label: str,
        instruction_set: InstructionSet,
        tables: List[LookupTableRef],
        blockhash: Hash
    ) -> Optional[Tuple[VersionedTransaction, int]]:
        try:
            tx, size = self._compile(instruction_set, tables, blockhash)
        except Exception as e:
            logger.warning(f"Error compiling transaction {label}: {e}")
            return None

        if size > self.max_tx_size:
            logger.warning(
                f"Transaction {label} too large: {colors['YELLOW']}{size}{colors['RESET']} bytes "
                f"(limit: {self.max_tx_size})"
            )
            return None

        logger.debug(f"Transaction {label}: {colors['GREEN']}{size}{colors['RESET']} bytes")
        return tx, size

    def assemble(
        self,
        instruction_set: InstructionSet,
        tables: List[LookupTableRef],
        blockhash: Hash,
        last_valid_block_height: int
    ) -> TransactionCandidate:
        """
        Build a signed transaction that fits the size limit.

        Tries with the given lookup tables first (if any), then without any
        lookup table. The first variant that fits wins.

        Args:
            instruction_set: Buy-leg instructions followed by sell-leg instructions
            tables: Optimized lookup tables (may be empty)
            blockhash: Recent blockhash
            last_valid_block_height: Block height after which the blockhash expires

        Returns:
            TransactionCandidate

        Raises:
            NoViableTransaction: If no variant fits the size limit
        """
        if not instruction_set.instructions:
            raise NoViableTransaction("No instructions to build transaction")

        strategies = []
        if tables:
            strategies.append((STRATEGY_WITH_ALTS, tables))
        strategies.append((STRATEGY_WITHOUT_ALTS, []))

        for strategy, strategy_tables in strategies:
            label = strategy.replace('_', ' ')
            result = self._try_strategy(label, instruction_set, strategy_tables, blockhash)
            if result is None:
                continue

            tx, size = result
            logger.info(
                f"{colors['GREEN']}Atomic VersionedTransaction built (v0):{colors['RESET']} "
                f"{colors['GREEN']}{len(instruction_set.instructions)}{colors['RESET']} instructions, "
                f"{colors['GREEN']}{len(strategy_tables)}{colors['RESET']} ALTs, "
                f"size={colors['GREEN']}{size}{colors['RESET']}/{colors['YELLOW']}{self.max_tx_size}{colors['RESET']} bytes"
            )
            return TransactionCandidate(
                transaction=tx,
                blockhash=blockhash,
                last_valid_block_height=last_valid_block_height,
                size_bytes=size,
                strategy=strategy,
                lookup_tables=list(strategy_tables)
            )

        raise NoViableTransaction(
            f"No transaction variant fits {self.max_tx_size} bytes "
            f"({len(instruction_set.instructions)} instructions, {len(tables)} ALTs)"
        )
