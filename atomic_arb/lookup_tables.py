"""
Address Lookup Table (ALT) handling: decoding per-leg tables returned by
Jupiter and picking the cheapest set for the combined transaction.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from solders.pubkey import Pubkey
from solders.address_lookup_table_account import AddressLookupTableAccount, AddressLookupTable

from .utils import get_terminal_colors

colors = get_terminal_colors()
logger = logging.getLogger(__name__)

MAX_LOOKUP_TABLES = 2
MAX_LOOKUP_TABLE_BYTES = 1000


@dataclass(frozen=True)
class LookupTableRef:
    """Decoded lookup table together with its raw on-chain bytes."""
    key: str
    account: AddressLookupTableAccount
    raw: bytes

    @property
    def serialized_size(self) -> int:
        return len(self.raw)


def decode_lookup_table(account_key: str, data_base64: str) -> LookupTableRef:
    """
    Decode a lookup table blob from the swap-instructions response.

    Args:
        account_key: ALT address (base58)
        data_base64: Raw account data, base64 encoded

    Returns:
        LookupTableRef with the decoded account

    Raises:
        ValueError: If the key or data cannot be decoded
    """
    try:
        raw = base64.b64decode(data_base64)
        table = AddressLookupTable.deserialize(raw)
        pubkey = Pubkey.from_string(account_key)
    except Exception as e:
        raise ValueError(f"Cannot decode ALT {account_key}: {e}") from e

    return LookupTableRef(
        key=account_key,
        account=AddressLookupTableAccount(pubkey, table.addresses),
        raw=raw
    )


def select_leg_lookup_tables(
    blobs: List[Dict[str, Any]],
    max_tables: int = MAX_LOOKUP_TABLES,
    max_table_bytes: int = MAX_LOOKUP_TABLE_BYTES
) -> List[LookupTableRef]:
    """
    Decode the lookup tables of a single leg, skipping oversized ones.

    Only the first ``max_tables`` blobs are considered, in the order Jupiter
    returned them. Large tables cost more bytes than they save, so anything
    over ``max_table_bytes`` is skipped, as is anything that fails to decode.

    Args:
        blobs: Entries of ``addressLookupTableAccounts`` ({"accountKey", "data"})
        max_tables: Maximum number of tables to keep
        max_table_bytes: Raw size above which a table is skipped

    Returns:
        Decoded tables, in received order
    """
    selected: List[LookupTableRef] = []

    for blob in (blobs or [])[:max_tables]:
        if not isinstance(blob, dict):
            logger.warning(f"Unexpected ALT entry format ({type(blob).__name__}), skipping")
            continue
        account_key = blob.get("accountKey", "")
        data = blob.get("data", "")

        try:
            raw_len = len(base64.b64decode(data))
        except Exception as e:
            logger.warning(f"ALT {account_key}: invalid base64 data ({e}), skipping")
            continue

        if raw_len > max_table_bytes:
            logger.warning(
                f"ALT {colors['CYAN']}{account_key}{colors['RESET']} too large "
                f"({colors['YELLOW']}{raw_len}{colors['RESET']} bytes > {max_table_bytes}), skipping"
            )
            continue

        try:
            selected.append(decode_lookup_table(account_key, data))
        except ValueError as e:
            logger.warning(f"{e}, skipping")
            continue

        if len(selected) >= max_tables:
            break

    return selected


def _safe_size(table: LookupTableRef) -> Optional[int]:
    try:
        return table.serialized_size
    except Exception as e:
        logger.warning(f"Cannot serialize ALT {getattr(table, 'key', '?')}: {e}, dropping")
        return None


def optimize_lookup_tables(
    tables: List[LookupTableRef],
    max_tables: int = MAX_LOOKUP_TABLES
) -> List[LookupTableRef]:
    """
    Merge lookup tables of both legs and keep the smallest ones.

    Tables are deduplicated by key (first occurrence wins), sorted by
    serialized size ascending and truncated to ``max_tables``. Tables whose
    size cannot be computed are dropped. Never raises.

    Args:
        tables: Lookup tables of the buy leg followed by the sell leg
        max_tables: Number of tables to keep

    Returns:
        At most ``max_tables`` tables, smallest first
    """
    seen = set()
    sized = []

    for table in tables:
        if table is None:
            continue
        key = getattr(table, 'key', None)
        if key in seen:
            continue
        seen.add(key)

        size = _safe_size(table)
        if size is None:
            continue
        sized.append((size, table))

    sized.sort(key=lambda item: item[0])
    optimized = [table for _, table in sized[:max_tables]]

    logger.debug(
        f"Optimized ALTs: {colors['GREEN']}{len(optimized)}{colors['RESET']} "
        f"(of {len(tables)} total, sizes={[size for size, _ in sized[:max_tables]]})"
    )
    return optimized
