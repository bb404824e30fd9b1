"""
Utility functions for the Solana arbitrage bot.
"""
import asyncio
import logging
import sys
from typing import Awaitable, Callable, Dict, Optional, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')


def get_terminal_colors() -> Dict[str, str]:
    """
    Get ANSI color codes for terminal output.
    
    Returns empty strings if output is not a TTY (e.g., redirected to file).
    This ensures log files remain clean without ANSI escape codes.
    
    Returns:
        Dictionary with color codes: GREEN, CYAN, YELLOW, RED, DIM, RESET
    """
    use_color = sys.stdout.isatty()
    return {
        'GREEN': '\033[92m' if use_color else '',   # Amounts, sizes, counters
        'CYAN': '\033[96m' if use_color else '',    # Mints, signatures, stages
        'YELLOW': '\033[93m' if use_color else '',  # Profit, thresholds, limits
        'RED': '\033[91m' if use_color else '',     # Errors and failed cycles
        'DIM': '\033[90m' if use_color else '',     # Low-importance service messages
        'RESET': '\033[0m' if use_color else ''
    }


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    *,
    retries: int,
    stage: str,
    error_cls: Type[Exception],
    backoff_seconds: float = 1.0
) -> T:
    """
    Run an async operation with linear backoff between failed attempts.
    
    After failed attempt ``i`` (1-based) waits ``backoff_seconds * i`` before
    the next one. Nothing is awaited after the final attempt.
    
    Args:
        operation: Zero-argument coroutine function to call on each attempt
        retries: Total number of attempts (>= 1)
        stage: Stage name used in log messages
        error_cls: Exception raised once all attempts failed
        backoff_seconds: Base delay for the linear backoff
    
    Returns:
        Result of the first successful attempt
    
    Raises:
        error_cls: If every attempt failed (chained to the last error)
    """
    if retries < 1:
        raise ValueError(f"retries must be >= 1, got {retries}")
    
    last_error: Optional[Exception] = None
    for attempt in range(1, retries + 1):
        try:
            return await operation()
        except Exception as e:
            last_error = e
            logger.warning(f"{stage} attempt {attempt}/{retries} failed: {e}")
            if attempt < retries:
                await asyncio.sleep(backoff_seconds * attempt)
    
    raise error_cls(f"{stage} failed after {retries} attempts: {last_error}") from last_error
