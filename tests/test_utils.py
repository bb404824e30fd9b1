"""
Tests for utils.py
"""
from unittest.mock import AsyncMock, call, patch

import pytest

from atomic_arb.errors import QuoteUnavailable
from atomic_arb.utils import get_terminal_colors, retry_with_backoff


class TestGetTerminalColors:
    """Tests for get_terminal_colors function."""
    
    def test_get_terminal_colors_with_tty(self):
        """Test get_terminal_colors returns color codes when stdout is a TTY."""
        with patch('sys.stdout.isatty', return_value=True):
            colors = get_terminal_colors()
            assert colors['GREEN'] == '\033[92m'
            assert colors['CYAN'] == '\033[96m'
            assert colors['YELLOW'] == '\033[93m'
            assert colors['RED'] == '\033[91m'
            assert colors['RESET'] == '\033[0m'
    
    def test_get_terminal_colors_without_tty(self):
        """Test get_terminal_colors returns empty strings when stdout is not a TTY."""
        with patch('sys.stdout.isatty', return_value=False):
            colors = get_terminal_colors()
            assert all(value == '' for value in colors.values())


class TestRetryWithBackoff:
    """Tests for linear backoff retries."""
    
    @pytest.mark.asyncio
    async def test_returns_first_success_without_sleeping(self):
        operation = AsyncMock(return_value="ok")
        
        with patch('atomic_arb.utils.asyncio.sleep', new_callable=AsyncMock) as mock_sleep:
            result = await retry_with_backoff(
                operation, retries=3, stage="Quote", error_cls=QuoteUnavailable
            )
        
        assert result == "ok"
        assert operation.await_count == 1
        mock_sleep.assert_not_called()
    
    @pytest.mark.asyncio
    async def test_linear_delays_between_attempts(self):
        operation = AsyncMock(side_effect=[RuntimeError("a"), RuntimeError("b"), "ok"])
        
        with patch('atomic_arb.utils.asyncio.sleep', new_callable=AsyncMock) as mock_sleep:
            result = await retry_with_backoff(
                operation, retries=3, stage="Quote", error_cls=QuoteUnavailable
            )
        
        assert result == "ok"
        assert mock_sleep.await_args_list == [call(1.0), call(2.0)]
    
    @pytest.mark.asyncio
    async def test_raises_error_cls_after_last_attempt(self):
        operation = AsyncMock(side_effect=RuntimeError("service down"))
        
        with patch('atomic_arb.utils.asyncio.sleep', new_callable=AsyncMock) as mock_sleep:
            with pytest.raises(QuoteUnavailable, match="service down") as exc_info:
                await retry_with_backoff(
                    operation, retries=3, stage="Quote", error_cls=QuoteUnavailable
                )
        
        assert operation.await_count == 3
        # No sleep after the final attempt
        assert mock_sleep.await_args_list == [call(1.0), call(2.0)]
        assert isinstance(exc_info.value.__cause__, RuntimeError)
    
    @pytest.mark.asyncio
    async def test_rejects_zero_retries(self):
        with pytest.raises(ValueError):
            await retry_with_backoff(
                AsyncMock(), retries=0, stage="Quote", error_cls=QuoteUnavailable
            )
