"""Tests for the retry helper."""
import logging
import time
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from rpimon.lib.retry import with_retry

logger = logging.getLogger("rpimon.test")


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_returns_value(self):
        fn = MagicMock(return_value=42)

        assert await with_retry(fn, name="Op", logger=logger) == 42
        fn.assert_called_once()

    @pytest.mark.asyncio
    @patch("rpimon.lib.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_retries_until_success(self, mock_sleep, caplog):
        fn = MagicMock(side_effect=[OSError("boom"), OSError("boom"), "ok"])

        result = await with_retry(fn, name="Op", logger=logger, delay_sec=2.0)

        assert result == "ok"
        assert fn.call_count == 3
        assert mock_sleep.await_count == 2
        assert "Op attempt 1/3 failed: boom. Retrying in 2.0s..." in caplog.text

    @pytest.mark.asyncio
    @patch("rpimon.lib.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_raises_last_error_when_exhausted(self, mock_sleep, caplog):
        fn = MagicMock(side_effect=[OSError("first"), OSError("last")])

        with pytest.raises(OSError, match="last"):
            await with_retry(fn, name="Op", logger=logger, max_attempts=2)

        mock_sleep.assert_awaited_once()
        assert "Op attempt 2/2 failed: last. Giving up" in caplog.text

    @pytest.mark.asyncio
    @patch("rpimon.lib.retry.asyncio.sleep", new_callable=AsyncMock)
    async def test_fixed_delay_between_attempts(self, mock_sleep):
        fn = MagicMock(side_effect=OSError("boom"))

        with pytest.raises(OSError):
            await with_retry(fn, name="Op", logger=logger, delay_sec=2.1)

        assert [c.args[0] for c in mock_sleep.await_args_list] == [2.1, 2.1]

    @pytest.mark.asyncio
    async def test_non_retryable_raises_immediately(self):
        fn = MagicMock(side_effect=ValueError("bad"))

        with pytest.raises(ValueError):
            await with_retry(fn, name="Op", logger=logger)

        fn.assert_called_once()

    @pytest.mark.asyncio
    async def test_timeout(self):
        def slow():
            time.sleep(0.3)

        with pytest.raises(TimeoutError):
            await with_retry(
                slow, name="Op", logger=logger, max_attempts=1, timeout_sec=0.01
            )

    @pytest.mark.asyncio
    async def test_rejects_zero_attempts(self):
        with pytest.raises(ValueError):
            await with_retry(MagicMock(), name="Op", logger=logger, max_attempts=0)
