"""Unit tests for retry with exponential backoff."""

from unittest.mock import AsyncMock, patch

import pytest

from authorscout.utils.exceptions import FetchError, ParseError, RateLimitedError
from authorscout.utils.retry import backoff_delays, retry_with_exponential_backoff


@pytest.mark.asyncio
async def test_returns_first_success():
    """Test that a successful call is not retried."""
    func = AsyncMock(return_value="<html></html>")

    result = await retry_with_exponential_backoff(func, "https://a", max_retries=3)

    assert result == "<html></html>"
    func.assert_awaited_once_with("https://a")


@pytest.mark.asyncio
async def test_retries_then_succeeds():
    """Test that a transient fetch failure is retried with growing delay."""
    func = AsyncMock(side_effect=[FetchError("boom"), FetchError("boom"), "ok"])

    with patch("authorscout.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        result = await retry_with_exponential_backoff(
            func, max_retries=2, initial_delay=1.0, backoff_factor=2.0
        )

    assert result == "ok"
    assert func.await_count == 3
    assert [c.args[0] for c in sleep.await_args_list] == [1.0, 2.0]


@pytest.mark.asyncio
async def test_raises_after_exhaustion():
    """Test that the last error surfaces once retries are used up."""
    func = AsyncMock(side_effect=FetchError("down"))

    with patch("authorscout.utils.retry.asyncio.sleep", new=AsyncMock()):
        with pytest.raises(FetchError, match="down"):
            await retry_with_exponential_backoff(func, max_retries=2, initial_delay=0)

    assert func.await_count == 3


@pytest.mark.asyncio
async def test_rate_limit_waits_longer():
    """Test that a throttling signal multiplies the backoff."""
    func = AsyncMock(side_effect=[RateLimitedError("429", status=429), "ok"])

    with patch("authorscout.utils.retry.asyncio.sleep", new=AsyncMock()) as sleep:
        await retry_with_exponential_backoff(
            func, max_retries=1, initial_delay=2.0, rate_limit_multiplier=5.0
        )

    sleep.assert_awaited_once_with(10.0)


@pytest.mark.asyncio
async def test_parse_errors_are_not_retried():
    """Test that exceptions outside retry_on_exceptions propagate immediately."""
    func = AsyncMock(side_effect=ParseError("no author"))

    with pytest.raises(ParseError):
        await retry_with_exponential_backoff(func, max_retries=3, initial_delay=0)

    func.assert_awaited_once()


def test_backoff_delays():
    assert list(backoff_delays(2.0, 3.0, 3)) == [2.0, 6.0, 18.0]
    assert list(backoff_delays(1.0, 2.0, 0)) == []
