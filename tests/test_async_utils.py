"""
Tests for async_utils module.

Covers run_sync and pause.
"""

import asyncio
from unittest.mock import AsyncMock, patch

from umber_cli.core.async_utils import pause, run_sync


def _sync_add(a: int, b: int) -> int:
    """Simple sync function for testing."""
    return a + b


async def test_run_sync_calls_function():
    """run_sync delegates to asyncio.to_thread with correct args."""
    result = await run_sync(_sync_add, 3, 4)
    assert result == 7


async def test_run_sync_passes_kwargs():
    """run_sync forwards keyword arguments."""

    def _kw_func(*, name: str) -> str:
        return f"hello {name}"

    result = await run_sync(_kw_func, name="world")
    assert result == "hello world"


async def test_run_sync_propagates_exceptions():
    """Exceptions raised in the worker thread reach the caller."""

    def _boom():
        raise RuntimeError("boom")

    try:
        await run_sync(_boom)
    except RuntimeError as exc:
        assert str(exc) == "boom"
    else:
        raise AssertionError("expected RuntimeError")


async def test_pause_sleeps_for_delay():
    """pause() awaits asyncio.sleep with the given delay."""
    with patch(
        "umber_cli.core.async_utils.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        await pause(1.5)
    mock_sleep.assert_awaited_once_with(1.5)


async def test_pause_zero_returns_immediately():
    """A non-positive delay does not sleep at all."""
    with patch(
        "umber_cli.core.async_utils.asyncio.sleep", new_callable=AsyncMock
    ) as mock_sleep:
        await pause(0)
        await pause(-1)
    mock_sleep.assert_not_awaited()


async def test_pause_really_waits():
    """A short real pause completes."""
    loop = asyncio.get_running_loop()
    start = loop.time()
    await pause(0.01)
    assert loop.time() - start >= 0.005
