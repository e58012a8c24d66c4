"""Async utilities for bridging blocking HTTP calls into the import pass."""

import asyncio
import logging
from typing import Any, Callable, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used to wrap the blocking ``requests`` calls made by ``NodeBBClient``.
    Each call is awaited before the next one starts; the import pass never
    has more than one request in flight.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        client = NodeBBClient(config)
        topic = await run_sync(client.find_topic_by_tag, "readme-md", 12)
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def pause(seconds: float) -> None:
    """Sleep between rate-limited calls; a non-positive delay returns at once."""
    if seconds <= 0:
        return
    logger.debug("Waiting %.2fs before next request", seconds)
    await asyncio.sleep(seconds)
