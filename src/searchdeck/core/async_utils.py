"""Async utilities for running blocking file I/O off the event loop."""

import asyncio
import logging
from typing import Any, Callable, Coroutine, Sequence, TypeVar

T = TypeVar("T")
logger = logging.getLogger(__name__)


async def run_sync(
    func: Callable[..., T], *args: Any, **kwargs: Any
) -> T:
    """Run a synchronous function in a thread pool without blocking the event loop.

    Used by the JSON store and the file helpers for disk access.

    Args:
        func: Synchronous function to call
        *args: Positional arguments for func
        **kwargs: Keyword arguments for func

    Returns:
        Result of func(*args, **kwargs)

    Example:
        content = await run_sync(path.read_text, encoding="utf-8")
    """
    return await asyncio.to_thread(func, *args, **kwargs)


async def gather_all(
    coros: Sequence[Coroutine[Any, Any, Any]],
) -> list[Any]:
    """Run independent coroutines concurrently and return results in order.

    Exceptions propagate from the first failure; the remaining
    coroutines are still awaited so none is left un-awaited.

    Args:
        coros: Sequence of coroutines to run concurrently.

    Returns:
        List of results in the same order as input coroutines.
    """
    results = await asyncio.gather(*coros, return_exceptions=True)
    for item in results:
        if isinstance(item, BaseException):
            logger.debug("Concurrent read failed: %s", item)
            raise item
    return list(results)
