"""
Timeout race between a handler invocation and a timer.

The first of the two to settle decides the outcome. A handler that loses
the race is abandoned by default: it keeps running and its late result is
discarded. Pass ``cancel_on_timeout=True`` to cancel it instead.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional, Set, TypeVar

from .exceptions import CommandTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Strong references to abandoned handler tasks until they settle
_abandoned_tasks: Set["asyncio.Future[Any]"] = set()


def _discard_late_result(task: "asyncio.Future[Any]") -> None:
    """Retrieve and drop the outcome of an abandoned handler task."""
    _abandoned_tasks.discard(task)

    if task.cancelled():
        return

    error = task.exception()
    if error is not None:
        logger.debug(f"Discarding late error from abandoned handler: {error!r}")
    else:
        logger.debug("Discarding late result from abandoned handler")


def pending_abandoned_tasks() -> int:
    """Number of timed-out handler tasks that are still running."""
    return len(_abandoned_tasks)


async def run_with_timeout(
    invoke: Callable[[], Awaitable[T]],
    timeout: Optional[float],
    command_id: str,
    cancel_on_timeout: bool = False,
) -> T:
    """
    Await a handler invocation, bounded by an optional timeout.

    Args:
        invoke: Zero-argument callable starting the handler.
        timeout: Maximum duration in seconds. None waits indefinitely.
        command_id: Identifier reported in the timeout error.
        cancel_on_timeout: Cancel the handler when the timer wins instead
            of leaving it running.

    Returns:
        Whatever the handler returns.

    Raises:
        CommandTimeoutError: If the handler has not settled after ``timeout``.
        ValueError: If ``timeout`` is negative.
        Exception: Any error raised by the handler, unchanged.
    """
    if timeout is None:
        return await invoke()

    if timeout < 0:
        raise ValueError(f"Timeout must be non-negative, got {timeout}")

    task = asyncio.ensure_future(invoke())

    try:
        done, _ = await asyncio.wait({task}, timeout=timeout)
    except asyncio.CancelledError:
        # The caller went away, nobody will consume the handler's outcome
        task.cancel()
        raise

    if task in done:
        return task.result()

    if cancel_on_timeout:
        task.cancel()
    else:
        _abandoned_tasks.add(task)
        task.add_done_callback(_discard_late_result)

    raise CommandTimeoutError(command_id, timeout)
