"""
Conflict retry loop around the timeout race.
"""

import logging
from typing import Awaitable, Callable, Optional, TypeVar

from .exceptions import EventAlreadyExistsError, InternalInvariantError
from .retry_policy import ConflictRetryPolicy, ExecutionAttempt
from .timeout import run_with_timeout

logger = logging.getLogger(__name__)

T = TypeVar("T")

OnEventAlreadyExists = Callable[[EventAlreadyExistsError, ExecutionAttempt], Awaitable[None]]


async def execute_with_retries(
    invoke: Callable[[], Awaitable[T]],
    command_id: str,
    policy: ConflictRetryPolicy,
    on_event_already_exists: OnEventAlreadyExists,
    timeout: Optional[float] = None,
    cancel_on_timeout: bool = False,
) -> T:
    """
    Run a handler until it succeeds, fails terminally or runs out of retries.

    Attempts run strictly one after the other. Only conflicts are retried,
    and the observer is awaited on every conflict before the policy decides.

    Args:
        invoke: Zero-argument callable starting one handler attempt.
        command_id: Identifier of the command being executed.
        policy: Decides whether a conflict is retried.
        on_event_already_exists: Observer awaited on every conflict.
        timeout: Per-attempt timeout in seconds.
        cancel_on_timeout: Cancel a timed-out attempt instead of abandoning it.

    Returns:
        The value of the first successful attempt.

    Raises:
        EventAlreadyExistsError: If the last permitted attempt conflicted.
        Exception: Whatever the observer raised, unchanged.
        CommandTimeoutError: If an attempt timed out.
        InternalInvariantError: If the loop exits without an outcome.
    """
    attempt = ExecutionAttempt.first(policy.max_retries)

    while attempt.retries_left >= 0:
        try:
            return await run_with_timeout(invoke, timeout, command_id, cancel_on_timeout)
        except Exception as error:
            if not policy.is_conflict(error):
                raise
            conflict = error

        # An observer failure ends the execution whatever budget is left
        await on_event_already_exists(conflict, attempt)

        if policy.on_event_already_exists(conflict, attempt) == policy.RETHROW:
            raise conflict

        logger.debug(
            f"Command {command_id} conflicted on attempt {attempt.attempt_number}, "
            f"retrying ({attempt.retries_left} retries left)"
        )
        attempt = attempt.next()

    raise InternalInvariantError(command_id, attempt)
