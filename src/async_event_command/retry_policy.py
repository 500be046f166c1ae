"""
Retry policy for commands whose events conflict with a concurrent writer.
"""

from dataclasses import dataclass

from .constants import DEFAULT_EVENT_ALREADY_EXISTS_RETRIES
from .exceptions import EventAlreadyExistsError


@dataclass(frozen=True)
class ExecutionAttempt:
    """
    Bookkeeping for one attempt of a command execution.

    ``attempt_number + retries_left`` is the same for every attempt of a
    single execution.
    """

    attempt_number: int
    retries_left: int

    @classmethod
    def first(cls, max_retries: int) -> "ExecutionAttempt":
        return cls(attempt_number=1, retries_left=max_retries)

    def next(self) -> "ExecutionAttempt":
        return ExecutionAttempt(
            attempt_number=self.attempt_number + 1, retries_left=self.retries_left - 1
        )


class ConflictRetryPolicy:
    """
    Retry policy for ``EventAlreadyExistsError``.

    A budget of N allows N retries, i.e. up to N + 1 handler invocations.
    Every other error is rethrown without consulting the budget.
    """

    RETRY = 0
    RETHROW = 1

    def __init__(self, max_retries: int = DEFAULT_EVENT_ALREADY_EXISTS_RETRIES):
        """
        Initialize the retry policy.

        Args:
            max_retries: Additional attempts allowed after the first one.

        Raises:
            TypeError: If max_retries is not an integer.
            ValueError: If max_retries is negative.
        """
        if isinstance(max_retries, bool) or not isinstance(max_retries, int):
            raise TypeError(f"max_retries must be an integer, got {max_retries!r}")
        if max_retries < 0:
            raise ValueError(f"max_retries must be non-negative, got {max_retries}")

        self.max_retries = max_retries

    def is_conflict(self, error: BaseException) -> bool:
        """Whether the error is the retryable conflict kind."""
        return isinstance(error, EventAlreadyExistsError)

    def on_event_already_exists(
        self, error: EventAlreadyExistsError, attempt: ExecutionAttempt
    ) -> int:
        """
        Decide what to do after a conflict has been observed.

        Args:
            error: The conflict raised by the handler.
            attempt: The attempt that raised it.

        Returns:
            RETRY or RETHROW.
        """
        if attempt.retries_left == 0:
            return self.RETHROW

        return self.RETRY
