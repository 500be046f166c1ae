"""
Exception classes for async-event-command.
"""

from typing import Any, Dict, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .retry_policy import ExecutionAttempt


class AsyncCommandError(Exception):
    """Base exception for async-event-command."""

    pass


class CommandTimeoutError(AsyncCommandError):
    """
    A command attempt did not settle within its allotted duration.

    Never retried by the conflict retry loop.
    """

    def __init__(self, command_id: str, timeout: float):
        super().__init__(f"Command {command_id} timed out after {timeout} seconds.")
        self.command_id = command_id
        self.timeout = timeout


class EventAlreadyExistsError(AsyncCommandError):
    """
    An event was pushed at a version the aggregate already holds.

    Raised by event stores when a concurrent writer won the race for a
    version. This is the only error the retry loop retries.
    """

    def __init__(self, event_store_id: Optional[str], aggregate_id: str, version: int):
        super().__init__(
            f"Event already exists for {event_store_id} aggregate {aggregate_id} "
            f"and version {version}"
        )
        self.event_store_id = event_store_id
        self.aggregate_id = aggregate_id
        self.version = version


class InternalInvariantError(AsyncCommandError):
    """The retry loop exited without a success value or a terminal error."""

    def __init__(self, command_id: str, attempt: "ExecutionAttempt"):
        super().__init__(
            f"Command {command_id} left its retry loop without an outcome "
            f"(attempt {attempt.attempt_number}, {attempt.retries_left} retries left)"
        )
        self.command_id = command_id
        self.attempt = attempt


class CommandValidationError(AsyncCommandError):
    """Command input or output does not match its declared schema."""

    def __init__(self, command_id: str, direction: str, errors: Dict[str, Any]):
        super().__init__(f"Invalid {direction} for command {command_id}: {errors['message']}")
        self.command_id = command_id
        self.direction = direction
        self.errors = errors
