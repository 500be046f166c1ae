"""
Command definitions executed with a timeout and conflict retries.
"""

import asyncio
import time
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, Sequence, Tuple, TypeVar

import jsonschema

from . import schema as json_schema
from .constants import DEFAULT_EVENT_ALREADY_EXISTS_RETRIES
from .exceptions import CommandValidationError, EventAlreadyExistsError
from .execution import OnEventAlreadyExists, execute_with_retries
from .metrics import MetricsMiddleware
from .retry_policy import ConflictRetryPolicy, ExecutionAttempt

InputT = TypeVar("InputT")
OutputT = TypeVar("OutputT")


async def ignore_event_already_exists(
    error: EventAlreadyExistsError, attempt: ExecutionAttempt
) -> None:
    """Default conflict observer, does nothing."""
    return None


class Command(Generic[InputT, OutputT]):
    """
    A command handler bound to the event stores it writes to.

    The handler knows nothing about timeouts or retries: ``execute`` races
    each attempt against the timeout and retries it when one of its event
    stores reports an ``EventAlreadyExistsError``. The handler must be
    safe to run several times with the same input.

    Example:
        async def handler(input, event_stores):
            (counters,) = event_stores
            ...

        increment = Command(
            command_id="INCREMENT_COUNTER",
            required_event_stores=[counters],
            handler=handler,
            event_already_exists_retries=3,
        )
        await increment.execute({"counterId": "a"}, timeout=5.0)
    """

    def __init__(
        self,
        command_id: str,
        handler: Callable[[InputT, Tuple[Any, ...]], Awaitable[OutputT]],
        required_event_stores: Sequence[Any] = (),
        input_schema: Optional[Dict[str, Any]] = None,
        output_schema: Optional[Dict[str, Any]] = None,
        event_already_exists_retries: int = DEFAULT_EVENT_ALREADY_EXISTS_RETRIES,
        on_event_already_exists: OnEventAlreadyExists = ignore_event_already_exists,
        cancel_on_timeout: bool = False,
        metrics: Optional[MetricsMiddleware] = None,
    ):
        """
        Initialize the command definition.

        Args:
            command_id: Identifier of the command.
            handler: Async function of (input, event stores) producing the output.
            required_event_stores: Event stores passed to the handler.
            input_schema: Optional JSON schema the input must match.
            output_schema: Optional JSON schema the output must match.
            event_already_exists_retries: Retries allowed on conflicts.
            on_event_already_exists: Async observer awaited on every conflict.
            cancel_on_timeout: Cancel a timed-out handler instead of abandoning it.
            metrics: Optional metrics middleware for observability.

        Raises:
            ValueError: If the command id, retry budget or a schema is invalid.
            TypeError: If the handler or observer is not callable.
        """
        if not isinstance(command_id, str) or not command_id:
            raise ValueError(f"command_id must be a non-empty string, got {command_id!r}")
        if not callable(handler):
            raise TypeError("handler must be callable")
        if not callable(on_event_already_exists):
            raise TypeError("on_event_already_exists must be callable")

        for declared in (input_schema, output_schema):
            if declared is not None:
                json_schema.validate_schema(declared)

        self.command_id = command_id
        self.handler = handler
        self.required_event_stores = tuple(required_event_stores)
        self.input_schema = input_schema
        self.output_schema = output_schema
        self.on_event_already_exists = on_event_already_exists
        self.cancel_on_timeout = cancel_on_timeout
        self._retry_policy = ConflictRetryPolicy(event_already_exists_retries)
        self._metrics = metrics

    @property
    def event_already_exists_retries(self) -> int:
        return self._retry_policy.max_retries

    @property
    def retry_policy(self) -> ConflictRetryPolicy:
        return self._retry_policy

    async def execute(
        self,
        input: InputT,
        event_stores: Optional[Sequence[Any]] = None,
        timeout: Optional[float] = None,
    ) -> OutputT:
        """
        Execute the command.

        Args:
            input: Input passed to the handler.
            event_stores: Event stores for the handler, defaults to the
                required event stores.
            timeout: Per-attempt timeout in seconds. None never times out.

        Returns:
            The handler's output.

        Raises:
            CommandValidationError: If input or output does not match its schema.
            CommandTimeoutError: If an attempt timed out.
            EventAlreadyExistsError: If every permitted attempt conflicted.
            Exception: Whatever the handler or the conflict observer raised.
        """
        stores = self.required_event_stores if event_stores is None else tuple(event_stores)

        start_time = time.perf_counter()
        success = False
        error_type = None

        try:
            self._validate("input", input, self.input_schema)

            output = await execute_with_retries(
                lambda: self.handler(input, stores),
                self.command_id,
                self._retry_policy,
                self.on_event_already_exists,
                timeout=timeout,
                cancel_on_timeout=self.cancel_on_timeout,
            )

            self._validate("output", output, self.output_schema)

            success = True
            return output

        except (Exception, asyncio.CancelledError) as e:
            error_type = type(e).__name__
            raise
        finally:
            if self._metrics:
                await self._metrics.record_command_metrics(
                    command_id=self.command_id,
                    duration=time.perf_counter() - start_time,
                    success=success,
                    error_type=error_type,
                )

    def _validate(self, direction: str, value: Any, declared: Optional[Dict[str, Any]]) -> None:
        if declared is None:
            return

        try:
            json_schema.validate(value, declared)
        except jsonschema.ValidationError as e:
            raise CommandValidationError(
                self.command_id, direction, json_schema.describe_error(e)
            ) from e

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(command_id={self.command_id!r})"
