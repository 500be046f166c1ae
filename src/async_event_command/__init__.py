"""
async-event-command: Async command execution for event-sourced applications.

This package runs command handlers with a per-attempt timeout and retries
them when a concurrent writer already appended the event they tried to
write, notifying a caller-supplied observer on every conflict.
"""

__version__ = "0.1.0"

from .cassandra_store import CassandraEventStore
from .command import Command, ignore_event_already_exists
from .event_store import EventDetail, EventStore, InMemoryEventStore
from .exceptions import (
    AsyncCommandError,
    CommandTimeoutError,
    CommandValidationError,
    EventAlreadyExistsError,
    InternalInvariantError,
)
from .execution import execute_with_retries
from .metrics import (
    CommandMetrics,
    InMemoryMetricsCollector,
    MetricsCollector,
    MetricsMiddleware,
    PrometheusMetricsCollector,
    create_metrics_system,
)
from .retry_policy import ConflictRetryPolicy, ExecutionAttempt
from .timeout import run_with_timeout

__all__ = [
    "Command",
    "ignore_event_already_exists",
    "ExecutionAttempt",
    "ConflictRetryPolicy",
    "execute_with_retries",
    "run_with_timeout",
    "AsyncCommandError",
    "CommandTimeoutError",
    "CommandValidationError",
    "EventAlreadyExistsError",
    "InternalInvariantError",
    "EventDetail",
    "EventStore",
    "InMemoryEventStore",
    "CassandraEventStore",
    "MetricsMiddleware",
    "MetricsCollector",
    "InMemoryMetricsCollector",
    "PrometheusMetricsCollector",
    "CommandMetrics",
    "create_metrics_system",
]
