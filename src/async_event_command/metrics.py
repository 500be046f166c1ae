"""
Metrics for command executions.

Records one entry per ``Command.execute`` call:
- Execution duration
- Outcome and error type
- Aggregated success and error rates per command
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, TYPE_CHECKING

from .constants import DEFAULT_MAX_METRICS_ENTRIES

if TYPE_CHECKING:
    from prometheus_client import CollectorRegistry, Counter, Histogram

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CommandMetrics:
    """Metrics for a single command execution."""

    command_id: str
    duration: float
    success: bool
    error_type: Optional[str] = None
    timestamp: datetime = field(default_factory=_utcnow)


class MetricsCollector(ABC):
    """Abstract base class for metrics collection backends."""

    @abstractmethod
    async def record_command(self, metrics: CommandMetrics) -> None:
        """Record command execution metrics."""
        pass

    @abstractmethod
    async def get_stats(self) -> Dict[str, Any]:
        """Get aggregated statistics."""
        pass


class InMemoryMetricsCollector(MetricsCollector):
    """In-memory metrics collector for development and testing."""

    def __init__(self, max_entries: int = DEFAULT_MAX_METRICS_ENTRIES):
        self.max_entries = max_entries
        self.command_metrics: deque = deque(maxlen=max_entries)
        self.error_counts: Dict[str, int] = defaultdict(int)
        self.command_counts: Dict[str, int] = defaultdict(int)
        self._lock = asyncio.Lock()

    async def record_command(self, metrics: CommandMetrics) -> None:
        """Record command execution metrics."""
        async with self._lock:
            self.command_metrics.append(metrics)
            self.command_counts[metrics.command_id] += 1

            if not metrics.success and metrics.error_type:
                self.error_counts[metrics.error_type] += 1

    async def get_stats(self) -> Dict[str, Any]:
        """Get aggregated statistics."""
        async with self._lock:
            if not self.command_metrics:
                return {"message": "No metrics available"}

            recent = [
                m for m in self.command_metrics if m.timestamp > _utcnow() - timedelta(minutes=5)
            ]

            if not recent:
                return {
                    "command_performance": {"message": "No recent commands"},
                    "error_summary": dict(self.error_counts),
                    "command_counts": dict(self.command_counts),
                }

            durations = [m.duration for m in recent]
            success_rate = sum(1 for m in recent if m.success) / len(recent)

            return {
                "command_performance": {
                    "total_commands": len(self.command_metrics),
                    "recent_commands_5min": len(recent),
                    "avg_duration_ms": sum(durations) / len(durations) * 1000,
                    "min_duration_ms": min(durations) * 1000,
                    "max_duration_ms": max(durations) * 1000,
                    "success_rate": success_rate,
                },
                "error_summary": dict(self.error_counts),
                "command_counts": dict(self.command_counts),
            }


class PrometheusMetricsCollector(MetricsCollector):
    """Prometheus metrics collector for production monitoring."""

    command_duration: Optional["Histogram"]
    command_total: Optional["Counter"]
    error_total: Optional["Counter"]
    _available: bool

    def __init__(self, registry: Optional["CollectorRegistry"] = None) -> None:
        try:
            from prometheus_client import REGISTRY, Counter, Histogram
        except ImportError:
            logger.warning("prometheus_client not available, metrics disabled")
            self.command_duration = None
            self.command_total = None
            self.error_total = None
            self._available = False
            return

        if registry is None:
            registry = REGISTRY

        self.command_duration = Histogram(
            "event_command_duration_seconds",
            "Time spent executing commands, retries included",
            ["command_id", "success"],
            registry=registry,
        )
        self.command_total = Counter(
            "event_command_executions_total",
            "Total number of command executions",
            ["command_id", "success"],
            registry=registry,
        )
        self.error_total = Counter(
            "event_command_errors_total",
            "Total number of failed command executions",
            ["command_id", "error_type"],
            registry=registry,
        )
        self._available = True

    async def record_command(self, metrics: CommandMetrics) -> None:
        """Record command execution metrics to Prometheus."""
        if not self._available:
            return

        success_label = "success" if metrics.success else "failure"

        if self.command_duration is not None:
            self.command_duration.labels(
                command_id=metrics.command_id, success=success_label
            ).observe(metrics.duration)

        if self.command_total is not None:
            self.command_total.labels(command_id=metrics.command_id, success=success_label).inc()

        if not metrics.success and metrics.error_type and self.error_total is not None:
            self.error_total.labels(
                command_id=metrics.command_id, error_type=metrics.error_type
            ).inc()

    async def get_stats(self) -> Dict[str, Any]:
        """Get current Prometheus metrics."""
        if not self._available:
            return {"error": "Prometheus client not available"}

        return {"message": "Metrics available via Prometheus endpoint"}


class MetricsMiddleware:
    """Middleware to collect metrics for command executions."""

    def __init__(self, collectors: List[MetricsCollector]):
        self.collectors = collectors
        self._enabled = True

    def enable(self) -> None:
        """Enable metrics collection."""
        self._enabled = True

    def disable(self) -> None:
        """Disable metrics collection."""
        self._enabled = False

    async def record_command_metrics(
        self,
        command_id: str,
        duration: float,
        success: bool,
        error_type: Optional[str] = None,
    ) -> None:
        """Record metrics for a command execution."""
        if not self._enabled:
            return

        metrics = CommandMetrics(
            command_id=command_id,
            duration=duration,
            success=success,
            error_type=error_type,
        )

        # Collector failures must never fail the command
        for collector in self.collectors:
            try:
                await collector.record_command(metrics)
            except Exception as e:
                logger.warning(f"Failed to record metrics: {e}")


def create_metrics_system(
    backend: str = "memory", prometheus_enabled: bool = False
) -> MetricsMiddleware:
    """Create a metrics system with specified backend."""
    collectors: List[MetricsCollector] = []

    if backend == "memory":
        collectors.append(InMemoryMetricsCollector())

    if prometheus_enabled:
        collectors.append(PrometheusMetricsCollector())

    return MetricsMiddleware(collectors)
