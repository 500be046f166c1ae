"""
Unit tests for metrics module.
"""

from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from prometheus_client import CollectorRegistry

from async_event_command.metrics import (
    CommandMetrics,
    InMemoryMetricsCollector,
    MetricsMiddleware,
    PrometheusMetricsCollector,
    create_metrics_system,
)


class TestCommandMetrics:
    """Test CommandMetrics dataclass."""

    def test_command_metrics_creation(self):
        """Test creating CommandMetrics instance."""
        metrics = CommandMetrics(command_id="CREATE_USER", duration=0.123, success=True)

        assert metrics.command_id == "CREATE_USER"
        assert metrics.duration == 0.123
        assert metrics.success is True
        assert metrics.error_type is None
        assert metrics.timestamp.tzinfo is timezone.utc


class TestInMemoryMetricsCollector:
    """Test InMemoryMetricsCollector."""

    async def test_empty_stats(self):
        """Test stats before anything was recorded."""
        collector = InMemoryMetricsCollector()

        assert await collector.get_stats() == {"message": "No metrics available"}

    async def test_record_and_aggregate(self):
        """Test recording executions and aggregating them."""
        collector = InMemoryMetricsCollector()

        await collector.record_command(CommandMetrics("CREATE_USER", 0.1, True))
        await collector.record_command(
            CommandMetrics("CREATE_USER", 0.3, False, "ConnectionRefusedError")
        )
        await collector.record_command(CommandMetrics("DELETE_USER", 0.2, True))

        stats = await collector.get_stats()

        performance = stats["command_performance"]
        assert performance["total_commands"] == 3
        assert performance["recent_commands_5min"] == 3
        assert performance["avg_duration_ms"] == pytest.approx(200)
        assert performance["min_duration_ms"] == pytest.approx(100)
        assert performance["max_duration_ms"] == pytest.approx(300)
        assert performance["success_rate"] == pytest.approx(2 / 3)
        assert stats["error_summary"] == {"ConnectionRefusedError": 1}
        assert stats["command_counts"] == {"CREATE_USER": 2, "DELETE_USER": 1}

    async def test_old_entries_not_recent(self):
        """Test that only the last five minutes count as recent."""
        collector = InMemoryMetricsCollector()
        old = datetime.now(timezone.utc) - timedelta(minutes=10)

        await collector.record_command(CommandMetrics("CREATE_USER", 0.1, True, timestamp=old))

        stats = await collector.get_stats()

        assert stats["command_performance"] == {"message": "No recent commands"}
        assert stats["command_counts"] == {"CREATE_USER": 1}

    async def test_max_entries(self):
        """Test that the collector keeps a bounded history."""
        collector = InMemoryMetricsCollector(max_entries=2)

        for i in range(5):
            await collector.record_command(CommandMetrics(f"CMD_{i}", 0.1, True))

        assert [m.command_id for m in collector.command_metrics] == ["CMD_3", "CMD_4"]


class TestPrometheusMetricsCollector:
    """Test PrometheusMetricsCollector."""

    async def test_record_command(self):
        """Test that executions land in the Prometheus registry."""
        registry = CollectorRegistry()
        collector = PrometheusMetricsCollector(registry=registry)

        await collector.record_command(CommandMetrics("CREATE_USER", 0.5, True))
        await collector.record_command(
            CommandMetrics("CREATE_USER", 0.1, False, "EventAlreadyExistsError")
        )

        assert (
            registry.get_sample_value(
                "event_command_executions_total",
                {"command_id": "CREATE_USER", "success": "success"},
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "event_command_errors_total",
                {"command_id": "CREATE_USER", "error_type": "EventAlreadyExistsError"},
            )
            == 1.0
        )
        assert (
            registry.get_sample_value(
                "event_command_duration_seconds_sum",
                {"command_id": "CREATE_USER", "success": "success"},
            )
            == 0.5
        )

    async def test_get_stats(self):
        """Test stats point at the Prometheus endpoint."""
        collector = PrometheusMetricsCollector(registry=CollectorRegistry())

        assert await collector.get_stats() == {
            "message": "Metrics available via Prometheus endpoint"
        }


class TestMetricsMiddleware:
    """Test MetricsMiddleware."""

    async def test_fan_out(self):
        """Test that every collector receives the metrics."""
        first, second = Mock(), Mock()
        first.record_command = AsyncMock()
        second.record_command = AsyncMock()
        middleware = MetricsMiddleware([first, second])

        await middleware.record_command_metrics("CREATE_USER", 0.2, True)

        for collector in (first, second):
            collector.record_command.assert_awaited_once()
            recorded = collector.record_command.call_args[0][0]
            assert recorded.command_id == "CREATE_USER"
            assert recorded.success is True

    async def test_disabled(self):
        """Test that a disabled middleware records nothing."""
        collector = InMemoryMetricsCollector()
        middleware = MetricsMiddleware([collector])

        middleware.disable()
        await middleware.record_command_metrics("CREATE_USER", 0.2, True)
        middleware.enable()
        await middleware.record_command_metrics("CREATE_USER", 0.2, False, "KeyError")

        assert len(collector.command_metrics) == 1

    async def test_collector_failure_is_logged(self, caplog):
        """Test that a failing collector does not break the others."""
        broken = Mock()
        broken.record_command = AsyncMock(side_effect=RuntimeError("disk full"))
        collector = InMemoryMetricsCollector()
        middleware = MetricsMiddleware([broken, collector])

        await middleware.record_command_metrics("CREATE_USER", 0.2, True)

        assert len(collector.command_metrics) == 1
        assert "Failed to record metrics: disk full" in caplog.text


class TestCreateMetricsSystem:
    """Test the factory function."""

    def test_memory_backend(self):
        """Test the default in-memory system."""
        middleware = create_metrics_system()

        assert len(middleware.collectors) == 1
        assert isinstance(middleware.collectors[0], InMemoryMetricsCollector)

    def test_no_backend(self):
        """Test a system without collectors."""
        assert create_metrics_system(backend="none").collectors == []
