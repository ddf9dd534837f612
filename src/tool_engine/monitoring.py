"""Execution metrics for tool invocations.

The MetricsCollector aggregates terminal execution outcomes per tool and
globally. It is safe to share between executors and threads.
"""

import logging
import threading
import time
from dataclasses import dataclass, field, replace
from typing import Any

logger = logging.getLogger(__name__)


@dataclass
class ToolMetrics:
    """Aggregated metrics for a single tool."""

    name: str
    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    total_execution_time: float = 0.0
    min_execution_time: float | None = None
    max_execution_time: float = 0.0
    last_execution: float | None = None
    error_counts: dict[str, int] = field(default_factory=dict)

    @property
    def average_execution_time(self) -> float:
        if self.total_executions == 0:
            return 0.0
        return self.total_execution_time / self.total_executions

    @property
    def success_rate(self) -> float:
        if self.total_executions == 0:
            return 0.0
        return self.successful_executions / self.total_executions

    def record(self, event: "ExecutionEvent") -> None:
        self.total_executions += 1
        self.total_execution_time += event.duration
        self.last_execution = event.timestamp

        if event.success:
            self.successful_executions += 1
        else:
            self.failed_executions += 1
            error_type = event.error_type or "unknown"
            self.error_counts[error_type] = self.error_counts.get(error_type, 0) + 1

        if self.min_execution_time is None or event.duration < self.min_execution_time:
            self.min_execution_time = event.duration
        if event.duration > self.max_execution_time:
            self.max_execution_time = event.duration

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "total_executions": self.total_executions,
            "successful_executions": self.successful_executions,
            "failed_executions": self.failed_executions,
            "total_execution_time": self.total_execution_time,
            "average_execution_time": self.average_execution_time,
            "min_execution_time": self.min_execution_time,
            "max_execution_time": self.max_execution_time,
            "success_rate": self.success_rate,
            "error_counts": dict(self.error_counts),
        }


@dataclass
class GlobalMetrics:
    """Metrics across all tools."""

    total_executions: int = 0
    total_successful: int = 0
    total_failed: int = 0
    total_execution_time: float = 0.0
    parallel_executions: int = 0
    start_time: float = field(default_factory=time.monotonic)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_executions": self.total_executions,
            "total_successful": self.total_successful,
            "total_failed": self.total_failed,
            "total_execution_time": self.total_execution_time,
            "parallel_executions": self.parallel_executions,
            "uptime": time.monotonic() - self.start_time,
        }


@dataclass(frozen=True)
class ExecutionEvent:
    """A single terminal execution outcome."""

    tool_name: str
    duration: float
    success: bool
    error_type: str | None = None
    timestamp: float = field(default_factory=time.time)


class MetricsCollector:
    """Thread-safe collector of execution metrics."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._tools: dict[str, ToolMetrics] = {}
        self._global = GlobalMetrics()

    def record_execution(self, event: ExecutionEvent) -> None:
        with self._lock:
            self._global.total_executions += 1
            if event.success:
                self._global.total_successful += 1
            else:
                self._global.total_failed += 1
            self._global.total_execution_time += event.duration

            metrics = self._tools.get(event.tool_name)
            if metrics is None:
                metrics = self._tools[event.tool_name] = ToolMetrics(event.tool_name)
            metrics.record(event)

        if event.success:
            logger.debug(
                f"Recorded execution of {event.tool_name}: {event.duration:.3f}s"
            )
        else:
            logger.debug(
                f"Recorded failed execution of {event.tool_name}: "
                f"{event.error_type} after {event.duration:.3f}s"
            )

    def record_parallel_execution(self, count: int) -> None:
        with self._lock:
            self._global.parallel_executions += count

    def tool_metrics(self, tool_name: str) -> ToolMetrics | None:
        """Get a snapshot of the metrics for one tool."""
        with self._lock:
            metrics = self._tools.get(tool_name)
            if metrics is None:
                return None
            return replace(metrics, error_counts=dict(metrics.error_counts))

    def all_tool_metrics(self) -> dict[str, ToolMetrics]:
        with self._lock:
            return {
                name: replace(metrics, error_counts=dict(metrics.error_counts))
                for name, metrics in self._tools.items()
            }

    def global_metrics(self) -> GlobalMetrics:
        with self._lock:
            return replace(self._global)

    def report(self) -> dict[str, Any]:
        """Build a serializable report of all metrics."""
        with self._lock:
            return {
                "global": self._global.to_dict(),
                "tools": {
                    name: metrics.to_dict() for name, metrics in self._tools.items()
                },
            }

    def reset(self) -> None:
        with self._lock:
            self._tools.clear()
            self._global = GlobalMetrics()
        logger.info("Metrics reset")
