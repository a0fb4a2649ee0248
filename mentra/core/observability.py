"""Observability Module - Logging, Tracing, and Metrics

This module provides:
1. Structured logging with context
2. Gateway call tracing (attempts, credential rotations, latency)
3. Aggregated call metrics
"""
import logging
from typing import Dict, Any, Optional
from dataclasses import dataclass, field
from datetime import datetime

from mentra.config.settings import LOG_LEVEL

# Configure structured logging
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s | %(name)s | %(levelname)s | %(message)s',
    datefmt='%Y-%m-%d %H:%M:%S'
)

logger = logging.getLogger("mentra")


@dataclass
class CallTrace:
    """Represents a single gateway operation, across all of its retries."""
    operation: str
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    duration_ms: Optional[float] = None
    input_summary: str = ""
    attempts: int = 0
    rotations: int = 0
    success: bool = True
    error: Optional[str] = None

    def complete(self, success: bool = True, error: str = None):
        """Mark trace as complete."""
        self.end_time = datetime.now()
        self.duration_ms = (self.end_time - self.start_time).total_seconds() * 1000
        self.success = success
        self.error = error


@dataclass
class GatewayMetrics:
    """Aggregated metrics for gateway calls."""
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_attempts: int = 0
    total_rotations: int = 0
    total_latency_ms: float = 0
    operation_latencies: Dict[str, list] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.successful_requests / self.total_requests

    @property
    def avg_latency_ms(self) -> float:
        if self.total_requests == 0:
            return 0.0
        return self.total_latency_ms / self.total_requests

    def record(self, trace: CallTrace):
        """Record a trace into metrics."""
        self.total_requests += 1
        if trace.success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1

        self.total_attempts += trace.attempts
        self.total_rotations += trace.rotations

        if trace.duration_ms:
            self.total_latency_ms += trace.duration_ms
            self.operation_latencies.setdefault(trace.operation, []).append(trace.duration_ms)

    def summary(self) -> Dict[str, Any]:
        """Return metrics summary."""
        operation_avg = {}
        for operation, latencies in self.operation_latencies.items():
            if latencies:
                operation_avg[operation] = sum(latencies) / len(latencies)

        return {
            "total_requests": self.total_requests,
            "success_rate": f"{self.success_rate:.1%}",
            "avg_latency_ms": f"{self.avg_latency_ms:.0f}ms",
            "total_attempts": self.total_attempts,
            "total_rotations": self.total_rotations,
            "operation_avg_latency": operation_avg,
        }


# Global metrics instance
metrics = GatewayMetrics()


class Tracer:
    """Context manager for tracing a gateway operation."""

    def __init__(self, operation: str, input_data: Any = None, registry: GatewayMetrics = None):
        self.trace = CallTrace(operation=operation)
        self.registry = registry if registry is not None else metrics
        if input_data:
            self.trace.input_summary = str(input_data)[:200]

    def __enter__(self):
        logger.info(f"▶ {self.trace.operation} started")
        return self.trace

    def __exit__(self, exc_type, exc_val, exc_tb):
        if exc_type:
            self.trace.complete(success=False, error=str(exc_val))
            logger.error(f"✖ {self.trace.operation} failed after {self.trace.attempts} attempt(s): {exc_val}")
        else:
            self.trace.complete(success=True)
            logger.info(
                f"✔ {self.trace.operation} completed in {self.trace.duration_ms:.0f}ms "
                f"({self.trace.attempts} attempt(s), {self.trace.rotations} rotation(s))"
            )

        self.registry.record(self.trace)
        return False  # Don't suppress exceptions


def get_metrics_summary() -> Dict[str, Any]:
    """Get current metrics summary."""
    return metrics.summary()
