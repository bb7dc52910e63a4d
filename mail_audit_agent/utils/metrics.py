"""In-memory operation metrics for the audit pipeline."""

from collections import Counter, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Deque, Optional


@dataclass(frozen=True)
class OperationMetric:
    """Timing and outcome of one operation."""

    operation: str
    duration_ms: float
    success: bool
    error_message: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class AuditMetrics:
    """
    Bounded record of recent operations.

    Only the most recent ``max_entries`` samples are kept so latency
    percentiles stay cheap to compute; counters cover the whole process life.
    """

    max_entries: int = 1000
    samples: Deque[OperationMetric] = field(init=False)
    totals: Counter = field(default_factory=Counter)
    failures: Counter = field(default_factory=Counter)
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def __post_init__(self) -> None:
        self.samples = deque(maxlen=self.max_entries)

    def record(
        self,
        operation: str,
        duration_ms: float,
        success: bool,
        error_message: Optional[str] = None,
    ) -> None:
        """Record one completed operation."""
        self.samples.append(
            OperationMetric(
                operation=operation,
                duration_ms=duration_ms,
                success=success,
                error_message=error_message,
            )
        )
        self.totals[operation] += 1
        if not success:
            self.failures[operation] += 1

    def summary(self) -> dict[str, Any]:
        """
        Aggregate view for health reporting.

        Returns:
            Totals, failures and latency (avg/p95 over retained samples) per operation
        """
        operations: dict[str, Any] = {}
        for operation, total in self.totals.items():
            durations = sorted(
                sample.duration_ms for sample in self.samples if sample.operation == operation
            )
            if durations:
                avg_ms = round(sum(durations) / len(durations), 2)
                p95_ms = round(durations[min(len(durations) - 1, int(len(durations) * 0.95))], 2)
            else:
                avg_ms = p95_ms = 0.0
            operations[operation] = {
                "total": total,
                "failures": self.failures[operation],
                "avg_ms": avg_ms,
                "p95_ms": p95_ms,
            }

        uptime = datetime.now(timezone.utc) - self.start_time
        return {
            "uptime_seconds": round(uptime.total_seconds(), 1),
            "operations": operations,
        }
