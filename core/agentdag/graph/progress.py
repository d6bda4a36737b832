"""
Progress accounting for a run.

The denominator is fixed up front at N x |nodes| for both modes. Every
terminal invocation (success or error) advances the counter by one.
Abandoned branches never complete, so a partially failed run can stop
short of 100%; the tracker reports that as-is.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from agentdag.runtime.event_bus import EventBus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ExecutionProgress:
    """Snapshot reported after each terminal invocation."""

    phase: str
    completed: int
    total: int
    percent: int


ProgressCallback = Callable[[ExecutionProgress], None]


def expected_invocations(run_count: int, node_count: int) -> int:
    """Total invocations a run is accounted against, regardless of mode or shape."""
    return run_count * node_count


def percent_complete(completed: int, total: int) -> int:
    """``round(completed / total * 100)`` with halves rounded up."""
    if total <= 0:
        return 100
    return (200 * completed + total) // (2 * total)


class ProgressTracker:
    """Monotonic completed-vs-total counter with a human-readable phase label."""

    def __init__(
        self,
        total: int,
        on_progress: ProgressCallback | None = None,
        event_bus: EventBus | None = None,
        trace_id: str = "",
    ):
        self.total = total
        self.completed = 0
        self.phase = "Starting"
        self._on_progress = on_progress
        self._event_bus = event_bus
        self._trace_id = trace_id

    def set_phase(self, phase: str) -> None:
        self.phase = phase

    def snapshot(self) -> ExecutionProgress:
        return ExecutionProgress(
            phase=self.phase,
            completed=self.completed,
            total=self.total,
            percent=percent_complete(self.completed, self.total),
        )

    async def record_completion(self) -> ExecutionProgress:
        """Count one terminal invocation and notify listeners."""
        self.completed += 1
        progress = self.snapshot()

        if self._on_progress:
            try:
                self._on_progress(progress)
            except Exception as e:
                logger.error(f"Progress callback failed: {e}")

        if self._event_bus:
            await self._event_bus.emit_progress(
                self._trace_id,
                progress.phase,
                progress.completed,
                progress.total,
                progress.percent,
            )

        logger.debug(
            f"Progress {progress.completed}/{progress.total} "
            f"({progress.percent}%) - {progress.phase}",
            extra={"percent": progress.percent},
        )
        return progress
