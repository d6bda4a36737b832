"""TraceLedger: the append-only record of every run and invocation.

Shared by every in-flight invocation of a run. All mutation happens under
one lock, so concurrent appends and updates never lose writes; appends keep
their arrival order. Aggregate statistics are computed only by
``complete()``, which the executor calls after its own barrier.

Usage::

    ledger = TraceLedger()
    trace_id = ledger.create_trace(run_count=3, mode=ExpansionMode.INDEPENDENT)
    ledger.append_execution(trace_id, record)
    ledger.update_execution(trace_id, record.execution_id, {"status": "success"})
    ledger.complete(trace_id, wall_clock_ms=1234)
"""

from __future__ import annotations

import logging
import threading
import uuid
from datetime import UTC, datetime
from typing import Any

from agentdag.errors import TraceNotFoundError
from agentdag.schemas.trace import (
    ExecutionRecord,
    ExecutionStats,
    ExecutionStatus,
    ExpansionMode,
    Trace,
    TraceStatus,
)

logger = logging.getLogger(__name__)


class TraceLedger:
    """In-memory trace store.

    Thread-safe: a single lock guards every read-modify-write. Reads return
    deep copies so callers cannot mutate ledger state.
    """

    def __init__(self) -> None:
        self._traces: dict[str, Trace] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Write side
    # ------------------------------------------------------------------

    def create_trace(
        self,
        run_count: int,
        mode: ExpansionMode | str,
        pipeline_id: str = "",
    ) -> str:
        """Create a ``pending`` trace. Returns its id."""
        trace_id = uuid.uuid4().hex
        trace = Trace(
            trace_id=trace_id,
            pipeline_id=pipeline_id,
            run_count=run_count,
            mode=ExpansionMode(mode),
        )
        with self._lock:
            self._traces[trace_id] = trace
        logger.debug(f"Created trace {trace_id} for pipeline '{pipeline_id}'")
        return trace_id

    def append_execution(self, trace_id: str, record: ExecutionRecord) -> None:
        """Append a record. Order follows call arrival.

        Raises:
            TraceNotFoundError: if the trace does not exist.
        """
        with self._lock:
            trace = self._traces.get(trace_id)
            if trace is None:
                raise TraceNotFoundError(trace_id)
            trace.executions.append(record)

    def update_execution(self, trace_id: str, execution_id: str, partial: dict[str, Any]) -> bool:
        """Apply ``partial`` to the record with ``execution_id``.

        Unknown trace or execution ids are a silent no-op.

        Returns:
            True if a record was updated.
        """
        with self._lock:
            trace = self._traces.get(trace_id)
            if trace is None:
                logger.debug(f"update_execution: trace {trace_id} not found")
                return False
            for index, record in enumerate(trace.executions):
                if record.execution_id == execution_id:
                    trace.executions[index] = record.model_copy(update=partial)
                    return True
        logger.debug(f"update_execution: execution {execution_id} not found in {trace_id}")
        return False

    def set_status(self, trace_id: str, status: TraceStatus | str) -> None:
        """Set a trace's status.

        Raises:
            TraceNotFoundError: if the trace does not exist.
        """
        with self._lock:
            trace = self._traces.get(trace_id)
            if trace is None:
                raise TraceNotFoundError(trace_id)
            trace.status = TraceStatus(status)

    def complete(self, trace_id: str, wall_clock_ms: int | None = None) -> Trace:
        """Freeze aggregate stats and set the final status.

        Args:
            trace_id: Trace to complete.
            wall_clock_ms: Real elapsed time of the run. When omitted, the sum
                of record execution times is used instead.

        Returns:
            A copy of the completed trace. Status is ``failed`` when every
            record errored, ``completed`` otherwise.

        Raises:
            TraceNotFoundError: if the trace does not exist.
        """
        with self._lock:
            trace = self._traces.get(trace_id)
            if trace is None:
                raise TraceNotFoundError(trace_id)

            records = trace.executions
            failed = sum(1 for r in records if r.status == ExecutionStatus.ERROR)
            successful = sum(1 for r in records if r.status == ExecutionStatus.SUCCESS)
            if wall_clock_ms is None:
                total_time = sum(r.execution_time_ms for r in records)
            else:
                total_time = wall_clock_ms

            trace.stats = ExecutionStats(
                total_executions=len(records),
                successful_executions=successful,
                failed_executions=failed,
                total_execution_time_ms=total_time,
            )
            trace.status = TraceStatus.FAILED if failed == len(records) else TraceStatus.COMPLETED
            trace.completed_at = datetime.now(UTC)

            logger.info(
                f"Trace {trace_id} {trace.status.value}: "
                f"{successful}/{len(records)} succeeded in {total_time}ms",
                extra={"event": "trace_completed", "latency_ms": total_time},
            )
            return trace.model_copy(deep=True)

    def delete_trace(self, trace_id: str) -> bool:
        """Delete a trace and all its records. Returns True if it existed."""
        with self._lock:
            return self._traces.pop(trace_id, None) is not None

    def clear(self) -> None:
        """Delete every trace."""
        with self._lock:
            self._traces.clear()

    # ------------------------------------------------------------------
    # Read side
    # ------------------------------------------------------------------

    def get_trace(self, trace_id: str) -> Trace | None:
        with self._lock:
            trace = self._traces.get(trace_id)
            return trace.model_copy(deep=True) if trace else None

    def list_traces(self) -> list[Trace]:
        """All traces, newest first."""
        with self._lock:
            traces = [t.model_copy(deep=True) for t in self._traces.values()]
        return list(reversed(traces))

    def __len__(self) -> int:
        with self._lock:
            return len(self._traces)
