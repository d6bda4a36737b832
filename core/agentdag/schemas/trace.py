"""
Trace Schema - the durable record of one pipeline run.

A Trace holds one ExecutionRecord per (node, replica) invocation, in the
order the invocations started, plus aggregate statistics frozen when the
run completes.
"""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, Field, computed_field

from agentdag.schemas.inputs import RootInput


def utc_now() -> datetime:
    return datetime.now(UTC)


class ExpansionMode(StrEnum):
    """How replicas fan out across the graph."""

    INDEPENDENT = "independent"  # each replica runs the whole pipeline in isolation
    PROPAGATION = "propagation"  # replica i feeds replica i, level by level


class TraceStatus(StrEnum):
    """Lifecycle of a trace."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ExecutionStatus(StrEnum):
    """Lifecycle of a single invocation."""

    PENDING = "pending"
    SUCCESS = "success"
    ERROR = "error"


class NodeStatus(StrEnum):
    """Latest-only UI projection of a node's state."""

    INITIAL = "initial"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class TokenUsage(BaseModel):
    """Token accounting reported by the model client."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ExecutionError(BaseModel):
    """Terminal error recorded on a failed invocation."""

    code: str
    message: str
    timestamp: datetime = Field(default_factory=utc_now)


class ExecutionRecord(BaseModel):
    """One (node, replica) invocation within a trace."""

    execution_id: str
    trace_id: str
    node_id: str
    node_name: str
    replica_index: int = 0

    model: str
    temperature: float
    system_prompt: str = ""

    input: Any = None
    output: Any = None

    status: ExecutionStatus = ExecutionStatus.PENDING
    started_at: datetime = Field(default_factory=utc_now)
    completed_at: datetime | None = None
    execution_time_ms: int = 0
    token_usage: TokenUsage | None = None
    error: ExecutionError | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.PENDING


class ExecutionStats(BaseModel):
    """Aggregate statistics computed once, when the trace completes."""

    total_executions: int = 0
    successful_executions: int = 0
    failed_executions: int = 0
    total_execution_time_ms: int = 0

    @computed_field
    @property
    def success_rate(self) -> float:
        if self.total_executions == 0:
            return 0.0
        return self.successful_executions / self.total_executions


class Trace(BaseModel):
    """The record of one run: every replica, every node."""

    trace_id: str
    pipeline_id: str = ""
    created_at: datetime = Field(default_factory=utc_now)
    run_count: int
    mode: ExpansionMode

    status: TraceStatus = TraceStatus.PENDING
    completed_at: datetime | None = None

    # Insertion order is invocation start order; never reordered.
    executions: list[ExecutionRecord] = Field(default_factory=list)
    stats: ExecutionStats | None = None

    @property
    def propagation_mode(self) -> bool:
        return self.mode == ExpansionMode.PROPAGATION

    def get_execution(self, execution_id: str) -> ExecutionRecord | None:
        for record in self.executions:
            if record.execution_id == execution_id:
                return record
        return None

    def executions_by_node(self) -> dict[str, list[ExecutionRecord]]:
        """Group records by node id, keeping start order within each group."""
        grouped: dict[str, list[ExecutionRecord]] = {}
        for record in self.executions:
            grouped.setdefault(record.node_id, []).append(record)
        return grouped


class RunConfiguration(BaseModel):
    """Everything a caller supplies to start one run. Immutable for its duration."""

    model_config = {"frozen": True}

    pipeline_id: str
    run_count: int = Field(default=1, ge=1, description="Replication count N")
    mode: ExpansionMode = ExpansionMode.INDEPENDENT
    payload: RootInput = Field(default_factory=RootInput)
