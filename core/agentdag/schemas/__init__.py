"""Data models shared by the executor, the ledger and trace consumers."""

from agentdag.schemas.inputs import AgentInput, RootInput, UpstreamOutput, resolve_data_ref
from agentdag.schemas.trace import (
    ExecutionError,
    ExecutionRecord,
    ExecutionStats,
    ExecutionStatus,
    ExpansionMode,
    NodeStatus,
    RunConfiguration,
    TokenUsage,
    Trace,
    TraceStatus,
)

__all__ = [
    # Inputs
    "AgentInput",
    "RootInput",
    "UpstreamOutput",
    "resolve_data_ref",
    # Trace
    "ExecutionError",
    "ExecutionRecord",
    "ExecutionStats",
    "ExecutionStatus",
    "ExpansionMode",
    "NodeStatus",
    "RunConfiguration",
    "TokenUsage",
    "Trace",
    "TraceStatus",
]
