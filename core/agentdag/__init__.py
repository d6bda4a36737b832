"""
agentdag - concurrent DAG pipelines of LLM agents.

Build a pipeline of agents, run it N times in independent or propagation
mode, and inspect every invocation afterwards in the trace ledger.
"""

from agentdag.errors import (
    AgentDagError,
    GraphValidationError,
    TraceNotFoundError,
    UnknownPipelineError,
)
from agentdag.graph import (
    AgentInvoker,
    AgentNode,
    ExecutionProgress,
    PipelineExecutor,
    PipelineGraph,
    PipelineRegistry,
    default_registry,
    normalize,
)
from agentdag.llm import LiteLLMClient, MockModelClient, ModelClient, ModelInvocationError
from agentdag.runtime import EventBus, EventType, NodeStatusBoard, RunContext, TraceLedger
from agentdag.sandbox import CodeSandbox, SandboxResult, SubprocessSandbox
from agentdag.schemas import (
    ExecutionRecord,
    ExpansionMode,
    RootInput,
    RunConfiguration,
    Trace,
    TraceStatus,
    UpstreamOutput,
)

__version__ = "0.1.0"

__all__ = [
    # Errors
    "AgentDagError",
    "GraphValidationError",
    "TraceNotFoundError",
    "UnknownPipelineError",
    # Graph
    "AgentInvoker",
    "AgentNode",
    "ExecutionProgress",
    "PipelineExecutor",
    "PipelineGraph",
    "PipelineRegistry",
    "default_registry",
    "normalize",
    # Model clients
    "LiteLLMClient",
    "MockModelClient",
    "ModelClient",
    "ModelInvocationError",
    # Runtime
    "EventBus",
    "EventType",
    "NodeStatusBoard",
    "RunContext",
    "TraceLedger",
    # Sandbox
    "CodeSandbox",
    "SandboxResult",
    "SubprocessSandbox",
    # Schemas
    "ExecutionRecord",
    "ExpansionMode",
    "RootInput",
    "RunConfiguration",
    "Trace",
    "TraceStatus",
    "UpstreamOutput",
]
