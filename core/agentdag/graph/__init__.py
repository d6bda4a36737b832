"""Pipeline graph definition and execution."""

from agentdag.graph.executor import PipelineExecutor
from agentdag.graph.invoker import AgentInvoker, build_user_message
from agentdag.graph.normalizer import (
    CodeBlockOutput,
    NormalizedOutput,
    RawOutput,
    StructuredOutput,
    executable_code,
    normalize,
)
from agentdag.graph.pipeline import AgentNode, PipelineGraph
from agentdag.graph.progress import ExecutionProgress, ProgressTracker
from agentdag.graph.registry import PipelineRegistry, default_registry

__all__ = [
    # Definition
    "AgentNode",
    "PipelineGraph",
    "PipelineRegistry",
    "default_registry",
    # Execution
    "AgentInvoker",
    "ExecutionProgress",
    "PipelineExecutor",
    "ProgressTracker",
    "build_user_message",
    # Normalization
    "CodeBlockOutput",
    "NormalizedOutput",
    "RawOutput",
    "StructuredOutput",
    "executable_code",
    "normalize",
]
