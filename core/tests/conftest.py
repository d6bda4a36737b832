"""Shared fixtures for agentdag tests."""

import pytest

from agentdag.graph.pipeline import AgentNode, PipelineGraph
from agentdag.graph.progress import ProgressTracker
from agentdag.graph.registry import PipelineRegistry
from agentdag.observability import clear_trace_context
from agentdag.runtime.context import RunContext
from agentdag.runtime.ledger import TraceLedger
from agentdag.runtime.node_status import NodeStatusBoard
from agentdag.sandbox.base import CodeSandbox, SandboxResult
from agentdag.schemas.inputs import RootInput
from agentdag.schemas.trace import ExpansionMode, RunConfiguration


class RecordingSandbox(CodeSandbox):
    """Sandbox double that records calls and returns a canned result."""

    def __init__(self, result: SandboxResult | None = None):
        self.result = result or SandboxResult(
            success=True, output='{"rows": 3}', execution_time_ms=5
        )
        self.calls: list[tuple[str, str | None]] = []

    async def run(self, code: str, data_ref: str | None = None) -> SandboxResult:
        self.calls.append((code, data_ref))
        return self.result


def build_pipeline(edges: dict[str, list[str]], pipeline_id: str = "test") -> PipelineGraph:
    """Build a pipeline from ``{node_id: [downstream ids]}`` in declaration order."""
    return PipelineGraph(
        id=pipeline_id,
        name=f"{pipeline_id} pipeline",
        nodes=[
            AgentNode(
                id=node_id,
                name=node_id.title(),
                system_prompt=f"You are the {node_id} agent.",
                temperature=0.2,
                downstream=targets,
            )
            for node_id, targets in edges.items()
        ],
    )


@pytest.fixture(autouse=True)
def _clean_trace_context():
    clear_trace_context()
    yield
    clear_trace_context()


@pytest.fixture
def pipeline_factory():
    return build_pipeline


@pytest.fixture
def linear_pipeline() -> PipelineGraph:
    return build_pipeline({"root": ["sink"], "sink": []}, pipeline_id="linear")


@pytest.fixture
def diamond_pipeline() -> PipelineGraph:
    """a -> b, a -> c, b -> d, c -> d."""
    return build_pipeline(
        {"a": ["b", "c"], "b": ["d"], "c": ["d"], "d": []},
        pipeline_id="diamond",
    )


@pytest.fixture
def registry(linear_pipeline, diamond_pipeline) -> PipelineRegistry:
    return PipelineRegistry([linear_pipeline, diamond_pipeline])


@pytest.fixture
def recording_sandbox() -> RecordingSandbox:
    return RecordingSandbox()


@pytest.fixture
def root_input() -> RootInput:
    return RootInput(
        data_ref="/data/sales.csv", user_prompt="What drives revenue?", file_name="sales.csv"
    )


@pytest.fixture
def run_context(linear_pipeline, root_input):
    """A RunContext over the linear pipeline with a freshly created trace."""
    ledger = TraceLedger()
    config = RunConfiguration(
        pipeline_id=linear_pipeline.id,
        run_count=1,
        mode=ExpansionMode.INDEPENDENT,
        payload=root_input,
    )
    trace_id = ledger.create_trace(1, ExpansionMode.INDEPENDENT, linear_pipeline.id)
    return RunContext(
        trace_id=trace_id,
        pipeline=linear_pipeline,
        config=config,
        ledger=ledger,
        node_status=NodeStatusBoard(),
        progress=ProgressTracker(total=2),
    )
