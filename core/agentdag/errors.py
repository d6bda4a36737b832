"""Exception hierarchy for agentdag.

Only configuration problems escape ``PipelineExecutor.execute_run``.
Per-invocation failures are recorded on the trace and never unwind a run.
"""


class AgentDagError(Exception):
    """Base class for all agentdag errors."""


class UnknownPipelineError(AgentDagError, KeyError):
    """Raised when a run references a pipeline id that is not registered."""

    def __init__(self, pipeline_id: str, available: list[str] | None = None):
        self.pipeline_id = pipeline_id
        self.available = sorted(available or [])
        super().__init__(pipeline_id)

    def __str__(self) -> str:
        known = ", ".join(self.available) if self.available else "none"
        return f"Unknown pipeline '{self.pipeline_id}'. Registered pipelines: {known}"


class GraphValidationError(AgentDagError, ValueError):
    """Raised when a pipeline graph is structurally invalid."""

    def __init__(self, graph_id: str, errors: list[str]):
        self.graph_id = graph_id
        self.errors = list(errors)
        super().__init__(f"Pipeline '{graph_id}' is invalid: {'; '.join(self.errors)}")


class TraceNotFoundError(AgentDagError, KeyError):
    """Raised when appending to a trace the ledger does not hold."""

    def __init__(self, trace_id: str):
        self.trace_id = trace_id
        super().__init__(trace_id)

    def __str__(self) -> str:
        return f"Trace '{self.trace_id}' not found"
