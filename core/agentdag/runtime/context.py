"""Per-run context threaded explicitly through the executor and invoker."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from agentdag.runtime.event_bus import EventBus
from agentdag.runtime.ledger import TraceLedger
from agentdag.runtime.node_status import NodeStatusBoard
from agentdag.schemas.trace import NodeStatus, RunConfiguration

if TYPE_CHECKING:
    from agentdag.graph.pipeline import PipelineGraph
    from agentdag.graph.progress import ProgressTracker


@dataclass
class RunContext:
    """
    Handles to the shared state of one run.

    Built once per ``execute_run`` call and passed to every invocation;
    nothing below the executor reaches for module-level state.
    """

    trace_id: str
    pipeline: PipelineGraph
    config: RunConfiguration
    ledger: TraceLedger
    node_status: NodeStatusBoard
    progress: ProgressTracker
    event_bus: EventBus | None = None

    async def set_node_status(self, node_id: str, status: NodeStatus) -> None:
        self.node_status.set(node_id, status)
        if self.event_bus:
            await self.event_bus.emit_node_status_changed(self.trace_id, node_id, status.value)
