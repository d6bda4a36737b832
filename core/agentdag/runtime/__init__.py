"""Shared run state: the trace ledger, node status projection and event bus."""

from agentdag.runtime.context import RunContext
from agentdag.runtime.event_bus import EventBus, EventType, PipelineEvent
from agentdag.runtime.ledger import TraceLedger
from agentdag.runtime.node_status import NodeStatusBoard

__all__ = [
    "EventBus",
    "EventType",
    "NodeStatusBoard",
    "PipelineEvent",
    "RunContext",
    "TraceLedger",
]
