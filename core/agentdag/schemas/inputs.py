"""
Agent inputs - the tagged union handed to every invocation.

A run starts from a single ``RootInput`` built from the caller's payload.
Every downstream hop receives an ``UpstreamOutput`` wrapping the producing
agent's normalized output, with the run's root input carried alongside so
later agents can still see the data location and the user's goal.

The variant is decided once, when the input is constructed. Nothing
downstream re-infers it from the shape of the payload.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


class RootInput(BaseModel):
    """The run's initial payload: where the data lives and what the user wants."""

    kind: Literal["root"] = "root"
    data_ref: str | None = Field(default=None, description="Path or id of the input dataset")
    user_prompt: str = Field(default="", description="The user's analytical goal")
    file_name: str | None = None


class UpstreamOutput(BaseModel):
    """Output of an upstream agent, forwarded to its downstream agent."""

    kind: Literal["upstream"] = "upstream"
    source_node_id: str
    replica_index: int = 0
    output: Any = None
    root: RootInput | None = None

    def to_payload(self) -> Any:
        """The upstream agent's output as a downstream agent reads it."""
        return self.output


AgentInput = Annotated[RootInput | UpstreamOutput, Field(discriminator="kind")]


def _embedded_ref(payload: Any) -> str | None:
    """Find a data reference inside an output: ``dataRef`` first, then ``contextPacket.dataRef``."""
    if not isinstance(payload, dict):
        return None
    ref = payload.get("dataRef")
    if isinstance(ref, str) and ref:
        return ref
    packet = payload.get("contextPacket")
    if isinstance(packet, dict):
        ref = packet.get("dataRef")
        if isinstance(ref, str) and ref:
            return ref
    return None


def resolve_data_ref(agent_input: RootInput | UpstreamOutput, output: Any = None) -> str | None:
    """
    Pick the data reference for code execution.

    Precedence:
        1. the root input's explicit data path, whether this is the root hop
           or the root input carried alongside an upstream output
        2. a ``dataRef`` carried forward in the upstream output
        3. ``contextPacket.dataRef`` in the upstream output
        4. the same two fields in the agent's own normalized output
        5. None (the sandbox runs without a path)
    """
    root = agent_input if isinstance(agent_input, RootInput) else agent_input.root
    if root and root.data_ref:
        return root.data_ref
    if isinstance(agent_input, UpstreamOutput):
        ref = _embedded_ref(agent_input.output)
        if ref:
            return ref
    return _embedded_ref(output)
