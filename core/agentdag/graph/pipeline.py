"""
Pipeline graph - agent nodes wired into a DAG.

A node lists its downstream node ids; upstream relations are derived.
Graphs are immutable once built and are validated (including acyclicity)
before the registry accepts them, so the executor can assume a DAG.
"""

from pydantic import BaseModel, Field

from agentdag.errors import GraphValidationError


class AgentNode(BaseModel):
    """
    One agent: a model, a fixed instruction prompt and its outgoing edges.

    Example:
        AgentNode(
            id="cleaning",
            name="Data Cleaning Agent",
            system_prompt="You clean tabular data...",
            temperature=0.2,
            downstream=["analytics"],
        )
    """

    model_config = {"frozen": True}

    id: str
    name: str
    description: str = ""
    system_prompt: str = ""
    # None runs on the executor's default model
    model: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    downstream: list[str] = Field(default_factory=list)


class PipelineGraph(BaseModel):
    """
    A named, versioned DAG of agents.

    Node declaration order matters: it breaks ties in topological order and
    decides which parent supplies a multi-parent node's input.
    """

    model_config = {"frozen": True}

    id: str
    name: str = ""
    version: str = "1.0.0"
    description: str = ""
    nodes: list[AgentNode] = Field(default_factory=list)

    def get_node(self, node_id: str) -> AgentNode | None:
        """Get a node by ID."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def upstream_of(self, node_id: str) -> list[str]:
        """Direct parents of a node, in declaration order."""
        return [node.id for node in self.nodes if node_id in node.downstream]

    def primary_upstream(self, node_id: str) -> str | None:
        """The parent whose output feeds this node (first declared)."""
        parents = self.upstream_of(node_id)
        return parents[0] if parents else None

    def roots(self) -> list[str]:
        """Nodes with no incoming edge."""
        targets = {target for node in self.nodes for target in node.downstream}
        return [node.id for node in self.nodes if node.id not in targets]

    def sinks(self) -> list[str]:
        """Nodes with no outgoing edge."""
        return [node.id for node in self.nodes if not node.downstream]

    def levels(self) -> list[list[str]]:
        """
        Group nodes into dependency levels (Kahn's algorithm, wave by wave).

        Level 0 holds the roots; a node sits one level below its deepest
        parent. Within a level, declaration order is kept.

        Raises:
            GraphValidationError: if the graph contains a cycle.
        """
        in_degree = {node.id: 0 for node in self.nodes}
        for node in self.nodes:
            for target in node.downstream:
                if target in in_degree:
                    in_degree[target] += 1

        current = [node_id for node_id, degree in in_degree.items() if degree == 0]
        levels: list[list[str]] = []
        placed = 0
        while current:
            levels.append(current)
            placed += len(current)
            ready: set[str] = set()
            for node_id in current:
                for target in self.get_node(node_id).downstream:
                    if target not in in_degree:
                        continue
                    in_degree[target] -= 1
                    if in_degree[target] == 0:
                        ready.add(target)
            current = [node_id for node_id in self.node_ids if node_id in ready]

        if placed != len(self.nodes):
            stuck = sorted(node_id for node_id, degree in in_degree.items() if degree > 0)
            raise GraphValidationError(self.id, [f"Cycle detected among nodes: {stuck}"])
        return levels

    def topological_order(self) -> list[str]:
        """All node ids, parents before children."""
        return [node_id for level in self.levels() for node_id in level]

    def validate(self) -> list[str]:  # type: ignore[override]
        """Validate the graph structure. Returns a list of problems, empty if valid."""
        errors = []

        if not self.nodes:
            errors.append("Pipeline has no nodes")
            return errors

        seen: set[str] = set()
        for node in self.nodes:
            if node.id in seen:
                errors.append(f"Duplicate node ID: '{node.id}'")
            seen.add(node.id)

        for node in self.nodes:
            if len(set(node.downstream)) != len(node.downstream):
                errors.append(f"Node '{node.id}' lists a downstream node more than once")
            for target in node.downstream:
                if target == node.id:
                    errors.append(f"Node '{node.id}' points at itself")
                elif target not in seen:
                    errors.append(f"Node '{node.id}' references missing downstream '{target}'")

        if not errors:
            try:
                self.levels()
            except GraphValidationError as e:
                errors.extend(e.errors)

        return errors
