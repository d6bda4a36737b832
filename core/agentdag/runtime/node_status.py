"""Latest-only node status projection for live UI feedback."""

import threading

from agentdag.schemas.trace import NodeStatus


class NodeStatusBoard:
    """
    Maps node id to the state of that node's most recent invocation.

    Every new invocation overwrites the previous value; there is no history.
    Nodes never invoked read as ``initial``.
    """

    def __init__(self) -> None:
        self._statuses: dict[str, NodeStatus] = {}
        self._lock = threading.Lock()

    def set(self, node_id: str, status: NodeStatus) -> None:
        with self._lock:
            self._statuses[node_id] = status

    def get(self, node_id: str) -> NodeStatus:
        with self._lock:
            return self._statuses.get(node_id, NodeStatus.INITIAL)

    def snapshot(self) -> dict[str, NodeStatus]:
        with self._lock:
            return dict(self._statuses)

    def reset(self, node_ids: list[str] | None = None) -> None:
        """Return nodes to ``initial``. With no ids, forget every node."""
        with self._lock:
            if node_ids is None:
                self._statuses.clear()
                return
            for node_id in node_ids:
                self._statuses[node_id] = NodeStatus.INITIAL
