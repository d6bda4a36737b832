"""Tests for NodeStatusBoard."""

from agentdag.runtime.node_status import NodeStatusBoard
from agentdag.schemas.trace import NodeStatus


def test_unknown_node_is_initial():
    assert NodeStatusBoard().get("anything") == NodeStatus.INITIAL


def test_latest_value_wins():
    board = NodeStatusBoard()
    board.set("ingest", NodeStatus.LOADING)
    board.set("ingest", NodeStatus.ERROR)
    board.set("ingest", NodeStatus.SUCCESS)
    assert board.get("ingest") == NodeStatus.SUCCESS


def test_reset_named_nodes():
    board = NodeStatusBoard()
    board.set("a", NodeStatus.SUCCESS)
    board.set("b", NodeStatus.ERROR)
    board.reset(["a"])
    assert board.snapshot() == {"a": NodeStatus.INITIAL, "b": NodeStatus.ERROR}


def test_reset_everything():
    board = NodeStatusBoard()
    board.set("a", NodeStatus.SUCCESS)
    board.reset()
    assert board.snapshot() == {}
