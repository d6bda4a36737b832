"""Tests for PipelineRegistry."""

import json

import pytest

from agentdag.errors import GraphValidationError, UnknownPipelineError
from agentdag.graph.registry import PipelineRegistry, default_registry


def test_get_registered(registry, linear_pipeline):
    assert registry.get("linear") is linear_pipeline
    assert "linear" in registry
    assert len(registry) == 2


def test_unknown_pipeline_lists_known_ids(registry):
    with pytest.raises(UnknownPipelineError) as exc_info:
        registry.get("nope")
    assert exc_info.value.pipeline_id == "nope"
    assert "diamond, linear" in str(exc_info.value)


def test_unknown_pipeline_is_a_key_error(registry):
    with pytest.raises(KeyError):
        registry.get("nope")


def test_register_rejects_cycle(pipeline_factory):
    registry = PipelineRegistry()
    with pytest.raises(GraphValidationError) as exc_info:
        registry.register(pipeline_factory({"a": ["b"], "b": ["a"]}, pipeline_id="loop"))
    assert exc_info.value.graph_id == "loop"
    assert "loop" not in registry


def test_register_rejects_duplicate_id(registry, pipeline_factory):
    with pytest.raises(GraphValidationError, match="already registered"):
        registry.register(pipeline_factory({"x": []}, pipeline_id="linear"))


def test_register_replace(registry, pipeline_factory):
    replacement = pipeline_factory({"x": []}, pipeline_id="linear")
    registry.register(replacement, replace=True)
    assert registry.get("linear") is replacement


def test_unregister(registry):
    assert registry.unregister("linear") is True
    assert registry.unregister("linear") is False


def test_default_registry_has_builtins():
    ids = [p.id for p in default_registry().list()]
    assert ids == ["deterministic", "creative"]


class TestLoadFile:
    def test_load_list(self, tmp_path, linear_pipeline):
        path = tmp_path / "pipelines.json"
        data = [linear_pipeline.model_dump(), {"id": "solo", "nodes": [{"id": "x", "name": "X"}]}]
        path.write_text(json.dumps(data))

        registry = PipelineRegistry()
        loaded = registry.load_file(path)

        assert [p.id for p in loaded] == ["linear", "solo"]
        assert registry.get("linear").upstream_of("sink") == ["root"]

    def test_load_single_object(self, tmp_path):
        path = tmp_path / "one.json"
        path.write_text(json.dumps({"id": "one", "nodes": [{"id": "x", "name": "X"}]}))
        assert [p.id for p in PipelineRegistry().load_file(path)] == ["one"]

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "broken.json"
        path.write_text("{not json")
        with pytest.raises(GraphValidationError, match="Cannot read pipeline file"):
            PipelineRegistry().load_file(path)

    def test_schema_error(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"id": "bad", "nodes": [{"id": "x"}]}))
        with pytest.raises(GraphValidationError) as exc_info:
            PipelineRegistry().load_file(path)
        assert exc_info.value.graph_id == "bad"

    def test_cyclic_file(self, tmp_path):
        path = tmp_path / "cycle.json"
        nodes = [
            {"id": "a", "name": "A", "downstream": ["b"]},
            {"id": "b", "name": "B", "downstream": ["a"]},
        ]
        path.write_text(json.dumps({"id": "cycle", "nodes": nodes}))
        with pytest.raises(GraphValidationError, match="Cycle detected"):
            PipelineRegistry().load_file(path)
