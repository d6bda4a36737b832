"""
Pipeline registry - the lookup the executor resolves pipeline ids against.

Graphs are validated on the way in, so anything the registry hands out is
a well-formed DAG.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from pydantic import ValidationError

from agentdag.errors import GraphValidationError, UnknownPipelineError
from agentdag.graph.pipeline import PipelineGraph

logger = logging.getLogger(__name__)


class PipelineRegistry:
    """
    Holds pipeline graphs by id.

    Example:
        registry = PipelineRegistry()
        registry.register(my_graph)
        graph = registry.get("my-pipeline")
    """

    def __init__(self, pipelines: list[PipelineGraph] | None = None):
        self._pipelines: dict[str, PipelineGraph] = {}
        for pipeline in pipelines or []:
            self.register(pipeline)

    def register(self, pipeline: PipelineGraph, replace: bool = False) -> None:
        """
        Add a pipeline.

        Raises:
            GraphValidationError: if the graph is malformed or cyclic, or the id
                is taken and ``replace`` is False.
        """
        errors = pipeline.validate()
        if pipeline.id in self._pipelines and not replace:
            errors.append(f"Pipeline id '{pipeline.id}' is already registered")
        if errors:
            raise GraphValidationError(pipeline.id, errors)

        self._pipelines[pipeline.id] = pipeline
        logger.debug(f"Registered pipeline '{pipeline.id}' ({len(pipeline.nodes)} nodes)")

    def unregister(self, pipeline_id: str) -> bool:
        return self._pipelines.pop(pipeline_id, None) is not None

    def get(self, pipeline_id: str) -> PipelineGraph:
        """
        Resolve a pipeline id.

        Raises:
            UnknownPipelineError: if no pipeline has that id.
        """
        pipeline = self._pipelines.get(pipeline_id)
        if pipeline is None:
            raise UnknownPipelineError(pipeline_id, list(self._pipelines))
        return pipeline

    def list(self) -> list[PipelineGraph]:
        return list(self._pipelines.values())

    def __contains__(self, pipeline_id: object) -> bool:
        return pipeline_id in self._pipelines

    def __len__(self) -> int:
        return len(self._pipelines)

    def load_file(self, path: str | Path, replace: bool = False) -> list[PipelineGraph]:
        """
        Register pipelines from a JSON file.

        The file holds either one pipeline object or a list of them, in the
        same shape as ``PipelineGraph.model_dump()``.

        Raises:
            GraphValidationError: if the file cannot be parsed into valid graphs.
        """
        path = Path(path)
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise GraphValidationError(str(path), [f"Cannot read pipeline file: {e}"]) from e

        entries = data if isinstance(data, list) else [data]
        loaded = []
        for entry in entries:
            try:
                pipeline = PipelineGraph.model_validate(entry)
            except ValidationError as e:
                graph_id = entry.get("id", str(path)) if isinstance(entry, dict) else str(path)
                raise GraphValidationError(graph_id, [str(e)]) from e
            self.register(pipeline, replace=replace)
            loaded.append(pipeline)

        logger.info(f"Loaded {len(loaded)} pipeline(s) from {path}")
        return loaded


def default_registry() -> PipelineRegistry:
    """A registry pre-loaded with the built-in pipelines."""
    from agentdag.pipelines.builtin import BUILTIN_PIPELINES

    return PipelineRegistry(BUILTIN_PIPELINES)
