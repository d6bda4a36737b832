"""Built-in pipeline definitions."""

from agentdag.pipelines.builtin import BUILTIN_PIPELINES, CREATIVE_PIPELINE, DETERMINISTIC_PIPELINE

__all__ = ["BUILTIN_PIPELINES", "CREATIVE_PIPELINE", "DETERMINISTIC_PIPELINE"]
