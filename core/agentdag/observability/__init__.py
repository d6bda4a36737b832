"""
Observability for pipeline runs.

- Trace context propagation via ContextVar (trace_id, pipeline_id, node_id, replica)
- Structured JSON logging for production
- Human-readable logging for development
"""

from agentdag.observability.logging import (
    HumanReadableFormatter,
    StructuredFormatter,
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
)

__all__ = [
    "HumanReadableFormatter",
    "StructuredFormatter",
    "configure_logging",
    "get_trace_context",
    "set_trace_context",
    "clear_trace_context",
]
