"""Tests for trace context propagation and log formatting."""

import asyncio
import json
import logging
import sys

import pytest

from agentdag.observability import (
    HumanReadableFormatter,
    StructuredFormatter,
    clear_trace_context,
    configure_logging,
    get_trace_context,
    set_trace_context,
)
from agentdag.observability.logging import strip_ansi_codes


def make_record(message="hello", level=logging.INFO, **extra):
    record = logging.LogRecord(
        name="agentdag.test",
        level=level,
        pathname=__file__,
        lineno=1,
        msg=message,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield root
    root.handlers[:] = handlers
    root.setLevel(level)


class TestTraceContext:
    def test_set_merges_fields(self):
        set_trace_context(trace_id="t1", pipeline_id="p")
        set_trace_context(node_id="ingest", replica=0)

        assert get_trace_context() == {
            "trace_id": "t1",
            "pipeline_id": "p",
            "node_id": "ingest",
            "replica": 0,
        }

    def test_get_returns_copy(self):
        set_trace_context(trace_id="t1")
        get_trace_context()["trace_id"] = "changed"
        assert get_trace_context()["trace_id"] == "t1"

    def test_clear(self):
        set_trace_context(trace_id="t1")
        clear_trace_context()
        assert get_trace_context() == {}

    @pytest.mark.asyncio
    async def test_sibling_tasks_do_not_share_node_fields(self):
        set_trace_context(trace_id="t1")

        async def invocation(node_id):
            set_trace_context(node_id=node_id)
            await asyncio.sleep(0)
            return get_trace_context()

        first, second = await asyncio.gather(invocation("a"), invocation("b"))

        assert first == {"trace_id": "t1", "node_id": "a"}
        assert second == {"trace_id": "t1", "node_id": "b"}
        assert get_trace_context() == {"trace_id": "t1"}


class TestStructuredFormatter:
    def test_includes_context_and_extras(self):
        set_trace_context(trace_id="abc123", pipeline_id="deterministic")
        record = make_record("done", latency_ms=42, tokens_used=9, event="execution_completed")

        entry = json.loads(StructuredFormatter().format(record))

        assert entry["message"] == "done"
        assert entry["level"] == "info"
        assert entry["logger"] == "agentdag.test"
        assert entry["trace_id"] == "abc123"
        assert entry["pipeline_id"] == "deterministic"
        assert entry["latency_ms"] == 42
        assert entry["tokens_used"] == 9
        assert entry["event"] == "execution_completed"
        assert "timestamp" in entry

    def test_strips_ansi(self):
        entry = json.loads(StructuredFormatter().format(make_record("\033[31mred\033[0m")))
        assert entry["message"] == "red"

    def test_omits_unset_extras(self):
        entry = json.loads(StructuredFormatter().format(make_record()))
        assert "latency_ms" not in entry
        assert "trace_id" not in entry

    def test_includes_exception(self):
        try:
            raise RuntimeError("kaput")
        except RuntimeError:
            record = make_record("failed", level=logging.ERROR)
            record.exc_info = sys.exc_info()

        entry = json.loads(StructuredFormatter().format(record))
        assert "RuntimeError: kaput" in entry["exception"]


class TestHumanReadableFormatter:
    def test_prefix_with_node_and_replica(self):
        set_trace_context(trace_id="0123456789abcdef", node_id="ingest", replica=2)

        line = strip_ansi_codes(HumanReadableFormatter().format(make_record("working")))

        assert line == "[INFO    ] [trace:01234567 | node:ingest#2] working"

    def test_no_prefix_without_context(self):
        line = strip_ansi_codes(HumanReadableFormatter().format(make_record("plain")))
        assert line == "[INFO    ] plain"

    def test_appends_event(self):
        line = strip_ansi_codes(
            HumanReadableFormatter().format(make_record("x", event="run_started"))
        )
        assert line.endswith("x [run_started]")


class TestConfigureLogging:
    def test_human_format(self, restore_root_logger):
        configure_logging(level="debug", format="human")

        assert restore_root_logger.level == logging.DEBUG
        assert len(restore_root_logger.handlers) == 1
        assert isinstance(restore_root_logger.handlers[0].formatter, HumanReadableFormatter)

    def test_auto_uses_json_in_production(self, restore_root_logger, monkeypatch):
        monkeypatch.setenv("ENV", "production")
        monkeypatch.setenv("NO_COLOR", "")
        monkeypatch.setenv("FORCE_COLOR", "")

        configure_logging(level="INFO", format="auto")

        assert isinstance(restore_root_logger.handlers[0].formatter, StructuredFormatter)

    def test_auto_defaults_to_human(self, restore_root_logger, monkeypatch):
        monkeypatch.delenv("ENV", raising=False)
        monkeypatch.delenv("LOG_FORMAT", raising=False)

        configure_logging(format="auto")

        assert isinstance(restore_root_logger.handlers[0].formatter, HumanReadableFormatter)
