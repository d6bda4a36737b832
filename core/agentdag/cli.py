"""
Command-line interface for agentdag.

Usage:
    agentdag list
    agentdag validate pipelines.json
    agentdag run --pipeline deterministic --runs 3 --mode propagation \
        --data sales.csv --prompt "What drives revenue?" --trace-out trace.json
    agentdag run --pipeline creative --dry-run
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from agentdag.config import RuntimeConfig
from agentdag.errors import AgentDagError, GraphValidationError
from agentdag.graph.executor import PipelineExecutor
from agentdag.graph.progress import ExecutionProgress
from agentdag.graph.registry import PipelineRegistry, default_registry
from agentdag.llm.litellm import LiteLLMClient
from agentdag.llm.mock import MockModelClient
from agentdag.observability import configure_logging
from agentdag.sandbox.process import SubprocessSandbox
from agentdag.schemas.inputs import RootInput
from agentdag.schemas.trace import ExpansionMode, RunConfiguration, TraceStatus


def _build_registry(pipelines_file: str | None) -> PipelineRegistry:
    registry = default_registry()
    if pipelines_file:
        registry.load_file(pipelines_file, replace=True)
    return registry


def _print_progress(progress: ExecutionProgress) -> None:
    print(
        f"[{progress.percent:3d}%] {progress.completed}/{progress.total} {progress.phase}",
        file=sys.stderr,
    )


def cmd_run(args: argparse.Namespace) -> int:
    """Execute a pipeline run and print its summary."""
    try:
        registry = _build_registry(args.pipelines_file)
    except GraphValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    runtime_config = RuntimeConfig()
    if args.dry_run:
        client = MockModelClient()
    else:
        client = LiteLLMClient.from_config(runtime_config)
    sandbox = None if args.no_sandbox else SubprocessSandbox.from_config(runtime_config)

    config = RunConfiguration(
        pipeline_id=args.pipeline,
        run_count=args.runs,
        mode=ExpansionMode(args.mode),
        payload=RootInput(
            data_ref=str(Path(args.data).resolve()) if args.data else None,
            user_prompt=args.prompt or "",
            file_name=Path(args.data).name if args.data else None,
        ),
    )

    executor = PipelineExecutor(
        registry, client, sandbox=sandbox, default_model=runtime_config.model
    )
    try:
        trace_id = asyncio.run(
            executor.execute_run(config, on_progress=None if args.quiet else _print_progress)
        )
    except AgentDagError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    trace = executor.ledger.get_trace(trace_id)
    if args.trace_out:
        Path(args.trace_out).write_text(trace.model_dump_json(indent=2), encoding="utf-8")
        print(f"Trace written to {args.trace_out}", file=sys.stderr)

    stats = trace.stats
    print(f"Trace:      {trace.trace_id}")
    print(f"Pipeline:   {trace.pipeline_id} ({trace.mode.value}, {trace.run_count} replica(s))")
    print(f"Status:     {trace.status.value}")
    print(
        f"Executions: {stats.total_executions} total, "
        f"{stats.successful_executions} succeeded, {stats.failed_executions} failed"
    )
    print(f"Wall clock: {stats.total_execution_time_ms}ms")
    for node_id, records in trace.executions_by_node().items():
        errors = sum(1 for r in records if r.error is not None)
        print(f"  {node_id:<24} {len(records)} run(s), {errors} error(s)")

    return 0 if trace.status == TraceStatus.COMPLETED else 1


def cmd_list(args: argparse.Namespace) -> int:
    """List registered pipelines."""
    try:
        registry = _build_registry(args.pipelines_file)
    except GraphValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    if args.json:
        print(json.dumps([p.model_dump() for p in registry.list()], indent=2))
        return 0

    for pipeline in registry.list():
        print(
            f"{pipeline.id:<16} {pipeline.name} "
            f"(v{pipeline.version}, {len(pipeline.nodes)} agents)"
        )
        for level, node_ids in enumerate(pipeline.levels()):
            print(f"    L{level}: {', '.join(node_ids)}")
    return 0


def cmd_validate(args: argparse.Namespace) -> int:
    """Validate a pipeline file without running it."""
    registry = PipelineRegistry()
    try:
        loaded = registry.load_file(args.file)
    except GraphValidationError as e:
        print(f"✗ {e.graph_id}", file=sys.stderr)
        for error in e.errors:
            print(f"    - {error}", file=sys.stderr)
        return 1

    for pipeline in loaded:
        print(f"✓ {pipeline.id}: {len(pipeline.nodes)} agents, {len(pipeline.levels())} levels")
    return 0


def register_commands(subparsers: argparse._SubParsersAction) -> None:
    """Register run, list and validate."""
    run_parser = subparsers.add_parser("run", help="Execute a pipeline run")
    run_parser.add_argument("--pipeline", "-p", default="deterministic", help="Pipeline id")
    run_parser.add_argument("--runs", "-n", type=int, default=1, help="Replication count N")
    run_parser.add_argument(
        "--mode",
        "-m",
        choices=[mode.value for mode in ExpansionMode],
        default=ExpansionMode.INDEPENDENT.value,
        help="Expansion mode",
    )
    run_parser.add_argument("--data", "-d", help="Path to the input data file")
    run_parser.add_argument("--prompt", help="The analytical goal passed to every agent")
    run_parser.add_argument("--pipelines-file", help="JSON file with extra pipeline definitions")
    run_parser.add_argument("--trace-out", help="Write the finished trace as JSON to this path")
    run_parser.add_argument(
        "--dry-run", action="store_true", help="Use a mock model client instead of a real API"
    )
    run_parser.add_argument(
        "--no-sandbox", action="store_true", help="Do not execute agent-generated code"
    )
    run_parser.add_argument("--quiet", "-q", action="store_true", help="Hide progress output")
    run_parser.set_defaults(func=cmd_run)

    list_parser = subparsers.add_parser("list", help="List available pipelines")
    list_parser.add_argument("--pipelines-file", help="JSON file with extra pipeline definitions")
    list_parser.add_argument("--json", action="store_true", help="Print definitions as JSON")
    list_parser.set_defaults(func=cmd_list)

    validate_parser = subparsers.add_parser("validate", help="Validate a pipeline JSON file")
    validate_parser.add_argument("file", help="Pipeline JSON file")
    validate_parser.set_defaults(func=cmd_validate)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="agentdag",
        description="agentdag - run DAG pipelines of LLM agents",
    )
    parser.add_argument("--log-level", default="WARNING", help="Log level (DEBUG, INFO, ...)")
    parser.add_argument(
        "--log-format",
        choices=["auto", "json", "human"],
        default="auto",
        help="Log output format",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)
    register_commands(subparsers)
    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    configure_logging(level=args.log_level, format=args.log_format)

    if args.command == "run" and args.runs < 1:
        parser.error("--runs must be at least 1")

    if hasattr(args, "func"):
        sys.exit(args.func(args))


if __name__ == "__main__":
    main()
