"""
Pipeline Executor - walks a pipeline DAG for N replicas.

Two expansion modes:

    independent   Each replica runs the whole pipeline on its own. Within a
                  replica a node starts as soon as all of its parents in that
                  replica are terminal. A failed parent abandons the node and
                  everything below it in that replica only.

    propagation   The graph runs level by level. Each level launches N
                  invocations per node (replica i consumes replica i of its
                  first parent) and the next level waits for all of them.
                  A failed parent hands the run's root input to that replica
                  instead, so nothing stalls.

Per-invocation failures are logged and recorded on the trace. Only an
unknown pipeline id escapes ``execute_run``, and it does so before any
trace exists. There is no cancellation: once started, every launched
invocation runs to completion and writes to the ledger.
"""

import asyncio
import logging
import time

from agentdag.config import DEFAULT_MODEL
from agentdag.graph.invoker import AgentInvoker
from agentdag.graph.pipeline import AgentNode
from agentdag.graph.progress import ProgressCallback, ProgressTracker, expected_invocations
from agentdag.graph.registry import PipelineRegistry
from agentdag.llm.provider import ModelClient
from agentdag.observability import set_trace_context
from agentdag.runtime.context import RunContext
from agentdag.runtime.event_bus import EventBus
from agentdag.runtime.ledger import TraceLedger
from agentdag.runtime.node_status import NodeStatusBoard
from agentdag.sandbox.base import CodeSandbox
from agentdag.schemas.inputs import RootInput, UpstreamOutput
from agentdag.schemas.trace import (
    ExecutionRecord,
    ExpansionMode,
    RunConfiguration,
    TraceStatus,
)

logger = logging.getLogger(__name__)

INDEPENDENT_PHASE = "Running pipeline replicas in parallel"


class PipelineExecutor:
    """
    Runs pipelines from a registry against a model client.

    Example:
        executor = PipelineExecutor(default_registry(), LiteLLMClient.from_config())
        trace_id = await executor.execute_run(
            RunConfiguration(
                pipeline_id="deterministic",
                run_count=3,
                mode=ExpansionMode.PROPAGATION,
                payload=RootInput(data_ref="sales.csv", user_prompt="What drives revenue?"),
            ),
            on_progress=lambda p: print(f"{p.percent}% {p.phase}"),
        )
        trace = executor.ledger.get_trace(trace_id)
    """

    def __init__(
        self,
        registry: PipelineRegistry,
        model_client: ModelClient,
        sandbox: CodeSandbox | None = None,
        ledger: TraceLedger | None = None,
        node_status: NodeStatusBoard | None = None,
        event_bus: EventBus | None = None,
        default_model: str = DEFAULT_MODEL,
    ):
        self.registry = registry
        self.invoker = AgentInvoker(model_client, sandbox=sandbox, default_model=default_model)
        self.ledger = ledger or TraceLedger()
        self.node_status = node_status or NodeStatusBoard()
        self.event_bus = event_bus
        self.logger = logger

    async def execute_run(
        self,
        config: RunConfiguration,
        on_progress: ProgressCallback | None = None,
    ) -> str:
        """
        Execute one run and return its trace id.

        Raises:
            UnknownPipelineError: if ``config.pipeline_id`` is not registered.
                No trace is created in that case.
        """
        pipeline = self.registry.get(config.pipeline_id)

        self.node_status.reset(pipeline.node_ids)
        trace_id = self.ledger.create_trace(config.run_count, config.mode, pipeline.id)
        self.ledger.set_status(trace_id, TraceStatus.RUNNING)

        total = expected_invocations(config.run_count, len(pipeline.nodes))
        ctx = RunContext(
            trace_id=trace_id,
            pipeline=pipeline,
            config=config,
            ledger=self.ledger,
            node_status=self.node_status,
            progress=ProgressTracker(total, on_progress, self.event_bus, trace_id),
            event_bus=self.event_bus,
        )

        set_trace_context(trace_id=trace_id, pipeline_id=pipeline.id)
        self.logger.info(
            f"🚀 Starting run of '{pipeline.id}': {config.run_count} replica(s), "
            f"{config.mode.value} mode, {total} invocations expected",
            extra={"event": "run_started"},
        )
        if self.event_bus:
            await self.event_bus.emit_run_started(
                trace_id, pipeline.id, config.run_count, config.mode.value
            )

        start = time.perf_counter()
        try:
            if config.mode == ExpansionMode.PROPAGATION:
                await self._run_propagation(ctx)
            else:
                await self._run_independent(ctx)
        except Exception as e:
            self.ledger.set_status(trace_id, TraceStatus.FAILED)
            self.logger.exception(f"Run {trace_id} aborted: {e}")
            if self.event_bus:
                await self.event_bus.emit_run_failed(trace_id, str(e))
            raise

        wall_clock_ms = int((time.perf_counter() - start) * 1000)
        trace = self.ledger.complete(trace_id, wall_clock_ms)
        progress = ctx.progress.snapshot()
        self.logger.info(
            f"✓ Run finished: {trace.status.value}, "
            f"{progress.completed}/{progress.total} invocations terminal ({progress.percent}%)",
            extra={"event": "run_completed", "latency_ms": wall_clock_ms},
        )
        if self.event_bus:
            await self.event_bus.emit_run_completed(
                trace_id, trace.status.value, trace.stats.model_dump() if trace.stats else {}
            )
        return trace_id

    # === INVOCATION ===

    async def _invoke(
        self,
        ctx: RunContext,
        node: AgentNode,
        agent_input: RootInput | UpstreamOutput,
        replica_index: int,
    ) -> ExecutionRecord | None:
        """Invoke one agent, isolating its failure. Returns None if it failed."""
        try:
            record = await self.invoker.invoke(node, agent_input, ctx, replica_index)
        except Exception as e:
            self.logger.error(
                f"   ✗ Agent '{node.id}' replica {replica_index} failed: {type(e).__name__}: {e}",
                extra={"node_id": node.id, "replica": replica_index},
            )
            record = None
        await ctx.progress.record_completion()
        return record

    # === INDEPENDENT MODE ===

    async def _run_independent(self, ctx: RunContext) -> None:
        ctx.progress.set_phase(INDEPENDENT_PHASE)
        self.logger.info(
            f"   ⑂ Fan-out: {ctx.config.run_count} independent replica(s) "
            f"of {len(ctx.pipeline.nodes)} agents"
        )
        await asyncio.gather(
            *[self._run_replica(ctx, replica) for replica in range(ctx.config.run_count)]
        )

    async def _run_replica(self, ctx: RunContext, replica_index: int) -> None:
        """Run every node of one replica, each as soon as its parents are terminal."""
        pipeline = ctx.pipeline
        tasks: dict[str, asyncio.Task[ExecutionRecord | None]] = {}

        for node_id in pipeline.topological_order():
            parents = [tasks[parent] for parent in pipeline.upstream_of(node_id)]
            tasks[node_id] = asyncio.create_task(
                self._run_replica_node(ctx, pipeline.get_node(node_id), replica_index, parents),
                name=f"{node_id}#{replica_index}",
            )

        await asyncio.gather(*tasks.values())

    async def _run_replica_node(
        self,
        ctx: RunContext,
        node: AgentNode,
        replica_index: int,
        parents: list["asyncio.Task[ExecutionRecord | None]"],
    ) -> ExecutionRecord | None:
        if not parents:
            return await self._invoke(ctx, node, ctx.config.payload, replica_index)

        results = await asyncio.gather(*parents)
        if any(result is None for result in results):
            self.logger.warning(
                f"   ⊘ Skipping '{node.id}' replica {replica_index}: an upstream agent failed",
                extra={"node_id": node.id, "replica": replica_index},
            )
            return None

        # First declared parent supplies the input
        primary = results[0]
        agent_input = UpstreamOutput(
            source_node_id=primary.node_id,
            replica_index=replica_index,
            output=primary.output,
            root=ctx.config.payload,
        )
        return await self._invoke(ctx, node, agent_input, replica_index)

    # === PROPAGATION MODE ===

    async def _run_propagation(self, ctx: RunContext) -> None:
        pipeline = ctx.pipeline
        run_count = ctx.config.run_count
        levels = pipeline.levels()
        outputs: dict[str, list[ExecutionRecord | None]] = {}

        for depth, level in enumerate(levels, start=1):
            ctx.progress.set_phase(
                f"Level {depth}/{len(levels)}: running {', '.join(level)} ({run_count}x each)"
            )
            self.logger.info(f"   ▶ Level {depth}/{len(levels)}: {', '.join(level)}")

            launches: list[tuple[str, int]] = []
            invocations = []
            for node_id in level:
                node = pipeline.get_node(node_id)
                primary = pipeline.primary_upstream(node_id)
                for replica_index in range(run_count):
                    agent_input = self._propagated_input(
                        ctx, node_id, primary, outputs, replica_index
                    )
                    launches.append((node_id, replica_index))
                    invocations.append(self._invoke(ctx, node, agent_input, replica_index))

            # Barrier: the next level starts only after every invocation here is terminal
            results = await asyncio.gather(*invocations)

            for node_id in level:
                outputs[node_id] = [None] * run_count
            for (node_id, replica_index), record in zip(launches, results, strict=True):
                outputs[node_id][replica_index] = record

    def _propagated_input(
        self,
        ctx: RunContext,
        node_id: str,
        primary: str | None,
        outputs: dict[str, list[ExecutionRecord | None]],
        replica_index: int,
    ) -> RootInput | UpstreamOutput:
        root = ctx.config.payload
        if primary is None:
            return root

        record = outputs[primary][replica_index]
        if record is None:
            self.logger.warning(
                f"   ↩ '{node_id}' replica {replica_index}: upstream '{primary}' failed, "
                "falling back to the root input",
                extra={"node_id": node_id, "replica": replica_index},
            )
            return root

        return UpstreamOutput(
            source_node_id=primary,
            replica_index=replica_index,
            output=record.output,
            root=root,
        )
