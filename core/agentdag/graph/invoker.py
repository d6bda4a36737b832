"""
Agent Invoker - runs one agent against one input.

For every invocation, in order:
    1. append a pending ExecutionRecord to the trace
    2. mark the node ``loading``
    3. build the request (root-style or downstream-style, by input variant)
    4. call the model client
    5. normalize the reply; run any executable code in the sandbox
    6. finalize the record and mark the node ``success``

If the model call fails the record is finalized with the error, the node
is marked ``error`` and the exception is re-raised to the executor. The
invoker never retries; retries belong to the model client.
"""

import json
import logging
import time
import uuid
from typing import Any

from agentdag.config import DEFAULT_MODEL
from agentdag.graph.normalizer import executable_code, normalize
from agentdag.graph.pipeline import AgentNode
from agentdag.llm.provider import ModelClient, ModelRequest
from agentdag.observability import set_trace_context
from agentdag.runtime.context import RunContext
from agentdag.sandbox.base import CodeSandbox
from agentdag.schemas.inputs import RootInput, UpstreamOutput, resolve_data_ref
from agentdag.schemas.trace import (
    ExecutionError,
    ExecutionRecord,
    ExecutionStatus,
    NodeStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


def build_user_message(agent_input: RootInput | UpstreamOutput) -> str:
    """Render the user message for an agent from its input variant."""
    if isinstance(agent_input, RootInput):
        if agent_input.data_ref:
            lines = [f"Please analyze the CSV file located at: {agent_input.data_ref}"]
        else:
            lines = ["No data file was provided."]
        if agent_input.file_name:
            lines.append(f"File name: {agent_input.file_name}")
        if agent_input.user_prompt:
            lines.append(f"User's analytical goal: {agent_input.user_prompt}")
        return "\n\n".join(lines)

    serialized = json.dumps(agent_input.to_payload(), indent=2, default=str)
    message = f"Based on the following input:\n\n{serialized}\n\nPlease perform your analysis."
    if agent_input.root and agent_input.root.user_prompt:
        message += f"\n\nUser's analytical goal: {agent_input.root.user_prompt}"
    return message


def _parse_stdout(stdout: str) -> Any:
    text = stdout.strip()
    try:
        return json.loads(text)
    except ValueError:
        return text


class AgentInvoker:
    """
    Executes single (node, replica) invocations against a model client.

    Example:
        invoker = AgentInvoker(MockModelClient(), sandbox=SubprocessSandbox())
        record = await invoker.invoke(node, RootInput(data_ref="data.csv"), ctx, replica_index=0)
    """

    def __init__(
        self,
        model_client: ModelClient,
        sandbox: CodeSandbox | None = None,
        default_model: str = DEFAULT_MODEL,
    ):
        self.model_client = model_client
        self.sandbox = sandbox
        self.default_model = default_model

    async def invoke(
        self,
        node: AgentNode,
        agent_input: RootInput | UpstreamOutput,
        ctx: RunContext,
        replica_index: int = 0,
    ) -> ExecutionRecord:
        """
        Run one agent invocation and record it on the trace.

        Returns:
            The finalized ExecutionRecord (status ``success``).

        Raises:
            Whatever the model client raised, after the record is finalized
            with status ``error``.
        """
        set_trace_context(node_id=node.id, replica=replica_index)
        model = node.model or self.default_model

        record = ExecutionRecord(
            execution_id=uuid.uuid4().hex,
            trace_id=ctx.trace_id,
            node_id=node.id,
            node_name=node.name,
            replica_index=replica_index,
            model=model,
            temperature=node.temperature,
            system_prompt=node.system_prompt,
            input=agent_input.model_dump(mode="json"),
        )
        start = time.perf_counter()
        ctx.ledger.append_execution(ctx.trace_id, record)
        await ctx.set_node_status(node.id, NodeStatus.LOADING)
        if ctx.event_bus:
            await ctx.event_bus.emit_execution_started(
                ctx.trace_id, node.id, record.execution_id, replica_index
            )

        try:
            request = ModelRequest(
                model=model,
                system_prompt=node.system_prompt,
                user_message=build_user_message(agent_input),
                temperature=node.temperature,
                node_id=node.id,
                replica_index=replica_index,
            )
            response = await self.model_client.invoke(request)
        except Exception as e:
            elapsed_ms = int((time.perf_counter() - start) * 1000)
            partial = {
                "status": ExecutionStatus.ERROR,
                "error": ExecutionError(code=type(e).__name__, message=str(e)),
                "execution_time_ms": elapsed_ms,
                "completed_at": utc_now(),
            }
            ctx.ledger.update_execution(ctx.trace_id, record.execution_id, partial)
            await ctx.set_node_status(node.id, NodeStatus.ERROR)
            if ctx.event_bus:
                await ctx.event_bus.emit_execution_failed(
                    ctx.trace_id, node.id, record.execution_id, replica_index, str(e)
                )
            raise

        normalized = normalize(response.content)
        output = normalized.to_payload()
        code = executable_code(normalized)
        if code is not None and self.sandbox is not None:
            output = await self._run_code(code, resolve_data_ref(agent_input, output), output)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        partial = {
            "status": ExecutionStatus.SUCCESS,
            "output": output,
            "execution_time_ms": elapsed_ms,
            "token_usage": response.token_usage,
            "completed_at": utc_now(),
        }
        ctx.ledger.update_execution(ctx.trace_id, record.execution_id, partial)
        await ctx.set_node_status(node.id, NodeStatus.SUCCESS)
        if ctx.event_bus:
            await ctx.event_bus.emit_execution_completed(
                ctx.trace_id, node.id, record.execution_id, replica_index, elapsed_ms
            )

        logger.info(
            f"Agent '{node.id}' replica {replica_index} succeeded in {elapsed_ms}ms",
            extra={
                "latency_ms": elapsed_ms,
                "tokens_used": response.token_usage.total_tokens,
                "model": response.model,
            },
        )
        return record.model_copy(update=partial)

    async def _run_code(self, code: str, data_ref: str | None, output: Any) -> dict[str, Any]:
        """Run code in the sandbox and fold the result into the agent output."""
        merged = dict(output)
        try:
            result = await self.sandbox.run(code, data_ref)
        except Exception as e:
            # The agent itself succeeded; a broken sandbox is reported like failed code
            logger.error(f"Sandbox raised {type(e).__name__}: {e}")
            merged["executionError"] = f"{type(e).__name__}: {e}"
            merged["executionTimeMs"] = 0
            return merged

        if result.success:
            merged["executionResult"] = _parse_stdout(result.output or "")
        else:
            logger.warning(f"Generated code failed: {result.error}")
            merged["executionError"] = result.error
        merged["executionTimeMs"] = result.execution_time_ms
        return merged
