"""Mock model client for tests and offline dry runs."""

import asyncio
import json
from collections.abc import Callable

from agentdag.llm.provider import ModelClient, ModelRequest, ModelResponse
from agentdag.schemas.trace import TokenUsage

# A scripted reply: text, an exception to raise, or a function of the request
ScriptedReply = str | BaseException | Callable[[ModelRequest], "str | BaseException"]

DEFAULT_REPLY = json.dumps({"result": "mock output"})


class MockModelClient(ModelClient):
    """
    Returns scripted replies keyed by node id, without calling any API.

    Example:
        client = MockModelClient(
            responses={
                "ingest": '{"rows": 10}',
                "cleaning": lambda req: RuntimeError("boom") if req.replica_index == 0 else "ok",
            },
            delays={"ingest": 0.01},
        )
    """

    def __init__(
        self,
        responses: dict[str, ScriptedReply] | None = None,
        default_response: ScriptedReply = DEFAULT_REPLY,
        delays: dict[str, float] | None = None,
        model: str | None = None,
    ):
        self.responses = dict(responses or {})
        self.default_response = default_response
        self.delays = dict(delays or {})
        self.model = model
        self.requests: list[ModelRequest] = []

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def requests_for(self, node_id: str) -> list[ModelRequest]:
        return [r for r in self.requests if r.node_id == node_id]

    async def invoke(self, request: ModelRequest) -> ModelResponse:
        self.requests.append(request)

        delay = self.delays.get(request.node_id, 0)
        if delay:
            await asyncio.sleep(delay)

        reply = self.responses.get(request.node_id, self.default_response)
        if callable(reply) and not isinstance(reply, BaseException):
            reply = reply(request)
        if isinstance(reply, BaseException):
            raise reply

        content = str(reply)
        prompt_tokens = len(request.system_prompt.split()) + len(request.user_message.split())
        completion_tokens = len(content.split())
        return ModelResponse(
            content=content,
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                total_tokens=prompt_tokens + completion_tokens,
            ),
            execution_time_ms=int(delay * 1000),
            model=self.model or request.model,
        )
