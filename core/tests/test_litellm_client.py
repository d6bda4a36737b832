"""Tests for LiteLLMClient retry, classification and response mapping."""

from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from agentdag.config import RuntimeConfig
from agentdag.llm.litellm import LiteLLMClient, classify_error
from agentdag.llm.provider import ErrorKind, ModelInvocationError, ModelRequest, classify_status

REQUEST = ModelRequest(
    model="gpt-3.5-turbo-1106",
    system_prompt="You are terse.",
    user_message="Say hi.",
    temperature=0.1,
)


class FakeAPIError(Exception):
    def __init__(self, status_code: int, message: str = "api error"):
        super().__init__(message)
        self.status_code = status_code


def completion(content="hi", usage=True, model="gpt-3.5-turbo-1106"):
    tokens = SimpleNamespace(prompt_tokens=7, completion_tokens=2, total_tokens=9)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=tokens if usage else None,
        model=model,
    )


@pytest.fixture(autouse=True)
def fast_sleep(monkeypatch):
    """Make backoff instant and record requested delays."""
    sleep = AsyncMock()
    monkeypatch.setattr("asyncio.sleep", sleep)
    return sleep


def patch_acompletion(monkeypatch, *outcomes):
    mock = AsyncMock(side_effect=list(outcomes))
    monkeypatch.setattr("litellm.acompletion", mock)
    return mock


class TestClassification:
    @pytest.mark.parametrize(
        ("status", "kind"),
        [
            (429, ErrorKind.RATE_LIMITED),
            (408, ErrorKind.TIMEOUT),
            (500, ErrorKind.SERVER_ERROR),
            (503, ErrorKind.SERVER_ERROR),
            (504, ErrorKind.SERVER_ERROR),
            (400, ErrorKind.OTHER),
            (401, ErrorKind.OTHER),
            (None, ErrorKind.OTHER),
        ],
    )
    def test_classify_status(self, status, kind):
        assert classify_status(status) == kind

    def test_only_other_is_not_retryable(self):
        assert [k for k in ErrorKind if not k.retryable] == [ErrorKind.OTHER]

    def test_timeout_error(self):
        assert classify_error(TimeoutError()) == (ErrorKind.TIMEOUT, None)

    def test_status_code_attribute(self):
        assert classify_error(FakeAPIError(502)) == (ErrorKind.SERVER_ERROR, 502)

    def test_plain_exception(self):
        assert classify_error(ValueError("bad")) == (ErrorKind.OTHER, None)


class TestInvoke:
    @pytest.mark.asyncio
    async def test_success_maps_response(self, monkeypatch):
        mock = patch_acompletion(monkeypatch, completion("hello"))
        client = LiteLLMClient(api_key="sk-test")

        response = await client.invoke(REQUEST)

        assert response.content == "hello"
        assert response.token_usage.prompt_tokens == 7
        assert response.token_usage.total_tokens == 9
        assert response.model == "gpt-3.5-turbo-1106"
        kwargs = mock.call_args.kwargs
        assert kwargs["model"] == "gpt-3.5-turbo-1106"
        assert kwargs["temperature"] == 0.1
        assert kwargs["api_key"] == "sk-test"
        assert kwargs["messages"] == [
            {"role": "system", "content": "You are terse."},
            {"role": "user", "content": "Say hi."},
        ]

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty(self, monkeypatch):
        patch_acompletion(monkeypatch, completion(content=None))
        response = await LiteLLMClient().invoke(REQUEST)
        assert response.content == ""

    @pytest.mark.asyncio
    async def test_retries_then_succeeds(self, monkeypatch, fast_sleep):
        mock = patch_acompletion(
            monkeypatch, FakeAPIError(429), FakeAPIError(503), completion("finally")
        )
        client = LiteLLMClient(jitter_s=0)

        response = await client.invoke(REQUEST)

        assert response.content == "finally"
        assert mock.await_count == 3
        assert [c.args[0] for c in fast_sleep.await_args_list] == [2.0, 4.0]

    @pytest.mark.asyncio
    async def test_gives_up_after_max_retries(self, monkeypatch, fast_sleep):
        mock = patch_acompletion(monkeypatch, *[FakeAPIError(500, "overloaded")] * 4)
        client = LiteLLMClient(jitter_s=0)

        with pytest.raises(ModelInvocationError) as exc_info:
            await client.invoke(REQUEST)

        error = exc_info.value
        assert mock.await_count == 4
        assert error.attempts == 4
        assert error.kind == ErrorKind.SERVER_ERROR
        assert error.status_code == 500
        assert str(error) == "LLM call failed after 4 attempts: overloaded (status: 500)"
        assert [c.args[0] for c in fast_sleep.await_args_list] == [2.0, 4.0, 8.0]

    @pytest.mark.asyncio
    async def test_delay_is_capped(self, monkeypatch, fast_sleep):
        patch_acompletion(monkeypatch, *[FakeAPIError(503)] * 6)
        client = LiteLLMClient(max_retries=5, jitter_s=0)

        with pytest.raises(ModelInvocationError):
            await client.invoke(REQUEST)

        assert [c.args[0] for c in fast_sleep.await_args_list] == [2.0, 4.0, 8.0, 8.0, 8.0]

    @pytest.mark.asyncio
    async def test_non_retryable_fails_immediately(self, monkeypatch, fast_sleep):
        mock = patch_acompletion(monkeypatch, FakeAPIError(401, "bad key"))

        with pytest.raises(ModelInvocationError) as exc_info:
            await LiteLLMClient().invoke(REQUEST)

        assert mock.await_count == 1
        assert exc_info.value.kind == ErrorKind.OTHER
        assert exc_info.value.attempts == 1
        fast_sleep.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_usage_is_an_error(self, monkeypatch):
        patch_acompletion(monkeypatch, completion(usage=False))

        with pytest.raises(ModelInvocationError, match="No usage data returned"):
            await LiteLLMClient().invoke(REQUEST)

    def test_jitter_within_bounds(self):
        client = LiteLLMClient(base_delay_s=1.0, max_delay_s=8.0, jitter_s=1.0)
        for retry in range(1, 6):
            delay = client.backoff_delay(retry)
            base = min(2 ** (retry - 1), 8.0)
            assert base <= delay <= base + 1.0

    def test_from_config(self):
        config = RuntimeConfig(
            model="gpt-4o-mini",
            api_key="sk-cfg",
            max_retries=1,
            base_delay_s=0.5,
            max_delay_s=1.0,
        )
        client = LiteLLMClient.from_config(config)
        assert client.api_key == "sk-cfg"
        assert client.max_retries == 1
        assert client.base_delay_s == 0.5
        assert client.max_delay_s == 1.0
