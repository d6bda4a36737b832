"""LiteLLM model client with retry and exponential backoff.

Routes to any provider LiteLLM supports (OpenAI by default, given the
``gpt-3.5-turbo-1106`` model name). Retries rate limits, timeouts and
server errors; everything else fails on the first attempt.
"""

import asyncio
import logging
import random
import time
from typing import Any

import litellm

from agentdag.config import (
    DEFAULT_BASE_DELAY_S,
    DEFAULT_MAX_DELAY_S,
    DEFAULT_MAX_RETRIES,
    RuntimeConfig,
)
from agentdag.llm.provider import (
    ErrorKind,
    ModelClient,
    ModelInvocationError,
    ModelRequest,
    ModelResponse,
    classify_status,
)
from agentdag.schemas.trace import TokenUsage

logger = logging.getLogger(__name__)


def classify_error(error: Exception) -> tuple[ErrorKind, int | None]:
    """Classify an exception raised by ``litellm.acompletion``."""
    status_code = getattr(error, "status_code", None)
    if not isinstance(status_code, int):
        status_code = None

    if isinstance(error, litellm.RateLimitError):
        return ErrorKind.RATE_LIMITED, status_code or 429
    if isinstance(error, litellm.Timeout | asyncio.TimeoutError):
        return ErrorKind.TIMEOUT, status_code
    if isinstance(error, litellm.APIConnectionError):
        return ErrorKind.SERVER_ERROR, status_code
    return classify_status(status_code), status_code


class LiteLLMClient(ModelClient):
    """
    Model client backed by ``litellm.acompletion``.

    Example:
        client = LiteLLMClient(api_key=os.environ["OPENAI_API_KEY"])
        response = await client.invoke(
            ModelRequest(model="gpt-3.5-turbo-1106", system_prompt="...", user_message="...")
        )
    """

    def __init__(
        self,
        api_key: str | None = None,
        api_base: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        base_delay_s: float = DEFAULT_BASE_DELAY_S,
        max_delay_s: float = DEFAULT_MAX_DELAY_S,
        jitter_s: float = 1.0,
        **kwargs: Any,
    ):
        """
        Args:
            api_key: Provider API key. LiteLLM falls back to its own env vars.
            api_base: Custom endpoint, e.g. a local proxy.
            max_retries: Retries after the first attempt.
            base_delay_s: Delay before the first retry; doubles per retry.
            max_delay_s: Cap on the exponential part of the delay.
            jitter_s: Upper bound of the uniform random delay added to each wait.
            **kwargs: Passed through to ``litellm.acompletion``.
        """
        self.api_key = api_key
        self.api_base = api_base
        self.max_retries = max_retries
        self.base_delay_s = base_delay_s
        self.max_delay_s = max_delay_s
        self.jitter_s = jitter_s
        self.extra_kwargs = kwargs

    @classmethod
    def from_config(cls, config: RuntimeConfig | None = None) -> "LiteLLMClient":
        config = config or RuntimeConfig()
        return cls(
            api_key=config.api_key,
            api_base=config.api_base,
            max_retries=config.max_retries,
            base_delay_s=config.base_delay_s,
            max_delay_s=config.max_delay_s,
        )

    def backoff_delay(self, retry: int) -> float:
        """Seconds to wait before retry number ``retry`` (1-based)."""
        delay = min(self.base_delay_s * (2 ** (retry - 1)), self.max_delay_s)
        return delay + random.uniform(0, self.jitter_s)

    async def invoke(self, request: ModelRequest) -> ModelResponse:
        start = time.perf_counter()
        kwargs: dict[str, Any] = {
            "model": request.model,
            "messages": [
                {"role": "system", "content": request.system_prompt},
                {"role": "user", "content": request.user_message},
            ],
            "temperature": request.temperature,
            **self.extra_kwargs,
        }
        if self.api_key:
            kwargs["api_key"] = self.api_key
        if self.api_base:
            kwargs["api_base"] = self.api_base

        attempts = 0
        while True:
            attempts += 1
            try:
                response = await litellm.acompletion(**kwargs)
                break
            except Exception as e:
                kind, status_code = classify_error(e)
                logger.warning(
                    f"Model call failed (attempt {attempts}/{self.max_retries + 1}): "
                    f"{type(e).__name__}: {e}",
                    extra={"model": request.model, "event": kind.value},
                )
                if kind.retryable and attempts <= self.max_retries:
                    delay = self.backoff_delay(attempts)
                    logger.info(f"Retrying model call in {delay:.2f}s")
                    await asyncio.sleep(delay)
                    continue

                status = f" (status: {status_code})" if status_code is not None else ""
                raise ModelInvocationError(
                    f"LLM call failed after {attempts} attempts: {e}{status}",
                    kind=kind,
                    status_code=status_code,
                    attempts=attempts,
                ) from e

        usage = getattr(response, "usage", None)
        if usage is None:
            raise ModelInvocationError(
                f"LLM call failed after {attempts} attempts: No usage data returned",
                attempts=attempts,
            )

        content = response.choices[0].message.content or ""
        execution_time_ms = int((time.perf_counter() - start) * 1000)
        return ModelResponse(
            content=content,
            token_usage=TokenUsage(
                prompt_tokens=usage.prompt_tokens or 0,
                completion_tokens=usage.completion_tokens or 0,
                total_tokens=usage.total_tokens or 0,
            ),
            execution_time_ms=execution_time_ms,
            model=getattr(response, "model", None) or request.model,
        )
