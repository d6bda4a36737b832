"""Model client abstraction - the single async call every agent invocation makes."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum

from agentdag.errors import AgentDagError
from agentdag.schemas.trace import TokenUsage


@dataclass(frozen=True)
class ModelRequest:
    """One chat completion: a system prompt and a single user message."""

    model: str
    system_prompt: str
    user_message: str
    temperature: float = 0.7
    # Routing metadata; clients may ignore it
    node_id: str = ""
    replica_index: int = 0


@dataclass
class ModelResponse:
    """Response from a model call."""

    content: str
    token_usage: TokenUsage
    execution_time_ms: int
    model: str


class ErrorKind(StrEnum):
    """Classification used by a client's own retry policy."""

    RATE_LIMITED = "rate_limited"
    TIMEOUT = "timeout"
    SERVER_ERROR = "server_error"
    OTHER = "other"

    @property
    def retryable(self) -> bool:
        return self is not ErrorKind.OTHER


class ModelInvocationError(AgentDagError):
    """Terminal failure of a model call, raised after the client gives up."""

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.OTHER,
        status_code: int | None = None,
        attempts: int = 1,
    ):
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.attempts = attempts


def classify_status(status_code: int | None) -> ErrorKind:
    """Map an HTTP status to an ErrorKind (429, 408 and any 5xx are retryable)."""
    if status_code is None:
        return ErrorKind.OTHER
    if status_code == 429:
        return ErrorKind.RATE_LIMITED
    if status_code == 408:
        return ErrorKind.TIMEOUT
    if status_code >= 500:
        return ErrorKind.SERVER_ERROR
    return ErrorKind.OTHER


class ModelClient(ABC):
    """
    Abstract model client - plug in any backend.

    Implementations own retries, backoff and token accounting. The engine
    calls ``invoke`` once per agent invocation and treats any exception as
    terminal for that invocation.
    """

    @abstractmethod
    async def invoke(self, request: ModelRequest) -> ModelResponse:
        """
        Run one completion.

        Raises:
            ModelInvocationError: when the call fails for good.
        """
        ...
