"""Model client abstraction."""

from agentdag.llm.litellm import LiteLLMClient
from agentdag.llm.mock import MockModelClient
from agentdag.llm.provider import (
    ErrorKind,
    ModelClient,
    ModelInvocationError,
    ModelRequest,
    ModelResponse,
)

__all__ = [
    "ErrorKind",
    "LiteLLMClient",
    "MockModelClient",
    "ModelClient",
    "ModelInvocationError",
    "ModelRequest",
    "ModelResponse",
]
