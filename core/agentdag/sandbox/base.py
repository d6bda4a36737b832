"""Code-execution sandbox interface."""

from abc import ABC, abstractmethod
from dataclasses import dataclass

# Placeholder agents write where the data file path belongs
DATA_PATH_PLACEHOLDER = "DATA_FILE_PATH"


@dataclass
class SandboxResult:
    """Outcome of one code execution. ``output`` is set on success, ``error`` on failure."""

    success: bool
    execution_time_ms: int
    output: str | None = None
    error: str | None = None


class CodeSandbox(ABC):
    """Runs agent-generated code against an optional data reference."""

    @abstractmethod
    async def run(self, code: str, data_ref: str | None = None) -> SandboxResult:
        """
        Execute ``code``.

        Implementations report failures (syntax errors, crashes, timeouts)
        through ``SandboxResult`` rather than raising.
        """
        ...


def bind_data_ref(code: str, data_ref: str | None) -> str:
    """Replace the data path placeholder with the resolved reference."""
    if not data_ref:
        return code
    return code.replace(DATA_PATH_PLACEHOLDER, data_ref)
