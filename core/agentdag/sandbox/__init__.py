"""Code-execution sandboxes for agent-generated code."""

from agentdag.sandbox.base import DATA_PATH_PLACEHOLDER, CodeSandbox, SandboxResult, bind_data_ref
from agentdag.sandbox.process import SubprocessSandbox

__all__ = [
    "DATA_PATH_PLACEHOLDER",
    "CodeSandbox",
    "SandboxResult",
    "SubprocessSandbox",
    "bind_data_ref",
]
