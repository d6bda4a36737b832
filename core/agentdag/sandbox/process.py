"""Sandbox that runs Python code in a child interpreter process."""

import asyncio
import logging
import sys
import tempfile
import time
from pathlib import Path

from agentdag.config import RuntimeConfig
from agentdag.sandbox.base import CodeSandbox, SandboxResult, bind_data_ref

logger = logging.getLogger(__name__)


class SubprocessSandbox(CodeSandbox):
    """
    Executes code with a separate Python interpreter in a scratch directory.

    This isolates crashes and runaway loops from the engine, not malicious
    code: the child has the same filesystem and network access as the parent.
    """

    def __init__(self, python_executable: str | None = None, timeout_s: float = 60.0):
        self.python_executable = python_executable or sys.executable
        self.timeout_s = timeout_s

    @classmethod
    def from_config(cls, config: RuntimeConfig | None = None) -> "SubprocessSandbox":
        config = config or RuntimeConfig()
        return cls(python_executable=config.python_executable, timeout_s=config.sandbox_timeout_s)

    async def run(self, code: str, data_ref: str | None = None) -> SandboxResult:
        start = time.perf_counter()

        def elapsed_ms() -> int:
            return int((time.perf_counter() - start) * 1000)

        if data_ref and Path(data_ref).exists():
            # Relative to the caller's cwd, not the scratch directory
            data_ref = str(Path(data_ref).resolve())
        source = bind_data_ref(code, data_ref)
        with tempfile.TemporaryDirectory(prefix="agentdag-") as workdir:
            script = Path(workdir) / "agent_code.py"
            script.write_text(source, encoding="utf-8")

            try:
                proc = await asyncio.create_subprocess_exec(
                    self.python_executable,
                    str(script),
                    cwd=workdir,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except OSError as e:
                logger.error(f"Could not start interpreter '{self.python_executable}': {e}")
                return SandboxResult(success=False, error=str(e), execution_time_ms=elapsed_ms())

            try:
                stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout_s)
            except TimeoutError:
                proc.kill()
                await proc.wait()
                logger.warning(f"Sandboxed code timed out after {self.timeout_s}s")
                return SandboxResult(
                    success=False,
                    error=f"Execution timed out after {self.timeout_s}s",
                    execution_time_ms=elapsed_ms(),
                )

        out = stdout.decode("utf-8", errors="replace")
        err = stderr.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            message = err.strip() or f"Process exited with code {proc.returncode}"
            return SandboxResult(success=False, error=message, execution_time_ms=elapsed_ms())

        return SandboxResult(success=True, output=out, execution_time_ms=elapsed_ms())
