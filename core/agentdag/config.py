"""Shared agentdag configuration utilities.

Centralises reading of ~/.agentdag/configuration.json so the CLI, the
model client and the sandbox agree on defaults.
"""

import json
import os
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

DEFAULT_MODEL = "gpt-3.5-turbo-1106"
DEFAULT_MAX_RETRIES = 3
DEFAULT_BASE_DELAY_S = 2.0
DEFAULT_MAX_DELAY_S = 8.0
DEFAULT_SANDBOX_TIMEOUT_S = 60.0

# ---------------------------------------------------------------------------
# Low-level config file access
# ---------------------------------------------------------------------------

AGENTDAG_CONFIG_FILE = Path.home() / ".agentdag" / "configuration.json"


def get_config_path() -> Path:
    """Return the configuration file path, honouring AGENTDAG_CONFIG."""
    override = os.environ.get("AGENTDAG_CONFIG")
    if override:
        return Path(override).expanduser()
    return AGENTDAG_CONFIG_FILE


def get_agentdag_config() -> dict[str, Any]:
    """Load the configuration file. Missing or unreadable files yield ``{}``."""
    path = get_config_path()
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8-sig") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError):
        return {}
    return data if isinstance(data, dict) else {}


# ---------------------------------------------------------------------------
# Derived helpers
# ---------------------------------------------------------------------------


def _llm_section() -> dict[str, Any]:
    return get_agentdag_config().get("llm", {})


def _sandbox_section() -> dict[str, Any]:
    return get_agentdag_config().get("sandbox", {})


def get_preferred_model() -> str:
    """Return the configured model string (e.g. 'gpt-3.5-turbo-1106')."""
    return _llm_section().get("model", DEFAULT_MODEL)


def get_api_key() -> str | None:
    """Return the API key from the environment variable named in configuration."""
    api_key_env_var = _llm_section().get("api_key_env_var")
    if api_key_env_var:
        return os.environ.get(api_key_env_var)
    return None


def get_max_retries() -> int:
    return int(_llm_section().get("max_retries", DEFAULT_MAX_RETRIES))


def get_base_delay() -> float:
    return float(_llm_section().get("base_delay_s", DEFAULT_BASE_DELAY_S))


def get_max_delay() -> float:
    return float(_llm_section().get("max_delay_s", DEFAULT_MAX_DELAY_S))


def get_sandbox_timeout() -> float:
    return float(_sandbox_section().get("timeout_s", DEFAULT_SANDBOX_TIMEOUT_S))


def get_python_executable() -> str:
    return _sandbox_section().get("python") or sys.executable


# ---------------------------------------------------------------------------
# RuntimeConfig
# ---------------------------------------------------------------------------


@dataclass
class RuntimeConfig:
    """Runtime configuration loaded from ~/.agentdag/configuration.json."""

    model: str = field(default_factory=get_preferred_model)
    api_key: str | None = field(default_factory=get_api_key)
    api_base: str | None = None
    max_retries: int = field(default_factory=get_max_retries)
    base_delay_s: float = field(default_factory=get_base_delay)
    max_delay_s: float = field(default_factory=get_max_delay)
    sandbox_timeout_s: float = field(default_factory=get_sandbox_timeout)
    python_executable: str = field(default_factory=get_python_executable)
