"""Tests for configuration file loading."""

import json
import sys

import pytest

from agentdag import config
from agentdag.config import RuntimeConfig


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    path = tmp_path / "configuration.json"
    monkeypatch.setenv("AGENTDAG_CONFIG", str(path))
    return path


def write(path, data):
    path.write_text(json.dumps(data))


class TestConfigFile:
    def test_env_override_path(self, config_file):
        assert config.get_config_path() == config_file

    def test_default_path(self, monkeypatch):
        monkeypatch.delenv("AGENTDAG_CONFIG", raising=False)
        assert config.get_config_path() == config.AGENTDAG_CONFIG_FILE

    def test_missing_file(self, config_file):
        assert config.get_agentdag_config() == {}

    def test_corrupt_file(self, config_file):
        config_file.write_text("{not json")
        assert config.get_agentdag_config() == {}

    def test_non_object_file(self, config_file):
        write(config_file, ["a", "b"])
        assert config.get_agentdag_config() == {}


class TestGetters:
    def test_defaults(self, config_file):
        assert config.get_preferred_model() == "gpt-3.5-turbo-1106"
        assert config.get_api_key() is None
        assert config.get_max_retries() == 3
        assert config.get_base_delay() == 2.0
        assert config.get_max_delay() == 8.0
        assert config.get_sandbox_timeout() == 60.0
        assert config.get_python_executable() == sys.executable

    def test_values_from_file(self, config_file, monkeypatch):
        write(
            config_file,
            {
                "llm": {
                    "model": "gpt-4o-mini",
                    "api_key_env_var": "MY_LLM_KEY",
                    "max_retries": 5,
                    "base_delay_s": 1,
                    "max_delay_s": 4,
                },
                "sandbox": {"timeout_s": 15, "python": "/opt/py/bin/python"},
            },
        )
        monkeypatch.setenv("MY_LLM_KEY", "sk-from-env")

        assert config.get_preferred_model() == "gpt-4o-mini"
        assert config.get_api_key() == "sk-from-env"
        assert config.get_max_retries() == 5
        assert config.get_base_delay() == 1.0
        assert config.get_max_delay() == 4.0
        assert config.get_sandbox_timeout() == 15.0
        assert config.get_python_executable() == "/opt/py/bin/python"

    def test_api_key_env_var_unset(self, config_file, monkeypatch):
        write(config_file, {"llm": {"api_key_env_var": "UNSET_LLM_KEY"}})
        monkeypatch.delenv("UNSET_LLM_KEY", raising=False)
        assert config.get_api_key() is None


class TestRuntimeConfig:
    def test_reads_file_at_construction(self, config_file):
        write(config_file, {"llm": {"model": "claude-3-haiku", "max_retries": 1}})

        runtime = RuntimeConfig()

        assert runtime.model == "claude-3-haiku"
        assert runtime.max_retries == 1
        assert runtime.api_base is None

    def test_explicit_values_win(self, config_file):
        write(config_file, {"llm": {"model": "claude-3-haiku"}})
        assert RuntimeConfig(model="gpt-4o").model == "gpt-4o"
