"""
Unit tests for environment-driven settings.
"""
import pytest
from pydantic import ValidationError

from brain.core.config import Settings


ENV_VARS = [
    "BRAIN_DEBUG",
    "BRAIN_PROCESS_TIMEOUT_SECONDS",
    "BRAIN_AGENT_TIMEOUT_SECONDS",
    "BRAIN_DEFAULT_AGENT",
    "BRAIN_AGENT_CACHE_TTL_SECONDS",
    "BRAIN_ENABLE_SYNTHESIS",
    "LLM_API_KEY",
    "SLACK_BOT_TOKEN",
    "SLACK_SIGNING_SECRET",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    settings = Settings.from_env()

    assert settings.debug is False
    assert settings.process_timeout_seconds == 30.0
    assert settings.agent_timeout_seconds == 10.0
    assert settings.default_agent == "slack"
    assert settings.enable_synthesis is True
    assert settings.llm_api_key is None
    assert settings.slack_signing_secret is None


def test_values_from_environment(clean_env):
    clean_env.setenv("BRAIN_DEBUG", "true")
    clean_env.setenv("BRAIN_PROCESS_TIMEOUT_SECONDS", "5")
    clean_env.setenv("BRAIN_DEFAULT_AGENT", "gmail")
    clean_env.setenv("BRAIN_ENABLE_SYNTHESIS", "off")
    clean_env.setenv("LLM_API_KEY", "sk-test")
    clean_env.setenv("SLACK_SIGNING_SECRET", "shh")

    settings = Settings.from_env()

    assert settings.debug is True
    assert settings.process_timeout_seconds == 5.0
    assert settings.default_agent == "gmail"
    assert settings.enable_synthesis is False
    assert settings.llm_api_key == "sk-test"
    assert settings.slack_signing_secret == "shh"


def test_zero_durations_disable_limits(clean_env):
    clean_env.setenv("BRAIN_PROCESS_TIMEOUT_SECONDS", "0")
    clean_env.setenv("BRAIN_AGENT_CACHE_TTL_SECONDS", "-1")

    settings = Settings.from_env()

    assert settings.process_timeout_seconds is None
    assert settings.agent_cache_ttl_seconds is None


def test_negative_timeout_rejected():
    with pytest.raises(ValidationError):
        Settings(process_timeout_seconds=-1)
