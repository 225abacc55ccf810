"""
Runtime configuration for the orchestration core.

All values come from environment variables (a `.env` file in the project
root is loaded first if present). Settings are passed explicitly to the
orchestrator and agents; nothing reads a module-level flag at call time.
"""
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, Field

env_path = Path(__file__).parent.parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return float(value)


def _optional_seconds(value: float) -> Optional[float]:
    """Zero or negative durations mean "no limit"."""
    return value if value > 0 else None


class Settings(BaseModel):
    """Explicit configuration consumed by the orchestrator, agents and clients."""

    debug: bool = False
    process_timeout_seconds: Optional[float] = Field(30.0, gt=0)
    agent_timeout_seconds: Optional[float] = Field(10.0, gt=0)
    default_agent: str = "slack"
    agent_cache_ttl_seconds: Optional[float] = Field(3600.0, gt=0)
    enable_synthesis: bool = True

    log_level: str = "INFO"
    log_json: bool = True

    llm_api_base: str = "https://api.openai.com/v1"
    llm_api_key: Optional[str] = None
    llm_model: str = "gpt-4o-mini"
    llm_timeout_seconds: float = 15.0

    slack_api_base: str = "https://slack.com/api"
    slack_timeout_seconds: float = 10.0
    slack_config_dir: str = "data/slack"
    slack_bot_token: Optional[str] = None
    slack_signing_secret: Optional[str] = None

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from the current process environment."""
        return cls(
            debug=_env_bool("BRAIN_DEBUG", False),
            process_timeout_seconds=_optional_seconds(
                _env_float("BRAIN_PROCESS_TIMEOUT_SECONDS", 30.0)
            ),
            agent_timeout_seconds=_optional_seconds(
                _env_float("BRAIN_AGENT_TIMEOUT_SECONDS", 10.0)
            ),
            default_agent=os.getenv("BRAIN_DEFAULT_AGENT", "slack") or "slack",
            agent_cache_ttl_seconds=_optional_seconds(
                _env_float("BRAIN_AGENT_CACHE_TTL_SECONDS", 3600.0)
            ),
            enable_synthesis=_env_bool("BRAIN_ENABLE_SYNTHESIS", True),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_json=_env_bool("LOG_JSON", True),
            llm_api_base=os.getenv("LLM_API_BASE", "https://api.openai.com/v1"),
            llm_api_key=os.getenv("LLM_API_KEY") or None,
            llm_model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            llm_timeout_seconds=_env_float("LLM_TIMEOUT_SECONDS", 15.0),
            slack_api_base=os.getenv("SLACK_API_BASE", "https://slack.com/api"),
            slack_timeout_seconds=_env_float("SLACK_TIMEOUT_SECONDS", 10.0),
            slack_config_dir=os.getenv("SLACK_CONFIG_DIR", "data/slack"),
            slack_bot_token=os.getenv("SLACK_BOT_TOKEN") or None,
            slack_signing_secret=os.getenv("SLACK_SIGNING_SECRET") or None,
        )


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Process-wide settings accessor (built from the environment once)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
