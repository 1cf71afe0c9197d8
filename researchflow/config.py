"""Workflow settings.

Settings are built once at process start (from the environment plus an
optional agent.config.json / YAML file) and passed explicitly into the
orchestrator, planner and executor adapters. Nothing in the package reads
configuration from module globals.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_PLANNER_MODEL = "claude-sonnet-4-6"
DEFAULT_EXECUTOR_MODEL = "claude-sonnet-4-6"
BOCHA_ENDPOINT = "https://api.bochaai.com/v1/web-search"


class LLMSettings(BaseModel):
    """Model selection for the planner and executor adapters."""

    planner_model: str = DEFAULT_PLANNER_MODEL
    executor_model: str = DEFAULT_EXECUTOR_MODEL
    max_tokens: int = Field(default=8000, ge=256)
    anthropic_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    request_timeout: float = Field(
        default=300.0,
        description="HTTP read timeout (seconds) for a single LLM request",
    )


class SearchSettings(BaseModel):
    """Bocha web search configuration."""

    api_key: str = ""
    endpoint: str = BOCHA_ENDPOINT
    count: int = Field(default=5, ge=1, le=25)
    freshness: str = Field(
        default="noLimit",
        description="oneDay | oneWeek | oneMonth | oneYear | noLimit",
    )
    summary: bool = True
    timeout: float = 60.0


class WorkflowSettings(BaseModel):
    """Operational controls for a workflow run."""

    max_rounds: int = Field(default=8, ge=1)
    concurrency: int = Field(default=3, ge=1)
    max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(
        default=2.0,
        ge=0,
        description="Backoff before the 2nd attempt; doubles on each retry",
    )
    task_timeout: Optional[float] = Field(
        default=None,
        gt=0,
        description="Per-attempt timeout for executor calls (None = wait forever)",
    )
    runs_dir: Path = Path("runs")
    log_full_prompts: bool = False
    llm: LLMSettings = Field(default_factory=LLMSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)

    @classmethod
    def from_env(cls, environ: Optional[dict[str, str]] = None) -> "WorkflowSettings":
        """Build settings from environment variables only."""
        env = os.environ if environ is None else environ
        data: dict[str, Any] = {
            "llm": {
                "anthropic_api_key": env.get("ANTHROPIC_API_KEY") or None,
                "gemini_api_key": env.get("GEMINI_API_KEY") or None,
            },
            "search": {"api_key": env.get("BOCHA_API_KEY", "")},
        }
        if env.get("WORKFLOW_MAX_ROUNDS"):
            data["max_rounds"] = env["WORKFLOW_MAX_ROUNDS"]
        if env.get("WORKFLOW_CONCURRENCY"):
            data["concurrency"] = env["WORKFLOW_CONCURRENCY"]
        if env.get("WORKFLOW_RUNS_DIR"):
            data["runs_dir"] = env["WORKFLOW_RUNS_DIR"]
        if env.get("PLANNER_MODEL"):
            data["llm"]["planner_model"] = env["PLANNER_MODEL"]
        if env.get("EXECUTOR_MODEL"):
            data["llm"]["executor_model"] = env["EXECUTOR_MODEL"]
        data["log_full_prompts"] = env.get("PLANNING_LOG_FULL") == "1"
        return cls.model_validate(data)

    @classmethod
    def load(
        cls,
        config_path: Optional[Union[str, Path]] = None,
        environ: Optional[dict[str, str]] = None,
    ) -> "WorkflowSettings":
        """Environment settings overlaid with an optional JSON/YAML config file.

        Values present in the file win over the environment, the same
        precedence the agent.config.json file has always had.
        """
        base = cls.from_env(environ).model_dump()
        if config_path is None:
            return cls.model_validate(base)

        path = Path(config_path)
        if not path.exists():
            raise ValueError(f"Config file not found: {path}")

        with open(path, encoding="utf-8") as f:
            if path.suffix.lower() in (".yaml", ".yml"):
                overrides = yaml.safe_load(f) or {}
            else:
                overrides = json.load(f)

        if not isinstance(overrides, dict):
            raise ValueError(f"Config file must contain a mapping: {path}")

        merged = _deep_merge(base, overrides)
        try:
            settings = cls.model_validate(merged)
        except ValidationError as e:
            raise ValueError(f"Invalid config file {path}: {e}") from e

        logger.info(f"Loaded workflow settings from {path}")
        return settings

    def warn_missing_credentials(self) -> None:
        if not self.llm.anthropic_api_key and not self.llm.gemini_api_key:
            logger.warning("No LLM API key configured. Set ANTHROPIC_API_KEY or a config file.")
        if not self.search.api_key:
            logger.warning("Bocha API key is empty. Set BOCHA_API_KEY or a config file.")


def _deep_merge(base: dict, overrides: dict) -> dict:
    merged = dict(base)
    for key, value in overrides.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        elif value is not None:
            merged[key] = value
    return merged
