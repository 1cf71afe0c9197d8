"""Tests for workflow settings."""

import json

import pytest

from researchflow.config import WorkflowSettings


def test_defaults():
    settings = WorkflowSettings.from_env({})
    assert settings.max_rounds == 8
    assert settings.concurrency == 3
    assert settings.max_attempts == 3
    assert settings.retry_base_delay == 2.0
    assert settings.task_timeout is None
    assert settings.log_full_prompts is False
    assert settings.search.count == 5
    assert settings.search.freshness == "noLimit"


def test_from_env():
    settings = WorkflowSettings.from_env({
        "WORKFLOW_MAX_ROUNDS": "4",
        "WORKFLOW_CONCURRENCY": "2",
        "PLANNING_LOG_FULL": "1",
        "ANTHROPIC_API_KEY": "sk-test",
        "BOCHA_API_KEY": "bocha-test",
        "PLANNER_MODEL": "gemini-2.5-pro",
    })
    assert settings.max_rounds == 4
    assert settings.concurrency == 2
    assert settings.log_full_prompts is True
    assert settings.llm.anthropic_api_key == "sk-test"
    assert settings.llm.planner_model == "gemini-2.5-pro"
    assert settings.search.api_key == "bocha-test"


def test_invalid_env_value_is_rejected():
    with pytest.raises(ValueError):
        WorkflowSettings.from_env({"WORKFLOW_CONCURRENCY": "0"})


def test_json_config_overrides_env(tmp_path):
    path = tmp_path / "agent.config.json"
    path.write_text(json.dumps({"concurrency": 5, "search": {"count": 10}}))

    settings = WorkflowSettings.load(path, environ={"BOCHA_API_KEY": "k", "WORKFLOW_MAX_ROUNDS": "3"})

    assert settings.concurrency == 5
    assert settings.max_rounds == 3
    assert settings.search.count == 10
    assert settings.search.api_key == "k"


def test_yaml_config(tmp_path):
    path = tmp_path / "settings.yaml"
    path.write_text("max_rounds: 2\nllm:\n  executor_model: claude-haiku-4-5\n")

    settings = WorkflowSettings.load(path, environ={})

    assert settings.max_rounds == 2
    assert settings.llm.executor_model == "claude-haiku-4-5"


def test_bad_config_files(tmp_path):
    with pytest.raises(ValueError, match="not found"):
        WorkflowSettings.load(tmp_path / "missing.json", environ={})

    listing = tmp_path / "list.yaml"
    listing.write_text("- a\n- b\n")
    with pytest.raises(ValueError, match="mapping"):
        WorkflowSettings.load(listing, environ={})

    invalid = tmp_path / "invalid.json"
    invalid.write_text(json.dumps({"search": {"count": 100}}))
    with pytest.raises(ValueError, match="Invalid config"):
        WorkflowSettings.load(invalid, environ={})
