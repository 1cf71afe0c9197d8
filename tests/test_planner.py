"""Tests for the LLM planner."""

import json

import pytest

from researchflow.config import WorkflowSettings
from researchflow.errors import ExternalCallError, PlannerContractError
from researchflow.llm.backends import LLMCallResult
from researchflow.plan.references import ResolvedReference
from researchflow.planner.planner import (
    LLMPlanner,
    PlanningRequest,
    build_planner_input,
    parse_planner_output,
)
from researchflow.planner.prompts import SYSTEM_PROMPT

VALID_OUTPUT = {
    "is_final": False,
    "tasks": [{"title": "Definition of X", "type": "search", "p_node": "a:info"}],
    "next_check_list": ["a:summary", "NEW1:summary"],
    "note": "Direction X: in progress",
}


class FakeBackend:
    model_id = "fake-model"

    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    async def execute(self, system_prompt, user_message, *, max_tokens, label=""):
        self.calls.append((system_prompt, user_message))
        response = self.responses.pop(0)
        if isinstance(response, BaseException):
            raise response
        return LLMCallResult(
            content=response, model_id=self.model_id,
            input_tokens=1, output_tokens=1, duration_ms=1,
        )


def make_request():
    return PlanningRequest(
        objective="What is X?",
        note="Direction A: done",
        references=[
            ResolvedReference("a:info", "What is X?"),
            ResolvedReference("b:summary", "<summary>B</summary>"),
        ],
    )


def test_build_planner_input():
    text = build_planner_input(make_request())
    assert text == (
        "User question:\nWhat is X?\n\n"
        "Current investigation note:\nDirection A: done\n\n"
        "Reference inputs (check list values):\n\n"
        "#1 a:info ->\nWhat is X?\n\n"
        "#2 b:summary ->\n<summary>B</summary>"
    )


def test_build_planner_input_skips_empty_note():
    text = build_planner_input(PlanningRequest(objective="Q", note="  "))
    assert "note" not in text
    assert text.endswith("Reference inputs (check list values):")


def test_parse_planner_output_accepts_fenced_json():
    output = parse_planner_output("```json\n" + json.dumps(VALID_OUTPUT) + "\n```")
    assert output.tasks[0].title == "Definition of X"
    assert output.next_check_list == ["a:summary", "NEW1:summary"]


@pytest.mark.parametrize(
    "raw",
    [
        "not json at all",
        json.dumps({**VALID_OUTPUT, "tasks": [VALID_OUTPUT["tasks"][0]] * 4}),
        json.dumps({**VALID_OUTPUT, "tasks": [{"title": "t", "type": "browse", "p_node": ""}]}),
        json.dumps({k: v for k, v in VALID_OUTPUT.items() if k != "note"}),
    ],
)
def test_parse_planner_output_rejects_contract_violations(raw):
    with pytest.raises(PlannerContractError):
        parse_planner_output(raw)


@pytest.mark.asyncio
async def test_llm_planner_calls_backend():
    backend = FakeBackend([json.dumps(VALID_OUTPUT)])
    planner = LLMPlanner(WorkflowSettings(retry_base_delay=0), backend=backend)

    output = await planner.plan(make_request())

    assert output.is_final is False
    system_prompt, user_message = backend.calls[0]
    assert system_prompt == SYSTEM_PROMPT
    assert user_message.startswith("User question:\nWhat is X?")


@pytest.mark.asyncio
async def test_llm_planner_retries_transient_errors():
    backend = FakeBackend([RuntimeError("overloaded"), json.dumps(VALID_OUTPUT)])
    planner = LLMPlanner(WorkflowSettings(retry_base_delay=0), backend=backend)

    output = await planner.plan(make_request())

    assert len(backend.calls) == 2
    assert output.note == "Direction X: in progress"


@pytest.mark.asyncio
async def test_llm_planner_surfaces_non_transient_errors():
    backend = FakeBackend([ValueError("invalid api key")])
    planner = LLMPlanner(WorkflowSettings(retry_base_delay=0), backend=backend)

    with pytest.raises(ExternalCallError):
        await planner.plan(make_request())
    assert len(backend.calls) == 1
