"""Planner boundary and the LLM-backed planner.

The planner sees the user's objective, the persisted progress note and the
resolved check-list references, and returns the next batch of at most
three tasks plus the references to carry into the following round.

Output is requested as bare JSON and validated with pydantic; anything
that does not match raises PlannerContractError and aborts the round.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Literal, Optional, Protocol, runtime_checkable

from pydantic import BaseModel, Field, ValidationError

from researchflow.config import WorkflowSettings
from researchflow.errors import PlannerContractError
from researchflow.executor.retry import RetryPolicy, call_with_retry
from researchflow.llm.backends import ModelBackend
from researchflow.llm.client import parse_llm_json_response
from researchflow.llm.factory import get_backend
from researchflow.plan.references import ResolvedReference, format_planner_inputs
from researchflow.planner.prompts import SYSTEM_PROMPT

logger = logging.getLogger(__name__)

MAX_TASKS_PER_ROUND = 3
LOG_TRUNCATE_CHARS = 1600


class PlannerTask(BaseModel):
    title: str
    type: Literal["search", "summary"]
    p_node: str


class PlannerOutput(BaseModel):
    """Structured planning decision for one round."""

    is_final: bool
    tasks: list[PlannerTask] = Field(max_length=MAX_TASKS_PER_ROUND)
    next_check_list: list[str] = Field(
        description="References for the next round; NEW1..NEW3 name this round's tasks",
    )
    note: str


@dataclass
class PlanningRequest:
    objective: str
    note: str = ""
    references: list[ResolvedReference] = field(default_factory=list)


@runtime_checkable
class PlannerAdapter(Protocol):
    async def plan(self, request: PlanningRequest) -> PlannerOutput: ...


def build_planner_input(request: PlanningRequest) -> str:
    """Assemble the planner's user message."""
    sections = []
    if request.objective:
        sections.append(f"User question:\n{request.objective}")
    if request.note and request.note.strip():
        sections.append(f"Current investigation note:\n{request.note.strip()}")
    sections.append("Reference inputs (check list values):")
    inputs = format_planner_inputs(request.references)
    if inputs:
        sections.append(inputs)
    return "\n\n".join(sections)


def _truncate(text: str, limit: int = LOG_TRUNCATE_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + "\n...[truncated]..."


def parse_planner_output(raw_text: str) -> PlannerOutput:
    """Parse and validate raw model text as a PlannerOutput."""
    try:
        data = parse_llm_json_response(raw_text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse planner response as JSON: {e}")
        logger.error(f"Raw response (first 500 chars): {raw_text[:500]}")
        raise PlannerContractError(f"Planner returned invalid JSON: {e}") from e

    try:
        return PlannerOutput.model_validate(data)
    except ValidationError as e:
        raise PlannerContractError(f"Planner output does not match schema: {e}") from e


class LLMPlanner:
    """PlannerAdapter that asks an LLM backend for the next batch."""

    def __init__(
        self,
        settings: WorkflowSettings,
        backend: Optional[ModelBackend] = None,
    ):
        self.settings = settings
        self.backend = backend or get_backend(settings.llm.planner_model, settings.llm)
        self.retry_policy = RetryPolicy(
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
        )

    async def plan(self, request: PlanningRequest) -> PlannerOutput:
        user_input = build_planner_input(request)
        logged = user_input if self.settings.log_full_prompts else _truncate(user_input)
        logger.info(f"[planning] USER_INPUT ->\n{logged}")

        result, attempts = await call_with_retry(
            lambda: self.backend.execute(
                SYSTEM_PROMPT,
                user_input,
                max_tokens=self.settings.llm.max_tokens,
                label="planning",
            ),
            self.retry_policy,
            label="planning",
        )

        output = parse_planner_output(result.content)
        logger.info(
            f"[planning] MODEL_OUTPUT ({attempts} attempt{'s' if attempts != 1 else ''}) ->\n"
            f"{output.model_dump_json(indent=2)}"
        )
        return output
