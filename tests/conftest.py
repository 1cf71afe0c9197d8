"""Pytest configuration and fixtures for all tests.

This file is automatically loaded by pytest and ensures proper test environment setup.
"""

import asyncio
import sys
from pathlib import Path

import pytest

# Ensure project root is in PYTHONPATH for imports to work
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from researchflow.config import WorkflowSettings
from researchflow.plan.schemas import PlanNode
from researchflow.plan.store import PlanStore
from researchflow.planner.planner import PlannerOutput, PlanningRequest


class ScriptedPlanner:
    """Planner that replays a fixed list of outputs (or raises queued exceptions)."""

    def __init__(self, outputs):
        self.outputs = list(outputs)
        self.requests: list[PlanningRequest] = []

    async def plan(self, request: PlanningRequest) -> PlannerOutput:
        self.requests.append(request)
        if not self.outputs:
            raise AssertionError("planner called more times than scripted")
        item = self.outputs.pop(0)
        if isinstance(item, BaseException):
            raise item
        if isinstance(item, dict):
            return PlannerOutput.model_validate(item)
        return item


class RecordingAdapter:
    """Executor adapter that records calls and returns a tagged payload."""

    def __init__(self, delays=None, payload=None):
        self.delays = delays or {}
        self.payload = payload
        self.calls: list[tuple[PlanNode, str]] = []
        self.active = 0
        self.max_active = 0

    async def execute(self, task: PlanNode, context: str) -> str:
        self.calls.append((task.model_copy(deep=True), context))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delays.get(task.node_id, 0))
        finally:
            self.active -= 1
        if self.payload is not None:
            return self.payload
        return (
            f'<info type="llm">findings for {task.title}</info>\n'
            f"<summary>{task.node_id} summary</summary>"
        )


def planner_output(tasks=(), next_check_list=(), is_final=False, note="") -> dict:
    return {
        "is_final": is_final,
        "tasks": [
            {"title": title, "type": task_type, "p_node": p_node}
            for title, task_type, p_node in tasks
        ],
        "next_check_list": list(next_check_list),
        "note": note,
    }


@pytest.fixture
def settings(tmp_path) -> WorkflowSettings:
    return WorkflowSettings(runs_dir=tmp_path / "runs", retry_base_delay=0)


@pytest.fixture
def store(tmp_path) -> PlanStore:
    plan_store = PlanStore(tmp_path / "plan.json")
    plan_store.create("What is X?")
    return plan_store
