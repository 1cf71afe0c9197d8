"""Executor-side schemas for round state, task outcomes and job records.

These are distinct from the plan schemas (which describe the persisted
document). Executor schemas describe what happens during and after a run.
"""

import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

from researchflow.plan.schemas import PlanNode, utc_now_iso
from researchflow.plan.store import NodeResult


class RoundState(str, Enum):
    """Orchestrator lifecycle states."""
    IDLE = "idle"
    PLANNING = "planning"
    EXECUTING = "executing"
    WRITING_BACK = "writing_back"
    CHECKING = "checking"
    DONE = "done"
    ABORTED = "aborted"


class StopReason(str, Enum):
    """Why a workflow run ended."""
    FINAL_BATCH = "final_batch"
    NO_TASKS = "no_tasks"
    MAX_ROUNDS = "max_rounds"
    ALREADY_FINAL = "already_final"


class JobStatus(str, Enum):
    """Job lifecycle states."""
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class TaskOutcome:
    """Parsed result of one executed task, tagged with its position in the round."""

    index: int
    node: PlanNode
    result: NodeResult
    attempts: int = 1


class RoundResult(BaseModel):
    """Summary of one completed round."""

    round_number: int
    batch: int
    node_ids: list[str] = Field(default_factory=list)
    is_final: bool = False
    note: str = ""
    duration_ms: int = 0


class WorkflowResult(BaseModel):
    """Outcome of RoundOrchestrator.run()."""

    workflow_id: str
    state: RoundState
    stopped_reason: Optional[StopReason] = None
    rounds: list[RoundResult] = Field(default_factory=list)

    @property
    def node_ids(self) -> list[str]:
        return [node_id for r in self.rounds for node_id in r.node_ids]


class WorkflowJob(BaseModel):
    """Background workflow job tracked by the API."""

    job_id: str = Field(default_factory=lambda: f"job-{uuid.uuid4().hex[:12]}")
    workflow_id: str
    plan_path: str
    status: JobStatus = JobStatus.PENDING
    state: RoundState = RoundState.IDLE
    rounds_completed: int = 0
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
    created_at: str = Field(default_factory=utc_now_iso)
    started_at: Optional[str] = None
    completed_at: Optional[str] = None


class StartWorkflowRequest(BaseModel):
    """Request to start a new research workflow."""

    query: str = Field(min_length=1)
    max_rounds: Optional[int] = Field(default=None, ge=1)
    concurrency: Optional[int] = Field(default=None, ge=1)


class NodeResultRequest(BaseModel):
    """Manual write-back of a node's result."""

    summary: str = ""
    info: str = ""
