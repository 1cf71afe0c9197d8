"""Job lifecycle management for workflows started over HTTP.

Handles:
- Job creation and lookup (by job id or workflow id)
- Progress updates from the orchestrator's state callback
- Running the orchestrator as a background asyncio task

Job records are in-memory (per process). Finished jobs beyond
MAX_FINISHED_JOBS are evicted oldest-first when a new job is created. The
plan document on disk is the durable state; a lost job record never loses
research results.
"""

import asyncio
import logging
import threading
from typing import Optional

from researchflow.errors import WorkflowError
from researchflow.executor.round_runner import RoundOrchestrator
from researchflow.executor.schemas import JobStatus, RoundState, WorkflowJob
from researchflow.plan.schemas import utc_now_iso

logger = logging.getLogger(__name__)

_jobs: dict[str, WorkflowJob] = {}
_jobs_lock = threading.Lock()

MAX_FINISHED_JOBS = 200

# Strong references so running tasks are not garbage collected
_background_tasks: set[asyncio.Task] = set()


def _evict_finished_jobs() -> None:
    """Drop the oldest finished jobs beyond MAX_FINISHED_JOBS. Caller holds the lock."""
    finished = sorted(
        (j for j in _jobs.values() if j.status in (JobStatus.COMPLETED, JobStatus.FAILED)),
        key=lambda j: j.created_at,
    )
    excess = len(finished) - MAX_FINISHED_JOBS
    for job in finished[:max(excess, 0)]:
        del _jobs[job.job_id]
    if excess > 0:
        logger.debug(f"Evicted {excess} finished job record(s)")


def create_job(workflow_id: str, plan_path: str) -> WorkflowJob:
    job = WorkflowJob(workflow_id=workflow_id, plan_path=plan_path)
    with _jobs_lock:
        _evict_finished_jobs()
        _jobs[job.job_id] = job
    logger.info(f"Created job {job.job_id} for workflow {workflow_id}")
    return job


def get_job(job_id: str) -> Optional[WorkflowJob]:
    with _jobs_lock:
        return _jobs.get(job_id)


def get_job_for_workflow(workflow_id: str) -> Optional[WorkflowJob]:
    """Most recent job for a workflow, if any."""
    with _jobs_lock:
        matches = [j for j in _jobs.values() if j.workflow_id == workflow_id]
    if not matches:
        return None
    return max(matches, key=lambda j: j.created_at)


def workflow_has_active_job(workflow_id: str) -> bool:
    """True while a pending or running job owns the workflow's plan file."""
    job = get_job_for_workflow(workflow_id)
    return job is not None and job.status in (JobStatus.PENDING, JobStatus.RUNNING)


def list_jobs(status: Optional[JobStatus] = None) -> list[WorkflowJob]:
    with _jobs_lock:
        jobs = list(_jobs.values())
    if status is not None:
        jobs = [j for j in jobs if j.status == status]
    return sorted(jobs, key=lambda j: j.created_at, reverse=True)


def update_job_status(job_id: str, status: JobStatus, error: Optional[str] = None) -> None:
    """Update job status and timestamps."""
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job is None:
            logger.warning(f"Status update for unknown job {job_id}")
            return
        job.status = status
        if status == JobStatus.RUNNING:
            job.started_at = utc_now_iso()
        elif status in (JobStatus.COMPLETED, JobStatus.FAILED):
            job.completed_at = utc_now_iso()
            job.error = error
    logger.info(f"Job {job_id} -> {status.value}" + (f" ({error})" if error else ""))


def update_job_progress(job_id: str, state: RoundState, round_number: int) -> None:
    with _jobs_lock:
        job = _jobs.get(job_id)
        if job is None:
            return
        job.state = state
        if state == RoundState.CHECKING:
            job.rounds_completed = max(job.rounds_completed, round_number)


def clear_jobs() -> None:
    with _jobs_lock:
        _jobs.clear()


async def run_job(job_id: str, orchestrator: RoundOrchestrator) -> None:
    """Run ``orchestrator`` to completion and record the outcome on the job."""
    update_job_status(job_id, JobStatus.RUNNING)
    try:
        result = await orchestrator.run()
    except WorkflowError as e:
        logger.error(f"Job {job_id} failed: {e}")
        update_job_status(job_id, JobStatus.FAILED, error=str(e))
        return
    except Exception as e:
        logger.error(f"Job {job_id} crashed: {e}", exc_info=True)
        update_job_status(job_id, JobStatus.FAILED, error=f"{type(e).__name__}: {e}")
        return

    with _jobs_lock:
        job = _jobs.get(job_id)
        if job is not None:
            job.result = result.model_dump(mode="json")
            job.rounds_completed = len(result.rounds)
    update_job_status(job_id, JobStatus.COMPLETED)


def start_job(job: WorkflowJob, orchestrator: RoundOrchestrator) -> asyncio.Task:
    """Schedule ``run_job`` on the running event loop."""
    orchestrator.on_state_change = (
        lambda state, round_number: update_job_progress(job.job_id, state, round_number)
    )
    task = asyncio.get_running_loop().create_task(run_job(job.job_id, orchestrator))
    _background_tasks.add(task)
    task.add_done_callback(_background_tasks.discard)
    return task
