"""Tests for in-process job records."""

import pytest

from researchflow.executor import job_manager
from researchflow.executor.schemas import JobStatus, RoundState


@pytest.fixture(autouse=True)
def clean_jobs():
    job_manager.clear_jobs()
    yield
    job_manager.clear_jobs()


def test_active_job_tracks_latest_status():
    job = job_manager.create_job("workflow-1", "runs/workflow-1.json")
    assert job_manager.workflow_has_active_job("workflow-1")

    job_manager.update_job_status(job.job_id, JobStatus.RUNNING)
    assert job_manager.workflow_has_active_job("workflow-1")

    job_manager.update_job_status(job.job_id, JobStatus.FAILED, error="boom")
    assert not job_manager.workflow_has_active_job("workflow-1")
    assert job_manager.get_job(job.job_id).error == "boom"
    assert not job_manager.workflow_has_active_job("workflow-2")


def test_progress_counts_checked_rounds():
    job = job_manager.create_job("workflow-1", "runs/workflow-1.json")

    job_manager.update_job_progress(job.job_id, RoundState.EXECUTING, 1)
    assert job_manager.get_job(job.job_id).rounds_completed == 0
    job_manager.update_job_progress(job.job_id, RoundState.CHECKING, 1)
    assert job_manager.get_job(job.job_id).rounds_completed == 1
    assert job_manager.get_job(job.job_id).state == RoundState.CHECKING


def test_finished_jobs_are_evicted_beyond_limit(monkeypatch):
    monkeypatch.setattr(job_manager, "MAX_FINISHED_JOBS", 2)
    finished = []
    for i in range(3):
        job = job_manager.create_job(f"workflow-{i}", f"runs/workflow-{i}.json")
        job_manager.update_job_status(job.job_id, JobStatus.COMPLETED)
        finished.append(job)
    running = job_manager.create_job("workflow-run", "runs/workflow-run.json")

    remaining = {j.job_id for j in job_manager.list_jobs()}

    assert finished[0].job_id not in remaining
    assert {finished[1].job_id, finished[2].job_id, running.job_id} == remaining
