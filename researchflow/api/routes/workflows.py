"""Workflow API routes.

Endpoints:
    POST /v1/workflows                                       Start a workflow from a query
    GET  /v1/workflows                                       List plan documents
    GET  /v1/workflows/{workflow_id}                         Plan document + job status
    GET  /v1/workflows/{workflow_id}/graph                   Nodes and p_node edges
    PUT  /v1/workflows/{workflow_id}/nodes/{node_id}/result  Manual node write-back
"""

import logging
import re
from pathlib import Path

from fastapi import APIRouter, HTTPException, Request

from researchflow.config import WorkflowSettings
from researchflow.errors import NodeNotFoundError, PlanDocumentError
from researchflow.executor.job_manager import (
    create_job,
    get_job_for_workflow,
    start_job,
    workflow_has_active_job,
)
from researchflow.executor.schemas import NodeResultRequest, StartWorkflowRequest
from researchflow.plan.graph import plan_to_graph
from researchflow.plan.schemas import new_plan_document
from researchflow.plan.store import PlanStore, list_plan_files

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/workflows", tags=["workflows"])

_WORKFLOW_ID_RE = re.compile(r"^[A-Za-z0-9_-]+$")


def _settings(request: Request) -> WorkflowSettings:
    return request.app.state.settings


def _plan_path(settings: WorkflowSettings, workflow_id: str) -> Path:
    return settings.runs_dir / f"{workflow_id}.json"


def _get_store(request: Request, workflow_id: str) -> PlanStore:
    if not _WORKFLOW_ID_RE.match(workflow_id):
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
    store = PlanStore(_plan_path(_settings(request), workflow_id))
    if not store.exists():
        raise HTTPException(status_code=404, detail=f"Workflow not found: {workflow_id}")
    return store


def _read(store: PlanStore):
    try:
        return store.read()
    except PlanDocumentError as e:
        raise HTTPException(status_code=500, detail=str(e))


@router.post("", status_code=201)
async def start_workflow(body: StartWorkflowRequest, request: Request):
    """Create a plan document from a query and run it in the background.

    Returns the job record for polling via GET /v1/workflows/{workflow_id}.
    """
    settings = _settings(request)
    overrides = {}
    if body.max_rounds is not None:
        overrides["max_rounds"] = body.max_rounds
    if body.concurrency is not None:
        overrides["concurrency"] = body.concurrency
    if overrides:
        settings = settings.model_copy(update=overrides)

    document = new_plan_document(body.query)
    store = PlanStore(_plan_path(settings, document.workflow_id))
    store.write(document)

    try:
        orchestrator = request.app.state.orchestrator_factory(store, settings)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    job = create_job(document.workflow_id, str(store.path))
    start_job(job, orchestrator)
    logger.info(f"Started workflow {document.workflow_id} as job {job.job_id}")
    return job.model_dump(mode="json")


@router.get("")
async def list_workflows(request: Request):
    """List plan documents in the runs directory, newest first."""
    return list_plan_files(_settings(request).runs_dir)


@router.get("/{workflow_id}")
async def get_workflow(workflow_id: str, request: Request):
    """Full plan document plus the latest job record for it (if any)."""
    document = _read(_get_store(request, workflow_id))
    job = get_job_for_workflow(workflow_id)
    return {
        "plan": document.model_dump(mode="json", exclude_none=True),
        "job": job.model_dump(mode="json") if job else None,
    }


@router.get("/{workflow_id}/graph")
async def get_workflow_graph(workflow_id: str, request: Request):
    """Nodes and parent->child edges derived from p_node references."""
    document = _read(_get_store(request, workflow_id))
    return plan_to_graph(document)


@router.put("/{workflow_id}/nodes/{node_id}/result")
async def put_node_result(
    workflow_id: str,
    node_id: str,
    body: NodeResultRequest,
    request: Request,
):
    """Write a node's summary/info directly into the plan document.

    Rejected with 409 while a job for the workflow is pending or running,
    since the job persists its own copy of the document at the end of each
    round.
    """
    store = _get_store(request, workflow_id)
    if workflow_has_active_job(workflow_id):
        raise HTTPException(
            status_code=409,
            detail=f"Workflow {workflow_id} has a running job; retry when it finishes",
        )
    try:
        node = store.upsert_node_result(node_id, summary=body.summary, info=body.info)
    except NodeNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except PlanDocumentError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return node.model_dump(mode="json", exclude_none=True)
