"""researchflow API.

Starts research workflows in the background and exposes their plan
documents, graphs and job status:
- Workflow creation and polling
- Plan graph for visualization
- Manual node result write-back
"""

import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from researchflow import __version__
from researchflow.api.routes import workflows
from researchflow.config import WorkflowSettings
from researchflow.executor.round_runner import build_orchestrator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    config_path = os.environ.get("WORKFLOW_CONFIG")
    settings = WorkflowSettings.load(config_path)
    settings.warn_missing_credentials()
    settings.runs_dir.mkdir(parents=True, exist_ok=True)

    app.state.settings = settings
    app.state.orchestrator_factory = build_orchestrator
    logger.info(
        f"researchflow API ready (runs_dir={settings.runs_dir}, "
        f"max_rounds={settings.max_rounds}, concurrency={settings.concurrency})"
    )
    yield
    logger.info("Shutting down researchflow API")


app = FastAPI(
    title="researchflow API",
    description="""
## Iterative research workflows

- `POST /v1/workflows` - Start a workflow from a question
- `GET /v1/workflows` - List plan documents
- `GET /v1/workflows/{workflow_id}` - Plan document plus job status
- `GET /v1/workflows/{workflow_id}/graph` - Nodes and p_node edges
""",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(workflows.router, prefix="/v1")


@app.get("/health")
async def health():
    """Health check endpoint."""
    settings: WorkflowSettings = app.state.settings
    return {
        "status": "healthy",
        "version": __version__,
        "runs_dir": str(settings.runs_dir),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "researchflow.api.main:app",
        host="0.0.0.0",
        port=int(os.environ.get("PORT", "8001")),
        reload=True,
    )
