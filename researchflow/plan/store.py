"""Plan document persistence.

One JSON file per workflow. The store is the only writer of that file at
any instant (concurrent writers are unsupported). Writes replace the whole
document atomically: the JSON is written to a temp file in the same
directory and moved into place with os.replace.
"""

import json
import logging
import os
import shutil
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError

from researchflow.errors import NodeNotFoundError, PlanDocumentError
from researchflow.plan.schemas import (
    NodeStatus,
    PlanDocument,
    PlanNode,
    new_plan_document,
    utc_now_iso,
)

logger = logging.getLogger(__name__)


@dataclass
class NodeResult:
    """Content produced by executing one task."""

    summary: str = ""
    info: str = ""


def apply_node_result(
    document: PlanDocument,
    node_id: str,
    result: NodeResult,
    now: Optional[str] = None,
) -> PlanNode:
    """Merge a task result into ``document`` in place.

    summary is replaced (when non-empty), info is appended after a blank
    line, status becomes completed and updated_at is stamped.
    """
    node = document.find_node(node_id)
    if node is None:
        raise NodeNotFoundError(node_id)

    if result.summary:
        node.summary = result.summary
    if result.info:
        node.info = f"{node.info}\n\n{result.info}" if node.info else result.info
    node.status = NodeStatus.COMPLETED
    node.updated_at = now or utc_now_iso()
    return node


class PlanStore:
    """Read/write access to a single plan document file."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"PlanStore({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.exists()

    def read(self) -> PlanDocument:
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise PlanDocumentError(f"Plan document not found: {self.path}") from e
        except json.JSONDecodeError as e:
            raise PlanDocumentError(f"Plan document is not valid JSON: {self.path}: {e}") from e

        try:
            return PlanDocument.model_validate(data)
        except ValidationError as e:
            raise PlanDocumentError(f"Invalid plan document {self.path}: {e}") from e

    def write(self, document: PlanDocument) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = document.model_dump_json(indent=2, exclude_none=True)

        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        logger.debug(
            f"Wrote plan {document.workflow_id} to {self.path} "
            f"({len(document.nodes)} nodes)"
        )

    def create(self, query: str) -> PlanDocument:
        """Initialise a new plan from a user query and persist it."""
        document = new_plan_document(query)
        self.write(document)
        logger.info(f"Initialized plan {document.workflow_id} at {self.path}")
        return document

    def upsert_node_result(
        self,
        node_id: str,
        summary: str = "",
        info: str = "",
    ) -> PlanNode:
        """Read-modify-write a single node's result and persist the document."""
        document = self.read()
        node = apply_node_result(document, node_id, NodeResult(summary=summary, info=info))
        self.write(document)
        logger.info(f"Wrote result for node {node.node_id} to {self.path}")
        return node

    def copy_to(self, path: Union[str, Path]) -> "PlanStore":
        target = Path(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(self.path, target)
        logger.info(f"Copied plan {self.path} -> {target}")
        return PlanStore(target)


def list_plan_files(directory: Union[str, Path]) -> list[dict]:
    """Summaries of plan documents in ``directory``, newest first."""
    directory = Path(directory)
    if not directory.exists():
        return []

    plans = []
    for plan_path in sorted(directory.glob("*.json"), reverse=True):
        try:
            document = PlanStore(plan_path).read()
        except PlanDocumentError as e:
            logger.warning(f"Skipping unreadable plan {plan_path}: {e}")
            continue
        plans.append({
            "workflow_id": document.workflow_id,
            "path": str(plan_path),
            "created_at": document.created_at,
            "objective": document.objective(),
            "node_count": len(document.nodes),
            "latest_batch": document.check_list.latest_batch,
            "is_final": document.is_final,
        })
    plans.sort(key=lambda p: p["created_at"], reverse=True)
    return plans
