"""Schemas for the plan document.

The plan document is the single persisted aggregate of a workflow: an
append-only list of nodes (one per task) plus the check list that feeds
the next planning step. It is stored as indented JSON.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# check_list.latest_batch / node.batch value marking the final round
FINAL_BATCH = -1

PLAN_VERSION = "0.1"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class TaskType(str, Enum):
    """Kinds of task a node can represent."""
    START = "start"
    SEARCH = "search"
    SUMMARY = "summary"


class NodeStatus(str, Enum):
    """Node lifecycle states. Failures abort the round and are never persisted."""
    PLANNED = "planned"
    RUNNING = "running"
    COMPLETED = "completed"


class PlanNode(BaseModel):
    """One unit of investigation."""

    model_config = ConfigDict(extra="allow")

    node_id: str = Field(min_length=1)
    title: str
    summary: str = ""
    info: str = Field(
        default="",
        description="Tagged <info type=...> blocks, appended on each write-back",
    )
    p_node: str = Field(
        default="",
        description="Reference expression naming the parent node content",
    )
    batch: int = 0
    type: TaskType = TaskType.SEARCH
    status: NodeStatus = NodeStatus.PLANNED
    updated_at: Optional[str] = None


class CheckList(BaseModel):
    """The working set consumed by the next planning step."""

    latest_id: str = "a"
    latest_batch: int = 0
    refs: list[str] = Field(default_factory=list)
    note: str = ""


class PlanDocument(BaseModel):
    """Persisted plan graph."""

    model_config = ConfigDict(extra="allow")

    version: str = PLAN_VERSION
    workflow_id: str
    created_at: str
    check_list: CheckList = Field(default_factory=CheckList)
    nodes: list[PlanNode] = Field(default_factory=list)

    @property
    def is_final(self) -> bool:
        return self.check_list.latest_batch == FINAL_BATCH

    def find_node(self, node_id: str) -> Optional[PlanNode]:
        """Case-insensitive node lookup."""
        index = self.node_index(node_id)
        return self.nodes[index] if index is not None else None

    def node_index(self, node_id: str) -> Optional[int]:
        wanted = str(node_id).strip().lower()
        for i, node in enumerate(self.nodes):
            if node.node_id.lower() == wanted:
                return i
        return None

    def nodes_by_id(self) -> dict[str, PlanNode]:
        return {node.node_id.lower(): node for node in self.nodes}

    def start_node(self) -> Optional[PlanNode]:
        for node in self.nodes:
            if node.type == TaskType.START:
                return node
        return self.nodes[0] if self.nodes else None

    def objective(self) -> str:
        """The user's original question (title of the start node)."""
        node = self.start_node()
        return node.title.strip() if node else ""


def new_plan_document(query: str) -> PlanDocument:
    """Create a plan document seeded with a single start node.

    The start node is round 0, so the first planned round is batch 1.
    """
    created = utc_now_iso()
    stamp = created.replace(":", "").replace(".", "")
    return PlanDocument(
        workflow_id=f"workflow-{stamp}",
        created_at=created,
        check_list=CheckList(latest_id="a", latest_batch=0, refs=[], note=""),
        nodes=[
            PlanNode(
                node_id="a",
                title=str(query or "").strip(),
                batch=0,
                type=TaskType.START,
                status=NodeStatus.COMPLETED,
            )
        ],
    )
