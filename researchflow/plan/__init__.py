"""Plan document model, persistence, identifiers and references."""

from researchflow.plan.blocks import TaggedBlocks, extract_info_block, parse_tagged_blocks
from researchflow.plan.ids import allocate_node_ids, next_node_id
from researchflow.plan.references import (
    ResolvedReference,
    parse_reference,
    resolve_references,
    sanitize_p_node,
)
from researchflow.plan.schemas import (
    FINAL_BATCH,
    CheckList,
    NodeStatus,
    PlanDocument,
    PlanNode,
    TaskType,
    new_plan_document,
)
from researchflow.plan.store import NodeResult, PlanStore, apply_node_result

__all__ = [
    "FINAL_BATCH",
    "CheckList",
    "NodeResult",
    "NodeStatus",
    "PlanDocument",
    "PlanNode",
    "PlanStore",
    "ResolvedReference",
    "TaggedBlocks",
    "TaskType",
    "allocate_node_ids",
    "apply_node_result",
    "extract_info_block",
    "new_plan_document",
    "next_node_id",
    "parse_reference",
    "parse_tagged_blocks",
    "resolve_references",
    "sanitize_p_node",
]
