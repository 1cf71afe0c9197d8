"""Graph view of a plan document for UI consumers.

Nodes come straight from the plan; edges are derived from each node's
p_node references (parent -> child). Layout is left to the client.
"""

from typing import Any

from researchflow.plan.references import parse_reference, split_references
from researchflow.plan.schemas import PlanDocument


def plan_to_graph(document: PlanDocument) -> dict[str, Any]:
    latest_id = document.check_list.latest_id.lower()
    known = {node.node_id.lower(): node.node_id for node in document.nodes}

    nodes = []
    for node in document.nodes:
        nodes.append({
            "id": node.node_id,
            "title": node.title,
            "summary": node.summary or None,
            "type": node.type.value,
            "status": node.status.value,
            "batch": node.batch,
            "is_latest": node.node_id.lower() == latest_id,
        })

    edges = []
    seen = set()
    for node in document.nodes:
        for token in split_references(node.p_node):
            ref = parse_reference(token)
            if ref is None or ref.node_id not in known:
                continue
            source = known[ref.node_id]
            label = ref.part if ref.filter == "all" else f"{ref.part}[{ref.filter}]"
            edge_id = f"{source}-{label}-{node.node_id}"
            if edge_id in seen:
                continue
            seen.add(edge_id)
            edges.append({
                "id": edge_id,
                "source": source,
                "target": node.node_id,
                "label": label,
            })

    return {
        "workflow_id": document.workflow_id,
        "latest_id": document.check_list.latest_id,
        "latest_batch": document.check_list.latest_batch,
        "nodes": nodes,
        "edges": edges,
    }
