"""Tests for the plan graph view."""

from researchflow.plan.graph import plan_to_graph
from researchflow.plan.schemas import PlanNode, TaskType, new_plan_document


def test_edges_follow_p_node_references():
    document = new_plan_document("What is X?")
    document.nodes.extend([
        PlanNode(node_id="b", title="B", p_node="a:info[search]", batch=1),
        PlanNode(node_id="c", title="C", p_node="a:info[search]", batch=1),
        PlanNode(
            node_id="d", title="D", p_node="b:summary, c:summary, B:summary, zz:summary",
            batch=-1, type=TaskType.SUMMARY,
        ),
    ])
    document.check_list.latest_id = "d"

    graph = plan_to_graph(document)

    assert graph["latest_id"] == "d"
    assert [n["id"] for n in graph["nodes"] if n["is_latest"]] == ["d"]
    assert [e["id"] for e in graph["edges"]] == [
        "a-info[search]-b",
        "a-info[search]-c",
        "b-summary-d",
        "c-summary-d",
    ]
