"""Tests for plan document persistence."""

import json

import pytest

from researchflow.errors import NodeNotFoundError, PlanDocumentError
from researchflow.plan.schemas import (
    FINAL_BATCH,
    NodeStatus,
    PlanNode,
    TaskType,
)
from researchflow.plan.store import NodeResult, PlanStore, apply_node_result, list_plan_files


def test_create_seeds_start_node(store):
    document = store.read()

    assert document.version == "0.1"
    assert document.workflow_id.startswith("workflow-")
    assert ":" not in document.workflow_id and "." not in document.workflow_id
    assert document.check_list.latest_id == "a"
    assert document.check_list.latest_batch == 0
    assert document.check_list.refs == []
    assert len(document.nodes) == 1

    start = document.nodes[0]
    assert start.node_id == "a"
    assert start.title == "What is X?"
    assert start.type == TaskType.START
    assert start.status == NodeStatus.COMPLETED
    assert document.objective() == "What is X?"
    assert not document.is_final


def test_write_is_atomic_and_leaves_no_temp_files(store, tmp_path):
    document = store.read()
    document.check_list.note = "updated"
    store.write(document)

    assert store.read().check_list.note == "updated"
    assert sorted(p.name for p in tmp_path.iterdir()) == ["plan.json"]


def test_unknown_fields_survive_a_round_trip(store):
    data = json.loads(store.path.read_text())
    data["ui_layout"] = {"zoom": 2}
    data["nodes"][0]["color"] = "red"
    store.path.write_text(json.dumps(data))

    store.write(store.read())

    data = json.loads(store.path.read_text())
    assert data["ui_layout"] == {"zoom": 2}
    assert data["nodes"][0]["color"] == "red"


def test_read_missing_file(tmp_path):
    with pytest.raises(PlanDocumentError, match="not found"):
        PlanStore(tmp_path / "nope.json").read()


def test_read_invalid_json(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text("{not json")
    with pytest.raises(PlanDocumentError, match="not valid JSON"):
        PlanStore(path).read()


def test_read_invalid_document(tmp_path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"nodes": "nope"}))
    with pytest.raises(PlanDocumentError, match="Invalid plan document"):
        PlanStore(path).read()


def test_apply_node_result_merges_content(store):
    document = store.read()
    document.nodes.append(
        PlanNode(node_id="b", title="Search X", info='<info type="llm">old</info>', batch=1)
    )

    node = apply_node_result(
        document,
        "B",
        NodeResult(summary="<summary>new</summary>", info='<info type="llm">new</info>'),
        now="2026-01-01T00:00:00Z",
    )

    assert node.summary == "<summary>new</summary>"
    assert node.info == '<info type="llm">old</info>\n\n<info type="llm">new</info>'
    assert node.status == NodeStatus.COMPLETED
    assert node.updated_at == "2026-01-01T00:00:00Z"


def test_apply_node_result_keeps_summary_when_result_has_none(store):
    document = store.read()
    document.nodes[0].summary = "<summary>kept</summary>"
    node = apply_node_result(document, "a", NodeResult(info="extra"))
    assert node.summary == "<summary>kept</summary>"
    assert node.info == "extra"


def test_upsert_node_result_persists(store):
    node = store.upsert_node_result("a", summary="<summary>s</summary>", info="i")
    assert node.updated_at is not None

    reread = store.read().find_node("a")
    assert reread.summary == "<summary>s</summary>"
    assert reread.info == "i"


def test_upsert_unknown_node(store):
    before = store.path.read_text()
    with pytest.raises(NodeNotFoundError) as exc_info:
        store.upsert_node_result("q", summary="x")
    assert exc_info.value.node_id == "q"
    assert store.path.read_text() == before


def test_copy_to(store, tmp_path):
    copy = store.copy_to(tmp_path / "copies" / "plan.copy.json")
    assert copy.read() == store.read()


def test_list_plan_files(tmp_path):
    runs = tmp_path / "runs"
    first = PlanStore(runs / "one.json")
    first.create("First question")
    second = PlanStore(runs / "two.json")
    document = second.create("Second question")
    document.check_list.latest_batch = FINAL_BATCH
    second.write(document)
    (runs / "broken.json").write_text("{")

    plans = list_plan_files(runs)

    assert {p["objective"] for p in plans} == {"First question", "Second question"}
    final = next(p for p in plans if p["objective"] == "Second question")
    assert final["is_final"] is True
    assert final["node_count"] == 1
    assert list_plan_files(tmp_path / "missing") == []
