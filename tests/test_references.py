"""Tests for reference expression parsing and resolution."""

from researchflow.plan.references import (
    format_planner_inputs,
    format_task_context,
    parse_reference,
    reference_is_resolvable,
    resolve_references,
    sanitize_p_node,
)
from researchflow.plan.schemas import PlanNode, new_plan_document

LLM_BLOCK = '<info type="llm">model view</info>'
SEARCH_BLOCK = '<info type="search"><searches></searches></info>'


def make_document():
    document = new_plan_document("What is X?")
    document.nodes.append(
        PlanNode(node_id="b", title="Search X", summary="", info="", batch=1)
    )
    document.nodes.append(
        PlanNode(
            node_id="c",
            title="Search Y",
            summary="<summary>Y is known.</summary>",
            info=f"{LLM_BLOCK}\n\n{SEARCH_BLOCK}",
            batch=1,
        )
    )
    return document


def test_parse_reference_is_tolerant():
    ref = parse_reference("  B : Summary ")
    assert (ref.node_id, ref.part, ref.filter) == ("b", "summary", "all")

    ref = parse_reference("c:info[search]")
    assert (ref.node_id, ref.part, ref.filter) == ("c", "info", "search")

    assert parse_reference("not a reference") is None
    assert parse_reference("1:summary") is None


def test_empty_summary_resolves_to_title():
    resolved = resolve_references(make_document(), "b:summary")
    assert len(resolved) == 1
    assert resolved[0].label == "b:summary"
    assert resolved[0].text == "Search X"


def test_info_filter_selects_one_block():
    document = make_document()
    assert resolve_references(document, "c:info[llm]")[0].text == LLM_BLOCK
    assert resolve_references(document, "c:info[search]")[0].text == SEARCH_BLOCK
    assert resolve_references(document, "c:info")[0].text == f"{LLM_BLOCK}\n\n{SEARCH_BLOCK}"


def test_missing_info_falls_back_to_summary_then_title():
    document = make_document()
    document.nodes[1].summary = "<summary>B done</summary>"
    assert resolve_references(document, "b:info[llm]")[0].text == "<summary>B done</summary>"
    assert resolve_references(document, "a:info")[0].text == "What is X?"


def test_unresolvable_tokens_are_dropped():
    resolved = resolve_references(
        make_document(), ["zz:summary", "garbage", "b:title", "c:summary, b:summary"]
    )
    assert [r.label for r in resolved] == ["c:summary", "b:summary"]


def test_reference_is_resolvable():
    document = make_document()
    assert reference_is_resolvable(document, "C:INFO[llm]")
    assert not reference_is_resolvable(document, "q:summary")
    assert not reference_is_resolvable(document, "b:title")
    assert not reference_is_resolvable(document, "NEW1:summary")


def test_sanitize_p_node():
    assert sanitize_p_node("b:title ,c:summary") == "b:summary, c:summary"
    assert sanitize_p_node("a:info[search]") == "a:info[search]"
    assert sanitize_p_node("") == ""


def test_formatting():
    resolved = resolve_references(make_document(), "a:summary, c:summary")
    assert format_planner_inputs(resolved) == (
        "#1 a:summary ->\nWhat is X?\n\n#2 c:summary ->\n<summary>Y is known.</summary>"
    )
    assert format_task_context(resolved) == (
        "# a:summary\nWhat is X?\n\n# c:summary\n<summary>Y is known.</summary>"
    )
