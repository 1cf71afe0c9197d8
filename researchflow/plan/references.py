"""Reference expressions: parsing and resolution against a plan document.

A reference addresses node content as ``id:part[filter]``:

    a:summary          node a's summary (falls back to its title)
    b:info             node b's raw info blocks
    c:info[llm]        only the <info type="llm"> block of node c
    c:info[search]     only the <info type="search"> block of node c

Lists are comma-separated ("b:summary, c:info[search]"). Parsing is
case-insensitive and tolerant of whitespace. Resolution is total: a token
that does not parse or names an unknown node is dropped, and empty content
falls back info -> summary -> title so early rounds still give the planner
a signal.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, Optional, Union

from researchflow.plan.blocks import extract_info_block
from researchflow.plan.schemas import PlanDocument, PlanNode

logger = logging.getLogger(__name__)

CONTENT_PARTS = ("summary", "info")
INFO_FILTERS = ("llm", "search", "all")

_REFERENCE_RE = re.compile(
    r"^\s*([a-zA-Z]+)\s*:\s*([a-zA-Z]+)\s*(?:\[\s*(llm|search|all)\s*\])?",
    re.IGNORECASE,
)
_TITLE_PART_RE = re.compile(r":\s*title\b", re.IGNORECASE)
_SEPARATOR_RE = re.compile(r"\s*,\s*")


@dataclass(frozen=True)
class Reference:
    node_id: str
    part: str
    filter: str
    raw: str


@dataclass(frozen=True)
class ResolvedReference:
    label: str
    text: str


def split_references(expression: Union[str, Iterable[str], None]) -> list[str]:
    if expression is None:
        return []
    if isinstance(expression, str):
        tokens = expression.split(",")
    else:
        tokens = [t for item in expression for t in str(item).split(",")]
    return [t.strip() for t in tokens if t and t.strip()]


def parse_reference(text: str) -> Optional[Reference]:
    """Parse one ``id:part[filter]`` token; None if it does not match."""
    raw = str(text).strip()
    match = _REFERENCE_RE.match(raw)
    if not match:
        return None
    return Reference(
        node_id=match.group(1).lower(),
        part=match.group(2).lower(),
        filter=(match.group(3) or "all").lower(),
        raw=raw,
    )


def node_summary_or_title(node: PlanNode) -> str:
    if node.summary and node.summary.strip():
        return node.summary
    return node.title or ""


def resolve_node_content(node: PlanNode, ref: Reference) -> Optional[str]:
    """Select content for a parsed reference; None for non-content parts."""
    if ref.part == "summary":
        return node_summary_or_title(node)
    if ref.part == "info":
        if ref.filter in ("llm", "search"):
            value = extract_info_block(node.info, ref.filter)
        else:
            value = node.info or ""
        return value or node_summary_or_title(node)
    return None


def resolve_references(
    document: PlanDocument,
    expression: Union[str, Iterable[str], None],
) -> list[ResolvedReference]:
    """Resolve a reference expression (or list of them) to labelled text."""
    by_id = document.nodes_by_id()
    resolved = []
    for token in split_references(expression):
        ref = parse_reference(token)
        if ref is None:
            logger.debug(f"Dropping unparseable reference {token!r}")
            continue
        node = by_id.get(ref.node_id)
        if node is None:
            logger.debug(f"Dropping reference to unknown node {token!r}")
            continue
        text = resolve_node_content(node, ref)
        if text is None:
            logger.debug(f"Dropping reference to non-content part {token!r}")
            continue
        resolved.append(ResolvedReference(label=ref.raw, text=text))
    return resolved


def reference_is_resolvable(document: PlanDocument, token: str) -> bool:
    ref = parse_reference(token)
    if ref is None or ref.part not in CONTENT_PARTS:
        return False
    return document.find_node(ref.node_id) is not None


def sanitize_p_node(expression: str) -> str:
    """Normalize a planner-supplied parent reference.

    Titles are not addressable content for downstream tasks, so ``x:title``
    becomes ``x:summary`` (which itself falls back to the title). Separators
    are normalized to ", ".
    """
    text = _TITLE_PART_RE.sub(":summary", str(expression or ""))
    return ", ".join(split_references(_SEPARATOR_RE.sub(",", text)))


def format_planner_inputs(resolved: list[ResolvedReference]) -> str:
    """Numbered blocks for the planner prompt."""
    return "\n\n".join(
        f"#{i} {item.label} ->\n{item.text}" for i, item in enumerate(resolved, start=1)
    )


def format_task_context(resolved: list[ResolvedReference]) -> str:
    """Labelled blocks for an executor's context."""
    return "\n\n".join(f"# {item.label}\n{item.text}" for item in resolved)
