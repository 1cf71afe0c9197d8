"""Executor adapters: one per task type.

An adapter receives a planned task and its resolved context text and
returns a payload of tagged blocks:

    <info type="llm">key points with [ref:N] citations</info>
    <summary>one or two sentence conclusion</summary>
    <info type="search">raw search evidence</info>

The worker pool parses the payload (plan.blocks); adapters only need to
produce well-formed blocks somewhere in their output.
"""

import logging
import re
from typing import Optional, Protocol, runtime_checkable

from researchflow.config import WorkflowSettings
from researchflow.llm.backends import ModelBackend
from researchflow.llm.factory import get_backend
from researchflow.plan.schemas import PlanNode, TaskType
from researchflow.search.bocha import (
    BochaSearchClient,
    SearchResponse,
    build_search_info_xml,
    format_results_for_prompt,
)

logger = logging.getLogger(__name__)

SEARCH_SYSTEM_PROMPT = """You are a fact-checking and information retrieval assistant (Search Agent).

- You are given a research question, optional reference input from earlier work, and fresh web search results.
- Integrate the search results into clear, well-supported conclusions. Answer in Markdown (headings, lists, bold where useful) and give brief reasoning when needed.
- Citations: end each supported sentence with the result number, e.g. [ref:3]. Only cite results you were given.
- Structure: first the key points / arguments (as a list, with [ref] citations); at the very end output exactly one <summary>...</summary> element (1-2 sentences stating the overall conclusion and how credible it is).
- If the results reveal a clear new direction to search next, or a comparable concept worth investigating, add a short paragraph (1-2 sentences) before the summary proposing it; otherwise write "No further search directions suggested."
"""

SUMMARY_SYSTEM_PROMPT = """You are a summarization assistant (Summary Agent).

- The input is a body of text that may contain XML fragments or citation markers.
- Understand it fully, then output a single <summary>...</summary> element of 1-2 sentences giving the overall conclusion and a judgement of its credibility.
- Output exactly one <summary>...</summary> element and nothing else.
"""

INSUFFICIENT_INFORMATION = "Summary: key information is insufficient."

_SUMMARY_ELEMENT_RE = re.compile(r"<summary>[\s\S]*</summary>", re.IGNORECASE)
_TAG_RE = re.compile(r"<[^>]+>")
_SENTENCE_SPLIT_RE = re.compile(r"[。.!？?]")


@runtime_checkable
class ExecutorAdapter(Protocol):
    """Runs one task against an external collaborator."""

    async def execute(self, task: PlanNode, context: str) -> str: ...


def wrap_search_payload(llm_text: str, searches: list[SearchResponse]) -> str:
    """Wrap model output as <info type="llm"> up to its <summary>, then append evidence.

    The summary element stays outside the llm block so it can be
    extracted as the task's terminal summary.
    """
    text = llm_text or ""
    idx = text.lower().find("<summary")
    if idx >= 0:
        body = f'<info type="llm">{text[:idx].rstrip()}</info>\n{text[idx:].strip()}'
    else:
        body = f'<info type="llm">{text.strip()}</info>'
    return f"{body}\n\n{build_search_info_xml(searches)}\n"


def coerce_summary(text: str) -> str:
    """Return the <summary> element from ``text``, or wrap its first sentences."""
    out = (text or "").strip()
    match = _SUMMARY_ELEMENT_RE.search(out)
    if match:
        return match.group(0)
    stripped = _TAG_RE.sub("", out).strip()
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(stripped) if s.strip()]
    fallback = ". ".join(sentences[:2]).strip()
    return f"<summary>{fallback or INSUFFICIENT_INFORMATION}</summary>"


class SearchExecutor:
    """Search task: web search for the title, then a cited write-up by the LLM."""

    def __init__(
        self,
        backend: ModelBackend,
        search_client: BochaSearchClient,
        *,
        max_tokens: int = 8000,
    ):
        self.backend = backend
        self.search_client = search_client
        self.max_tokens = max_tokens

    async def execute(self, task: PlanNode, context: str) -> str:
        question = f"{task.title}\n\nReference input:\n{context}" if context else task.title

        search = await self.search_client.search(task.title)
        user_message = (
            f"{question}\n\n"
            f"## Web search results for: {search.query}\n\n"
            f"{format_results_for_prompt(search)}"
        )

        result = await self.backend.execute(
            SEARCH_SYSTEM_PROMPT,
            user_message,
            max_tokens=self.max_tokens,
            label=f"search {task.node_id}",
        )
        return wrap_search_payload(result.content, [search])


class SummaryExecutor:
    """Summary task: condense the referenced content into one <summary>."""

    def __init__(self, backend: ModelBackend, *, max_tokens: int = 2000):
        self.backend = backend
        self.max_tokens = max_tokens

    async def execute(self, task: PlanNode, context: str) -> str:
        text = context or task.title
        result = await self.backend.execute(
            SUMMARY_SYSTEM_PROMPT,
            text,
            max_tokens=self.max_tokens,
            label=f"summary {task.node_id}",
        )
        if not _SUMMARY_ELEMENT_RE.search(result.content or ""):
            logger.warning(f"[summary {task.node_id}] No <summary> element in output; using fallback")
        return coerce_summary(result.content)


def build_executor_registry(
    settings: WorkflowSettings,
    *,
    backend: Optional[ModelBackend] = None,
    search_client: Optional[BochaSearchClient] = None,
) -> dict[TaskType, ExecutorAdapter]:
    """Dispatch table from task type to adapter.

    Start nodes are never executed, so TaskType.START has no adapter.
    """
    backend = backend or get_backend(settings.llm.executor_model, settings.llm)
    search_client = search_client or BochaSearchClient(settings.search)
    return {
        TaskType.SEARCH: SearchExecutor(
            backend, search_client, max_tokens=settings.llm.max_tokens
        ),
        TaskType.SUMMARY: SummaryExecutor(backend),
    }
