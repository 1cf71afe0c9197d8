"""Round orchestration: plan -> execute -> write back -> check, until done.

Each round:

1. PLANNING: resolve check_list.refs, ask the planner for up to three tasks,
   mint node ids, append the planned nodes and rewrite the check list.
2. EXECUTING: run the new tasks through the worker pool against a snapshot
   of the document taken after the nodes were added.
3. WRITING_BACK: merge outcomes into the round document in task order and
   persist it once, atomically.
4. CHECKING: re-read the persisted document and stop on the final batch,
   an empty round, or the round limit.

All round changes live on an in-memory copy of the document until the
single persist at the end of WRITING_BACK. Any failure before that point
aborts the round and leaves the file exactly as it was when the round
started.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Mapping, Optional

from researchflow.config import WorkflowSettings
from researchflow.errors import PlanDocumentError, RoundAbortedError
from researchflow.executor.adapters import ExecutorAdapter, build_executor_registry
from researchflow.executor.retry import RetryPolicy
from researchflow.executor.schemas import (
    RoundResult,
    RoundState,
    StopReason,
    WorkflowResult,
)
from researchflow.executor.worker_pool import run_round_tasks
from researchflow.plan.ids import allocate_node_ids
from researchflow.plan.references import (
    reference_is_resolvable,
    resolve_references,
    sanitize_p_node,
    split_references,
)
from researchflow.plan.schemas import (
    FINAL_BATCH,
    CheckList,
    NodeStatus,
    PlanDocument,
    PlanNode,
    TaskType,
)
from researchflow.plan.store import PlanStore, apply_node_result
from researchflow.planner.planner import (
    LLMPlanner,
    PlannerAdapter,
    PlannerOutput,
    PlanningRequest,
)

logger = logging.getLogger(__name__)

_PLACEHOLDER_RE = re.compile(r"\bNEW([1-3])\b", re.IGNORECASE)

StateCallback = Callable[[RoundState, int], None]


@dataclass
class PlannedRound:
    """The in-memory result of one planning step."""

    document: PlanDocument
    nodes: list[PlanNode]
    output: PlannerOutput
    batch: int

    @property
    def node_ids(self) -> list[str]:
        return [node.node_id for node in self.nodes]


def resolve_placeholders(entries: list[str], new_ids: list[str]) -> list[str]:
    """Replace NEW1..NEW3 with this round's ids; drop refs that cannot resolve.

    Comma-joined entries are split so each ref is resolved on its own.
    """
    resolved = []
    for text in split_references(entries):
        match = _PLACEHOLDER_RE.search(text)
        if match:
            slot = int(match.group(1)) - 1
            if slot >= len(new_ids):
                logger.debug(f"Dropping unresolved placeholder reference {text!r}")
                continue
            text = text[: match.start()] + new_ids[slot] + text[match.end():]
        if text:
            resolved.append(text)
    return resolved


def bootstrap_refs(document: PlanDocument) -> bool:
    """Seed refs with the start node's info on a fresh document.

    Returns True if the document was changed.
    """
    if document.check_list.refs or len(document.nodes) != 1:
        return False
    start = document.nodes[0]
    if start.type != TaskType.START:
        return False
    document.check_list.refs = [f"{start.node_id.lower()}:info"]
    return True


def apply_planner_output(document: PlanDocument, output: PlannerOutput) -> PlannedRound:
    """Add planned nodes and the next check list to a copy of ``document``."""
    working = document.model_copy(deep=True)
    previous = working.check_list

    batch = FINAL_BATCH if output.is_final else previous.latest_batch + 1
    new_ids = allocate_node_ids(previous.latest_id, len(output.tasks))

    nodes = []
    for node_id, task in zip(new_ids, output.tasks):
        if working.find_node(node_id) is not None:
            raise PlanDocumentError(
                f"Allocated node id {node_id!r} already exists "
                f"(check_list.latest_id={previous.latest_id!r})"
            )
        node = PlanNode(
            node_id=node_id,
            title=task.title,
            p_node=sanitize_p_node(task.p_node),
            batch=batch,
            type=TaskType(task.type),
            status=NodeStatus.PLANNED,
        )
        working.nodes.append(node)
        nodes.append(node)

    refs = [
        ref
        for ref in resolve_placeholders(output.next_check_list, new_ids)
        if reference_is_resolvable(working, ref)
    ]

    working.check_list = CheckList(
        latest_id=new_ids[-1] if new_ids else previous.latest_id,
        latest_batch=batch if new_ids else previous.latest_batch,
        refs=refs,
        note=output.note,
    )
    return PlannedRound(document=working, nodes=nodes, output=output, batch=batch)


class RoundOrchestrator:
    """Drives a plan document through rounds until it is final."""

    def __init__(
        self,
        store: PlanStore,
        planner: PlannerAdapter,
        adapters: Mapping[TaskType, ExecutorAdapter],
        settings: WorkflowSettings,
        *,
        on_state_change: Optional[StateCallback] = None,
    ):
        self.store = store
        self.planner = planner
        self.adapters = adapters
        self.settings = settings
        self.retry_policy = RetryPolicy(
            max_attempts=settings.max_attempts,
            base_delay=settings.retry_base_delay,
        )
        self.on_state_change = on_state_change
        self.state = RoundState.IDLE
        self.current_round = 0

    def _set_state(self, state: RoundState) -> None:
        self.state = state
        logger.debug(f"Round {self.current_round}: state -> {state.value}")
        if self.on_state_change is not None:
            self.on_state_change(state, self.current_round)

    def _load(self) -> PlanDocument:
        document = self.store.read()
        if bootstrap_refs(document):
            self.store.write(document)
            logger.info(f"Bootstrap refs -> {document.check_list.refs}")
        return document

    async def _plan(self, document: PlanDocument) -> PlannedRound:
        request = PlanningRequest(
            objective=document.objective(),
            note=document.check_list.note,
            references=resolve_references(document, document.check_list.refs),
        )
        output = await self.planner.plan(request)
        planned = apply_planner_output(document, output)
        logger.info(
            f"Round {self.current_round}: planned {len(planned.nodes)} task(s) "
            f"{planned.node_ids} batch={planned.batch} is_final={output.is_final}"
        )
        return planned

    def _abort(self, error: Exception) -> RoundAbortedError:
        failed_state = self.state
        self._set_state(RoundState.ABORTED)
        logger.error(
            f"Round {self.current_round} aborted during {failed_state.value}: {error}"
        )
        return RoundAbortedError(self.current_round, failed_state.value, error)

    async def run_round(self) -> RoundResult:
        """Run one full round against the persisted document."""
        start_time = time.time()

        try:
            self._set_state(RoundState.PLANNING)
            document = self.store.read()
            planned = await self._plan(document)

            self._set_state(RoundState.EXECUTING)
            snapshot = planned.document.model_copy(deep=True)
            outcomes = await run_round_tasks(
                planned.nodes,
                snapshot,
                self.adapters,
                concurrency=self.settings.concurrency,
                retry_policy=self.retry_policy,
                task_timeout=self.settings.task_timeout,
            )

            self._set_state(RoundState.WRITING_BACK)
            for outcome in outcomes:
                apply_node_result(planned.document, outcome.node.node_id, outcome.result)
            self.store.write(planned.document)
        except Exception as e:
            raise self._abort(e) from e

        duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            f"Round {self.current_round} complete: {len(outcomes)} task(s) written "
            f"in {duration_ms}ms"
        )
        return RoundResult(
            round_number=self.current_round,
            batch=planned.document.check_list.latest_batch,
            node_ids=planned.node_ids,
            is_final=planned.output.is_final,
            note=planned.output.note,
            duration_ms=duration_ms,
        )

    async def run(self) -> WorkflowResult:
        """Run rounds until the document is final, a round is empty, or max_rounds."""
        self.current_round = 0
        self._set_state(RoundState.IDLE)
        document = self._load()
        result = WorkflowResult(workflow_id=document.workflow_id, state=self.state)

        if document.is_final:
            logger.info(f"Plan {document.workflow_id} is already final; nothing to do")
            self._set_state(RoundState.DONE)
            result.state = self.state
            result.stopped_reason = StopReason.ALREADY_FINAL
            return result

        logger.info(
            f"Starting workflow {document.workflow_id}: max_rounds={self.settings.max_rounds}, "
            f"concurrency={self.settings.concurrency}"
        )

        stopped_reason = StopReason.MAX_ROUNDS
        for round_number in range(1, self.settings.max_rounds + 1):
            self.current_round = round_number
            round_result = await self.run_round()
            result.rounds.append(round_result)

            self._set_state(RoundState.CHECKING)
            try:
                document = self.store.read()
            except PlanDocumentError as e:
                raise self._abort(e) from e
            if document.is_final:
                stopped_reason = StopReason.FINAL_BATCH
                break
            if not round_result.node_ids:
                stopped_reason = StopReason.NO_TASKS
                break

        self._set_state(RoundState.DONE)
        result.state = self.state
        result.stopped_reason = stopped_reason
        logger.info(
            f"Workflow {document.workflow_id} done after {len(result.rounds)} round(s): "
            f"{stopped_reason.value}"
        )
        return result

    async def plan_only(self) -> Optional[PlannedRound]:
        """Bootstrap and run a single planning step; persist it without executing.

        Returns None when the document is already final.
        """
        self.current_round = 1
        self._set_state(RoundState.IDLE)
        document = self._load()
        if document.is_final:
            self._set_state(RoundState.DONE)
            return None

        try:
            self._set_state(RoundState.PLANNING)
            planned = await self._plan(document)
            self.store.write(planned.document)
        except Exception as e:
            raise self._abort(e) from e

        self._set_state(RoundState.DONE)
        return planned


def build_orchestrator(store: PlanStore, settings: WorkflowSettings) -> RoundOrchestrator:
    """Wire the LLM planner and the default executor adapters to ``store``."""
    return RoundOrchestrator(
        store,
        LLMPlanner(settings),
        build_executor_registry(settings),
        settings,
    )
