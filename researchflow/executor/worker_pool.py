"""Bounded-concurrency execution of one round's tasks.

A fixed number of worker coroutines share an integer cursor: each worker
claims the next task index, runs it, stores the outcome in a buffer slot
for that index and loops until the cursor passes the end. The cursor is
advanced without awaiting in between, so each task is claimed exactly once.

Every task sees the same round-start snapshot of the plan document;
write-back happens afterwards, in task order, in the orchestrator.

The first fatal task error cancels the remaining workers and propagates.
"""

import asyncio
import logging
import time
from typing import Mapping, Optional

from researchflow.errors import ExternalCallError, TaskExecutionError, UnknownTaskTypeError
from researchflow.executor.adapters import ExecutorAdapter
from researchflow.executor.retry import RetryPolicy, call_with_retry
from researchflow.executor.schemas import TaskOutcome
from researchflow.plan.blocks import parse_tagged_blocks
from researchflow.plan.references import format_task_context, resolve_references
from researchflow.plan.schemas import PlanDocument, PlanNode, TaskType
from researchflow.plan.store import NodeResult

logger = logging.getLogger(__name__)

DEFAULT_SUMMARY = "<summary>(no summary)</summary>"


def build_task_context(snapshot: PlanDocument, task: PlanNode) -> str:
    """Resolve a task's p_node against the snapshot; fall back to its title."""
    context = format_task_context(resolve_references(snapshot, task.p_node))
    return context or task.title


def payload_to_result(payload: str) -> NodeResult:
    """Split an adapter payload into the node's summary and info."""
    blocks = parse_tagged_blocks(payload or "")
    return NodeResult(
        summary=blocks.summary or DEFAULT_SUMMARY,
        info=blocks.info_text(),
    )


async def execute_task(
    index: int,
    task: PlanNode,
    snapshot: PlanDocument,
    adapters: Mapping[TaskType, ExecutorAdapter],
    retry_policy: RetryPolicy,
    task_timeout: Optional[float] = None,
) -> TaskOutcome:
    adapter = adapters.get(task.type)
    if adapter is None:
        raise UnknownTaskTypeError(task.node_id, str(task.type.value))

    context = build_task_context(snapshot, task)
    label = f"task {task.node_id}/{task.type.value}"
    start_time = time.time()
    logger.info(f"[{label}] Starting: {task.title[:80]}")

    try:
        payload, attempts = await call_with_retry(
            lambda: adapter.execute(task, context),
            retry_policy,
            label=label,
            timeout=task_timeout,
        )
    except ExternalCallError as e:
        raise TaskExecutionError(task.node_id, e.attempts, str(e)) from e

    duration_ms = int((time.time() - start_time) * 1000)
    logger.info(
        f"[{label}] Completed in {duration_ms}ms "
        f"({attempts} attempt{'s' if attempts != 1 else ''}, {len(payload or ''):,} chars)"
    )
    return TaskOutcome(
        index=index,
        node=task,
        result=payload_to_result(payload),
        attempts=attempts,
    )


async def run_round_tasks(
    tasks: list[PlanNode],
    snapshot: PlanDocument,
    adapters: Mapping[TaskType, ExecutorAdapter],
    *,
    concurrency: int,
    retry_policy: RetryPolicy,
    task_timeout: Optional[float] = None,
) -> list[TaskOutcome]:
    """Run every task once with at most ``concurrency`` in flight.

    Returns outcomes in task order regardless of completion order.
    Raises the first TaskExecutionError after cancelling outstanding work.
    """
    if not tasks:
        return []
    if concurrency < 1:
        raise ValueError(f"concurrency must be >= 1, got {concurrency}")

    outcomes: list[Optional[TaskOutcome]] = [None] * len(tasks)
    cursor = 0

    async def worker(worker_id: int) -> None:
        nonlocal cursor
        while cursor < len(tasks):
            index = cursor
            cursor += 1
            logger.debug(f"Worker {worker_id} claimed task #{index} ({tasks[index].node_id})")
            outcomes[index] = await execute_task(
                index, tasks[index], snapshot, adapters, retry_policy, task_timeout
            )

    worker_count = min(concurrency, len(tasks))
    logger.info(f"Executing {len(tasks)} tasks with {worker_count} workers")

    workers = [asyncio.ensure_future(worker(i)) for i in range(worker_count)]
    try:
        await asyncio.gather(*workers)
    except BaseException:
        for w in workers:
            if not w.done():
                w.cancel()
        # Let cancelled workers unwind before the error propagates
        await asyncio.gather(*workers, return_exceptions=True)
        raise

    return [outcome for outcome in outcomes if outcome is not None]
