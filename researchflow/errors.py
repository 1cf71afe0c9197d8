"""Error taxonomy for the research workflow.

Every error that aborts a round derives from WorkflowError, so callers
(CLI, API) can surface one round-scoped failure with a non-zero exit.
"""

from typing import Optional


class WorkflowError(Exception):
    """Base class for fatal workflow errors."""


class PlanDocumentError(WorkflowError):
    """Persisted plan state is unreadable or invalid."""


class NodeNotFoundError(PlanDocumentError):
    """A write-back target node does not exist in the plan document."""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"node not found: {node_id}")


class PlannerContractError(WorkflowError):
    """The planner returned output that does not match the planning schema."""


class ExternalCallError(WorkflowError):
    """An external call failed after exhausting (or skipping) retries."""

    def __init__(self, label: str, attempts: int, transient: bool, message: str):
        self.label = label
        self.attempts = attempts
        self.transient = transient
        super().__init__(f"[{label}] {message}")


class TaskExecutionError(WorkflowError):
    """A round task failed; carries the task id and attempt count."""

    def __init__(self, node_id: str, attempts: int, message: str):
        self.node_id = node_id
        self.attempts = attempts
        super().__init__(
            f"task {node_id} failed after {attempts} attempt(s): {message}"
        )


class UnknownTaskTypeError(TaskExecutionError):
    """No executor adapter is registered for a task's type."""

    def __init__(self, node_id: str, task_type: str):
        self.task_type = task_type
        super().__init__(node_id, 0, f"unknown task type: {task_type}")


class RoundAbortedError(WorkflowError):
    """A round was abandoned; the plan document keeps its pre-round state."""

    def __init__(
        self,
        round_number: int,
        state: str,
        cause: Optional[BaseException] = None,
    ):
        self.round_number = round_number
        self.state = state
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"round {round_number} aborted during {state}{detail}")
