"""Planning step: decides each round's tasks and the next check list."""

from researchflow.planner.planner import (
    LLMPlanner,
    PlannerAdapter,
    PlannerOutput,
    PlannerTask,
    PlanningRequest,
    build_planner_input,
    parse_planner_output,
)

__all__ = [
    "LLMPlanner",
    "PlannerAdapter",
    "PlannerOutput",
    "PlannerTask",
    "PlanningRequest",
    "build_planner_input",
    "parse_planner_output",
]
