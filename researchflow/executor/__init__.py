"""Execution engine for research workflows.

Takes a plan document and drives it round by round: calling the planner,
running the planned tasks, writing results back and deciding whether to
continue.

Architecture (bottom-up):
- retry: Retry with exponential backoff and transient-error classification
- adapters: Search and summary executors, one per task type
- worker_pool: Bounded-concurrency execution of one round's tasks
- round_runner: Round state machine (plan, execute, write back, check)
- job_manager: In-process job records for workflows started over HTTP
"""
