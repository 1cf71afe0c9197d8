#!/usr/bin/env python3
"""Run a research workflow to completion.

Initializes a plan document from a new question (or continues an existing
one), then loops plan -> execute -> write back until the planner marks the
final batch, a round plans nothing, or the round limit is reached.

Usage:
    # New workflow
    python scripts/run_workflow.py --query "How do solid-state batteries degrade?"

    # New workflow with an explicit output path
    python scripts/run_workflow.py --query "..." --out runs/batteries.json

    # Continue an existing plan
    python scripts/run_workflow.py --plan runs/batteries.json

    # Settings from a config file (JSON or YAML), overriding the environment
    python scripts/run_workflow.py --plan runs/batteries.json --config agent.config.json

Environment:
    ANTHROPIC_API_KEY / GEMINI_API_KEY, BOCHA_API_KEY,
    WORKFLOW_MAX_ROUNDS (default 8), WORKFLOW_CONCURRENCY (default 3),
    PLANNING_LOG_FULL=1 to log planner input untruncated.
"""

import argparse
import asyncio
import logging
import sys
import time
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from researchflow.config import WorkflowSettings
from researchflow.errors import WorkflowError
from researchflow.executor.round_runner import build_orchestrator
from researchflow.plan.store import PlanStore

logger = logging.getLogger("run_workflow")


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run a research workflow until its plan is final",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--query", help="User question for a new workflow")
    source.add_argument("--plan", type=Path, help="Existing plan JSON to continue")
    parser.add_argument(
        "--out",
        type=Path,
        help="Plan path for a new workflow (default: <runs_dir>/plan_<ms>.json)",
    )
    parser.add_argument("--config", type=Path, help="JSON or YAML settings file")
    parser.add_argument("--max-rounds", type=int, help="Override max rounds")
    parser.add_argument("--concurrency", type=int, help="Override task concurrency")
    parser.add_argument("--verbose", "-v", action="store_true", help="DEBUG logging")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        settings = WorkflowSettings.load(args.config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    overrides = {}
    if args.max_rounds is not None:
        overrides["max_rounds"] = max(1, args.max_rounds)
    if args.concurrency is not None:
        overrides["concurrency"] = max(1, args.concurrency)
    if overrides:
        settings = settings.model_copy(update=overrides)
    settings.warn_missing_credentials()

    if args.plan is not None:
        store = PlanStore(args.plan.resolve())
        if not store.exists():
            print(f"Error: plan not found: {store.path}", file=sys.stderr)
            return 2
    else:
        if not args.query.strip():
            print("Error: --query must not be empty", file=sys.stderr)
            return 2
        out = args.out or settings.runs_dir / f"plan_{int(time.time() * 1000)}.json"
        store = PlanStore(out.resolve())
        store.create(args.query)

    try:
        orchestrator = build_orchestrator(store, settings)
        result = asyncio.run(orchestrator.run())
    except WorkflowError as e:
        logger.error(f"Workflow failed: {e}")
        return 1
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    print(f"Workflow {result.workflow_id}: {result.state.value} "
          f"({result.stopped_reason.value if result.stopped_reason else '-'})")
    print(f"Rounds: {len(result.rounds)}, nodes added: {', '.join(result.node_ids) or '-'}")
    print(f"Plan: {store.path}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
