#!/usr/bin/env python3
"""Run a single planning step against a copy of a plan file.

The original plan is left untouched: it is copied to a sibling
``<name>.copy.json`` and the planner runs once on the copy. Useful for
checking what the planner would do next without executing anything.

Usage:
    python scripts/run_plan_on_copy.py runs/plan_stage1.json
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Add project root to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from researchflow.config import WorkflowSettings
from researchflow.errors import WorkflowError
from researchflow.executor.round_runner import build_orchestrator
from researchflow.plan.store import PlanStore

logger = logging.getLogger("run_plan_on_copy")


def copy_path_for(path: Path) -> Path:
    return path.with_name(f"{path.stem}.copy{path.suffix}")


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(
        description="Run one planning step on a copy of a plan file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("plan", type=Path, help="Plan JSON file")
    parser.add_argument("--config", type=Path, help="JSON or YAML settings file")
    parser.add_argument("--verbose", "-v", action="store_true", help="DEBUG logging")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    source = PlanStore(args.plan.resolve())
    if not source.exists():
        print(f"Error: file not found: {source.path}", file=sys.stderr)
        return 2
    if source.path.suffix.lower() != ".json":
        print("Error: expected a .json plan file", file=sys.stderr)
        return 2

    try:
        settings = WorkflowSettings.load(args.config)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    store = source.copy_to(copy_path_for(source.path))
    print(f"Copied plan to {store.path}", file=sys.stderr)

    try:
        planned = asyncio.run(build_orchestrator(store, settings).plan_only())
    except WorkflowError as e:
        logger.error(f"Planning failed: {e}")
        return 1

    if planned is None:
        print("Plan is already final; nothing to plan.", file=sys.stderr)
        return 0

    summary = {
        "planned": [
            {
                "node_id": node.node_id,
                "title": node.title,
                "type": node.type.value,
                "p_node": node.p_node,
            }
            for node in planned.nodes
        ],
        "next_check_list": planned.document.check_list.model_dump(),
    }
    print(json.dumps(summary, indent=2, ensure_ascii=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())
