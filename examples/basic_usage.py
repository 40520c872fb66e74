#!/usr/bin/env python3
"""Programmatic workflow example.

This demonstrates using the engine components directly:

* build a store and a controller over the HTTP persistence client
* observe every local write (optimistic, reconciled, rolled back)
* walk a submission through its first steps

The server URL is passed as an argument (not read from `.env`).
"""

from __future__ import annotations

import argparse
import json
from typing import Sequence

from submission_workflow.config import WorkflowSettings
from submission_workflow.controller import WorkflowSyncController
from submission_workflow.logging import configure_logging
from submission_workflow.models import WorkflowInstance
from submission_workflow.persistence.http import HttpWorkflowPersistence
from submission_workflow.store import WorkflowStateStore


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Walk a submission workflow (example).")
    parser.add_argument("--server", required=True, help='Server URL, e.g. "http://127.0.0.1:8000"')
    parser.add_argument("--submission-id", required=True, help="Submission identifier")
    parser.add_argument("--broker", default="Acme Brokerage", help="Broker name for step 1")
    return parser.parse_args(argv)


def _print_write(submission_id: str, instance: WorkflowInstance | None) -> None:
    state = instance.to_json() if instance is not None else None
    print(f"[store] {submission_id}: {json.dumps(state)}")


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = WorkflowSettings()
    configure_logging(settings.log_level)

    store = WorkflowStateStore()
    store.subscribe(_print_write)

    persistence = HttpWorkflowPersistence(
        base_url=args.server, timeout_seconds=settings.request_timeout_seconds
    )
    controller = WorkflowSyncController(
        store=store, persistence=persistence, catalog=settings.load_catalog()
    )

    try:
        controller.initialize(args.submission_id).raise_for_error()
        controller.complete_step(
            args.submission_id, 1, {"broker": args.broker}
        ).raise_for_error()

        # Gating allows completed steps plus the next one only.
        for target in (5, 2):
            if not controller.can_navigate_to_step(args.submission_id, target):
                print(f"Step {target} is not reachable yet")
                continue
            result = controller.navigate_to_step(args.submission_id, target)
            if not result.ok:
                print(f"Navigation rolled back: {result.message}")

        view = controller.view(args.submission_id)
        for step in view.steps:
            print(f"{step.number}. {step.name:<24} {step.status}")
        print(f"Progress: {view.progress_percentage:.0f}%")
    finally:
        persistence.close()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
