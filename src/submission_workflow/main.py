"""CLI entrypoint for driving a submission workflow against a persistence server.

Each command hydrates a fresh local store from the server, runs one operation
through the synchronization controller and prints the resulting workflow view
as JSON.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from pydantic import ValidationError

from submission_workflow import __version__
from submission_workflow.config import WorkflowSettings
from submission_workflow.controller import OperationResult, WorkflowSyncController
from submission_workflow.logging import configure_logging
from submission_workflow.persistence.base import WorkflowPersistence
from submission_workflow.persistence.http import HttpWorkflowPersistence
from submission_workflow.store import WorkflowStateStore

logger = logging.getLogger(__name__)


def _json_arg(value: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise argparse.ArgumentTypeError(f"invalid JSON: {e}") from e


def _add_submission_id(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--submission-id",
        required=True,
        help="External identifier of the submission",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="submission-workflow",
        description="Drive a multi-step submission workflow",
    )
    parser.add_argument(
        "--version", action="version", version=f"submission-workflow {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("steps", help="Print the configured step catalog")

    show = subparsers.add_parser("show", help="Print the workflow and its step list")
    _add_submission_id(show)

    init = subparsers.add_parser("init", help="Initialize (or merge defaults into) a workflow")
    _add_submission_id(init)
    init.add_argument(
        "--data",
        type=_json_arg,
        default=None,
        help='Initial fields as JSON, e.g. \'{"currentStep": 1}\'',
    )

    update_step = subparsers.add_parser("update-step", help="Store data for a step")
    _add_submission_id(update_step)
    update_step.add_argument("--step", type=int, required=True, help="Step number")
    update_step.add_argument("--data", type=_json_arg, required=True, help="Step data as JSON")

    navigate = subparsers.add_parser("navigate", help="Move to a step")
    _add_submission_id(navigate)
    navigate.add_argument("--step", type=int, required=True, help="Step number")
    navigate.add_argument(
        "--force",
        action="store_true",
        help="Skip the navigation gate (completed steps or the next one only)",
    )

    complete_step = subparsers.add_parser("complete-step", help="Mark a step as completed")
    _add_submission_id(complete_step)
    complete_step.add_argument("--step", type=int, required=True, help="Step number")
    complete_step.add_argument(
        "--data", type=_json_arg, default=None, help="Step data as JSON (optional)"
    )

    complete = subparsers.add_parser("complete", help="Complete the whole workflow")
    _add_submission_id(complete)
    complete.add_argument(
        "--data", type=_json_arg, default=None, help="Final data as JSON (optional)"
    )

    return parser


def _build_persistence(settings: WorkflowSettings) -> WorkflowPersistence:
    return HttpWorkflowPersistence(
        base_url=settings.api_base_url,
        timeout_seconds=settings.request_timeout_seconds,
    )


def _run(controller: WorkflowSyncController, args: argparse.Namespace) -> OperationResult:
    submission_id = args.submission_id
    if args.command == "init":
        return controller.initialize(submission_id, args.data)
    if args.command == "update-step":
        return controller.update_step_data(submission_id, args.step, args.data)
    if args.command == "navigate":
        return controller.navigate_to_step(submission_id, args.step)
    if args.command == "complete-step":
        return controller.complete_step(submission_id, args.step, args.data)
    if args.command == "complete":
        return controller.complete_workflow(submission_id, args.data)
    raise ValueError(f"Unknown command: {args.command}")


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = WorkflowSettings()
        catalog = settings.load_catalog()
    except (ValidationError, ValueError) as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    if args.command == "steps":
        print(json.dumps(catalog.to_json(), indent=2))
        return 0

    persistence = _build_persistence(settings)
    try:
        controller = WorkflowSyncController(
            store=WorkflowStateStore(),
            persistence=persistence,
            catalog=catalog,
            strict_invariants=settings.strict_invariants,
        )

        result = controller.refresh(args.submission_id)
        if result.ok and args.command != "show":
            if (
                args.command == "navigate"
                and not args.force
                and not controller.can_navigate_to_step(args.submission_id, args.step)
            ):
                print(
                    f"Step {args.step} is not reachable yet; complete the earlier steps "
                    "or pass --force",
                    file=sys.stderr,
                )
                return 1
            result = _run(controller, args)

        if not result.ok:
            logger.error(
                "Workflow operation failed",
                extra={"operation": result.kind.value, "error": result.message},
            )
            print(f"Operation failed: {result.message}", file=sys.stderr)
            return 1

        print(json.dumps(controller.view(args.submission_id).to_json(), indent=2))
        return 0

    except Exception:
        logger.exception("Command failed")
        return 1

    finally:
        close = getattr(persistence, "close", None)
        if callable(close):
            close()


if __name__ == "__main__":
    raise SystemExit(main())
