"""Optimistic state transforms.

Each transform is a pure function ``(current) -> next`` applied to the local
copy of a workflow before the persistence service has confirmed the change.
The transforms keep the data-model invariants structurally; ``check_invariants``
exists to catch regressions in test builds.
"""

from __future__ import annotations

from .catalog import StepCatalog
from .models import StepPayload, WorkflowInstance, WorkflowPatch, WorkflowStatus


class InvariantViolation(AssertionError):
    pass


def _started(instance: WorkflowInstance) -> WorkflowInstance:
    # A draft has no progress; any progress moves it to in_progress.
    if instance.status == WorkflowStatus.DRAFT:
        return instance.model_copy(update={"status": WorkflowStatus.IN_PROGRESS})
    return instance


def initialize(
    *, current: WorkflowInstance | None, submission_id: str, patch: WorkflowPatch
) -> WorkflowInstance:
    """Create the workflow, or merge ``patch`` over an existing one.

    An existing instance keeps its completed steps and step data unless the
    patch explicitly replaces them.
    """

    updates = patch.updates()
    if current is None:
        base = WorkflowInstance(
            submission_id=submission_id,
            current_step=1,
            completed_steps=frozenset(),
            step_data={},
            status=WorkflowStatus.IN_PROGRESS,
        )
        return base.model_copy(update=updates)
    return current.model_copy(update=updates)


def update_step_data(
    *, current: WorkflowInstance, step_number: int, data: StepPayload
) -> WorkflowInstance:
    return current.model_copy(update={"step_data": {**current.step_data, step_number: data}})


def navigate_to_step(*, current: WorkflowInstance, step_number: int) -> WorkflowInstance:
    # Gating is a caller-side policy (see views.can_navigate_to_step).
    return _started(current).model_copy(update={"current_step": step_number})


def complete_step(
    *,
    current: WorkflowInstance,
    step_number: int,
    catalog: StepCatalog,
    step_data: StepPayload | None = None,
) -> WorkflowInstance:
    updated = current
    if step_data is not None:
        updated = update_step_data(current=updated, step_number=step_number, data=step_data)
    return _started(updated).model_copy(
        update={
            "completed_steps": updated.completed_steps | {step_number},
            "current_step": catalog.next_step(step_number),
        }
    )


def complete_workflow(*, current: WorkflowInstance, catalog: StepCatalog) -> WorkflowInstance:
    """Mark the workflow completed, fast-forwarding every step to done."""

    return current.model_copy(
        update={
            "status": WorkflowStatus.COMPLETED,
            "completed_steps": catalog.all_step_numbers,
        }
    )


def check_invariants(instance: WorkflowInstance, catalog: StepCatalog) -> list[str]:
    """Return a description of every invariant ``instance`` violates."""

    problems: list[str] = []
    if not catalog.contains(instance.current_step):
        problems.append(
            f"current_step {instance.current_step} outside [1, {catalog.total_steps}]"
        )
    unknown = sorted(s for s in instance.completed_steps if not catalog.contains(s))
    if unknown:
        problems.append(f"completed_steps contains unknown steps {unknown}")
    if (
        instance.status == WorkflowStatus.COMPLETED
        and instance.completed_steps != catalog.all_step_numbers
    ):
        problems.append("status is completed but not every step is completed")
    if instance.status == WorkflowStatus.DRAFT and (
        instance.completed_steps or instance.current_step != 1
    ):
        problems.append("draft workflow has progress")
    return problems


def assert_invariants(instance: WorkflowInstance, catalog: StepCatalog) -> WorkflowInstance:
    problems = check_invariants(instance, catalog)
    if problems:
        raise InvariantViolation(
            f"Workflow {instance.submission_id!r} violates invariants: " + "; ".join(problems)
        )
    return instance
