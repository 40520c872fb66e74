"""Derived, read-only views over a workflow instance.

Everything here is a pure function of the instance and the static catalog.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from .catalog import StepCatalog
from .models import WorkflowInstance, WorkflowStatus

StepStatus = Literal["pending", "active", "completed"]


@dataclass(frozen=True, slots=True)
class StepView:
    number: int
    name: str
    description: str
    status: StepStatus

    def to_json(self) -> dict[str, object]:
        return {
            "id": self.number,
            "name": self.name,
            "description": self.description,
            "status": self.status,
        }


def step_status(instance: WorkflowInstance, step_number: int) -> StepStatus:
    # Completion wins over being the current step.
    if step_number in instance.completed_steps:
        return "completed"
    if step_number == instance.current_step:
        return "active"
    return "pending"


def derive_steps(instance: WorkflowInstance, catalog: StepCatalog) -> list[StepView]:
    return [
        StepView(
            number=step.number,
            name=step.name,
            description=step.description,
            status=step_status(instance, step.number),
        )
        for step in catalog
    ]


def can_navigate_to_step(instance: WorkflowInstance, step_number: int) -> bool:
    """Navigation gating policy.

    A user may go to any completed step or to the single step after the
    highest completed one, never further ahead. This is advisory only; the
    controller does not enforce it.
    """

    return step_number <= instance.max_completed_step + 1


@dataclass(frozen=True, slots=True)
class WorkflowView:
    instance: WorkflowInstance
    steps: list[StepView]
    can_navigate_back: bool
    can_navigate_forward: bool
    is_workflow_complete: bool
    progress_percentage: float

    def to_json(self) -> dict[str, object]:
        return {
            "workflow": self.instance.to_json(),
            "steps": [step.to_json() for step in self.steps],
            "canNavigateBack": self.can_navigate_back,
            "canNavigateForward": self.can_navigate_forward,
            "isWorkflowComplete": self.is_workflow_complete,
            "progressPercentage": self.progress_percentage,
        }


def build_view(instance: WorkflowInstance, catalog: StepCatalog) -> WorkflowView:
    steps = derive_steps(instance, catalog)
    completed = sum(1 for step in steps if step.status == "completed")
    total = catalog.total_steps
    return WorkflowView(
        instance=instance,
        steps=steps,
        can_navigate_back=instance.current_step > 1,
        can_navigate_forward=instance.current_step < total,
        is_workflow_complete=instance.status == WorkflowStatus.COMPLETED,
        progress_percentage=(completed / total) * 100 if total > 0 else 0.0,
    )
