"""Authoritative workflow persistence backed by a ``WorkflowRepository``.

This is the server-side copy of each workflow. It validates step numbers
against the catalog and rejects mutations of submissions that were never
initialized.
"""

from __future__ import annotations

import logging

from submission_workflow.catalog import COMMERCIAL_PROPERTY_STEPS, StepCatalog
from submission_workflow.models import (
    StepPayload,
    WorkflowInstance,
    WorkflowPatch,
    WorkflowStatus,
)
from submission_workflow.transitions import initialize as initialize_transform
from submission_workflow.transitions import navigate_to_step as navigate_transform

from .base import ValidationFailure
from .repository import WorkflowRepository

logger = logging.getLogger(__name__)


class LocalWorkflowPersistence:
    def __init__(
        self,
        repository: WorkflowRepository | None = None,
        catalog: StepCatalog = COMMERCIAL_PROPERTY_STEPS,
    ) -> None:
        self.repository = repository or WorkflowRepository()
        self.catalog = catalog

    def _require_step(self, step_number: int, *, field_name: str = "stepNumber") -> None:
        if not self.catalog.contains(step_number):
            raise ValidationFailure(
                f"{field_name} must be between 1 and {self.catalog.total_steps}, got {step_number}",
                status_code=400,
            )

    def _require_existing(
        self, submission_id: str, current: WorkflowInstance | None
    ) -> WorkflowInstance:
        if current is None:
            raise ValidationFailure(f"Workflow not found: {submission_id}", status_code=404)
        return current

    def initialize(self, submission_id: str, initial_data: WorkflowPatch) -> WorkflowInstance:
        if not submission_id.strip():
            raise ValidationFailure("submissionId is required", status_code=400)
        if initial_data.current_step is not None:
            self._require_step(initial_data.current_step, field_name="currentStep")
        for step in initial_data.completed_steps or ():
            self._require_step(step, field_name="completedSteps")

        instance = self.repository.update(
            submission_id,
            lambda current: initialize_transform(
                current=current, submission_id=submission_id, patch=initial_data
            ),
        )
        logger.info("Workflow initialized", extra={"submission_id": submission_id})
        return instance

    def update_step(self, submission_id: str, step_number: int, data: StepPayload) -> None:
        self._require_step(step_number)

        def apply(current: WorkflowInstance | None) -> WorkflowInstance:
            existing = self._require_existing(submission_id, current)
            return existing.model_copy(
                update={"step_data": {**existing.step_data, step_number: data}}
            )

        self.repository.update(submission_id, apply)
        logger.info(
            "Step data stored", extra={"submission_id": submission_id, "step_number": step_number}
        )

    def navigate(self, submission_id: str, step_number: int) -> None:
        self._require_step(step_number, field_name="currentStep")

        def apply(current: WorkflowInstance | None) -> WorkflowInstance:
            existing = self._require_existing(submission_id, current)
            return navigate_transform(current=existing, step_number=step_number)

        self.repository.update(submission_id, apply)
        logger.info(
            "Workflow navigated", extra={"submission_id": submission_id, "step_number": step_number}
        )

    def complete_step(self, submission_id: str, step_number: int, next_step: int) -> None:
        self._require_step(step_number)
        self._require_step(next_step, field_name="nextStep")

        def apply(current: WorkflowInstance | None) -> WorkflowInstance:
            existing = self._require_existing(submission_id, current)
            status = existing.status
            if status == WorkflowStatus.DRAFT:
                status = WorkflowStatus.IN_PROGRESS
            return existing.model_copy(
                update={
                    "completed_steps": existing.completed_steps | {step_number},
                    "current_step": next_step,
                    "status": status,
                }
            )

        self.repository.update(submission_id, apply)
        logger.info(
            "Step completed",
            extra={
                "submission_id": submission_id,
                "step_number": step_number,
                "next_step": next_step,
            },
        )

    def complete(self, submission_id: str, final_data: StepPayload | None) -> None:
        def apply(current: WorkflowInstance | None) -> WorkflowInstance:
            existing = self._require_existing(submission_id, current)
            return existing.model_copy(
                update={
                    "status": WorkflowStatus.COMPLETED,
                    "completed_steps": self.catalog.all_step_numbers,
                    "final_data": final_data,
                }
            )

        self.repository.update(submission_id, apply)
        logger.info("Workflow completed", extra={"submission_id": submission_id})

    def fetch(self, submission_id: str) -> WorkflowInstance | None:
        return self.repository.get(submission_id)
