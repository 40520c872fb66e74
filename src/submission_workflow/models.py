"""Data model for a multi-step submission workflow.

Instances are immutable: every change produces a new instance, which keeps
snapshots taken for rollback safe from later mutation.

Wire names are camelCase (``submissionId``, ``completedSteps``...) to match the
persistence service; Python code uses the snake_case attribute names.
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer
from pydantic.alias_generators import to_camel

# Step payloads are opaque to the engine; only the owning step interprets them.
StepPayload = Any


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    ERROR = "error"


class WorkflowInstance(BaseModel):
    """The full state of one multi-step process for one submission."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    submission_id: str
    current_step: int = Field(default=1)
    completed_steps: frozenset[int] = Field(default_factory=frozenset)
    step_data: dict[int, StepPayload] = Field(default_factory=dict)
    status: WorkflowStatus = Field(default=WorkflowStatus.DRAFT)

    final_data: StepPayload | None = Field(default=None)
    created_at: str | None = Field(default=None)
    updated_at: str | None = Field(default=None)

    @field_serializer("completed_steps", when_used="json")
    def _serialize_completed_steps(self, value: frozenset[int]) -> list[int]:
        return sorted(value)

    @classmethod
    def draft(cls, submission_id: str) -> WorkflowInstance:
        """Value observed for a submission that has never been initialized."""

        return cls(submission_id=submission_id)

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True)

    @property
    def max_completed_step(self) -> int:
        return max(self.completed_steps, default=0)


class WorkflowPatch(BaseModel):
    """Partial instance accepted by ``initialize``.

    Only fields that were explicitly provided are applied.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    current_step: int | None = None
    completed_steps: frozenset[int] | None = None
    step_data: dict[int, StepPayload] | None = None
    status: WorkflowStatus | None = None

    @field_serializer("completed_steps", when_used="json")
    def _serialize_completed_steps(self, value: frozenset[int] | None) -> list[int] | None:
        return sorted(value) if value is not None else None

    def updates(self) -> dict[str, Any]:
        """Explicitly provided fields, ready for ``model_copy(update=...)``."""

        return {
            name: getattr(self, name)
            for name in self.model_fields_set
            if getattr(self, name) is not None
        }

    def to_json(self) -> dict[str, object]:
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)
