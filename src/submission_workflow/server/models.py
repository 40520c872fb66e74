"""Request bodies for the persistence REST API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from submission_workflow.models import WorkflowPatch


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


class InitializeRequest(WorkflowPatch):
    submission_id: str = Field(min_length=1)

    def patch(self) -> WorkflowPatch:
        fields = self.model_fields_set - {"submission_id"}
        return WorkflowPatch.model_validate(
            {name: getattr(self, name) for name in fields if getattr(self, name) is not None}
        )


class StepDataRequest(_CamelModel):
    step_data: Any = None


class NavigateRequest(_CamelModel):
    current_step: int


class CompleteStepRequest(_CamelModel):
    step_number: int
    next_step: int


class CompleteRequest(_CamelModel):
    final_data: Any = None
