"""The persistence service interface consumed by the synchronization controller."""

from __future__ import annotations

from typing import Protocol

from submission_workflow.models import StepPayload, WorkflowInstance, WorkflowPatch


class PersistenceError(Exception):
    """The persistence service did not acknowledge an operation."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ValidationFailure(PersistenceError):
    """The service rejected the request (bad step number, unknown submission...)."""


class TransportFailure(PersistenceError):
    """The request did not complete: network error, timeout, server error or bad response."""


class WorkflowPersistence(Protocol):
    """Authoritative storage for workflow instances.

    Every method raises a ``PersistenceError`` subclass on failure.
    """

    def initialize(self, submission_id: str, initial_data: WorkflowPatch) -> WorkflowInstance: ...

    def update_step(self, submission_id: str, step_number: int, data: StepPayload) -> None: ...

    def navigate(self, submission_id: str, step_number: int) -> None: ...

    def complete_step(self, submission_id: str, step_number: int, next_step: int) -> None: ...

    def complete(self, submission_id: str, final_data: StepPayload | None) -> None: ...

    def fetch(self, submission_id: str) -> WorkflowInstance | None: ...
