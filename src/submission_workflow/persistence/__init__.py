"""Adapters for the authoritative workflow persistence service."""

from submission_workflow.persistence.base import (
    PersistenceError,
    TransportFailure,
    ValidationFailure,
    WorkflowPersistence,
)
from submission_workflow.persistence.http import HttpWorkflowPersistence
from submission_workflow.persistence.local import LocalWorkflowPersistence
from submission_workflow.persistence.repository import WorkflowRepository

__all__ = [
    "HttpWorkflowPersistence",
    "LocalWorkflowPersistence",
    "PersistenceError",
    "TransportFailure",
    "ValidationFailure",
    "WorkflowPersistence",
    "WorkflowRepository",
]
