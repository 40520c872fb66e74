"""Submission Workflow.

A progression engine for linear, multi-step submission workflows:
- an in-memory state store with per-submission serialized writes
- a synchronization controller applying optimistic updates and reconciling
  them against an authoritative persistence service
- derived step lists and navigation gating
"""

__version__ = "0.1.0"

from submission_workflow.catalog import COMMERCIAL_PROPERTY_STEPS, StepCatalog, StepDefinition
from submission_workflow.controller import OperationKind, OperationResult, WorkflowSyncController
from submission_workflow.models import WorkflowInstance, WorkflowPatch, WorkflowStatus
from submission_workflow.store import WorkflowStateStore

__all__ = [
    "__version__",
    "COMMERCIAL_PROPERTY_STEPS",
    "OperationKind",
    "OperationResult",
    "StepCatalog",
    "StepDefinition",
    "WorkflowInstance",
    "WorkflowPatch",
    "WorkflowStateStore",
    "WorkflowStatus",
    "WorkflowSyncController",
]
