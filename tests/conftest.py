"""Test configuration and fixtures."""

from pathlib import Path
from unittest.mock import Mock

import pytest

from submission_workflow.catalog import COMMERCIAL_PROPERTY_STEPS, StepCatalog
from submission_workflow.controller import WorkflowSyncController
from submission_workflow.persistence.base import WorkflowPersistence
from submission_workflow.persistence.local import LocalWorkflowPersistence
from submission_workflow.persistence.repository import WorkflowRepository
from submission_workflow.store import WorkflowStateStore


@pytest.fixture
def catalog() -> StepCatalog:
    """Provide the 8-step Commercial Property catalog."""
    return COMMERCIAL_PROPERTY_STEPS


@pytest.fixture
def store() -> WorkflowStateStore:
    """Provide an empty state store."""
    return WorkflowStateStore()


@pytest.fixture
def state_file(tmp_path: Path) -> Path:
    """Provide a path for the server-side snapshot file."""
    return tmp_path / "workflow_state" / "workflows.json"


@pytest.fixture
def persistence(state_file: Path, catalog: StepCatalog) -> LocalWorkflowPersistence:
    """Provide a file-backed authoritative persistence service."""
    return LocalWorkflowPersistence(repository=WorkflowRepository(state_file), catalog=catalog)


@pytest.fixture
def controller(
    store: WorkflowStateStore,
    persistence: LocalWorkflowPersistence,
    catalog: StepCatalog,
) -> WorkflowSyncController:
    """Provide a controller with invariant assertions enabled."""
    return WorkflowSyncController(
        store=store,
        persistence=persistence,
        catalog=catalog,
        strict_invariants=True,
    )


@pytest.fixture
def echo_persistence(store: WorkflowStateStore) -> Mock:
    """Provide a mocked service that acknowledges everything.

    ``fetch`` echoes the local instance back, so the authoritative state equals
    the optimistic one unless a test says otherwise.
    """
    mock = Mock(spec=WorkflowPersistence)
    mock.fetch.side_effect = store.get
    return mock


@pytest.fixture
def mocked_controller(
    store: WorkflowStateStore, echo_persistence: Mock, catalog: StepCatalog
) -> WorkflowSyncController:
    """Provide a strict controller over the mocked service."""
    return WorkflowSyncController(
        store=store,
        persistence=echo_persistence,
        catalog=catalog,
        strict_invariants=True,
    )
