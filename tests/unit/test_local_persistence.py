"""Unit tests for the file-backed authoritative persistence service."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from submission_workflow.models import WorkflowPatch, WorkflowStatus
from submission_workflow.persistence.base import ValidationFailure
from submission_workflow.persistence.local import LocalWorkflowPersistence
from submission_workflow.persistence.repository import WorkflowRepository


def test_initialize_creates_in_progress_workflow(
    persistence: LocalWorkflowPersistence, state_file: Path
) -> None:
    instance = persistence.initialize("SUB-1", WorkflowPatch())

    assert instance.status == WorkflowStatus.IN_PROGRESS
    assert instance.current_step == 1
    assert instance.created_at is not None
    assert instance.updated_at is not None

    on_disk = json.loads(state_file.read_text(encoding="utf-8"))
    assert on_disk["SUB-1"]["submissionId"] == "SUB-1"
    assert on_disk["SUB-1"]["status"] == "in_progress"


def test_initialize_twice_merges_and_keeps_created_at(
    persistence: LocalWorkflowPersistence,
) -> None:
    first = persistence.initialize("SUB-1", WorkflowPatch())
    persistence.complete_step("SUB-1", 1, 2)

    second = persistence.initialize("SUB-1", WorkflowPatch(current_step=1))

    assert second.created_at == first.created_at
    assert second.completed_steps == {1}
    assert second.current_step == 1


def test_step_lifecycle_survives_reload(
    persistence: LocalWorkflowPersistence, state_file: Path
) -> None:
    persistence.initialize("SUB-1", WorkflowPatch())
    persistence.update_step("SUB-1", 1, {"broker": "X"})
    persistence.complete_step("SUB-1", 1, 2)
    persistence.navigate("SUB-1", 1)

    reloaded = LocalWorkflowPersistence(repository=WorkflowRepository(state_file))
    instance = reloaded.fetch("SUB-1")

    assert instance is not None
    assert instance.step_data == {1: {"broker": "X"}}
    assert instance.completed_steps == {1}
    assert instance.current_step == 1


def test_complete_records_final_data(persistence: LocalWorkflowPersistence) -> None:
    persistence.initialize("SUB-1", WorkflowPatch())

    persistence.complete("SUB-1", {"premium": 1200})

    instance = persistence.fetch("SUB-1")
    assert instance is not None
    assert instance.status == WorkflowStatus.COMPLETED
    assert instance.completed_steps == set(range(1, 9))
    assert instance.final_data == {"premium": 1200}


def test_complete_step_promotes_draft(persistence: LocalWorkflowPersistence) -> None:
    persistence.initialize("SUB-1", WorkflowPatch(status=WorkflowStatus.DRAFT))

    persistence.complete_step("SUB-1", 1, 2)

    instance = persistence.fetch("SUB-1")
    assert instance is not None
    assert instance.status == WorkflowStatus.IN_PROGRESS


@pytest.mark.parametrize("step", [0, 9, -1])
def test_out_of_range_steps_are_rejected(
    persistence: LocalWorkflowPersistence, step: int
) -> None:
    persistence.initialize("SUB-1", WorkflowPatch())

    with pytest.raises(ValidationFailure) as exc_info:
        persistence.navigate("SUB-1", step)

    assert exc_info.value.status_code == 400


def test_initialize_rejects_bad_patch(persistence: LocalWorkflowPersistence) -> None:
    with pytest.raises(ValidationFailure):
        persistence.initialize("SUB-1", WorkflowPatch(completed_steps=frozenset({12})))
    with pytest.raises(ValidationFailure):
        persistence.initialize("  ", WorkflowPatch())


def test_mutating_unknown_submission_is_not_found(
    persistence: LocalWorkflowPersistence,
) -> None:
    with pytest.raises(ValidationFailure) as exc_info:
        persistence.update_step("SUB-404", 1, {"a": 1})

    assert exc_info.value.status_code == 404
    assert persistence.fetch("SUB-404") is None


def test_in_memory_repository() -> None:
    repository = WorkflowRepository()
    persistence = LocalWorkflowPersistence(repository=repository)

    persistence.initialize("SUB-1", WorkflowPatch())
    persistence.initialize("SUB-2", WorkflowPatch())

    assert sorted(i.submission_id for i in repository.list()) == ["SUB-1", "SUB-2"]


def test_corrupt_state_file_reads_as_empty(state_file: Path) -> None:
    state_file.parent.mkdir(parents=True, exist_ok=True)
    state_file.write_text("{not json", encoding="utf-8")

    assert WorkflowRepository(state_file).get("SUB-1") is None


def test_navigate_promotes_draft(persistence: LocalWorkflowPersistence) -> None:
    persistence.initialize("SUB-1", WorkflowPatch(status=WorkflowStatus.DRAFT))

    persistence.navigate("SUB-1", 2)

    instance = persistence.fetch("SUB-1")
    assert instance is not None
    assert instance.status == WorkflowStatus.IN_PROGRESS
    assert instance.current_step == 2
