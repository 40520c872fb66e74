"""Unit tests for the step catalog."""

import json
from pathlib import Path

import pytest

from submission_workflow.catalog import (
    COMMERCIAL_PROPERTY_STEPS,
    StepCatalog,
    StepDefinition,
    load_step_catalog,
)


def test_commercial_property_catalog() -> None:
    assert COMMERCIAL_PROPERTY_STEPS.total_steps == 8
    assert [s.number for s in COMMERCIAL_PROPERTY_STEPS] == list(range(1, 9))
    assert COMMERCIAL_PROPERTY_STEPS.steps[4].name == "Appetite Triage"
    assert COMMERCIAL_PROPERTY_STEPS.all_step_numbers == frozenset(range(1, 9))


def test_next_step_is_pinned_at_last_step() -> None:
    assert COMMERCIAL_PROPERTY_STEPS.next_step(1) == 2
    assert COMMERCIAL_PROPERTY_STEPS.next_step(7) == 8
    assert COMMERCIAL_PROPERTY_STEPS.next_step(8) == 8


def test_contains() -> None:
    assert COMMERCIAL_PROPERTY_STEPS.contains(1)
    assert COMMERCIAL_PROPERTY_STEPS.contains(8)
    assert not COMMERCIAL_PROPERTY_STEPS.contains(0)
    assert not COMMERCIAL_PROPERTY_STEPS.contains(9)


def test_numbering_must_be_contiguous() -> None:
    with pytest.raises(ValueError, match="contiguous"):
        StepCatalog(steps=(StepDefinition(1, "A"), StepDefinition(3, "C")))


def test_from_definitions_sorts_by_number() -> None:
    catalog = StepCatalog.from_definitions(
        [{"id": 2, "name": "Second"}, {"id": 1, "name": "First", "description": "go"}]
    )

    assert [s.name for s in catalog] == ["First", "Second"]
    assert catalog.to_json()[0] == {"id": 1, "name": "First", "description": "go"}


@pytest.mark.parametrize(
    "entry",
    [
        {"name": "No number"},
        {"id": True, "name": "Boolean"},
        {"id": 1},
        {"id": 1, "name": "   "},
        {"id": 1, "name": "Bad description", "description": 7},
    ],
)
def test_from_definitions_rejects_bad_entries(entry: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        StepCatalog.from_definitions([entry])


def test_load_step_catalog(tmp_path: Path) -> None:
    path = tmp_path / "steps.json"
    path.write_text(
        json.dumps([{"id": 1, "name": "Intake"}, {"id": 2, "name": "Review"}]), encoding="utf-8"
    )

    catalog = load_step_catalog(path)

    assert catalog.total_steps == 2
    assert catalog.next_step(2) == 2


@pytest.mark.parametrize("content", ["not json", "{}", "[]", "[1, 2]"])
def test_load_step_catalog_rejects_bad_files(tmp_path: Path, content: str) -> None:
    path = tmp_path / "steps.json"
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ValueError):
        load_step_catalog(path)
