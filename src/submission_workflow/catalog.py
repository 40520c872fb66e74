"""Static step catalog.

The catalog is read-only configuration: the engine never persists or mutates
it. The number of steps in the catalog is ``N`` for every workflow using it.
"""

from __future__ import annotations

import json
from collections.abc import Iterator, Sequence
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True, slots=True)
class StepDefinition:
    number: int
    name: str
    description: str = ""

    def to_json(self) -> dict[str, object]:
        return {"id": self.number, "name": self.name, "description": self.description}


@dataclass(frozen=True, slots=True)
class StepCatalog:
    """An ordered, contiguous list of steps numbered 1..N."""

    steps: tuple[StepDefinition, ...]

    def __post_init__(self) -> None:
        numbers = [step.number for step in self.steps]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Step numbers must be contiguous from 1, got {numbers}")

    def __iter__(self) -> Iterator[StepDefinition]:
        return iter(self.steps)

    def __len__(self) -> int:
        return len(self.steps)

    @property
    def total_steps(self) -> int:
        return len(self.steps)

    @property
    def all_step_numbers(self) -> frozenset[int]:
        return frozenset(range(1, self.total_steps + 1))

    def contains(self, step_number: int) -> bool:
        return 1 <= step_number <= self.total_steps

    def next_step(self, step_number: int) -> int:
        """Step that follows ``step_number``, pinned at the last step."""

        return min(step_number + 1, self.total_steps)

    @classmethod
    def from_definitions(cls, items: Sequence[dict[str, object]]) -> StepCatalog:
        steps: list[StepDefinition] = []
        for item in items:
            number = item.get("id", item.get("number"))
            name = item.get("name")
            description = item.get("description", "")
            if not isinstance(number, int) or isinstance(number, bool):
                raise ValueError(f"Invalid step number in catalog entry: {item!r}")
            if not isinstance(name, str) or not name.strip():
                raise ValueError(f"Missing step name in catalog entry: {item!r}")
            if not isinstance(description, str):
                raise ValueError(f"Invalid step description in catalog entry: {item!r}")
            steps.append(StepDefinition(number=number, name=name, description=description))
        steps.sort(key=lambda s: s.number)
        return cls(steps=tuple(steps))

    def to_json(self) -> list[dict[str, object]]:
        return [step.to_json() for step in self.steps]


COMMERCIAL_PROPERTY_STEPS = StepCatalog(
    steps=(
        StepDefinition(1, "Email Intake", "Process incoming submission emails"),
        StepDefinition(2, "Document Ingestion", "OCR and data extraction"),
        StepDefinition(3, "Data Enrichment", "Geocoding and peril overlays"),
        StepDefinition(4, "Comparative Analytics", "Similar risk analysis"),
        StepDefinition(5, "Appetite Triage", "Decision tree evaluation"),
        StepDefinition(6, "Propensity Scoring", "Broker behavior analysis"),
        StepDefinition(7, "Underwriting Copilot", "Rate adequacy assessment"),
        StepDefinition(8, "Core Integration", "System data flow"),
    )
)


def load_step_catalog(path: Path) -> StepCatalog:
    """Load a catalog from a JSON list of ``{"id", "name", "description"}`` objects."""

    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ValueError(f"Step catalog is not valid JSON: {path}") from e
    if not isinstance(raw, list) or not all(isinstance(item, dict) for item in raw):
        raise ValueError(f"Step catalog must be a JSON list of objects: {path}")
    if not raw:
        raise ValueError(f"Step catalog is empty: {path}")
    return StepCatalog.from_definitions(raw)
