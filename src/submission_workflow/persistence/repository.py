"""Latest-snapshot storage for workflow instances.

Only the current snapshot of each submission is kept; there is no history.
With a ``path`` the snapshots are persisted as a JSON object keyed by
submission id, otherwise they live in memory only.
"""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path

from submission_workflow.models import WorkflowInstance

logger = logging.getLogger(__name__)


def _utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


@dataclass
class WorkflowRepository:
    path: Path | None = None
    _memory: dict[str, WorkflowInstance] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        self._lock = threading.Lock()

    def _load_unlocked(self) -> dict[str, WorkflowInstance]:
        if self.path is None:
            return dict(self._memory)
        if not self.path.exists():
            return {}
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError:
            logger.warning("Workflow state file is not valid JSON", extra={"path": str(self.path)})
            return {}
        if not isinstance(raw, dict):
            return {}
        return {key: WorkflowInstance.model_validate(value) for key, value in raw.items()}

    def _save_unlocked(self, instances: dict[str, WorkflowInstance]) -> None:
        if self.path is None:
            self._memory = dict(instances)
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {key: instance.to_json() for key, instance in sorted(instances.items())}
        self.path.write_text(
            json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8"
        )

    def list(self) -> list[WorkflowInstance]:
        with self._lock:
            return list(self._load_unlocked().values())

    def get(self, submission_id: str) -> WorkflowInstance | None:
        with self._lock:
            return self._load_unlocked().get(submission_id)

    def update(
        self,
        submission_id: str,
        fn: Callable[[WorkflowInstance | None], WorkflowInstance],
    ) -> WorkflowInstance:
        """Read-modify-write one snapshot under the repository lock."""

        with self._lock:
            instances = self._load_unlocked()
            current = instances.get(submission_id)
            now = _utc_iso_now()
            updated = fn(current).model_copy(
                update={
                    "created_at": (current.created_at if current is not None else None) or now,
                    "updated_at": now,
                }
            )
            instances[submission_id] = updated
            self._save_unlocked(instances)
            return updated
