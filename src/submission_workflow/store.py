"""In-memory workflow state store.

The store is the single owner of the local copy of each workflow instance,
keyed by submission id. Writers go through ``merge``/``begin`` which hold a
per-submission lock for the whole read-modify-write cycle; different
submissions never contend.

Every ``begin`` and ``discard`` bumps a per-submission sequence number.
Refreshes and rollbacks are applied through ``reconcile``, which drops them if
a newer operation has started on the same submission since.

The lock and sequence number of a submission are kept for the lifetime of the
store, also after ``discard``: an operation still in flight compares against
the sequence, so it must never restart at 0. Long-lived processes should use
one store per session or batch of submissions rather than a global one.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass

from .models import WorkflowInstance

logger = logging.getLogger(__name__)

Observer = Callable[[str, WorkflowInstance | None], None]
Transform = Callable[[WorkflowInstance | None], WorkflowInstance]


@dataclass(frozen=True, slots=True)
class PendingMutation:
    """An optimistic write that is awaiting confirmation."""

    submission_id: str
    before: WorkflowInstance | None
    after: WorkflowInstance
    sequence: int


class WorkflowStateStore:
    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._instances: dict[str, WorkflowInstance] = {}
        self._sequences: dict[str, int] = {}
        self._key_locks: dict[str, threading.RLock] = {}
        self._observers: list[Observer] = []

    def _lock_for(self, submission_id: str) -> threading.RLock:
        with self._guard:
            lock = self._key_locks.get(submission_id)
            if lock is None:
                lock = threading.RLock()
                self._key_locks[submission_id] = lock
            return lock

    def get(self, submission_id: str) -> WorkflowInstance | None:
        with self._guard:
            return self._instances.get(submission_id)

    def read(self, submission_id: str) -> WorkflowInstance:
        """Like ``get``, but returns the draft default for unknown submissions."""

        return self.get(submission_id) or WorkflowInstance.draft(submission_id)

    def sequence(self, submission_id: str) -> int:
        with self._guard:
            return self._sequences.get(submission_id, 0)

    def subscribe(self, observer: Observer) -> Callable[[], None]:
        """Register ``observer`` for every write; returns an unsubscribe callable."""

        with self._guard:
            self._observers.append(observer)

        def unsubscribe() -> None:
            with self._guard:
                if observer in self._observers:
                    self._observers.remove(observer)

        return unsubscribe

    def put(self, submission_id: str, instance: WorkflowInstance) -> None:
        if instance.submission_id != submission_id:
            raise ValueError(
                f"Instance for {instance.submission_id!r} cannot be stored under {submission_id!r}"
            )
        with self._lock_for(submission_id):
            with self._guard:
                self._instances[submission_id] = instance
            self._notify(submission_id, instance)

    def merge(
        self, submission_id: str, fn: Callable[[WorkflowInstance], WorkflowInstance]
    ) -> WorkflowInstance:
        with self._lock_for(submission_id):
            updated = fn(self.read(submission_id))
            self.put(submission_id, updated)
            return updated

    def begin(self, submission_id: str, fn: Transform) -> PendingMutation:
        """Apply an optimistic write and start a new operation sequence.

        ``fn`` receives ``None`` when the submission has no local instance yet.
        """

        with self._lock_for(submission_id):
            before = self.get(submission_id)
            after = fn(before)
            self.put(submission_id, after)
            sequence = self._bump(submission_id)
        logger.debug(
            "Optimistic write applied",
            extra={"submission_id": submission_id, "sequence": sequence},
        )
        return PendingMutation(
            submission_id=submission_id, before=before, after=after, sequence=sequence
        )

    def reconcile(
        self, submission_id: str, sequence: int, instance: WorkflowInstance | None
    ) -> bool:
        """Replace the local instance if ``sequence`` is still the newest.

        ``instance=None`` removes the local instance. Returns False when the
        write was dropped as stale. Writing the value already stored is a
        no-op and does not notify observers.
        """

        with self._lock_for(submission_id):
            current = self.sequence(submission_id)
            if sequence != current:
                logger.info(
                    "Discarding stale reconciliation",
                    extra={
                        "submission_id": submission_id,
                        "sequence": sequence,
                        "latest_sequence": current,
                    },
                )
                return False
            if instance == self.get(submission_id):
                return True
            if instance is None:
                self._remove(submission_id)
            else:
                self.put(submission_id, instance)
            return True

    def discard(self, submission_id: str) -> int:
        """Drop the local instance and invalidate in-flight operations."""

        with self._lock_for(submission_id):
            self._remove(submission_id)
            return self._bump(submission_id)

    def _remove(self, submission_id: str) -> None:
        with self._guard:
            self._instances.pop(submission_id, None)
        self._notify(submission_id, None)

    def _bump(self, submission_id: str) -> int:
        with self._guard:
            sequence = self._sequences.get(submission_id, 0) + 1
            self._sequences[submission_id] = sequence
            return sequence

    def _notify(self, submission_id: str, instance: WorkflowInstance | None) -> None:
        with self._guard:
            observers = list(self._observers)
        for observer in observers:
            try:
                observer(submission_id, instance)
            except Exception:
                logger.exception("Workflow observer failed", extra={"submission_id": submission_id})
