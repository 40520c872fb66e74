"""Synchronization controller.

Translates workflow intents into an optimistic local write plus a call to the
persistence service, then reconciles:

1. snapshot the local instance
2. apply the optimistic transform to the store (observers see it immediately)
3. call the persistence service
4. on success, re-fetch and apply the authoritative instance
5. on failure, restore the snapshot, then re-fetch the authoritative instance
   once no other operation on the submission is in flight, and return the
   failure to the caller

Refreshes and rollbacks belonging to an operation that has since been
superseded on the same submission are discarded by the store. A snapshot can
itself hold another operation's unconfirmed write, so a rollback alone never
settles the submission; the re-fetch after the last in-flight operation does.
"""

from __future__ import annotations

import logging
import threading
from collections import Counter
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Any

from . import transitions
from .catalog import COMMERCIAL_PROPERTY_STEPS, StepCatalog
from .models import StepPayload, WorkflowInstance, WorkflowPatch
from .persistence.base import PersistenceError, WorkflowPersistence
from .store import Transform, WorkflowStateStore
from .views import WorkflowView, build_view
from .views import can_navigate_to_step as _can_navigate_to_step

logger = logging.getLogger(__name__)


class OperationKind(str, Enum):
    INITIALIZE = "initialize"
    UPDATE_STEP = "update_step"
    NAVIGATE = "navigate"
    COMPLETE_STEP = "complete_step"
    COMPLETE_WORKFLOW = "complete_workflow"
    REFRESH = "refresh"
    RESET = "reset"


@dataclass(frozen=True, slots=True)
class OperationResult:
    """Outcome of a controller operation.

    ``instance`` is the local value once the operation has settled: the
    authoritative instance after a successful refresh, the optimistic one if
    the refresh failed, or after a failure the re-fetched authoritative
    instance (the restored snapshot if that re-fetch was skipped or failed).
    ``stale`` is set when the refresh or rollback was dropped because a newer
    operation had already started on the same submission.
    """

    kind: OperationKind
    submission_id: str
    ok: bool
    instance: WorkflowInstance
    error: PersistenceError | None = None
    reconciled: bool = False
    stale: bool = False
    message: str = ""

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


def _as_patch(initial_data: WorkflowPatch | Mapping[str, Any] | None) -> WorkflowPatch:
    if initial_data is None:
        return WorkflowPatch()
    if isinstance(initial_data, WorkflowPatch):
        return initial_data
    return WorkflowPatch.model_validate(dict(initial_data))


class WorkflowSyncController:
    def __init__(
        self,
        *,
        store: WorkflowStateStore,
        persistence: WorkflowPersistence,
        catalog: StepCatalog = COMMERCIAL_PROPERTY_STEPS,
        strict_invariants: bool = False,
    ) -> None:
        self._store = store
        self._persistence = persistence
        self._catalog = catalog
        self._strict = strict_invariants

        self._pending: Counter[tuple[str, OperationKind]] = Counter()
        self._pending_lock = threading.Lock()

    @property
    def store(self) -> WorkflowStateStore:
        return self._store

    @property
    def catalog(self) -> StepCatalog:
        return self._catalog

    # -- operations ---------------------------------------------------------

    def initialize(
        self,
        submission_id: str,
        initial_data: WorkflowPatch | Mapping[str, Any] | None = None,
    ) -> OperationResult:
        patch = _as_patch(initial_data)
        return self._execute(
            kind=OperationKind.INITIALIZE,
            submission_id=submission_id,
            transform=lambda current: transitions.initialize(
                current=current, submission_id=submission_id, patch=patch
            ),
            remote=lambda: self._persistence.initialize(submission_id, patch),
        )

    def update_step_data(
        self, submission_id: str, step_number: int, data: StepPayload
    ) -> OperationResult:
        return self._execute(
            kind=OperationKind.UPDATE_STEP,
            submission_id=submission_id,
            transform=self._on_current(
                submission_id,
                lambda current: transitions.update_step_data(
                    current=current, step_number=step_number, data=data
                ),
            ),
            remote=lambda: self._persistence.update_step(submission_id, step_number, data),
        )

    def navigate_to_step(self, submission_id: str, step_number: int) -> OperationResult:
        """Move to ``step_number``.

        Not gated: check ``can_navigate_to_step`` first if the gating policy
        must hold.
        """

        return self._execute(
            kind=OperationKind.NAVIGATE,
            submission_id=submission_id,
            transform=self._on_current(
                submission_id,
                lambda current: transitions.navigate_to_step(
                    current=current, step_number=step_number
                ),
            ),
            remote=lambda: self._persistence.navigate(submission_id, step_number),
        )

    def complete_step(
        self,
        submission_id: str,
        step_number: int,
        step_data: StepPayload | None = None,
    ) -> OperationResult:
        next_step = self._catalog.next_step(step_number)

        def remote() -> None:
            # Step data is stored before the step is marked complete.
            if step_data is not None:
                self._persistence.update_step(submission_id, step_number, step_data)
            self._persistence.complete_step(submission_id, step_number, next_step)

        return self._execute(
            kind=OperationKind.COMPLETE_STEP,
            submission_id=submission_id,
            transform=self._on_current(
                submission_id,
                lambda current: transitions.complete_step(
                    current=current,
                    step_number=step_number,
                    catalog=self._catalog,
                    step_data=step_data,
                ),
            ),
            remote=remote,
        )

    def complete_workflow(
        self, submission_id: str, final_data: StepPayload | None = None
    ) -> OperationResult:
        return self._execute(
            kind=OperationKind.COMPLETE_WORKFLOW,
            submission_id=submission_id,
            transform=self._on_current(
                submission_id,
                lambda current: transitions.complete_workflow(
                    current=current, catalog=self._catalog
                ),
            ),
            remote=lambda: self._persistence.complete(submission_id, final_data),
        )

    def reset_workflow(self, submission_id: str) -> OperationResult:
        """Drop the local view and re-fetch it.

        Server-side state is untouched. Operations still in flight for this
        submission will have their reconciliation discarded.
        """

        sequence = self._store.discard(submission_id)
        logger.info("Local workflow view discarded", extra={"submission_id": submission_id})
        return self._load(OperationKind.RESET, submission_id, sequence)

    def refresh(self, submission_id: str) -> OperationResult:
        """Fetch the authoritative instance into the store."""

        sequence = self._store.sequence(submission_id)
        return self._load(OperationKind.REFRESH, submission_id, sequence)

    # -- derived views ------------------------------------------------------

    def view(self, submission_id: str) -> WorkflowView:
        return build_view(self._store.read(submission_id), self._catalog)

    def can_navigate_to_step(self, submission_id: str, step_number: int) -> bool:
        return _can_navigate_to_step(self._store.read(submission_id), step_number)

    def is_pending(self, submission_id: str, kind: OperationKind | None = None) -> bool:
        """True while an operation is waiting on the persistence service."""

        with self._pending_lock:
            if kind is not None:
                return self._pending[(submission_id, kind)] > 0
            return any(
                count > 0 for (key, _kind), count in self._pending.items() if key == submission_id
            )

    # -- protocol -----------------------------------------------------------

    def _on_current(
        self, submission_id: str, fn: Callable[[WorkflowInstance], WorkflowInstance]
    ) -> Transform:
        def transform(current: WorkflowInstance | None) -> WorkflowInstance:
            return fn(current if current is not None else WorkflowInstance.draft(submission_id))

        return transform

    def _checked(self, transform: Transform) -> Transform:
        if not self._strict:
            return transform

        def checked(current: WorkflowInstance | None) -> WorkflowInstance:
            return transitions.assert_invariants(transform(current), self._catalog)

        return checked

    @contextmanager
    def _tracking(self, submission_id: str, kind: OperationKind) -> Iterator[None]:
        key = (submission_id, kind)
        with self._pending_lock:
            self._pending[key] += 1
        try:
            yield
        finally:
            with self._pending_lock:
                self._pending[key] -= 1
                if self._pending[key] <= 0:
                    del self._pending[key]

    def _execute(
        self,
        *,
        kind: OperationKind,
        submission_id: str,
        transform: Transform,
        remote: Callable[[], object],
    ) -> OperationResult:
        if not submission_id.strip():
            raise ValueError("submission_id is required")

        mutation = self._store.begin(submission_id, self._checked(transform))
        log_extra = {
            "submission_id": submission_id,
            "operation": kind.value,
            "sequence": mutation.sequence,
        }
        logger.info("Workflow operation started", extra=log_extra)

        failure: PersistenceError | None = None
        rolled_back = False
        with self._tracking(submission_id, kind):
            try:
                remote()
            except PersistenceError as e:
                failure = e
                rolled_back = self._store.reconcile(
                    submission_id, mutation.sequence, mutation.before
                )
                logger.warning(
                    "Workflow operation failed",
                    extra={**log_extra, "error": str(e), "rolled_back": rolled_back},
                )
            except Exception:
                self._store.reconcile(submission_id, mutation.sequence, mutation.before)
                logger.exception("Workflow operation raised unexpectedly", extra=log_extra)
                raise

        if failure is not None:
            return self._resync_after_failure(kind, submission_id, failure, rolled_back)
        return self._load(kind, submission_id, mutation.sequence, after_mutation=True)

    def _resync_after_failure(
        self,
        kind: OperationKind,
        submission_id: str,
        error: PersistenceError,
        rolled_back: bool,
    ) -> OperationResult:
        """Replace the rolled-back state with the authoritative one.

        The service may have kept part of the failed operation (step data
        stored before a failed completion), and the restored snapshot may hold
        writes of other operations that failed too. Skipped while another
        operation on the submission is in flight: that one settles it.
        """

        reconciled = False
        if not self.is_pending(submission_id):
            sequence = self._store.sequence(submission_id)
            try:
                fetched = self._persistence.fetch(submission_id)
            except PersistenceError as e:
                logger.warning(
                    "Refresh after failed workflow operation failed",
                    extra={
                        "submission_id": submission_id,
                        "operation": kind.value,
                        "error": str(e),
                    },
                )
            else:
                reconciled = self._store.reconcile(submission_id, sequence, fetched)

        return OperationResult(
            kind=kind,
            submission_id=submission_id,
            ok=False,
            instance=self._store.read(submission_id),
            error=error,
            reconciled=reconciled,
            stale=not rolled_back,
            message=str(error),
        )

    def _load(
        self,
        kind: OperationKind,
        submission_id: str,
        sequence: int,
        *,
        after_mutation: bool = False,
    ) -> OperationResult:
        log_extra = {"submission_id": submission_id, "operation": kind.value, "sequence": sequence}
        try:
            fetched = self._persistence.fetch(submission_id)
        except PersistenceError as e:
            if after_mutation:
                # The mutation itself was acknowledged; keep the optimistic state.
                logger.warning(
                    "Refresh after workflow operation failed", extra={**log_extra, "error": str(e)}
                )
                return OperationResult(
                    kind=kind,
                    submission_id=submission_id,
                    ok=True,
                    instance=self._store.read(submission_id),
                    reconciled=False,
                    message=f"Refresh failed: {e}",
                )
            logger.warning("Workflow fetch failed", extra={**log_extra, "error": str(e)})
            return OperationResult(
                kind=kind,
                submission_id=submission_id,
                ok=False,
                instance=self._store.read(submission_id),
                error=e,
                message=str(e),
            )

        applied = self._store.reconcile(submission_id, sequence, fetched)
        logger.info("Workflow operation settled", extra={**log_extra, "reconciled": applied})
        return OperationResult(
            kind=kind,
            submission_id=submission_id,
            ok=True,
            instance=self._store.read(submission_id),
            reconciled=applied,
            stale=not applied,
        )
