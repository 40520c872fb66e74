"""FastAPI app factory for the reference persistence service.

Endpoints are thin wrappers over ``LocalWorkflowPersistence``; they serve the
same routes ``HttpWorkflowPersistence`` calls.

Run with:
    uvicorn submission_workflow.server.app:create_app --factory
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware

from submission_workflow import __version__
from submission_workflow.config import WorkflowSettings
from submission_workflow.persistence.base import ValidationFailure
from submission_workflow.persistence.http import WORKFLOW_ROUTE
from submission_workflow.persistence.local import LocalWorkflowPersistence
from submission_workflow.persistence.repository import WorkflowRepository
from submission_workflow.server.models import (
    CompleteRequest,
    CompleteStepRequest,
    InitializeRequest,
    NavigateRequest,
    StepDataRequest,
)

logger = logging.getLogger(__name__)


def _http_error(exc: ValidationFailure) -> HTTPException:
    return HTTPException(status_code=exc.status_code or 400, detail=exc.message)


def create_app(
    settings: WorkflowSettings | None = None,
    persistence: LocalWorkflowPersistence | None = None,
) -> FastAPI:
    settings = settings or WorkflowSettings()
    if persistence is None:
        persistence = LocalWorkflowPersistence(
            repository=WorkflowRepository(settings.state_path),
            catalog=settings.load_catalog(),
        )

    app = FastAPI(
        title="Submission Workflow",
        version=__version__,
        description="Authoritative persistence for multi-step submission workflows.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )

    app.state.settings = settings
    app.state.persistence = persistence

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/api/health")
    def health() -> dict[str, object]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/commercial-property/steps")
    def list_steps() -> list[dict[str, object]]:
        return persistence.catalog.to_json()

    @app.post(f"{WORKFLOW_ROUTE}/initialize")
    def initialize(req: InitializeRequest) -> dict[str, object]:
        try:
            instance = persistence.initialize(req.submission_id, req.patch())
        except ValidationFailure as e:
            raise _http_error(e) from e
        return instance.to_json()

    @app.get(f"{WORKFLOW_ROUTE}/{{submission_id}}")
    def get_workflow(submission_id: str) -> dict[str, object]:
        instance = persistence.fetch(submission_id)
        if instance is None:
            raise HTTPException(status_code=404, detail="Workflow not found")
        return instance.to_json()

    @app.put(f"{WORKFLOW_ROUTE}/{{submission_id}}/step/{{step_number}}")
    def update_step(
        submission_id: str, step_number: int, req: StepDataRequest
    ) -> dict[str, object]:
        try:
            persistence.update_step(submission_id, step_number, req.step_data)
        except ValidationFailure as e:
            raise _http_error(e) from e
        return _ack(persistence, submission_id)

    @app.put(f"{WORKFLOW_ROUTE}/{{submission_id}}/navigate")
    def navigate(submission_id: str, req: NavigateRequest) -> dict[str, object]:
        try:
            persistence.navigate(submission_id, req.current_step)
        except ValidationFailure as e:
            raise _http_error(e) from e
        return _ack(persistence, submission_id)

    @app.put(f"{WORKFLOW_ROUTE}/{{submission_id}}/complete-step")
    def complete_step(submission_id: str, req: CompleteStepRequest) -> dict[str, object]:
        try:
            persistence.complete_step(submission_id, req.step_number, req.next_step)
        except ValidationFailure as e:
            raise _http_error(e) from e
        return _ack(persistence, submission_id)

    @app.post(f"{WORKFLOW_ROUTE}/{{submission_id}}/complete")
    def complete(submission_id: str, req: CompleteRequest) -> dict[str, object]:
        try:
            persistence.complete(submission_id, req.final_data)
        except ValidationFailure as e:
            raise _http_error(e) from e
        return _ack(persistence, submission_id)

    logger.info("Workflow server configured", extra={"state_path": str(settings.state_path)})
    return app


def _ack(persistence: LocalWorkflowPersistence, submission_id: str) -> dict[str, object]:
    instance = persistence.fetch(submission_id)
    return {"ok": True, "workflow": instance.to_json() if instance is not None else None}
