"""Configuration for the workflow engine, CLI and reference server.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)

Nothing is required: the defaults target a persistence server on localhost and
the built-in Commercial Property step catalog.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from submission_workflow.catalog import COMMERCIAL_PROPERTY_STEPS, StepCatalog, load_step_catalog


class WorkflowSettings(BaseSettings):
    """Settings for the submission workflow engine.

    Environment variables:
    - WORKFLOW_API_BASE_URL            (optional)
    - WORKFLOW_REQUEST_TIMEOUT_SECONDS (optional)
    - LOG_LEVEL                        (optional)
    - WORKFLOW_STATE_PATH              (optional)
    - WORKFLOW_STEP_CATALOG            (optional)
    - WORKFLOW_STRICT_INVARIANTS       (optional)
    - WORKFLOW_CORS_ORIGINS            (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `WorkflowSettings(_env_file=path_to_env)`.
    """

    api_base_url: str = Field(
        default="http://127.0.0.1:8000",
        validation_alias="WORKFLOW_API_BASE_URL",
        description="Base URL of the workflow persistence service",
    )
    request_timeout_seconds: float = Field(
        default=30.0,
        gt=0,
        validation_alias="WORKFLOW_REQUEST_TIMEOUT_SECONDS",
        description="Timeout applied to every persistence request",
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("workflow_state/workflows.json"),
        validation_alias="WORKFLOW_STATE_PATH",
        description="File where the reference server persists workflow snapshots",
    )

    step_catalog_path: Path | None = Field(
        default=None,
        validation_alias="WORKFLOW_STEP_CATALOG",
        description=(
            "Optional JSON file with the step catalog "
            '([{"id": 1, "name": "...", "description": "..."}, ...]). '
            "Defaults to the built-in Commercial Property steps."
        ),
    )

    strict_invariants: bool = Field(
        default=False,
        validation_alias="WORKFLOW_STRICT_INVARIANTS",
        description="Assert data-model invariants after every optimistic transform",
    )

    # Dev-friendly CORS for a browser client talking to the reference server.
    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173",
        validation_alias="WORKFLOW_CORS_ORIGINS",
        description="Comma-separated list of allowed CORS origins.",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    def load_catalog(self) -> StepCatalog:
        if self.step_catalog_path is None:
            return COMMERCIAL_PROPERTY_STEPS
        return load_step_catalog(self.step_catalog_path)

    def parsed_cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]
