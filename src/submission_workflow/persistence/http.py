"""HTTP client for the workflow persistence service.

Wraps a ``requests.Session`` so transport details stay out of the controller.
Every failure is translated into a ``PersistenceError`` subclass:

- 4xx responses -> ``ValidationFailure``
- network errors, timeouts, 5xx and malformed bodies -> ``TransportFailure``
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import requests
from pydantic import ValidationError

from submission_workflow.models import StepPayload, WorkflowInstance, WorkflowPatch

from .base import TransportFailure, ValidationFailure

logger = logging.getLogger(__name__)

WORKFLOW_ROUTE = "/api/commercial-property/workflow"


class HttpWorkflowPersistence:
    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not base_url.strip():
            raise ValueError("base_url is required")

        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "submission-workflow",
            }
        )

    def _workflow_url(self, submission_id: str | None = None, suffix: str = "") -> str:
        url = f"{self._base_url}{WORKFLOW_ROUTE}"
        if submission_id is not None:
            if not submission_id.strip():
                raise ValueError("submission_id must be non-empty")
            url = f"{url}/{quote(submission_id, safe='')}"
        if suffix and not suffix.startswith("/"):
            suffix = "/" + suffix
        return url + suffix

    @staticmethod
    def _error_detail(resp: Any) -> str:
        try:
            data = resp.json()
        except ValueError:
            return (resp.text or "").strip() or f"HTTP {resp.status_code}"
        if isinstance(data, dict):
            detail = data.get("detail") or data.get("message")
            if detail:
                return str(detail)
        return str(data)

    def _request(
        self,
        method: str,
        url: str,
        *,
        payload: dict[str, Any] | None = None,
        allow_not_found: bool = False,
    ) -> Any | None:
        logger.debug("Workflow request", extra={"method": method, "url": url})
        try:
            resp = self._session.request(method, url, json=payload, timeout=self._timeout)
        except requests.RequestException as e:
            raise TransportFailure(f"{method} {url} failed: {e}") from e

        status = resp.status_code
        if status == 404 and allow_not_found:
            return None
        if 400 <= status < 500:
            raise ValidationFailure(self._error_detail(resp), status_code=status)
        if status >= 300:
            raise TransportFailure(
                f"{method} {url} returned HTTP {status}: {self._error_detail(resp)}",
                status_code=status,
            )
        return resp

    @staticmethod
    def _parse_instance(resp: Any) -> WorkflowInstance:
        try:
            return WorkflowInstance.model_validate(resp.json())
        except (ValueError, ValidationError) as e:
            raise TransportFailure(f"Malformed workflow response: {e}") from e

    def initialize(self, submission_id: str, initial_data: WorkflowPatch) -> WorkflowInstance:
        payload = {"submissionId": submission_id, **initial_data.to_json()}
        resp = self._request("POST", self._workflow_url(suffix="initialize"), payload=payload)
        return self._parse_instance(resp)

    def update_step(self, submission_id: str, step_number: int, data: StepPayload) -> None:
        self._request(
            "PUT",
            self._workflow_url(submission_id, f"step/{step_number}"),
            payload={"stepData": data},
        )

    def navigate(self, submission_id: str, step_number: int) -> None:
        self._request(
            "PUT",
            self._workflow_url(submission_id, "navigate"),
            payload={"currentStep": step_number},
        )

    def complete_step(self, submission_id: str, step_number: int, next_step: int) -> None:
        self._request(
            "PUT",
            self._workflow_url(submission_id, "complete-step"),
            payload={"stepNumber": step_number, "nextStep": next_step},
        )

    def complete(self, submission_id: str, final_data: StepPayload | None) -> None:
        self._request(
            "POST",
            self._workflow_url(submission_id, "complete"),
            payload={"finalData": final_data},
        )

    def fetch(self, submission_id: str) -> WorkflowInstance | None:
        resp = self._request("GET", self._workflow_url(submission_id), allow_not_found=True)
        if resp is None:
            return None
        return self._parse_instance(resp)

    def close(self) -> None:
        self._session.close()
