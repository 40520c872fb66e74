"""FastAPI server adapter exposing the reference persistence service.

Design intent:
- Keep workflow semantics in `submission_workflow.persistence.local`
- Keep server-specific concerns (routing, CORS, status codes) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from submission_workflow.server.app import create_app
