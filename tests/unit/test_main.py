"""Unit tests for the CLI entrypoint.

The HTTP client is replaced with the local persistence service so commands run
end to end without a server.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

import submission_workflow.main as cli
from submission_workflow.persistence.local import LocalWorkflowPersistence
from submission_workflow.persistence.repository import WorkflowRepository


@pytest.fixture
def state_backend(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> LocalWorkflowPersistence:
    for name in ("WORKFLOW_STEP_CATALOG", "WORKFLOW_REQUEST_TIMEOUT_SECONDS", "LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)

    backend = LocalWorkflowPersistence(repository=WorkflowRepository(tmp_path / "wf.json"))
    monkeypatch.setattr(cli, "_build_persistence", lambda _settings: backend)
    monkeypatch.setattr(cli, "configure_logging", lambda _level: None)
    return backend


def _run(capsys: pytest.CaptureFixture[str], *argv: str) -> tuple[int, str, str]:
    code = cli.main(list(argv))
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def test_steps_prints_catalog(
    state_backend: LocalWorkflowPersistence, capsys: pytest.CaptureFixture[str]
) -> None:
    code, out, _err = _run(capsys, "steps")

    assert code == 0
    assert [s["name"] for s in json.loads(out)][:2] == ["Email Intake", "Document Ingestion"]


def test_init_and_complete_step(
    state_backend: LocalWorkflowPersistence, capsys: pytest.CaptureFixture[str]
) -> None:
    code, _out, _err = _run(capsys, "init", "--submission-id", "SUB-1")
    assert code == 0

    code, out, _err = _run(
        capsys, "complete-step", "--submission-id", "SUB-1", "--step", "1", "--data", '{"a": 1}'
    )

    assert code == 0
    view = json.loads(out)
    assert view["workflow"]["completedSteps"] == [1]
    assert view["workflow"]["currentStep"] == 2
    assert view["steps"][0]["status"] == "completed"
    assert view["progressPercentage"] == 12.5


def test_navigate_is_gated_unless_forced(
    state_backend: LocalWorkflowPersistence, capsys: pytest.CaptureFixture[str]
) -> None:
    _run(capsys, "init", "--submission-id", "SUB-1")

    code, _out, err = _run(capsys, "navigate", "--submission-id", "SUB-1", "--step", "5")
    assert code == 1
    assert "not reachable" in err

    code, out, _err = _run(
        capsys, "navigate", "--submission-id", "SUB-1", "--step", "5", "--force"
    )
    assert code == 0
    assert json.loads(out)["workflow"]["currentStep"] == 5


def test_rejected_operation_exits_non_zero(
    state_backend: LocalWorkflowPersistence, capsys: pytest.CaptureFixture[str]
) -> None:
    code, _out, err = _run(
        capsys, "update-step", "--submission-id", "SUB-404", "--step", "1", "--data", "{}"
    )

    assert code == 1
    assert "Operation failed" in err
    assert state_backend.fetch("SUB-404") is None


def test_show_unknown_submission_prints_draft(
    state_backend: LocalWorkflowPersistence, capsys: pytest.CaptureFixture[str]
) -> None:
    code, out, _err = _run(capsys, "show", "--submission-id", "SUB-9")

    assert code == 0
    assert json.loads(out)["workflow"]["status"] == "draft"


def test_configuration_error_exits_with_2(
    state_backend: LocalWorkflowPersistence,
    capsys: pytest.CaptureFixture[str],
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    monkeypatch.setenv("WORKFLOW_REQUEST_TIMEOUT_SECONDS", "-1")

    code, _out, err = _run(capsys, "steps")

    assert code == 2
    assert "Configuration error" in err


def test_invalid_json_argument_is_a_usage_error(
    state_backend: LocalWorkflowPersistence, capsys: pytest.CaptureFixture[str]
) -> None:
    with pytest.raises(SystemExit) as exc_info:
        cli.main(["init", "--submission-id", "SUB-1", "--data", "{broken"])

    assert exc_info.value.code == 2
