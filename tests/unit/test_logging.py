import json
import logging
import sys

from submission_workflow.logging import JsonFormatter, configure_logging


def _record(**extra: object) -> logging.LogRecord:
    record = logging.LogRecord(
        "submission_workflow.controller",
        logging.INFO,
        __file__,
        1,
        "Workflow operation settled",
        None,
        None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_workflow_fields_are_top_level() -> None:
    line = JsonFormatter().format(
        _record(submission_id="SUB-1", operation="navigate", sequence=3, reconciled=True)
    )

    payload = json.loads(line)
    assert payload["level"] == "INFO"
    assert payload["logger"] == "submission_workflow.controller"
    assert payload["message"] == "Workflow operation settled"
    assert payload["submission_id"] == "SUB-1"
    assert payload["operation"] == "navigate"
    assert payload["sequence"] == 3
    assert payload["extra"] == {"reconciled": True}


def test_record_without_extra_fields() -> None:
    payload = json.loads(JsonFormatter().format(_record()))

    assert "extra" not in payload
    assert "submission_id" not in payload


def test_exception_is_rendered() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    payload = json.loads(JsonFormatter().format(record))

    assert "RuntimeError: boom" in payload["exception"]


def test_configure_logging_replaces_handlers() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = list(root.handlers), root.level
    try:
        configure_logging("debug")
        configure_logging("debug")

        assert len(root.handlers) == 1
        assert isinstance(root.handlers[0].formatter, JsonFormatter)
        assert root.level == logging.DEBUG
        assert logging.getLogger("urllib3").level == logging.WARNING
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
