"""Failure-mode tests for the structured logging subsystem."""
from __future__ import annotations

import json
from pathlib import Path

import pytest

from chatmix_installer.logging import StructuredLogger


def _records(logger: StructuredLogger) -> list[dict[str, object]]:
    lines = logger.path.read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines]


def test_operation_records_steps_and_result(tmp_path: Path) -> None:
    """A completed operation is appended as one JSON line."""
    logger = StructuredLogger(tmp_path / "logs")

    with logger.operation("install", args={"mode": "user"}, target={"kind": "service"}) as op:
        op.add_step("artifacts.binary", detail="a -> b")
        op.add_step("udev", status="skipped")
        op.success("done", changed=2)

    (record,) = _records(logger)
    assert record["command"] == "install"
    assert record["args"] == {"mode": "user"}
    assert [step["name"] for step in record["steps"]] == ["artifacts.binary", "udev"]
    assert record["steps"][1]["status"] == "skipped"
    assert record["result"]["status"] == "success"
    assert record["result"]["changed"] == 2


def test_structured_logger_disables_when_directory_unavailable(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Logger gracefully disables itself when log directory cannot be created."""
    log_dir = tmp_path / "logs"

    original_mkdir = Path.mkdir

    def fail_mkdir(self: Path, *args: object, **kwargs: object) -> None:
        if self == log_dir:
            raise PermissionError("no access")
        original_mkdir(self, *args, **kwargs)

    monkeypatch.setattr(Path, "mkdir", fail_mkdir)

    logger = StructuredLogger(log_dir)

    with logger.operation("demo", args={"foo": "bar"}) as op:
        op.success("done", changed=0)

    assert logger._enabled is False  # type: ignore[attr-defined]
    assert not log_dir.exists()


def test_structured_logger_creates_nothing_until_first_record(tmp_path: Path) -> None:
    """Constructing a logger leaves the filesystem untouched."""
    log_dir = tmp_path / "state" / "logs"
    logger = StructuredLogger(log_dir)

    assert list(tmp_path.iterdir()) == []

    with logger.operation("demo") as op:
        op.success("done")

    assert logger.path.is_file()


def test_structured_logger_disables_after_write_failure(
    tmp_path: Path,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """Write failures mark the logger disabled so subsequent writes are skipped."""
    logger = StructuredLogger(tmp_path / "logs")
    operations_path = logger.path

    original_open = Path.open

    def fail_open(self: Path, *args: object, **kwargs: object) -> object:
        if self == operations_path:
            raise OSError("disk full")
        return original_open(self, *args, **kwargs)

    monkeypatch.setattr(Path, "open", fail_open)

    with logger.operation("demo") as op:
        op.success("done", changed=0)

    assert logger._enabled is False  # type: ignore[attr-defined]

    with logger.operation("demo-2") as op:
        op.success("done", changed=0)


def test_operation_scope_warning_sanitises_context(tmp_path: Path) -> None:
    """Warnings should be recorded with JSON-safe context values."""
    logger = StructuredLogger(tmp_path / "logs")

    class Custom:
        def __str__(self) -> str:
            return "<custom>"

    with logger.operation("demo", args={"path": Path("foo")}) as op:
        op.warning(
            "warned",
            warnings=("note",),
            errors=("err",),
            changed=1,
            context={"path": Path("/etc/udev"), "obj": Custom()},
        )

    (record,) = _records(logger)
    assert record["args"] == {"path": "foo"}
    result = record["result"]
    assert result["status"] == "warning"
    assert result["warnings"] == ["note"]
    assert result["errors"] == ["err"]
    assert result["context"] == {"path": "/etc/udev", "obj": "<custom>"}


def test_operation_scope_error_defaults_error_list(tmp_path: Path) -> None:
    """Errors should default to the message when not provided."""
    logger = StructuredLogger(tmp_path / "logs")

    with logger.operation("demo") as op:
        op.error("boom", errors=None, rc=4, context={"value": {1, 2}})

    (record,) = _records(logger)
    result = record["result"]
    assert result["status"] == "error"
    assert result["errors"] == ["boom"]
    assert result["rc"] == 4
    assert result["context"] == {"value": "{1, 2}"}


def test_unhandled_exception_is_recorded(tmp_path: Path) -> None:
    """An exception escaping the block is logged as an error and re-raised."""
    logger = StructuredLogger(tmp_path / "logs")

    with pytest.raises(ValueError):
        with logger.operation("demo"):
            raise ValueError("bad")

    (record,) = _records(logger)
    assert record["result"]["status"] == "error"
    assert "bad" in record["result"]["message"]
