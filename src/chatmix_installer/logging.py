"""Structured operations log for chatmix-installer.

Every CLI operation appends a single JSON record to
``<logs_dir>/operations.jsonl`` describing its arguments, the ordered steps
that ran and the final result. The log is an audit trail only: when the
directory cannot be created or written the logger disables itself and the
install carries on.
"""
from __future__ import annotations

import json
import time
import uuid
from collections.abc import Iterable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path


def _sanitize(value: object) -> object:
    """Return a JSON-safe representation of *value*."""
    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _sanitize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_sanitize(item) for item in value]
    return str(value)


def _now() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True)
class OperationScope:
    """Mutable record of a single logged operation."""

    command: str
    args: dict[str, object]
    target: dict[str, object]
    op_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    started_at: str = field(default_factory=_now)
    steps: list[dict[str, object]] = field(default_factory=list)
    result: dict[str, object] | None = None

    def add_step(self, name: str, *, status: str = "success", detail: str | None = None) -> None:
        """Append a named step to the operation record."""
        step: dict[str, object] = {"name": name, "status": status, "at": _now()}
        if detail is not None:
            step["detail"] = detail
        self.steps.append(step)

    def success(
        self,
        message: str,
        *,
        changed: int = 0,
        warnings: Iterable[str] = (),
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Mark the operation as successful."""
        self._finish("success", message, changed=changed, warnings=warnings, context=context)

    def warning(
        self,
        message: str,
        *,
        warnings: Iterable[str] = (),
        errors: Iterable[str] = (),
        changed: int = 0,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Mark the operation as completed with warnings."""
        self._finish(
            "warning",
            message,
            changed=changed,
            warnings=warnings,
            errors=errors,
            context=context,
        )

    def error(
        self,
        message: str,
        *,
        errors: Iterable[str] | None = None,
        rc: int | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        """Mark the operation as failed."""
        self._finish(
            "error",
            message,
            errors=[message] if errors is None else errors,
            rc=rc,
            context=context,
        )

    def _finish(
        self,
        status: str,
        message: str,
        *,
        changed: int = 0,
        warnings: Iterable[str] = (),
        errors: Iterable[str] = (),
        rc: int | None = None,
        context: Mapping[str, object] | None = None,
    ) -> None:
        self.result = {
            "status": status,
            "message": message,
            "changed": changed,
            "warnings": list(warnings),
            "errors": list(errors),
            "rc": rc,
            "context": _sanitize(dict(context or {})),
        }

    def to_record(self, duration_ms: int) -> dict[str, object]:
        """Return the JSON record for this operation."""
        return {
            "id": self.op_id,
            "command": self.command,
            "args": _sanitize(self.args),
            "target": _sanitize(self.target),
            "started_at": self.started_at,
            "finished_at": _now(),
            "duration_ms": duration_ms,
            "steps": self.steps,
            "result": self.result,
        }


class StructuredLogger:
    """Append-only JSONL logger for installer operations."""

    def __init__(self, logs_dir: Path) -> None:
        """Remember *logs_dir*; it is only created when the first record is written."""
        self.logs_dir = logs_dir
        self._operations_log_path = logs_dir / "operations.jsonl"
        self._enabled = True

    @property
    def path(self) -> Path:
        """Return the operations log location."""
        return self._operations_log_path

    @contextmanager
    def operation(
        self,
        command: str,
        *,
        args: Mapping[str, object] | None = None,
        target: Mapping[str, object] | None = None,
    ) -> Iterator[OperationScope]:
        """Yield an :class:`OperationScope` and persist it on exit."""
        scope = OperationScope(command=command, args=dict(args or {}), target=dict(target or {}))
        started = time.monotonic()
        try:
            yield scope
        except BaseException as exc:
            if scope.result is None:
                scope.error(f"Operation aborted: {exc!r}")
            raise
        finally:
            duration_ms = int((time.monotonic() - started) * 1000)
            self._write(scope.to_record(duration_ms))

    def _write(self, record: Mapping[str, object]) -> None:
        if not self._enabled:
            return
        try:
            self.logs_dir.mkdir(parents=True, exist_ok=True)
            with self._operations_log_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(record, sort_keys=True) + "\n")
        except OSError:
            self._enabled = False


__all__ = ["OperationScope", "StructuredLogger"]
