"""Direct and elevated executors plus the broker that picks between them.

Each privileged call site asks the :class:`PrivilegeBroker` for an executor at
the moment it needs one. The broker never caches its answer: a process that
can write a path runs the operation itself, anything else is wrapped in the
configured elevation command (``sudo`` by default).
"""
from __future__ import annotations

import os
import shlex
import shutil
import subprocess
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

Runner = Callable[..., subprocess.CompletedProcess[str]]


class CommandError(RuntimeError):
    """Raised when an external command is missing or exits non-zero."""

    def __init__(self, message: str, *, command: Sequence[str] = ()) -> None:
        """Store the failing *command* alongside the message."""
        super().__init__(message)
        self.command = list(command)


def _default_runner(
    command: list[str],
    *,
    input: str | None = None,  # noqa: A002 - mirrors subprocess.run
) -> subprocess.CompletedProcess[str]:
    return subprocess.run(  # noqa: S603
        command,
        input=input,
        capture_output=True,
        text=True,
        check=False,
    )


def format_command(args: Sequence[str]) -> str:
    """Return *args* as a copy-pasteable shell command line."""
    return shlex.join(str(item) for item in args)


class Executor(Protocol):
    """Operations the provisioners perform on the host."""

    elevated: bool

    def argv(self, args: Sequence[str]) -> list[str]:
        """Return the argv that :meth:`run` would execute."""
        ...

    def run(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        """Run an external command."""
        ...

    def makedirs(self, path: Path) -> None:
        """Create *path* and its parents if missing."""
        ...

    def install_file(self, source: Path, destination: Path, *, mode: int) -> None:
        """Copy *source* over *destination* with permission bits *mode*."""
        ...

    def write_text(self, destination: Path, content: str, *, mode: int) -> None:
        """Overwrite *destination* with *content*."""
        ...


@dataclass(slots=True)
class _BaseExecutor:
    runner: Runner = _default_runner
    dry_run: bool = False
    planned: list[str] = field(default_factory=list)

    def argv(self, args: Sequence[str]) -> list[str]:
        return [str(item) for item in args]

    def run(self, args: Sequence[str], *, check: bool = True) -> subprocess.CompletedProcess[str]:
        return self._run_command(self.argv(args), check=check)

    def _run_command(
        self,
        command: list[str],
        *,
        check: bool,
        input: str | None = None,  # noqa: A002 - mirrors subprocess.run
    ) -> subprocess.CompletedProcess[str]:
        if self.dry_run:
            self.planned.append(format_command(command))
            return subprocess.CompletedProcess(command, returncode=0, stdout="", stderr="")
        try:
            result = self.runner(command, input=input)
        except FileNotFoundError as exc:
            raise CommandError(f"{command[0]} not found: {exc}", command=command) from exc
        if check and result.returncode != 0:
            stdout = getattr(result, "stdout", "") or ""
            stderr = getattr(result, "stderr", "") or ""
            message = stderr.strip() or stdout.strip() or "no output"
            raise CommandError(
                f"{format_command(command)} failed (exit {result.returncode}): {message}",
                command=command,
            )
        return result


@dataclass(slots=True)
class DirectExecutor(_BaseExecutor):
    """Perform operations with the current process credentials."""

    elevated: bool = False

    def makedirs(self, path: Path) -> None:
        if self.dry_run:
            self.planned.append(f"mkdir -p {path}")
            return
        path.mkdir(parents=True, exist_ok=True)

    def install_file(self, source: Path, destination: Path, *, mode: int) -> None:
        if self.dry_run:
            self.planned.append(f"install -m {mode:o} {source} {destination}")
            return
        staging = destination.with_name(f".{destination.name}.tmp")
        shutil.copy2(source, staging)
        try:
            os.chmod(staging, mode)
            os.replace(staging, destination)
        except BaseException:
            staging.unlink(missing_ok=True)
            raise

    def write_text(self, destination: Path, content: str, *, mode: int) -> None:
        if self.dry_run:
            self.planned.append(f"write {destination} ({len(content)} bytes)")
            return
        destination.write_text(content, encoding="utf-8")
        os.chmod(destination, mode)


@dataclass(slots=True)
class ElevatedExecutor(_BaseExecutor):
    """Perform operations through an elevation wrapper such as ``sudo``."""

    wrapper: tuple[str, ...] = ("sudo",)
    elevated: bool = True

    def argv(self, args: Sequence[str]) -> list[str]:
        return [*self.wrapper, *(str(item) for item in args)]

    def makedirs(self, path: Path) -> None:
        self.run(["mkdir", "-p", str(path)])

    def install_file(self, source: Path, destination: Path, *, mode: int) -> None:
        self.run(["install", "-m", f"{mode:o}", str(source), str(destination)])

    def write_text(self, destination: Path, content: str, *, mode: int) -> None:
        self._run_command(
            self.argv(["tee", str(destination)]),
            check=True,
            input=content,
        )
        self.run(["chmod", f"{mode:o}", str(destination)])


@dataclass(slots=True)
class PrivilegeBroker:
    """Choose a direct or elevated executor for each privileged call."""

    wrapper: tuple[str, ...] = ("sudo",)
    runner: Runner = _default_runner
    dry_run: bool = False
    geteuid: Callable[[], int] = os.geteuid
    planned: list[str] = field(default_factory=list)

    def is_privileged(self) -> bool:
        """Return ``True`` when the process runs as root."""
        return self.geteuid() == 0

    def can_write(self, path: Path) -> bool:
        """Return ``True`` when *path* (or its nearest existing ancestor) is writable."""
        if self.is_privileged():
            return True
        candidate = path
        while not candidate.exists():
            parent = candidate.parent
            if parent == candidate:
                return False
            candidate = parent
        return os.access(candidate, os.W_OK)

    def direct(self) -> DirectExecutor:
        """Return an executor that never elevates."""
        return DirectExecutor(runner=self.runner, dry_run=self.dry_run, planned=self.planned)

    def elevated(self) -> ElevatedExecutor:
        """Return an executor that wraps every operation."""
        return ElevatedExecutor(
            runner=self.runner,
            dry_run=self.dry_run,
            planned=self.planned,
            wrapper=self.wrapper,
        )

    def for_path(self, path: Path) -> Executor:
        """Return the executor able to modify *path*."""
        return self.direct() if self.can_write(path) else self.elevated()

    def for_system(self) -> Executor:
        """Return the executor for system-wide service and device managers."""
        return self.direct() if self.is_privileged() else self.elevated()


__all__ = [
    "CommandError",
    "DirectExecutor",
    "ElevatedExecutor",
    "Executor",
    "PrivilegeBroker",
    "Runner",
    "format_command",
]
