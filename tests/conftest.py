"""Shared fixtures for the chatmix-installer test suite."""
from __future__ import annotations

import subprocess
from collections.abc import Iterator, Sequence
from pathlib import Path

import pytest

from chatmix_installer.config import AppConfig, load_config
from chatmix_installer.logging import OperationScope, StructuredLogger
from chatmix_installer.privilege import PrivilegeBroker


class FakeRunner:
    """Record commands instead of running them; fail those matching a needle."""

    def __init__(self) -> None:
        """Start with no recorded calls and no scripted failures."""
        self.calls: list[list[str]] = []
        self.inputs: list[str | None] = []
        self._failures: list[tuple[str, int, str]] = []
        self._outputs: list[tuple[str, str]] = []

    def fail(self, needle: str, *, returncode: int = 1, stderr: str = "boom") -> None:
        """Make every command whose joined argv contains *needle* fail."""
        self._failures.append((needle, returncode, stderr))

    def output(self, needle: str, stdout: str) -> None:
        """Return *stdout* for commands containing *needle*."""
        self._outputs.append((needle, stdout))

    def __call__(
        self,
        command: Sequence[str],
        *,
        input: str | None = None,  # noqa: A002
        **_: object,
    ) -> subprocess.CompletedProcess[str]:
        """Record *command* and return its scripted result."""
        argv = [str(item) for item in command]
        self.calls.append(argv)
        self.inputs.append(input)
        joined = " ".join(argv)
        for needle, returncode, stderr in self._failures:
            if needle in joined:
                return subprocess.CompletedProcess(argv, returncode, "", stderr)
        for needle, stdout in self._outputs:
            if needle in joined:
                return subprocess.CompletedProcess(argv, 0, stdout, "")
        return subprocess.CompletedProcess(argv, 0, "", "")

    def joined(self) -> list[str]:
        """Return every recorded command as a single string."""
        return [" ".join(call) for call in self.calls]


@pytest.fixture
def runner() -> FakeRunner:
    """Return a fresh fake command runner."""
    return FakeRunner()


@pytest.fixture
def broker(runner: FakeRunner) -> PrivilegeBroker:
    """Return a broker for an unprivileged process using the fake runner."""
    return PrivilegeBroker(wrapper=("sudo",), runner=runner, geteuid=lambda: 1000)


@pytest.fixture
def host_env(tmp_path: Path) -> dict[str, str]:
    """Environment redirecting every install destination under *tmp_path*."""
    home = tmp_path / "home"
    home.mkdir()
    return {
        "HOME": str(home),
        "CHATMIX_CONFIG_FILE": str(tmp_path / "missing-config.yml"),
        "CHATMIX_LOGS_DIR": str(tmp_path / "logs"),
        "CHATMIX_PATHS__SYSTEM_BIN_DIR": str(tmp_path / "usr" / "local" / "bin"),
        "CHATMIX_PATHS__SYSTEM_UNIT_DIR": str(tmp_path / "etc" / "systemd" / "system"),
        "CHATMIX_PATHS__UDEV_RULE_PATH": str(
            tmp_path / "etc" / "udev" / "rules.d" / "99-arctis.rules"
        ),
    }


@pytest.fixture
def app_config(host_env: dict[str, str], monkeypatch: pytest.MonkeyPatch) -> AppConfig:
    """Return an :class:`AppConfig` anchored in the temporary host."""
    monkeypatch.setenv("HOME", host_env["HOME"])
    return load_config(env=host_env)


@pytest.fixture
def binary(tmp_path: Path) -> Path:
    """Create a stand-in controller binary."""
    path = tmp_path / "build" / "arctis_chatmix"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\x7fELF fake controller")
    path.chmod(0o644)
    return path


@pytest.fixture
def op(tmp_path: Path) -> Iterator[OperationScope]:
    """Yield an operation scope logged under *tmp_path*."""
    logger = StructuredLogger(tmp_path / "op-logs")
    with logger.operation("test") as scope:
        yield scope
