"""Tests for the systemd, udev and logind providers."""
from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from chatmix_installer.privilege import CommandError, PrivilegeBroker
from chatmix_installer.providers import (
    SERVICE_NAME,
    LogindProvider,
    SystemdProvider,
    UdevProvider,
)

if TYPE_CHECKING:
    from conftest import FakeRunner


def test_user_namespace_runs_direct_with_user_flag(
    broker: PrivilegeBroker,
    runner: FakeRunner,
) -> None:
    """User services are driven without elevation and with ``--user``."""
    provider = SystemdProvider(broker=broker, namespace="user")
    provider.daemon_reload()
    provider.enable_now()

    assert runner.calls == [
        ["systemctl", "--user", "daemon-reload"],
        ["systemctl", "--user", "enable", "--now", SERVICE_NAME],
    ]


def test_system_namespace_elevates_when_unprivileged(
    broker: PrivilegeBroker,
    runner: FakeRunner,
) -> None:
    """System services go through the elevation wrapper."""
    provider = SystemdProvider(broker=broker, namespace="system", systemctl_bin="/bin/systemctl")
    provider.daemon_reload()

    assert runner.calls == [["sudo", "/bin/systemctl", "daemon-reload"]]
    assert provider.manual_command("enable", "--now", SERVICE_NAME) == (
        f"sudo /bin/systemctl enable --now {SERVICE_NAME}"
    )


def test_system_namespace_direct_as_root(runner: FakeRunner) -> None:
    """Root drives system services directly."""
    broker = PrivilegeBroker(runner=runner, geteuid=lambda: 0)
    SystemdProvider(broker=broker, namespace="system").enable_now()
    assert runner.calls == [["systemctl", "enable", "--now", SERVICE_NAME]]


@pytest.mark.parametrize(
    ("returncode", "stdout", "expected"),
    [
        (0, "active\n", True),
        (3, "inactive\n", False),
        (3, "failed\n", False),
    ],
)
def test_is_active_reports_state(
    broker: PrivilegeBroker,
    runner: FakeRunner,
    returncode: int,
    stdout: str,
    expected: bool,
) -> None:
    """``is-active`` never raises on a non-zero exit."""
    if returncode:
        runner.fail("is-active", returncode=returncode, stderr="")
    else:
        runner.output("is-active", stdout)
    provider = SystemdProvider(broker=broker)
    assert provider.is_active() is expected


def test_system_is_active_never_elevates(broker: PrivilegeBroker, runner: FakeRunner) -> None:
    """The read-only state query runs without the wrapper even for system units."""
    runner.output("is-active", "active\n")
    provider = SystemdProvider(broker=broker, namespace="system")

    assert provider.is_active() is True
    assert runner.calls == [["systemctl", "is-active", SERVICE_NAME]]


def test_enable_failure_raises(broker: PrivilegeBroker, runner: FakeRunner) -> None:
    """Failures surface as ``CommandError`` for the caller to report."""
    runner.fail("enable", stderr="Unit file is masked.")
    provider = SystemdProvider(broker=broker)
    with pytest.raises(CommandError, match="masked"):
        provider.enable_now()


def test_udev_reload_and_trigger(broker: PrivilegeBroker, runner: FakeRunner) -> None:
    """Udev calls are system-wide and elevate when unprivileged."""
    provider = UdevProvider(broker=broker)
    provider.reload_rules()
    provider.trigger("1038", "2202")

    assert runner.calls == [
        ["sudo", "udevadm", "control", "--reload"],
        [
            "sudo",
            "udevadm",
            "trigger",
            "--subsystem-match=usb",
            "--attr-match=idVendor=1038",
            "--attr-match=idProduct=2202",
        ],
    ]


def test_udev_manual_command(broker: PrivilegeBroker) -> None:
    """Remediation text repeats the exact wrapped command."""
    provider = UdevProvider(broker=broker, udevadm_bin="/usr/bin/udevadm")
    assert provider.manual_command(provider.reload_command()) == (
        "sudo /usr/bin/udevadm control --reload"
    )


def test_logind_enable_linger(broker: PrivilegeBroker, runner: FakeRunner) -> None:
    """Linger is enabled for the named user."""
    provider = LogindProvider(broker=broker)
    provider.enable_linger("jane")

    assert runner.calls == [["sudo", "loginctl", "enable-linger", "jane"]]
    assert provider.manual_command("jane") == "sudo loginctl enable-linger jane"
