"""Reload, enable and start the installed unit."""
from __future__ import annotations

from dataclasses import dataclass

from ..logging import OperationScope
from ..privilege import CommandError
from ..providers.logind import LogindProvider
from ..providers.systemd import SystemdProvider
from .parameters import InstallConfiguration
from .report import InstallReport
from .scopes import Scope


@dataclass(slots=True)
class ActivationResult:
    """What the activator managed to do."""

    reloaded: bool = False
    started: bool = False
    active: bool | None = None
    lingering: bool | None = None


@dataclass(slots=True)
class ServiceActivator:
    """Hand the installed unit over to systemd.

    Nothing in here is fatal: failures become advisories carrying the exact
    command to run later, and no call is retried.
    """

    systemd: SystemdProvider
    logind: LogindProvider

    def activate(
        self,
        config: InstallConfiguration,
        report: InstallReport,
        op: OperationScope,
        *,
        user: str,
    ) -> ActivationResult:
        """Reload systemd, optionally enable the unit and enable linger."""
        result = ActivationResult()
        try:
            self.systemd.daemon_reload()
        except CommandError as exc:
            op.add_step("systemd.daemon-reload", status="warning", detail=str(exc))
            report.warn(
                f"systemctl daemon-reload failed: {exc}",
                self.systemd.manual_command("daemon-reload"),
            )
        else:
            result.reloaded = True
            op.add_step("systemd.daemon-reload")

        if config.enable_service:
            self._enable(report, op, result)
        else:
            op.add_step("systemd.enable", status="skipped", detail="--enable-service no")
            report.notes.append(
                "Service not started. Enable it later with: "
                + self.systemd.manual_command("enable", "--now", self.systemd.unit_name)
            )

        if config.scope is Scope.USER and config.enable_linger:
            try:
                self.logind.enable_linger(user)
            except CommandError as exc:
                result.lingering = False
                op.add_step("logind.enable-linger", status="warning", detail=str(exc))
                report.warn(
                    f"Could not enable linger for '{user}': {exc}",
                    self.logind.manual_command(user),
                )
            else:
                result.lingering = True
                op.add_step("logind.enable-linger", detail=user)
        return result

    def _enable(self, report: InstallReport, op: OperationScope, result: ActivationResult) -> None:
        unit = self.systemd.unit_name
        try:
            self.systemd.enable_now()
        except CommandError as exc:
            op.add_step("systemd.enable", status="warning", detail=str(exc))
            report.warn(
                f"Could not enable/start {unit}: {exc}",
                self.systemd.manual_command("enable", "--now", unit),
            )
            return
        result.started = True
        op.add_step("systemd.enable", detail=unit)

        try:
            result.active = self.systemd.is_active()
        except CommandError as exc:
            op.add_step("systemd.is-active", status="warning", detail=str(exc))
            return
        if result.active:
            op.add_step("systemd.is-active", detail="active")
        else:
            op.add_step("systemd.is-active", status="warning", detail="inactive")
            report.warn(
                f"{unit} was started but is not reporting active.",
                self.systemd.manual_command("status", unit),
            )


__all__ = ["ActivationResult", "ServiceActivator"]
