"""Systemd provider for the installed ChatMix unit."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass

from ..privilege import Executor, PrivilegeBroker, format_command

SERVICE_NAME = "arctis_chatmix.service"


@dataclass(slots=True)
class SystemdProvider:
    """Drive ``systemctl`` in either the per-user or the system namespace."""

    broker: PrivilegeBroker
    namespace: str = "user"
    unit_name: str = SERVICE_NAME
    systemctl_bin: str = "systemctl"

    def daemon_reload(self) -> subprocess.CompletedProcess[str]:
        """Reload the unit index for this namespace."""
        return self._executor().run(self.command("daemon-reload"))

    def enable_now(self) -> subprocess.CompletedProcess[str]:
        """Enable the unit and start it immediately."""
        return self._executor().run(self.command("enable", "--now", self.unit_name))

    def is_active(self) -> bool:
        """Return ``True`` when the unit reports ``active``.

        The query is read-only, so it never goes through the elevation wrapper.
        """
        result = self.broker.direct().run(self.command("is-active", self.unit_name), check=False)
        return result.returncode == 0 and (result.stdout or "").strip() in {"", "active"}

    def command(self, *args: str) -> list[str]:
        """Return the ``systemctl`` argv for *args* in this namespace."""
        base = [self.systemctl_bin]
        if self.namespace == "user":
            base.append("--user")
        return [*base, *args]

    def manual_command(self, *args: str) -> str:
        """Return the command line an operator would type for *args*."""
        return format_command(self._executor().argv(self.command(*args)))

    def _executor(self) -> Executor:
        if self.namespace == "user":
            return self.broker.direct()
        return self.broker.for_system()


__all__ = ["SERVICE_NAME", "SystemdProvider"]
