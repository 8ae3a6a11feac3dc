"""Logind provider for session lingering."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass

from ..privilege import PrivilegeBroker, format_command


@dataclass(slots=True)
class LogindProvider:
    """Wrap ``loginctl`` so user services survive logout."""

    broker: PrivilegeBroker
    loginctl_bin: str = "loginctl"

    def enable_linger(self, user: str) -> subprocess.CompletedProcess[str]:
        """Enable lingering for *user*, elevating only when unprivileged."""
        return self.broker.for_system().run(self.linger_command(user))

    def linger_command(self, user: str) -> list[str]:
        """Return the argv enabling linger for *user*."""
        return [self.loginctl_bin, "enable-linger", user]

    def manual_command(self, user: str) -> str:
        """Return the command line an operator would type to enable linger."""
        return format_command(self.broker.for_system().argv(self.linger_command(user)))


__all__ = ["LogindProvider"]
