"""Wrappers around the host service, device and session managers."""
from __future__ import annotations

from .logind import LogindProvider
from .systemd import SERVICE_NAME, SystemdProvider
from .udev import UdevProvider

__all__ = [
    "LogindProvider",
    "SERVICE_NAME",
    "SystemdProvider",
    "UdevProvider",
]
