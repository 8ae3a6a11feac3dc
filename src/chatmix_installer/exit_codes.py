"""Enumerations for installer exit codes."""
from __future__ import annotations

from enum import IntEnum


class ExitCode(IntEnum):
    """Well-known exit codes returned by ``chatmix-install``."""

    OK = 0
    INPUT_CLOSED = 1
    MISUSE = 2
    ENVIRONMENT = 3
    PROVISION = 4
