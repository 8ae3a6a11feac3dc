"""Building blocks of an install run, in the order the CLI drives them."""
from __future__ import annotations

from .activation import ActivationResult, ServiceActivator
from .artifacts import ArtifactProvisioner, ArtifactResult, ProvisionError
from .device_access import DeviceAccessProvisioner, DeviceRule
from .parameters import (
    FlagValues,
    InputClosedError,
    InstallConfiguration,
    MisuseError,
    Prompter,
    resolve_configuration,
    stdin_is_interactive,
)
from .report import Advisory, InstallReport
from .scopes import Scope, ScopeProfile, select_profile

__all__ = [
    # parameters
    "FlagValues",
    "InputClosedError",
    "InstallConfiguration",
    "MisuseError",
    "Prompter",
    "resolve_configuration",
    "stdin_is_interactive",
    # scopes
    "Scope",
    "ScopeProfile",
    "select_profile",
    # provisioning
    "ArtifactProvisioner",
    "ArtifactResult",
    "ProvisionError",
    "DeviceAccessProvisioner",
    "DeviceRule",
    "ActivationResult",
    "ServiceActivator",
    # reporting
    "Advisory",
    "InstallReport",
]
