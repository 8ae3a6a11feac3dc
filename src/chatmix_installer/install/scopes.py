"""Deployment scopes and their filesystem/service-manager profiles."""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from ..config import PathsConfig

BINARY_NAME = "arctis_chatmix"


class Scope(str, Enum):
    """Where the service is installed."""

    USER = "user"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class ScopeProfile:
    """Install locations and systemd settings for one scope."""

    scope: Scope
    binary_install_dir: Path
    service_unit_dir: Path
    service_manager_namespace: str
    unit_activation_target: str

    @property
    def binary_path(self) -> Path:
        """Return the absolute path of the installed binary."""
        return self.binary_install_dir / BINARY_NAME

    def unit_path(self, unit_name: str) -> Path:
        """Return the absolute path of *unit_name* in this scope."""
        return self.service_unit_dir / unit_name


def build_profiles(paths: PathsConfig) -> dict[Scope, ScopeProfile]:
    """Return the two-entry scope table for the configured *paths*."""
    return {
        Scope.USER: ScopeProfile(
            scope=Scope.USER,
            binary_install_dir=paths.user_bin_dir,
            service_unit_dir=paths.user_unit_dir,
            service_manager_namespace="user",
            unit_activation_target="default.target",
        ),
        Scope.SYSTEM: ScopeProfile(
            scope=Scope.SYSTEM,
            binary_install_dir=paths.system_bin_dir,
            service_unit_dir=paths.system_unit_dir,
            service_manager_namespace="system",
            unit_activation_target="multi-user.target",
        ),
    }


def select_profile(scope: Scope, paths: PathsConfig) -> ScopeProfile:
    """Return the profile for *scope*."""
    return build_profiles(paths)[scope]


__all__ = ["BINARY_NAME", "Scope", "ScopeProfile", "build_profiles", "select_profile"]
