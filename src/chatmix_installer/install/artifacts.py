"""Install the controller binary and its systemd unit."""
from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from ..logging import OperationScope
from ..privilege import CommandError, Executor, PrivilegeBroker
from ..providers.systemd import SERVICE_NAME
from ..templates import TemplateEngine
from .parameters import InstallConfiguration
from .scopes import Scope, ScopeProfile

SERVICE_DESCRIPTION = "Arctis Nova 7 ChatMix (virtual-sink mixer)"
SERVICE_ENVIRONMENT = ("ARCTIS_SIDETONE_DISABLE=1", "RUST_LOG=info")
RESTART_POLICY = "on-failure"
RESTART_SEC = 5
BINARY_MODE = 0o755
UNIT_MODE = 0o644


class ProvisionError(RuntimeError):
    """Raised when the binary or unit file cannot be written."""


@dataclass(slots=True)
class ArtifactResult:
    """Paths written by :meth:`ArtifactProvisioner.provision`."""

    binary_path: Path
    unit_path: Path
    elevated: bool


@dataclass(slots=True)
class ArtifactProvisioner:
    """Copy the binary and write a freshly rendered unit for the chosen scope."""

    templates: TemplateEngine
    broker: PrivilegeBroker
    unit_name: str = SERVICE_NAME

    def render_unit(self, profile: ScopeProfile) -> str:
        """Return the unit text for *profile*."""
        return self.templates.render_to_string(
            "systemd/service.j2",
            {
                "description": SERVICE_DESCRIPTION,
                "exec_start": str(profile.binary_path),
                "environment": list(SERVICE_ENVIRONMENT),
                "restart_policy": RESTART_POLICY,
                "restart_sec": RESTART_SEC,
                "wanted_by": profile.unit_activation_target,
            },
        )

    def provision(
        self,
        config: InstallConfiguration,
        profile: ScopeProfile,
        op: OperationScope,
    ) -> ArtifactResult:
        """Install the binary and unit file, raising :class:`ProvisionError` on failure."""
        unit_text = self.render_unit(profile)
        binary_dest = profile.binary_path
        unit_dest = profile.unit_path(self.unit_name)

        binary_executor = self._executor_for(profile, profile.binary_install_dir)
        try:
            binary_executor.makedirs(profile.binary_install_dir)
            binary_executor.install_file(config.binary_path, binary_dest, mode=BINARY_MODE)
        except (OSError, CommandError) as exc:
            op.add_step("artifacts.binary", status="error", detail=str(exc))
            raise ProvisionError(f"Failed to install binary to {binary_dest}: {exc}") from exc
        op.add_step("artifacts.binary", detail=f"{config.binary_path} -> {binary_dest}")

        unit_executor = self._executor_for(profile, profile.service_unit_dir)
        try:
            unit_executor.makedirs(profile.service_unit_dir)
            unit_executor.write_text(unit_dest, unit_text, mode=UNIT_MODE)
        except (OSError, CommandError) as exc:
            op.add_step("artifacts.unit", status="error", detail=str(exc))
            raise ProvisionError(f"Failed to write unit file {unit_dest}: {exc}") from exc
        op.add_step("artifacts.unit", detail=str(unit_dest))

        return ArtifactResult(
            binary_path=binary_dest,
            unit_path=unit_dest,
            elevated=binary_executor.elevated or unit_executor.elevated,
        )

    def _executor_for(self, profile: ScopeProfile, target_dir: Path) -> Executor:
        if profile.scope is Scope.USER:
            return self.broker.direct()
        return self.broker.for_path(target_dir)


__all__ = [
    "ArtifactProvisioner",
    "ArtifactResult",
    "ProvisionError",
    "SERVICE_DESCRIPTION",
    "SERVICE_ENVIRONMENT",
]
