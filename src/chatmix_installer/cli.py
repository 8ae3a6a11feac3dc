"""Typer-powered command line for ``chatmix-install``.

A run moves through fixed stages: resolve parameters, show a summary, confirm
(interactive only), provision the binary and unit, provision device access,
activate the service and report. Only the first two provisioning inputs can
fail the run; device and service-manager problems surface as advisories in
the closing report.
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console

from . import __version__
from .config import AppConfig, ConfigError, load_config
from .exit_codes import ExitCode
from .install import (
    ArtifactProvisioner,
    DeviceAccessProvisioner,
    FlagValues,
    InputClosedError,
    InstallConfiguration,
    InstallReport,
    MisuseError,
    Prompter,
    ProvisionError,
    Scope,
    ScopeProfile,
    ServiceActivator,
    resolve_configuration,
    select_profile,
    stdin_is_interactive,
)
from .install.accounts import current_user
from .install.parameters import format_yes_no
from .logging import OperationScope, StructuredLogger
from .privilege import PrivilegeBroker
from .providers import SERVICE_NAME, LogindProvider, SystemdProvider, UdevProvider
from .templates import TemplateEngine

console = Console(highlight=False)

USAGE_EPILOG = (
    "Examples:\n\n"
    "  chatmix-install\n\n"
    "  chatmix-install --binary ./arctis_chatmix --mode user --udev yes --enable-service yes"
)

BINARY_OPTION = typer.Option(
    None,
    "--binary",
    metavar="PATH",
    help="Path to the arctis_chatmix binary (default: ./arctis_chatmix).",
)
MODE_OPTION = typer.Option(
    None,
    "--mode",
    metavar="user|system",
    help="Install as a per-user service (default) or system-wide service.",
)
UDEV_OPTION = typer.Option(
    None,
    "--udev",
    metavar="yes|no",
    help="Install udev rule (default: yes).",
)
ENABLE_SERVICE_OPTION = typer.Option(
    None,
    "--enable-service",
    metavar="yes|no",
    help="Enable and start the service immediately (default: yes).",
)
ENABLE_LINGER_OPTION = typer.Option(
    None,
    "--enable-linger",
    metavar="yes|no",
    help="Enable systemd linger for the user (only relevant for --mode user; default: no).",
)
DRY_RUN_OPTION = typer.Option(
    False,
    "--dry-run",
    help="Print the operations that would run without changing the host.",
)
CONFIG_FILE_OPTION = typer.Option(
    None,
    "--config-file",
    dir_okay=False,
    help="Override the path to the installer's YAML config file.",
)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"chatmix-install {__version__}")
        raise typer.Exit(code=ExitCode.OK)


app = typer.Typer(
    add_completion=False,
    context_settings={"help_option_names": ["-h", "--help"]},
    help="Interactive installer for arctis_chatmix.",
)


@dataclass(slots=True)
class RuntimeContext:
    """Collaborators shared by one installer run."""

    config: AppConfig
    logger: StructuredLogger
    templates: TemplateEngine
    broker: PrivilegeBroker
    artifacts: ArtifactProvisioner
    device_access: DeviceAccessProvisioner
    logind: LogindProvider

    def activator_for(self, profile: ScopeProfile) -> ServiceActivator:
        """Return a service activator bound to *profile*'s systemd namespace."""
        systemd = SystemdProvider(
            broker=self.broker,
            namespace=profile.service_manager_namespace,
            systemctl_bin=self.config.commands.systemctl_bin,
        )
        return ServiceActivator(systemd=systemd, logind=self.logind)


def _build_runtime(config: AppConfig, *, dry_run: bool) -> RuntimeContext:
    templates = TemplateEngine.with_overrides(config.templates_dir)
    broker = PrivilegeBroker(wrapper=config.commands.elevation, dry_run=dry_run)
    udev = UdevProvider(broker=broker, udevadm_bin=config.commands.udevadm_bin)
    return RuntimeContext(
        config=config,
        logger=StructuredLogger(config.logs_dir),
        templates=templates,
        broker=broker,
        artifacts=ArtifactProvisioner(templates=templates, broker=broker),
        device_access=DeviceAccessProvisioner(
            templates=templates,
            udev=udev,
            rule_path=config.paths.udev_rule_path,
        ),
        logind=LogindProvider(broker=broker, loginctl_bin=config.commands.loginctl_bin),
    )


def _command_error(op: OperationScope, message: str, *, rc: int) -> NoReturn:
    """Emit a structured error and terminate the command."""
    console.print(f"[red]ERROR:[/red] {message}")
    op.error(message, rc=rc)
    raise typer.Exit(code=rc)


def _render_summary(config: InstallConfiguration, dry_run: bool) -> None:
    console.print("== arctis_chatmix installer ==")
    if dry_run:
        console.print("[yellow]Dry run[/yellow]: no changes will be made.")
    console.print(f"Mode: {config.scope.value}")
    console.print(f"Binary: {config.binary_path}")
    console.print(f"Install udev rule: {format_yes_no(config.install_udev)}")
    console.print(f"Enable & start service now: {format_yes_no(config.enable_service)}")
    if config.scope is Scope.USER:
        console.print(f"Enable linger: {format_yes_no(config.enable_linger)}")


def _render_report(
    report: InstallReport,
    scope: Scope,
    *,
    planned: Sequence[str],
) -> None:
    console.print("Installation finished.")
    for path in report.written:
        console.print(f"  installed: {path}")
    for note in report.notes:
        console.print(note)
    if report.advisories:
        console.print(f"[yellow]{len(report.advisories)} warning(s):[/yellow]")
        for advisory in report.advisories:
            console.print(f"  [yellow]Warning:[/yellow] {advisory.message}")
            if advisory.remediation:
                console.print(f"    You can fix this manually with: {advisory.remediation}")
    if planned:
        console.print("[yellow]Dry run[/yellow]: the following operations were not performed:")
        for entry in planned:
            console.print(f"  {entry}")
    if scope is Scope.USER:
        console.print(f"Check user logs with: journalctl --user -u {SERVICE_NAME} -f")
    else:
        console.print(f"Check system logs with: sudo journalctl -u {SERVICE_NAME} -f")
    console.print("Done.")


@app.command(epilog=USAGE_EPILOG)
def install(
    binary: Path | None = BINARY_OPTION,
    mode: str | None = MODE_OPTION,
    udev: str | None = UDEV_OPTION,
    enable_service: str | None = ENABLE_SERVICE_OPTION,
    enable_linger: str | None = ENABLE_LINGER_OPTION,
    dry_run: bool = DRY_RUN_OPTION,
    config_file: Path | None = CONFIG_FILE_OPTION,
    version: bool = typer.Option(
        False,
        "--version",
        "-V",
        callback=_version_callback,
        is_eager=True,
        help="Show the installer version and exit.",
    ),
) -> None:
    """Install arctis_chatmix, its systemd unit and its udev rule.

    Without a terminal on stdin every value comes from the flags and their
    defaults; with one, each value is confirmed interactively.
    """
    try:
        config = load_config(config_file=config_file)
    except ConfigError as exc:
        console.print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=ExitCode.ENVIRONMENT) from exc

    runtime = _build_runtime(config, dry_run=dry_run)
    flags = FlagValues(
        binary=binary,
        mode=mode,
        udev=udev,
        enable_service=enable_service,
        enable_linger=enable_linger,
    )
    interactive = stdin_is_interactive()
    prompter = Prompter(console)
    args = {
        "binary": binary,
        "mode": mode,
        "udev": udev,
        "enable_service": enable_service,
        "enable_linger": enable_linger,
        "dry_run": dry_run,
        "interactive": interactive,
    }

    # Runs rejected here leave no trace on disk, not even in the operations log.
    try:
        install_config = resolve_configuration(
            flags,
            config.defaults,
            interactive=interactive,
            prompter=prompter,
        )
    except MisuseError as exc:
        console.print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=ExitCode.MISUSE) from exc
    except InputClosedError as exc:
        console.print(f"[red]ERROR:[/red] {exc}")
        raise typer.Exit(code=ExitCode.INPUT_CLOSED) from exc

    with runtime.logger.operation(
        "install",
        args=args,
        target={"kind": "service", "name": SERVICE_NAME},
    ) as op:
        op.add_step("resolve", detail=install_config.scope.value)

        profile = select_profile(install_config.scope, config.paths)
        _render_summary(install_config, dry_run)

        if install_config.interactive:
            try:
                proceed = prompter.ask_yes_no("Proceed with installation?", True)
            except InputClosedError as exc:
                _command_error(op, str(exc), rc=ExitCode.INPUT_CLOSED)
            if not proceed:
                console.print("Aborting.")
                op.warning("Install cancelled by operator.", warnings=["user-cancelled"])
                return

        user = current_user()
        report = InstallReport()

        if install_config.scope is Scope.USER:
            console.print("Installing for current user...")
        else:
            console.print("Installing system-wide (requires sudo)...")
        try:
            artifacts = runtime.artifacts.provision(install_config, profile, op)
        except ProvisionError as exc:
            _command_error(op, str(exc), rc=ExitCode.PROVISION)
        report.written.extend([artifacts.binary_path, artifacts.unit_path])
        console.print(f"Binary installed to {artifacts.binary_path}")
        console.print(f"Unit written to {artifacts.unit_path}")

        if install_config.install_udev:
            console.print("Installing udev rule...")
        if runtime.device_access.provision(install_config, report, op, user=user):
            console.print(f"udev rule installed to {config.paths.udev_rule_path}")

        runtime.activator_for(profile).activate(install_config, report, op, user=user)

        _render_report(report, install_config.scope, planned=runtime.broker.planned)
        context = {"config": install_config.to_dict(), "report": report.to_dict()}
        changed = len(report.written)
        if report.advisories:
            op.warning(
                "Install completed with warnings.",
                warnings=report.warnings,
                changed=changed,
                context=context,
            )
        else:
            op.success("Install completed.", changed=changed, context=context)


def main() -> None:
    """Console-script entry point."""
    app()


__all__ = ["app", "main"]
