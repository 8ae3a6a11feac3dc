"""Merge flags, prompts and defaults into a single install configuration."""
from __future__ import annotations

import sys
from dataclasses import dataclass
from pathlib import Path

import typer
from rich.console import Console

from ..config import DefaultsConfig
from .scopes import Scope

YES_ANSWERS = {"y", "yes"}
NO_ANSWERS = {"n", "no"}


class MisuseError(RuntimeError):
    """Raised when the supplied parameters cannot produce a valid configuration."""


class InputClosedError(RuntimeError):
    """Raised when the interactive input stream ends before all answers arrive."""


@dataclass(frozen=True, slots=True)
class FlagValues:
    """Raw command-line values; ``None`` means the flag was omitted."""

    binary: Path | None = None
    mode: str | None = None
    udev: str | None = None
    enable_service: str | None = None
    enable_linger: str | None = None


@dataclass(frozen=True, slots=True)
class InstallConfiguration:
    """Validated, immutable parameters for one installer run."""

    binary_path: Path
    scope: Scope
    install_udev: bool
    enable_service: bool
    enable_linger: bool
    interactive: bool

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "binary_path": str(self.binary_path),
            "scope": self.scope.value,
            "install_udev": self.install_udev,
            "enable_service": self.enable_service,
            "enable_linger": self.enable_linger,
            "interactive": self.interactive,
        }


def stdin_is_interactive() -> bool:
    """Return ``True`` when stdin is attached to a terminal."""
    try:
        return sys.stdin.isatty()
    except (AttributeError, ValueError):
        return False


def parse_yes_no(value: str) -> bool | None:
    """Return the boolean for a yes/no answer, or ``None`` when unrecognised."""
    answer = value.strip().lower()
    if answer in YES_ANSWERS:
        return True
    if answer in NO_ANSWERS:
        return False
    return None


def parse_scope(value: str) -> Scope | None:
    """Return the :class:`Scope` named exactly by *value*, or ``None``."""
    try:
        return Scope(value)
    except ValueError:
        return None


def format_yes_no(value: bool) -> str:
    """Render a boolean the way prompts and summaries display it."""
    return "yes" if value else "no"


class Prompter:
    """Terminal prompts backed by Typer, translating EOF into :class:`InputClosedError`."""

    def __init__(self, console: Console | None = None) -> None:
        """Use *console* for guidance messages."""
        self.console = console or Console(highlight=False)

    def ask(self, text: str, default: str | None = None) -> str:
        """Prompt for a line of text; empty input yields *default* when given."""
        try:
            if default is None:
                return str(typer.prompt(text))
            return str(typer.prompt(text, default=default))
        except typer.Abort as exc:
            raise InputClosedError("Input stream closed while waiting for an answer.") from exc

    def say(self, message: str) -> None:
        """Print a guidance line."""
        self.console.print(message)

    def ask_yes_no(self, question: str, current: bool) -> bool:
        """Ask *question* until a yes/no answer arrives; empty keeps *current*."""
        while True:
            reply = self.ask(question, default=format_yes_no(current))
            answer = parse_yes_no(reply)
            if answer is not None:
                return answer
            self.say("Please answer yes or no (y/n).")


def resolve_configuration(
    flags: FlagValues,
    defaults: DefaultsConfig,
    *,
    interactive: bool,
    prompter: Prompter | None = None,
) -> InstallConfiguration:
    """Return the validated :class:`InstallConfiguration` for this run.

    Yes/no flags are validated up front in both modes. Without a terminal no
    prompt is shown: an invalid ``--mode`` or a missing binary raises
    :class:`MisuseError`. With a terminal every value is confirmed in a fixed
    order and invalid answers are asked again.

    The binary only has to be an existing regular file. Its source permission
    bits are not checked because the installed copy is always given mode
    0755.
    """
    install_udev = _flag_bool(flags.udev, "--udev", defaults.udev)
    enable_service = _flag_bool(flags.enable_service, "--enable-service", defaults.enable_service)
    enable_linger = _flag_bool(flags.enable_linger, "--enable-linger", defaults.enable_linger)
    binary = flags.binary if flags.binary is not None else defaults.binary
    mode = flags.mode if flags.mode is not None else defaults.mode

    if not interactive:
        scope = parse_scope(mode)
        if scope is None:
            raise MisuseError(f"Invalid mode '{mode}'. Choose 'user' or 'system'.")
        binary_path = _absolute(binary)
        if not binary_path.is_file():
            raise MisuseError(f"Binary not found at '{binary}' (non-interactive mode).")
        return InstallConfiguration(
            binary_path=binary_path,
            scope=scope,
            install_udev=install_udev,
            enable_service=enable_service,
            enable_linger=enable_linger if scope is Scope.USER else False,
            interactive=False,
        )

    prompter = prompter or Prompter()
    prompter.say("Arctis ChatMix installer (interactive)")
    binary_path = _prompt_binary(prompter, binary)
    prompter.say(f"Using binary: {binary_path}")
    scope = _prompt_scope(prompter, mode, defaults.mode)
    install_udev = prompter.ask_yes_no(
        "Install udev rule to allow non-root access to the dongle?",
        install_udev,
    )
    enable_service = prompter.ask_yes_no("Enable & start the service now?", enable_service)
    if scope is Scope.USER:
        enable_linger = prompter.ask_yes_no(
            "Enable lingering so service runs without active session? (loginctl enable-linger)",
            enable_linger,
        )
    else:
        enable_linger = False

    return InstallConfiguration(
        binary_path=binary_path,
        scope=scope,
        install_udev=install_udev,
        enable_service=enable_service,
        enable_linger=enable_linger,
        interactive=True,
    )


def _prompt_binary(prompter: Prompter, default: Path) -> Path:
    reply = prompter.ask("Path to binary", default=str(default))
    candidate = _absolute(Path(reply))
    while not candidate.is_file():
        prompter.say(f"Binary not found at '{reply}'.")
        reply = prompter.ask("Enter valid path to binary (or press Ctrl+C to abort)")
        candidate = _absolute(Path(reply))
    return candidate


def _prompt_scope(prompter: Prompter, flag_mode: str, default_mode: str) -> Scope:
    current = flag_mode
    if parse_scope(current) is None:
        prompter.say(f"Invalid mode '{current}'. Choose 'user' or 'system'.")
        current = default_mode
    while True:
        reply = prompter.ask("Install mode - user or system", default=current)
        scope = parse_scope(reply)
        if scope is not None:
            return scope
        prompter.say("Invalid mode. Choose 'user' or 'system'.")


def _flag_bool(value: str | None, flag: str, default: bool) -> bool:
    if value is None:
        return default
    parsed = parse_yes_no(value)
    if parsed is None:
        raise MisuseError(f"Invalid value '{value}' for {flag}. Use yes or no.")
    return parsed


def _absolute(path: Path) -> Path:
    return path.expanduser().absolute()


__all__ = [
    "FlagValues",
    "InputClosedError",
    "InstallConfiguration",
    "MisuseError",
    "Prompter",
    "format_yes_no",
    "parse_scope",
    "parse_yes_no",
    "resolve_configuration",
    "stdin_is_interactive",
]
