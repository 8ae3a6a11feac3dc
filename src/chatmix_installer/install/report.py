"""Outcome records gathered while an install runs."""
from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path


@dataclass(frozen=True, slots=True)
class Advisory:
    """A non-fatal problem together with the command that fixes it by hand."""

    message: str
    remediation: str | None = None

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {"message": self.message, "remediation": self.remediation}


@dataclass(slots=True)
class InstallReport:
    """Summary rendered once the run reaches its final state."""

    written: list[Path] = field(default_factory=list)
    advisories: list[Advisory] = field(default_factory=list)
    notes: list[str] = field(default_factory=list)

    def warn(self, message: str, remediation: str | None = None) -> None:
        """Record an advisory."""
        self.advisories.append(Advisory(message, remediation))

    @property
    def warnings(self) -> list[str]:
        """Return advisory messages in the order they were recorded."""
        return [advisory.message for advisory in self.advisories]

    def to_dict(self) -> dict[str, object]:
        """Return a serialisable representation."""
        return {
            "written": [str(path) for path in self.written],
            "advisories": [advisory.to_dict() for advisory in self.advisories],
            "notes": list(self.notes),
        }


__all__ = ["Advisory", "InstallReport"]
