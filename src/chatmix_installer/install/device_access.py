"""Udev rule provisioning for the supported headset dongles."""
from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from ..logging import OperationScope
from ..privilege import CommandError, format_command
from ..providers.udev import UdevProvider
from ..templates import TemplateEngine
from .accounts import user_in_group
from .parameters import InstallConfiguration
from .report import InstallReport

VENDOR_ID = "1038"
# Arctis Nova 7 family: Nova 7, Nova 7 Gen 2, Nova 7 Wireless Gen 2, Nova 7x,
# Nova 7x v2 (two revisions), Diablo IV (two firmware revisions), WoW Edition.
PRODUCT_IDS: tuple[str, ...] = (
    "2202",
    "22a1",
    "227e",
    "2206",
    "2258",
    "229e",
    "223a",
    "22a9",
    "227a",
)
ACCESS_GROUP = "audio"
ACCESS_MODE = "0660"
RULE_FILE_MODE = 0o644


@dataclass(frozen=True, slots=True)
class DeviceRule:
    """Permission grants for every supported vendor/product pair."""

    vendor_id: str = VENDOR_ID
    product_ids: tuple[str, ...] = PRODUCT_IDS
    group: str = ACCESS_GROUP
    mode: str = ACCESS_MODE

    def render(self, templates: TemplateEngine) -> str:
        """Return the rule file text."""
        return templates.render_to_string(
            "udev/rules.j2",
            {
                "vendor_id": self.vendor_id,
                "product_ids": list(self.product_ids),
                "group": self.group,
                "mode": self.mode,
            },
        )


Membership = Callable[[str, str], bool | None]


@dataclass(slots=True)
class DeviceAccessProvisioner:
    """Write the udev rule and re-evaluate already attached dongles."""

    templates: TemplateEngine
    udev: UdevProvider
    rule_path: Path
    rule: DeviceRule = DeviceRule()
    membership: Membership = user_in_group

    def provision(
        self,
        config: InstallConfiguration,
        report: InstallReport,
        op: OperationScope,
        *,
        user: str,
    ) -> bool:
        """Install the rule unless disabled; return ``True`` when it was written.

        Every failure here is recorded on *report* as an advisory. A failed
        trigger for one product id does not stop the remaining ones.
        """
        if not config.install_udev:
            op.add_step("udev", status="skipped", detail="--udev no")
            report.notes.append("Skipping udev rule install (--udev no)")
            return False

        content = self.rule.render(self.templates)
        executor = self.udev.broker.for_path(self.rule_path)
        try:
            executor.makedirs(self.rule_path.parent)
            executor.write_text(self.rule_path, content, mode=RULE_FILE_MODE)
        except (OSError, CommandError) as exc:
            op.add_step("udev.rule", status="error", detail=str(exc))
            report.warn(
                f"Could not write udev rule to {self.rule_path}: {exc}",
                "Re-run the installer with sudo to install the udev rule.",
            )
            return False
        op.add_step("udev.rule", detail=str(self.rule_path))
        report.written.append(self.rule_path)

        try:
            self.udev.reload_rules()
        except CommandError as exc:
            op.add_step("udev.reload", status="warning", detail=str(exc))
            report.warn(
                f"udev rule reload failed: {exc}",
                self.udev.manual_command(self.udev.reload_command()),
            )
        else:
            op.add_step("udev.reload")

        for product_id in self.rule.product_ids:
            try:
                self.udev.trigger(self.rule.vendor_id, product_id)
            except CommandError as exc:
                op.add_step(f"udev.trigger.{product_id}", status="warning", detail=str(exc))
                report.warn(
                    f"udev trigger failed for {self.rule.vendor_id}:{product_id}: {exc}",
                    self.udev.manual_command(
                        self.udev.trigger_command(self.rule.vendor_id, product_id)
                    ),
                )
            else:
                op.add_step(f"udev.trigger.{product_id}")

        if self.membership(user, self.rule.group) is False:
            report.warn(
                f"User '{user}' is not in the '{self.rule.group}' group; "
                "log in again after adding it.",
                format_command(["sudo", "usermod", "-aG", self.rule.group, user]),
            )
        return True


__all__ = [
    "ACCESS_GROUP",
    "DeviceAccessProvisioner",
    "DeviceRule",
    "PRODUCT_IDS",
    "VENDOR_ID",
]
