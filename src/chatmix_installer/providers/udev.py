"""Udev provider: rule reloads and device re-evaluation."""
from __future__ import annotations

import subprocess
from dataclasses import dataclass

from ..privilege import PrivilegeBroker, format_command


@dataclass(slots=True)
class UdevProvider:
    """Wrap the ``udevadm`` operations the installer needs."""

    broker: PrivilegeBroker
    udevadm_bin: str = "udevadm"

    def reload_rules(self) -> subprocess.CompletedProcess[str]:
        """Ask udev to re-read its rule database."""
        return self.broker.for_system().run(self.reload_command())

    def trigger(self, vendor_id: str, product_id: str) -> subprocess.CompletedProcess[str]:
        """Re-evaluate attached USB devices matching *vendor_id*/*product_id*."""
        return self.broker.for_system().run(self.trigger_command(vendor_id, product_id))

    def reload_command(self) -> list[str]:
        """Return the argv reloading the rule database."""
        return [self.udevadm_bin, "control", "--reload"]

    def trigger_command(self, vendor_id: str, product_id: str) -> list[str]:
        """Return the argv re-triggering one vendor/product pair."""
        return [
            self.udevadm_bin,
            "trigger",
            "--subsystem-match=usb",
            f"--attr-match=idVendor={vendor_id}",
            f"--attr-match=idProduct={product_id}",
        ]

    def manual_command(self, args: list[str]) -> str:
        """Return the command line an operator would type for *args*."""
        return format_command(self.broker.for_system().argv(args))


__all__ = ["UdevProvider"]
