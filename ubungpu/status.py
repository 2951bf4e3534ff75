from __future__ import annotations

from typing import List, Optional

from .config import Settings
from .lib.command import CommandRunner
from .lib.hwdetect import HardwareDetector, VendorKind
from .lib.pkg import AptInstaller
from .vendors import strategy_for


class StatusReporter:
    """Renders live GPU/driver/toolkit state. Read-only; never fails."""

    def __init__(self, settings: Settings, runner: CommandRunner):
        self.settings = settings
        self.runner = runner
        self.detector = HardwareDetector(runner)

    def render(self, vendor: Optional[VendorKind] = None) -> str:
        p = self.settings.palette
        out: List[str] = ["", p.paint("===== GPU Information =====", "blue")]

        vendor = self.detector.detect() if vendor is None else vendor
        strategy_cls = strategy_for(vendor)
        if strategy_cls is None:
            out.append("No supported GPU detected")
            return "\n".join(out) + "\n"

        strategy = strategy_cls(self.settings, self.runner, AptInstaller(self.runner))
        hardware = "\n".join(self.detector.pci_entries(vendor)) or "No matching PCI devices"
        sections = [("GPU Hardware Details:", hardware), *strategy.status_sections()]
        for title, body in sections:
            out.append("")
            out.append(p.paint(title, "green"))
            out.append(body)
        return "\n".join(out) + "\n"

    def banner(self) -> str:
        s = self.settings
        return s.palette.paint(f"===== GPU Status ({s.name} v{s.version}) =====", "blue")
