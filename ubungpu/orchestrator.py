from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, TextIO

from .config import Settings
from .install_log import InstallLog
from .lib.command import CommandRunner
from .lib.env import is_ubuntu, kernel_release
from .lib.hwdetect import HardwareDetector, VendorKind
from .lib.pkg import AptInstaller
from .pipeline import InstallRecord, InstallStep, SetupError
from .status import StatusReporter
from .vendors import SetupResult, strategy_for

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BuildResult:
    vendor: VendorKind
    setup: SetupResult
    record: InstallRecord
    restart_needed: bool


def install_prerequisites(
    settings: Settings,
    installer: AptInstaller,
    detector: HardwareDetector,
    record: InstallRecord,
) -> VendorKind:
    """Shared host preparation. Returns the vendor detected for the rest of the run."""

    if not is_ubuntu(settings.os_release_path):
        record.warn("This script is designed for Ubuntu. Other distributions may not work correctly.")

    record.run_step(
        InstallStep("apt-update", "Updating package lists...", "Failed to update package lists", fatal=True),
        installer.update,
    )

    for package in (*settings.common_packages, f"linux-headers-{kernel_release()}"):
        record.ensure_package(installer, package)

    # pciutils is in place now, so this is the one detection of the run.
    vendor = detector.detect()
    strategy_cls = strategy_for(vendor)
    if strategy_cls is not None:
        for package in strategy_cls.prerequisite_packages:
            record.ensure_package(installer, package)

    if settings.perform_upgrade:
        record.run_step(
            InstallStep(
                "apt-upgrade",
                "Performing system upgrade...",
                "Package upgrade failed, continuing anyway...",
            ),
            installer.upgrade,
        )

    return vendor


def run_build(
    settings: Settings,
    runner: CommandRunner,
    install_log: InstallLog,
    *,
    out: Optional[TextIO] = None,
) -> BuildResult:
    """Detect, prepare, install and verify. Raises SetupError on a fatal step."""

    p = settings.palette
    installer = AptInstaller(runner)
    detector = HardwareDetector(runner)
    record = InstallRecord()

    vendor = install_prerequisites(settings, installer, detector, record)
    install_log.setup()

    strategy_cls = strategy_for(vendor)
    if strategy_cls is None:
        raise SetupError("No supported GPU detected (NVIDIA or AMD required)")

    print(p.paint(f"{strategy_cls.display_name} GPU detected", "green"), file=out)

    strategy = strategy_cls(settings, runner, installer, record)
    setup = strategy.run()

    print(StatusReporter(settings, runner).render(vendor), file=out)
    print(p.paint("Setup complete!", "green"), file=out)

    restart_needed = not strategy.driver_active()
    if restart_needed:
        print(p.paint(strategy.restart_reminder(), "yellow"), file=out)

    logger.debug("build: ran=%d failed=%s", len(record.ran_steps), record.failed_steps)
    return BuildResult(vendor=vendor, setup=setup, record=record, restart_needed=restart_needed)
