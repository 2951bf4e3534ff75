from __future__ import annotations

import logging
from typing import List, Optional

from ..lib.hwdetect import VendorKind
from ..pipeline import InstallStep
from .base import StatusSection, VendorSetup

logger = logging.getLogger(__name__)


def parse_nvcc_release(banner: str) -> Optional[str]:
    """'Cuda compilation tools, release 12.0, V12.0.140' -> '12.0'."""
    for line in banner.splitlines():
        tokens = line.split()
        if "release" in tokens:
            i = tokens.index("release")
            if i + 1 < len(tokens):
                return tokens[i + 1].rstrip(",")
    return None


class NvidiaSetup(VendorSetup):
    vendor = VendorKind.NVIDIA
    display_name = "NVIDIA"
    prerequisite_packages = ("ubuntu-drivers-common", "dkms")

    helper_package = "ubuntu-drivers-common"
    toolkit_package = "nvidia-cuda-toolkit"

    def driver_active(self) -> bool:
        return self.runner.succeeds(["nvidia-smi"])

    def query_driver_version(self) -> str:
        r = self.runner.run(["nvidia-smi", "--query-gpu=driver_version", "--format=csv,noheader"])
        lines = r.stdout.strip().splitlines() if r.ok else []
        return lines[0].strip() if lines else "unknown"

    def query_toolkit_version(self) -> Optional[str]:
        r = self.runner.run(["nvcc", "--version"])
        return parse_nvcc_release(r.stdout) if r.ok else None

    def check_prerequisites(self) -> None:
        if self.runner.which("ubuntu-drivers"):
            return
        # Without the helper we cannot install a driver, unless one already works.
        fatal = not self.driver_active()
        self.record.ensure_package(self.installer, self.helper_package, fatal=fatal, quiet_if_present=True)

    def ensure_driver(self) -> None:
        if self.driver_active():
            self.driver_version = self.query_driver_version()
            logger.info("NVIDIA drivers are already installed (Version: %s)", self.driver_version)
            return

        self.record.run_step(
            InstallStep(
                step_id="nvidia:autoinstall",
                description="Installing NVIDIA drivers...",
                failure="Failed to install NVIDIA drivers",
                fatal=True,
            ),
            lambda: self.runner.run(["ubuntu-drivers", "autoinstall"], capture=False).ok,
        )
        self.restart_required = True
        logger.info("Drivers installed. A system restart will be required.")

    def ensure_toolkit(self) -> None:
        if self.runner.which("nvcc"):
            self.toolkit_version = self.query_toolkit_version() or "unknown"
            logger.info("CUDA toolkit is already installed (Version: %s)", self.toolkit_version)
            return

        logger.info("Installing CUDA toolkit...")
        outcome = self.record.ensure_package(self.installer, self.toolkit_package, quiet_if_present=True)
        if not outcome.ok:
            return
        self.toolkit_version = self.query_toolkit_version() or "unknown"
        logger.info("CUDA toolkit installed (Version: %s)", self.toolkit_version)

    def verify(self) -> None:
        if self.restart_required:
            # A freshly installed driver only loads after a reboot.
            return
        if not self.driver_active():
            self.record.warn("NVIDIA driver is not responding. A system restart may be required.")

    def status_sections(self) -> List[StatusSection]:
        smi = self.runner.run(["nvidia-smi"])
        driver = smi.stdout.rstrip() if smi.ok else "NVIDIA drivers not loaded"

        if self.runner.which("nvcc"):
            nvcc = self.runner.run(["nvcc", "--version"])
            cuda = nvcc.stdout.rstrip() or "unknown"
        else:
            cuda = "CUDA not installed"

        return [
            ("NVIDIA Driver Details:", driver),
            ("CUDA Version:", cuda),
        ]
