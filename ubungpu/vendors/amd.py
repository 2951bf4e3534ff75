from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import List, Optional

from ..lib.env import distro_release, invoking_user
from ..lib.hwdetect import VendorKind
from ..pipeline import InstallStep
from .base import StatusSection, VendorSetup

logger = logging.getLogger(__name__)

KERNEL_MODULE = "amdgpu"

REQUIRED_PACKAGES = (
    "linux-headers-generic",
    "wget",
    "gnupg2",
)

ROCM_PACKAGES = (
    "rocm-hip-libraries",
    "rocm-dev",
    "rocm-utils",
    "rocm-hip-sdk",
    "hip-runtime-amd",
)

ROCM_PATHS = "/opt/rocm/bin:/opt/rocm/rocprofiler/bin:/opt/rocm/opencl/bin"
ROCM_LIBRARY_PATHS = "/opt/rocm/lib:/opt/rocm/lib64"


def render_rocm_profile() -> str:
    return (
        f"export PATH=$PATH:{ROCM_PATHS}\n"
        f"export LD_LIBRARY_PATH=$LD_LIBRARY_PATH:{ROCM_LIBRARY_PATHS}\n"
    )


def parse_modinfo_version(modinfo: str) -> str:
    """Module version from `modinfo` output; in-tree builds only carry vermagic."""
    fields = {}
    for line in modinfo.splitlines():
        key, sep, value = line.partition(":")
        if sep and key.strip() not in fields:
            fields[key.strip()] = value.strip()
    if fields.get("version"):
        return fields["version"].split()[0]
    if fields.get("vermagic"):
        return fields["vermagic"].split()[0]
    return "unknown"


class AmdSetup(VendorSetup):
    vendor = VendorKind.AMD
    display_name = "AMD"
    prerequisite_packages = ("clinfo",)

    monitor_package = "rocm-smi"

    # Set by check_prerequisites(); the driver phase is skipped when True.
    module_loaded = False

    def driver_active(self) -> bool:
        r = self.runner.run(["lsmod"])
        if not r.ok:
            return False
        return any(ln.split()[:1] == [KERNEL_MODULE] for ln in r.stdout.splitlines())

    def query_driver_version(self) -> str:
        r = self.runner.run(["modinfo", KERNEL_MODULE])
        return parse_modinfo_version(r.stdout) if r.ok else "unknown"

    def query_toolkit_version(self) -> str:
        r = self.runner.run(["rocm-smi", "--version"])
        return (r.stdout.strip() or "unknown") if r.ok else "unknown"

    def rocm_channel(self, release: str) -> str:
        channel = self.settings.rocm_channels.get(release)
        if channel is None:
            self.record.warn(f"Untested Ubuntu version: {release or 'unknown'}. Using latest ROCm version.")
            channel = self.settings.rocm_fallback_channel
        return channel

    def check_prerequisites(self) -> None:
        self.module_loaded = self.driver_active()
        if self.module_loaded:
            return

        logger.info("Installing AMDGPU drivers...")
        for package in REQUIRED_PACKAGES:
            self.record.ensure_package(self.installer, package, fatal=True, quiet_if_present=True)

    def ensure_driver(self) -> None:
        if self.module_loaded:
            self.driver_version = self.query_driver_version()
            logger.info("AMDGPU drivers are loaded (Version: %s)", self.driver_version)
            return

        self._add_rocm_repository()
        self.record.run_step(
            InstallStep(
                step_id="amd:apt-update",
                description="",
                failure="Failed to update package lists after adding ROCm repository",
                fatal=True,
            ),
            self.installer.update,
        )

    def _add_rocm_repository(self) -> None:
        s = self.settings
        logger.info("Adding ROCm repository...")

        key = self.runner.run(["wget", "-q", "-O", "-", s.rocm_key_url])
        if not key.ok or not key.stdout.strip():
            self.record.fail(
                InstallStep("amd:rocm-key", "", "Failed to add ROCm GPG key", fatal=True),
                key.stderr.strip(),
            )

        keyring = Path(s.rocm_keyring_path)
        self.record.run_step(
            InstallStep("amd:rocm-keyring", "", "Failed to add ROCm GPG key", fatal=True),
            lambda: self._write_keyring(keyring, key.stdout),
        )

        channel = self.rocm_channel(distro_release(self.runner))
        line = f"deb [arch=amd64 signed-by={keyring}] {s.rocm_repo_base}/{channel} ubuntu main\n"
        self.record.run_step(
            InstallStep("amd:rocm-list", "", f"Failed to write {s.rocm_list_path}", fatal=True),
            lambda: self._write_file(Path(s.rocm_list_path), line),
        )
        logger.info("ROCm %s repository registered", channel)

    def _write_keyring(self, keyring: Path, armored: str) -> bool:
        try:
            keyring.parent.mkdir(parents=True, exist_ok=True)
        except OSError:
            return False
        r = self.runner.run(["gpg", "--dearmor", "--yes", "-o", str(keyring)], input_text=armored)
        return r.ok

    def _write_file(self, path: Path, content: str, mode: int = 0o644) -> bool:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
            os.chmod(path, mode)
        except OSError as e:
            logger.debug("write %s: %s", path, e)
            return False
        return True

    def ensure_toolkit(self) -> None:
        if not self.module_loaded:
            logger.info("Installing ROCm packages...")
            for package in ROCM_PACKAGES:
                self.record.ensure_package(self.installer, package, quiet_if_present=True)

        if self.runner.which("rocm-smi"):
            self.toolkit_version = self.query_toolkit_version()
            logger.info("ROCm is already installed (Version: %s)", self.toolkit_version)
            return

        logger.info("Installing ROCm tools...")
        self.record.ensure_package(self.installer, self.monitor_package, fatal=True, quiet_if_present=True)
        self._grant_device_access()
        self._write_environment()
        self.toolkit_version = self.query_toolkit_version()
        logger.info("ROCm tools installed (Version: %s)", self.toolkit_version)

    def _grant_device_access(self) -> None:
        user = invoking_user()
        if user is None:
            return
        for group in self.settings.device_groups:
            if self.runner.run(["usermod", "-a", "-G", group, user]).ok:
                logger.info("Added user %s to %s group", user, group)
            else:
                self.record.warn(f"Failed to add user {user} to {group} group")

    def _write_environment(self) -> None:
        profile = Path(self.settings.rocm_profile_path)
        if profile.exists():
            return
        if self._write_file(profile, render_rocm_profile()):
            logger.info("Added ROCm environment variables")
        else:
            self.record.warn(f"Failed to write {profile}")

    def verify(self) -> None:
        logger.info("Verifying ROCm installation...")
        if self.runner.succeeds(["rocm-smi", "--showdriverversion"]):
            logger.info("ROCm installation verified successfully")
        else:
            self.record.warn("ROCm installation might not be complete. A system restart may be required.")

    def status_sections(self) -> List[StatusSection]:
        sections: List[StatusSection] = []
        if self.driver_active():
            r = self.runner.run(["modinfo", KERNEL_MODULE])
            details = [
                ln for ln in r.stdout.splitlines()
                if any(k in ln.split(":", 1)[0] for k in ("version", "description"))
            ]
            sections.append(("AMD Driver Details:", "\n".join(details) or "unknown"))
            rocm = self.runner.run(["rocm-smi", "--version"])
            sections.append(("ROCm Version:", rocm.stdout.strip() if rocm.ok else "ROCm not installed"))
        else:
            sections.append(("AMD Driver Details:", "AMDGPU drivers not loaded"))

        sections.append(("Compute Devices:", self._opencl_devices() or "No OpenCL devices found"))
        return sections

    def _opencl_devices(self) -> Optional[str]:
        r = self.runner.run(["clinfo"])
        if not r.ok:
            return None
        lines = [ln.strip() for ln in r.stdout.splitlines() if "Platform Name" in ln or "Device Name" in ln]
        return "\n".join(lines) or None
