from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .command import CommandRunner

logger = logging.getLogger(__name__)

APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}


class InstallStatus(str, Enum):
    ALREADY_PRESENT = "already_present"
    INSTALLED = "installed"
    FAILED = "failed"


@dataclass(frozen=True)
class PkgOutcome:
    package: str
    status: InstallStatus
    reason: str = ""

    @property
    def ok(self) -> bool:
        return self.status is not InstallStatus.FAILED


class AptInstaller:
    """Idempotent package operations over apt-get/dpkg on the running host."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self, package: str) -> bool:
        r = self.runner.run(["dpkg-query", "-W", "-f=${Status}", package])
        return r.ok and "install ok installed" in r.stdout

    def ensure_installed(self, package: str) -> PkgOutcome:
        if self.is_installed(package):
            return PkgOutcome(package, InstallStatus.ALREADY_PRESENT)

        logger.info("Installing %s...", package)
        r = self.runner.run(["apt-get", "install", "-y", package], env=APT_ENV, capture=False)
        if not r.ok:
            reason = r.stderr.strip() or f"apt-get exited with {r.returncode}"
            return PkgOutcome(package, InstallStatus.FAILED, reason)
        return PkgOutcome(package, InstallStatus.INSTALLED)

    def update(self) -> bool:
        return self.runner.run(["apt-get", "update"], env=APT_ENV, capture=False).ok

    def upgrade(self) -> bool:
        return self.runner.run(["apt-get", "upgrade", "-y"], env=APT_ENV, capture=False).ok
