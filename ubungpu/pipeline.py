from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List

from .lib.pkg import AptInstaller, InstallStatus, PkgOutcome

logger = logging.getLogger(__name__)


class SetupError(RuntimeError):
    """A fatal step failed; the run stops where it is."""


@dataclass(frozen=True)
class InstallStep:
    """A single idempotent action and what its failure means."""

    step_id: str
    description: str
    failure: str
    fatal: bool = False


@dataclass
class InstallRecord:
    """What one build invocation did, in order."""

    ran_steps: List[str] = field(default_factory=list)
    failed_steps: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def fail(self, step: InstallStep, detail: str = "") -> None:
        self.failed_steps.append(step.step_id)
        if detail:
            logger.debug("%s: %s", step.step_id, detail)
        if step.fatal:
            raise SetupError(step.failure)
        self.warn(step.failure)

    def warn(self, message: str) -> None:
        self.warnings.append(message)
        logger.warning(message)

    def run_step(self, step: InstallStep, action: Callable[[], bool]) -> bool:
        if step.description:
            logger.info(step.description)
        self.ran_steps.append(step.step_id)
        if action():
            return True
        self.fail(step)
        return False

    def ensure_package(
        self,
        installer: AptInstaller,
        package: str,
        *,
        fatal: bool = False,
        quiet_if_present: bool = False,
    ) -> PkgOutcome:
        step = InstallStep(
            step_id=f"install:{package}",
            description="",
            failure=f"Failed to install {package}",
            fatal=fatal,
        )
        self.ran_steps.append(step.step_id)
        outcome = installer.ensure_installed(package)
        if outcome.status is InstallStatus.ALREADY_PRESENT:
            if not quiet_if_present:
                logger.info("%s is already installed", package)
        elif outcome.status is InstallStatus.FAILED:
            self.fail(step, outcome.reason)
        return outcome
