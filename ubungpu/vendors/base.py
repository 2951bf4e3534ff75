from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional, Tuple

from ..config import Settings
from ..lib.command import CommandRunner
from ..lib.hwdetect import VendorKind
from ..lib.pkg import AptInstaller
from ..pipeline import InstallRecord

logger = logging.getLogger(__name__)


class SetupState(IntEnum):
    NOT_STARTED = 0
    PREREQUISITES_CHECKED = 1
    DRIVER_ENSURED = 2
    TOOLKIT_ENSURED = 3
    VERIFIED = 4


@dataclass(frozen=True)
class SetupResult:
    vendor: VendorKind
    state: SetupState
    driver_version: Optional[str] = None
    toolkit_version: Optional[str] = None
    restart_required: bool = False


# (title, body) pairs rendered by the status report.
StatusSection = Tuple[str, str]


class VendorSetup:
    """Driver + compute toolkit setup for one GPU vendor.

    Subclasses implement the four phases; run() walks them in order and never
    retries. A fatal step raises SetupError and leaves `state` at the last
    phase that completed.
    """

    vendor: VendorKind = VendorKind.UNKNOWN
    display_name: str = ""
    # Small package subset installed during the shared prerequisite pass.
    prerequisite_packages: Tuple[str, ...] = ()

    def __init__(
        self,
        settings: Settings,
        runner: CommandRunner,
        installer: AptInstaller,
        record: Optional[InstallRecord] = None,
    ):
        self.settings = settings
        self.runner = runner
        self.installer = installer
        self.record = record if record is not None else InstallRecord()
        self.state = SetupState.NOT_STARTED
        self.driver_version: Optional[str] = None
        self.toolkit_version: Optional[str] = None
        self.restart_required = False

    def _advance(self, state: SetupState) -> None:
        logger.debug("%s setup: %s -> %s", self.vendor.value, self.state.name, state.name)
        self.state = state

    def run(self) -> SetupResult:
        logger.info("%s GPU detected. Checking current setup...", self.display_name)

        self.check_prerequisites()
        self._advance(SetupState.PREREQUISITES_CHECKED)
        self.ensure_driver()
        self._advance(SetupState.DRIVER_ENSURED)
        self.ensure_toolkit()
        self._advance(SetupState.TOOLKIT_ENSURED)
        self.verify()
        self._advance(SetupState.VERIFIED)

        return SetupResult(
            vendor=self.vendor,
            state=self.state,
            driver_version=self.driver_version,
            toolkit_version=self.toolkit_version,
            restart_required=self.restart_required,
        )

    def check_prerequisites(self) -> None:
        raise NotImplementedError

    def ensure_driver(self) -> None:
        raise NotImplementedError

    def ensure_toolkit(self) -> None:
        raise NotImplementedError

    def verify(self) -> None:
        raise NotImplementedError

    # Live queries, shared with the status report.

    def driver_active(self) -> bool:
        raise NotImplementedError

    def restart_reminder(self) -> str:
        return f"Please restart your system to complete the {self.display_name} driver installation."

    def status_sections(self) -> List[StatusSection]:
        raise NotImplementedError
