from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, List, Tuple

from .command import CommandRunner

logger = logging.getLogger(__name__)


class VendorKind(str, Enum):
    NVIDIA = "nvidia"
    AMD = "amd"
    UNKNOWN = "unknown"


# Checked in order; the first vendor with a matching marker wins.
_PCI_MARKERS: Tuple[Tuple[VendorKind, Tuple[str, ...]], ...] = (
    (VendorKind.NVIDIA, ("nvidia",)),
    (VendorKind.AMD, ("amd", "radeon")),
)

_MARKERS_BY_VENDOR: Dict[VendorKind, Tuple[str, ...]] = dict(_PCI_MARKERS)


def classify_pci_listing(listing: str) -> VendorKind:
    text = listing.lower()
    for vendor, markers in _PCI_MARKERS:
        if any(m in text for m in markers):
            return vendor
    return VendorKind.UNKNOWN


def matching_lines(listing: str, vendor: VendorKind) -> List[str]:
    markers = _MARKERS_BY_VENDOR.get(vendor, ())
    return [ln for ln in listing.splitlines() if any(m in ln.lower() for m in markers)]


class HardwareDetector:
    """Classifies the host accelerator from the live PCI device list."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def pci_listing(self) -> str:
        r = self.runner.run(["lspci"])
        # No lspci (or no PCI bus) is just an empty listing.
        return r.stdout if r.ok else ""

    def detect(self) -> VendorKind:
        vendor = classify_pci_listing(self.pci_listing())
        logger.debug("GPU vendor: %s", vendor.value)
        return vendor

    def pci_entries(self, vendor: VendorKind) -> List[str]:
        return matching_lines(self.pci_listing(), vendor)
