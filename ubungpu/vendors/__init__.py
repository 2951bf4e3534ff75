from typing import Dict, Optional, Type

from ..lib.hwdetect import VendorKind
from .amd import AmdSetup
from .base import SetupResult, SetupState, VendorSetup
from .nvidia import NvidiaSetup

STRATEGIES: Dict[VendorKind, Type[VendorSetup]] = {
    VendorKind.NVIDIA: NvidiaSetup,
    VendorKind.AMD: AmdSetup,
}


def strategy_for(vendor: VendorKind) -> Optional[Type[VendorSetup]]:
    return STRATEGIES.get(vendor)


__all__ = [
    "STRATEGIES",
    "AmdSetup",
    "NvidiaSetup",
    "SetupResult",
    "SetupState",
    "VendorSetup",
    "strategy_for",
]
