"""Device capability detection and analyzer tier selection.

Only the DSP tier exists today. Higher tiers are declared so that the
factory and callers can already reason about them, but selection always
lands on ``AnalyzerTier.LOW``.
"""

import importlib.util
import os
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

from ..logger import get_logger

logger = get_logger(__name__)

# Python ML runtimes a future accelerated tier could run on
ML_BACKENDS = ("torch", "tensorflow", "onnxruntime")


class AnalyzerTier(Enum):
    """Capability classes, best first."""

    HIGH = "high"  # GPU-accelerated ML
    MEDIUM = "medium"  # lighter ML model
    LOW = "low"  # DSP algorithms only


@dataclass
class DeviceCapabilities:
    """What the current device and runtime offer."""

    tier: AnalyzerTier = AnalyzerTier.LOW
    backends: Dict[str, bool] = field(default_factory=dict)
    memory_gb: Optional[float] = None
    cores: int = 1
    is_mobile: bool = False


def _physical_memory_gb() -> Optional[float]:
    try:
        pages = os.sysconf("SC_PHYS_PAGES")
        page_size = os.sysconf("SC_PAGE_SIZE")
    except (AttributeError, ValueError, OSError):
        return None
    if pages <= 0 or page_size <= 0:
        return None
    return pages * page_size / 1024**3


def _is_mobile() -> bool:
    return sys.platform in ("android", "ios") or hasattr(sys, "getandroidapilevel")


def _backend_available(module_name: str) -> bool:
    try:
        return importlib.util.find_spec(module_name) is not None
    except (ImportError, ValueError):
        return False


def select_tier(capabilities: DeviceCapabilities) -> AnalyzerTier:
    """Pick the analyzer tier for a device.

    The inputs are informational for now: only the DSP tier is implemented,
    so every device gets ``AnalyzerTier.LOW``.
    """
    return AnalyzerTier.LOW


def detect_capabilities() -> DeviceCapabilities:
    """Inspect the runtime and classify it into a tier."""
    capabilities = DeviceCapabilities(
        backends={name: _backend_available(name) for name in ML_BACKENDS},
        memory_gb=_physical_memory_gb(),
        cores=os.cpu_count() or 1,
        is_mobile=_is_mobile(),
    )
    capabilities.tier = select_tier(capabilities)
    logger.debug(
        f"Capabilities: tier={capabilities.tier.value} backends={capabilities.backends} "
        f"memory={capabilities.memory_gb} cores={capabilities.cores} "
        f"mobile={capabilities.is_mobile}"
    )
    return capabilities


def tier_description(tier: AnalyzerTier) -> str:
    """Human-readable name of a tier."""
    descriptions = {
        AnalyzerTier.HIGH: "GPU-Accelerated ML",
        AnalyzerTier.MEDIUM: "Accelerated ML (lite)",
        AnalyzerTier.LOW: "DSP-Based Analysis",
    }
    return descriptions.get(tier, "DSP-Based Analysis")
