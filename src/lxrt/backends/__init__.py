"""Host capability detection and backend selection."""

from lxrt.backends.capabilities import CapabilityDescriptor, detect, reset_cache
from lxrt.backends.selector import BackendSelector, LoadSettings

__all__ = [
    "CapabilityDescriptor",
    "detect",
    "reset_cache",
    "BackendSelector",
    "LoadSettings",
]
