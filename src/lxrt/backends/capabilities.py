"""Host capability detection for backend selection.

``detect()`` probes torch once per process and caches the result. It never
raises: any probing failure reports the conservative, CPU-only descriptor.
"""

import os
from dataclasses import dataclass
from typing import ClassVar, Optional

from lxrt.core.constants import DType
from lxrt.core.logging import get_logger

logger = get_logger(__name__)

_cached: Optional["CapabilityDescriptor"] = None


@dataclass(frozen=True)
class CapabilityDescriptor:
    """Detected execution features of the host.

    Use ``detect()`` rather than building one by hand, except in tests.
    """

    accelerated_compute_available: bool
    preferred_precision: DType
    accelerator: Optional[str] = None  # "cuda", "mps" or None
    device_name: Optional[str] = None
    gpu_mem_gb: float = 0.0
    cpu_count: int = 1

    _DEFAULT_CORES: ClassVar[int] = 2

    @classmethod
    def conservative(cls) -> "CapabilityDescriptor":
        """CPU-only descriptor used when detection fails."""
        return cls(
            accelerated_compute_available=False,
            preferred_precision=DType.FP32,
            cpu_count=os.cpu_count() or cls._DEFAULT_CORES,
        )

    @classmethod
    def probe(cls) -> "CapabilityDescriptor":
        """Query torch for CUDA or Apple MPS support (uncached)."""
        import torch

        cpu_count = os.cpu_count() or cls._DEFAULT_CORES

        if torch.cuda.is_available():
            props = torch.cuda.get_device_properties(0)
            return cls(
                accelerated_compute_available=True,
                preferred_precision=DType.FP16,
                accelerator="cuda",
                device_name=props.name,
                gpu_mem_gb=props.total_memory / 1e9,
                cpu_count=cpu_count,
            )

        mps = getattr(torch.backends, "mps", None)
        if mps is not None and mps.is_available():
            return cls(
                accelerated_compute_available=True,
                preferred_precision=DType.FP16,
                accelerator="mps",
                device_name="Apple MPS",
                cpu_count=cpu_count,
            )

        return cls(
            accelerated_compute_available=False,
            preferred_precision=DType.FP32,
            cpu_count=cpu_count,
        )


def detect() -> CapabilityDescriptor:
    """Detect host capabilities, memoized for the process lifetime."""
    global _cached
    if _cached is not None:
        return _cached

    try:
        descriptor = CapabilityDescriptor.probe()
    except Exception as e:  # torch missing, driver errors, ...
        logger.warning("Capability detection failed, assuming CPU only: %s", e)
        descriptor = CapabilityDescriptor.conservative()

    if descriptor.accelerated_compute_available:
        logger.info(
            "Accelerated compute: %s (%s, %.0fGB)",
            descriptor.accelerator,
            descriptor.device_name,
            descriptor.gpu_mem_gb,
        )
    else:
        logger.info("No accelerated compute detected (%d CPU cores)", descriptor.cpu_count)

    _cached = descriptor
    return descriptor


def reset_cache() -> None:
    """Forget the cached descriptor. Tests only."""
    global _cached
    _cached = None
