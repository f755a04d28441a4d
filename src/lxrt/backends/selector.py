"""Backend selection: turn a modality config into concrete load settings.

Resolves the device and dtype (explicit config first, detected capabilities
otherwise), the device fallback chain, the torch device string and the
thread budget of the wasm CPU path.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from lxrt.backends.capabilities import CapabilityDescriptor
from lxrt.config.schemas import ModalityConfig
from lxrt.core.constants import Defaults, Device, DType
from lxrt.core.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class LoadSettings:
    """Everything an engine loader needs for one load attempt."""

    model: str
    device: Device
    dtype: DType
    torch_device: str
    cache_dir: Optional[Path] = None
    num_threads: Optional[int] = None

    @property
    def cache_folder(self) -> Optional[str]:
        return str(self.cache_dir) if self.cache_dir else None


class BackendSelector:
    """Maps configs onto load settings for the detected host."""

    def __init__(self, capabilities: CapabilityDescriptor):
        self.capabilities = capabilities

    def default_device(self) -> Device:
        return Device.GPU if self.capabilities.accelerated_compute_available else Device.CPU

    def default_dtype(self, device: Device) -> DType:
        if device == Device.GPU:
            return self.capabilities.preferred_precision
        return DType.FP32

    def fallback_order(self, device: Device) -> list[Device]:
        """Devices to try, in order, for a requested device."""
        if device == Device.GPU:
            if self.capabilities.accelerated_compute_available:
                return [Device.GPU, Device.WASM]
            return [Device.WASM]
        return [device]

    def wasm_threads(self) -> int:
        return min(Defaults.MAX_WASM_THREADS, max(1, self.capabilities.cpu_count - 1))

    def torch_device(self, device: Device) -> str:
        if device == Device.GPU:
            return self.capabilities.accelerator or "cpu"
        return "cpu"

    def resolve(
        self,
        config: ModalityConfig,
        model: str,
        cache_dir: Optional[Path] = None,
        num_threads: Optional[int] = None,
    ) -> list[LoadSettings]:
        """Build one LoadSettings per device in the fallback chain.

        Args:
            config: The modality's config
            model: Resolved model id (presets already expanded)
            cache_dir: Provider-wide cache dir, used when the config has none
            num_threads: Explicit thread count for the wasm path

        Returns:
            Non-empty list, preferred device first
        """
        requested = config.device or self.default_device()
        requested_dtype = config.dtype or self.default_dtype(requested)

        chain = []
        for device in self.fallback_order(requested):
            dtype = requested_dtype
            if device != Device.GPU and dtype != DType.FP32:
                # fp16/q8/q4 kernels need an accelerator
                logger.debug("dtype %s not supported on %s, using fp32", dtype.value, device.value)
                dtype = DType.FP32
            chain.append(
                LoadSettings(
                    model=model,
                    device=device,
                    dtype=dtype,
                    torch_device=self.torch_device(device),
                    cache_dir=config.cache_dir or cache_dir,
                    num_threads=(num_threads or self.wasm_threads()) if device == Device.WASM else None,
                )
            )

        if chain[0].device != requested:
            logger.warning(
                "%s requested for %s but accelerated compute is unavailable, using %s",
                requested.value,
                model,
                chain[0].device.value,
            )
        return chain


def torch_dtype(dtype: DType) -> Any:
    """Map an unquantized DType to the torch dtype."""
    import torch

    return torch.float16 if dtype == DType.FP16 else torch.float32


def quantization_config(dtype: DType) -> Any:
    """BitsAndBytesConfig for q8/q4, None otherwise."""
    if dtype not in DType.quantized():
        return None

    import torch
    from transformers import BitsAndBytesConfig

    if dtype == DType.Q4:
        return BitsAndBytesConfig(
            load_in_4bit=True,
            bnb_4bit_compute_dtype=torch.float16,
            bnb_4bit_use_double_quant=True,
            bnb_4bit_quant_type="nf4",
        )
    return BitsAndBytesConfig(load_in_8bit=True)
