"""Contrastive image (CLIP) and audio (CLAP) embedding engines."""

import asyncio
import io

import numpy as np

from lxrt.backends.selector import LoadSettings, torch_dtype
from lxrt.core.constants import Device, DType
from lxrt.core.exceptions import ContentDecodeError
from lxrt.core.logging import get_logger

from .base import Engine
from .resources import apply_thread_budget, clear_device_memory

logger = get_logger(__name__)


def _features(output):
    """Normalize ``get_*_features`` output to an L2-normalized float32 vector."""
    import torch

    if not torch.is_tensor(output):
        output = output.pooler_output
    output = output / output.norm(dim=-1, keepdim=True)
    return output[0].detach().cpu().float().numpy()


class _ContrastiveEngine(Engine):
    def __init__(self, model, processor, settings: LoadSettings):
        self._model = model
        self._processor = processor
        self.model_name = settings.model
        self._device = settings.torch_device
        self._dtype = torch_dtype(settings.dtype)

    def _to_device(self, inputs):
        inputs = inputs.to(self._device)
        for key, value in inputs.items():
            if value.is_floating_point():
                inputs[key] = value.to(self._dtype)
        return inputs

    def unload(self) -> None:
        self._model.to("cpu")
        del self._model
        del self._processor
        clear_device_memory()
        logger.debug("Unloaded %s", self.model_name)


class ClipImageEngine(_ContrastiveEngine):
    """CLIP vision tower: encoded image bytes to a unit vector."""

    def _embed_sync(self, data: bytes) -> np.ndarray:
        import torch
        from PIL import Image, UnidentifiedImageError

        try:
            image = Image.open(io.BytesIO(data)).convert("RGB")
        except (UnidentifiedImageError, OSError) as e:
            raise ContentDecodeError("Unreadable image", cause=e) from e

        inputs = self._to_device(self._processor(images=image, return_tensors="pt"))
        with torch.no_grad():
            return _features(self._model.get_image_features(**inputs))

    async def embed_image(self, data: bytes) -> np.ndarray:
        return await asyncio.to_thread(self._embed_sync, data)


class ClapAudioEngine(_ContrastiveEngine):
    """CLAP audio tower: mono samples at the processor's rate to a unit vector."""

    @property
    def sampling_rate(self) -> int:
        return self._processor.feature_extractor.sampling_rate

    def _embed_sync(self, samples: np.ndarray) -> np.ndarray:
        import torch

        inputs = self._processor(audio=samples, sampling_rate=self.sampling_rate, return_tensors="pt")
        inputs = self._to_device(inputs)
        with torch.no_grad():
            return _features(self._model.get_audio_features(**inputs))

    async def embed_audio(self, samples: np.ndarray) -> np.ndarray:
        return await asyncio.to_thread(self._embed_sync, samples)


def _load_sync(engine_cls, model_cls_name: str, processor_cls_name: str, settings: LoadSettings):
    import transformers

    if settings.device == Device.WASM:
        apply_thread_budget(settings.num_threads)

    # Quantization is not worth it for these towers; q8/q4 run in fp16
    if settings.dtype in DType.quantized():
        settings = LoadSettings(
            model=settings.model,
            device=settings.device,
            dtype=DType.FP16,
            torch_device=settings.torch_device,
            cache_dir=settings.cache_dir,
            num_threads=settings.num_threads,
        )

    model_cls = getattr(transformers, model_cls_name)
    processor_cls = getattr(transformers, processor_cls_name)
    processor = processor_cls.from_pretrained(settings.model, cache_dir=settings.cache_folder)
    model = model_cls.from_pretrained(
        settings.model,
        cache_dir=settings.cache_folder,
        torch_dtype=torch_dtype(settings.dtype),
    ).to(settings.torch_device)
    model.eval()
    return engine_cls(model, processor, settings)


async def load_clip_engine(settings: LoadSettings) -> ClipImageEngine:
    """Engine loader for the image embedding adapter."""
    return await asyncio.to_thread(_load_sync, ClipImageEngine, "CLIPModel", "CLIPProcessor", settings)


async def load_clap_engine(settings: LoadSettings) -> ClapAudioEngine:
    """Engine loader for the audio embedding adapter."""
    return await asyncio.to_thread(_load_sync, ClapAudioEngine, "ClapModel", "ClapProcessor", settings)
