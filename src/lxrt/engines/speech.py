"""Speech synthesis and recognition engines on transformers pipelines."""

import asyncio
from typing import Any

import numpy as np

from lxrt.backends.selector import LoadSettings, torch_dtype
from lxrt.core.constants import Device, DType
from lxrt.core.logging import get_logger
from lxrt.core.types import AudioOutput

from .base import SpeechRecognitionEngine, SpeechSynthesisEngine
from .resources import apply_thread_budget, clear_device_memory

logger = get_logger(__name__)


class _PipelineEngine:
    """Shared ownership of a transformers pipeline."""

    def __init__(self, pipe, model_name: str):
        self._pipe = pipe
        self.model_name = model_name

    def unload(self) -> None:
        model = getattr(self._pipe, "model", None)
        if model is not None and hasattr(model, "to"):
            model.to("cpu")
        del self._pipe
        clear_device_memory()
        logger.debug("Pipeline unloaded: %s", self.model_name)


class HFSpeechSynthesisEngine(_PipelineEngine, SpeechSynthesisEngine):
    """``text-to-speech`` pipeline (VITS/MMS, SpeechT5, Bark, ...)."""

    async def synthesize(self, text: str, **options: Any) -> AudioOutput:
        forward_params = options.get("forward_params") or {}
        output = await asyncio.to_thread(self._pipe, text, forward_params=forward_params)
        samples = np.asarray(output["audio"], dtype=np.float32).squeeze()
        return AudioOutput(samples=samples, sampling_rate=int(output["sampling_rate"]))


class HFSpeechRecognitionEngine(_PipelineEngine, SpeechRecognitionEngine):
    """``automatic-speech-recognition`` pipeline (Whisper and friends)."""

    @property
    def sampling_rate(self) -> int:
        return self._pipe.feature_extractor.sampling_rate

    async def transcribe(self, samples: np.ndarray, sampling_rate: int, **options: Any) -> str:
        generate_kwargs = {}
        if options.get("language"):
            generate_kwargs["language"] = options["language"]
        if options.get("task"):
            generate_kwargs["task"] = options["task"]

        output = await asyncio.to_thread(
            self._pipe,
            {"raw": samples, "sampling_rate": sampling_rate},
            return_timestamps=options.get("return_timestamps", False),
            generate_kwargs=generate_kwargs or None,
        )
        return output["text"].strip()


def _build_pipeline(task: str, settings: LoadSettings):
    from transformers import pipeline

    if settings.device == Device.WASM:
        apply_thread_budget(settings.num_threads)

    dtype = DType.FP16 if settings.dtype in DType.quantized() else settings.dtype
    return pipeline(
        task,
        model=settings.model,
        device=settings.torch_device,
        torch_dtype=torch_dtype(dtype),
        model_kwargs={"cache_dir": settings.cache_folder} if settings.cache_dir else None,
    )


async def load_speech_synthesis_engine(settings: LoadSettings) -> HFSpeechSynthesisEngine:
    """Engine loader for the ``tts`` modality."""
    pipe = await asyncio.to_thread(_build_pipeline, "text-to-speech", settings)
    return HFSpeechSynthesisEngine(pipe, settings.model)


async def load_speech_recognition_engine(settings: LoadSettings) -> HFSpeechRecognitionEngine:
    """Engine loader for the ``asr`` modality."""
    pipe = await asyncio.to_thread(_build_pipeline, "automatic-speech-recognition", settings)
    return HFSpeechRecognitionEngine(pipe, settings.model)
