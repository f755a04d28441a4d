"""Audio content adapter (CLAP)."""

import asyncio
import shutil
from pathlib import Path
from typing import Optional

from lxrt.backends.selector import BackendSelector
from lxrt.config.schemas import ModalityConfig
from lxrt.core.constants import Defaults, Device, DType, VectorModality
from lxrt.core.exceptions import ContentDecodeError
from lxrt.core.logging import get_logger
from lxrt.core.types import EmbeddingVector
from lxrt.engines.base import EngineLoader
from lxrt.engines.multimodal import load_clap_engine
from lxrt.models.controller import ModelController
from lxrt.utils.audio import decode_audio, extract_audio_track

from ..content import Content
from .base import VectorizationAdapter

logger = get_logger(__name__)

AUDIO_MIME_TYPES = frozenset(
    {
        "audio/mpeg",
        "audio/mp3",
        "audio/wav",
        "audio/x-wav",
        "audio/wave",
        "audio/ogg",
        "audio/mp4",
        "audio/x-m4a",
        "audio/aac",
        "audio/flac",
        "audio/x-flac",
        "audio/webm",
    }
)


def load_waveform(data: bytes, sampling_rate: int = Defaults.AUDIO_SAMPLING_RATE):
    """Decode to mono, resample and peak-normalize.

    Formats libsndfile cannot read (aac, m4a, webm) are transcoded with
    ffmpeg first when it is installed.
    """
    try:
        samples, _ = decode_audio(data, target_rate=sampling_rate, normalize=True)
    except ContentDecodeError:
        if not shutil.which("ffmpeg"):
            raise
        logger.debug("soundfile could not decode audio, transcoding with ffmpeg")
        wav = extract_audio_track(data, sampling_rate)
        samples, _ = decode_audio(wav, target_rate=sampling_rate, normalize=True)
    return samples


class AudioEmbeddingAdapter(VectorizationAdapter):
    """Embeds audio content with a CLAP audio tower at 48 kHz mono."""

    name = "audio"

    def __init__(
        self,
        model: str = Defaults.AUDIO_EMBEDDING_MODEL,
        device: Optional[Device] = None,
        dtype: Optional[DType] = None,
        cache_dir: Optional[Path] = None,
        selector: Optional[BackendSelector] = None,
        loader: EngineLoader = load_clap_engine,
        implicit_warmup: bool = True,
    ):
        self.controller = ModelController(
            "audio",
            ModalityConfig(model=model, device=device, dtype=dtype),
            loader,
            selector=selector,
            cache_dir=cache_dir,
            implicit_warmup=implicit_warmup,
        )

    def get_supported_modalities(self) -> frozenset[VectorModality]:
        return frozenset({VectorModality.AUDIO})

    def can_handle(self, content: Content) -> bool:
        return content.mime_type in AUDIO_MIME_TYPES

    async def embed(self, content: Content) -> EmbeddingVector:
        samples = await asyncio.to_thread(load_waveform, content.data)
        if samples.size == 0:
            raise ContentDecodeError("Audio content is empty", details={"name": content.name})
        vector = await self.controller.invoke(lambda engine: engine.embed_audio(samples))
        return [float(x) for x in vector]

    async def warmup(self) -> None:
        await self.controller.ensure_loaded()

    async def dispose(self) -> None:
        await self.controller.dispose()
