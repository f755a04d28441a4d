"""Video content adapter: embeds the audio track."""

import asyncio

from lxrt.core.constants import Defaults, VectorModality
from lxrt.core.logging import get_logger
from lxrt.core.types import EmbeddingVector
from lxrt.utils.audio import extract_audio_track

from ..content import Content
from .audio import AudioEmbeddingAdapter
from .base import VectorizationAdapter

logger = get_logger(__name__)


class VideoAsAudioAdapter(VectorizationAdapter):
    """Extracts the audio track of ``video/*`` content with ffmpeg and
    delegates to the audio adapter.

    The audio adapter is shared, not owned: the registry disposes it.
    """

    name = "video"

    def __init__(self, audio_adapter: AudioEmbeddingAdapter):
        self._audio = audio_adapter

    def get_supported_modalities(self) -> frozenset[VectorModality]:
        return frozenset({VectorModality.VIDEO})

    def can_handle(self, content: Content) -> bool:
        return content.major_type == "video"

    async def embed(self, content: Content) -> EmbeddingVector:
        wav = await asyncio.to_thread(extract_audio_track, content.data, Defaults.AUDIO_SAMPLING_RATE)
        logger.debug("Embedding audio track of %s", content.name or content.mime_type)
        return await self._audio.embed(Content(data=wav, mime_type="audio/wav", name=content.name))

    async def warmup(self) -> None:
        await self._audio.warmup()
