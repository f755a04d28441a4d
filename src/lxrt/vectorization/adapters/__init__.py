"""Built-in vectorization adapters."""

from .audio import AUDIO_MIME_TYPES, AudioEmbeddingAdapter
from .base import VectorizationAdapter
from .image import ImageEmbeddingAdapter
from .text import TextContentAdapter
from .video import VideoAsAudioAdapter

__all__ = [
    "VectorizationAdapter",
    "TextContentAdapter",
    "ImageEmbeddingAdapter",
    "AudioEmbeddingAdapter",
    "VideoAsAudioAdapter",
    "AUDIO_MIME_TYPES",
]
