"""Multi-modal embedding: content routed to the adapter able to embed it."""

from .adapters import (
    AudioEmbeddingAdapter,
    ImageEmbeddingAdapter,
    TextContentAdapter,
    VectorizationAdapter,
    VideoAsAudioAdapter,
)
from .content import Content, guess_mime_type
from .registry import AdapterRegistry, create_default_registry

__all__ = [
    "Content",
    "guess_mime_type",
    "AdapterRegistry",
    "create_default_registry",
    "VectorizationAdapter",
    "TextContentAdapter",
    "ImageEmbeddingAdapter",
    "AudioEmbeddingAdapter",
    "VideoAsAudioAdapter",
]
