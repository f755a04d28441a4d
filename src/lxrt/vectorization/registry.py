"""Ordered registry of vectorization adapters.

Dispatch is first-match in registration order, so adding an adapter for
a new media type never changes how already-handled content is routed.
"""

from pathlib import Path
from typing import Optional

from lxrt.backends.selector import BackendSelector
from lxrt.core.constants import VectorModality
from lxrt.core.exceptions import UnsupportedContentError
from lxrt.core.logging import get_logger
from lxrt.core.types import EmbeddingVector

from .adapters.audio import AudioEmbeddingAdapter
from .adapters.base import VectorizationAdapter
from .adapters.image import ImageEmbeddingAdapter
from .adapters.text import TextContentAdapter, TextEmbedder
from .adapters.video import VideoAsAudioAdapter
from .content import Content

logger = get_logger(__name__)


class AdapterRegistry:
    """Capability-tagged adapters, consulted in registration order."""

    def __init__(self):
        self._adapters: list[VectorizationAdapter] = []

    def register(self, adapter: VectorizationAdapter) -> None:
        """Append an adapter; existing entries keep their order."""
        self._adapters.append(adapter)
        logger.debug("Registered adapter: %s", adapter)

    @property
    def adapters(self) -> list[VectorizationAdapter]:
        return list(self._adapters)

    def find(self, content: Content) -> Optional[VectorizationAdapter]:
        """First adapter claiming the content, or None."""
        for adapter in self._adapters:
            if adapter.can_handle(content):
                return adapter
        return None

    async def dispatch(self, content: Content) -> EmbeddingVector:
        """Embed content with the first adapter that claims it.

        Raises:
            UnsupportedContentError: No adapter claims the content
        """
        adapter = self.find(content)
        if adapter is None:
            raise UnsupportedContentError(content.mime_type)
        logger.debug("Dispatching %r to %s", content, adapter.name)
        return await adapter.embed(content)

    def names(self) -> list[str]:
        return [a.name for a in self._adapters]

    async def warmup(self, name: str) -> None:
        """Load the model behind the adapter registered as ``name``."""
        for adapter in self._adapters:
            if adapter.name == name:
                await adapter.warmup()
                return
        raise KeyError(name)

    def supported_modalities(self) -> frozenset[VectorModality]:
        modalities = set()
        for adapter in self._adapters:
            modalities |= adapter.get_supported_modalities()
        return frozenset(modalities)

    async def dispose(self) -> None:
        """Dispose every adapter; one failure does not stop the others."""
        for adapter in self._adapters:
            try:
                await adapter.dispose()
            except Exception as e:
                logger.warning("Error disposing adapter %s: %s", adapter.name, e)

    def __len__(self) -> int:
        return len(self._adapters)

    def __repr__(self) -> str:
        return f"AdapterRegistry({[a.name for a in self._adapters]})"


def create_default_registry(
    embed_texts: TextEmbedder,
    cache_dir: Optional[Path] = None,
    selector: Optional[BackendSelector] = None,
    implicit_warmup: bool = True,
) -> AdapterRegistry:
    """Registry with the built-in adapters: text, image, audio, video.

    Args:
        embed_texts: Coroutine embedding a batch of strings (the provider's text path)
        cache_dir: Model cache for the image and audio models
        selector: Backend selector shared with the provider
        implicit_warmup: Load the image and audio models on first use
    """
    audio = AudioEmbeddingAdapter(cache_dir=cache_dir, selector=selector, implicit_warmup=implicit_warmup)
    registry = AdapterRegistry()
    registry.register(TextContentAdapter(embed_texts))
    registry.register(
        ImageEmbeddingAdapter(cache_dir=cache_dir, selector=selector, implicit_warmup=implicit_warmup)
    )
    registry.register(audio)
    registry.register(VideoAsAudioAdapter(audio))
    return registry
