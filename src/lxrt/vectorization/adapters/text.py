"""Text content adapter, routed through the provider's embedding model."""

from collections.abc import Awaitable, Callable, Sequence

from lxrt.core.constants import VectorModality
from lxrt.core.exceptions import ContentDecodeError
from lxrt.core.types import EmbeddingVector

from ..content import Content
from .base import VectorizationAdapter

TextEmbedder = Callable[[Sequence[str]], Awaitable[list[EmbeddingVector]]]

TEXT_MIME_TYPES = frozenset({"application/json"})


class TextContentAdapter(VectorizationAdapter):
    """Embeds ``text/*`` and JSON content as UTF-8 text."""

    name = "text"

    def __init__(self, embed_texts: TextEmbedder):
        self._embed_texts = embed_texts

    def get_supported_modalities(self) -> frozenset[VectorModality]:
        return frozenset({VectorModality.TEXT})

    def can_handle(self, content: Content) -> bool:
        return content.major_type == "text" or content.mime_type in TEXT_MIME_TYPES

    async def embed(self, content: Content) -> EmbeddingVector:
        try:
            text = content.data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise ContentDecodeError("Text content is not valid UTF-8", details={"name": content.name}, cause=e) from e
        vectors = await self._embed_texts([text])
        return vectors[0]
