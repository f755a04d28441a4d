"""Base class for vectorization adapters."""

from abc import ABC, abstractmethod

from lxrt.core.constants import VectorModality
from lxrt.core.types import EmbeddingVector

from ..content import Content


class VectorizationAdapter(ABC):
    """Turns one kind of content into an embedding vector.

    ``can_handle`` must agree with ``get_supported_modalities``: an adapter
    only claims content whose major media type it lists.
    """

    name: str = "adapter"

    @abstractmethod
    def get_supported_modalities(self) -> frozenset[VectorModality]:
        """Content kinds this adapter embeds."""
        ...

    @abstractmethod
    def can_handle(self, content: Content) -> bool:
        """Whether this adapter claims the content."""
        ...

    @abstractmethod
    async def embed(self, content: Content) -> EmbeddingVector:
        """Embed claimed content."""
        ...

    @property
    def supported_modalities(self) -> frozenset[VectorModality]:
        return self.get_supported_modalities()

    async def warmup(self) -> None:
        """Load any model the adapter owns (no-op by default)."""

    async def dispose(self) -> None:
        """Release any model the adapter owns (no-op by default)."""

    def __repr__(self) -> str:
        kinds = ",".join(sorted(m.value for m in self.get_supported_modalities()))
        return f"{self.__class__.__name__}(name='{self.name}', modalities=[{kinds}])"
