"""Image content adapter (CLIP)."""

from pathlib import Path
from typing import Optional

from lxrt.backends.selector import BackendSelector
from lxrt.config.schemas import ModalityConfig
from lxrt.core.constants import Defaults, Device, DType, VectorModality
from lxrt.core.types import EmbeddingVector
from lxrt.engines.base import EngineLoader
from lxrt.engines.multimodal import load_clip_engine
from lxrt.models.controller import ModelController

from ..content import Content
from .base import VectorizationAdapter


class ImageEmbeddingAdapter(VectorizationAdapter):
    """Embeds ``image/*`` content with a CLIP vision tower.

    The model is loaded on first use through its own controller, so
    concurrent first calls share a single load.
    """

    name = "image"

    def __init__(
        self,
        model: str = Defaults.IMAGE_EMBEDDING_MODEL,
        device: Optional[Device] = None,
        dtype: Optional[DType] = None,
        cache_dir: Optional[Path] = None,
        selector: Optional[BackendSelector] = None,
        loader: EngineLoader = load_clip_engine,
        implicit_warmup: bool = True,
    ):
        self.controller = ModelController(
            "image",
            ModalityConfig(model=model, device=device, dtype=dtype),
            loader,
            selector=selector,
            cache_dir=cache_dir,
            implicit_warmup=implicit_warmup,
        )

    def get_supported_modalities(self) -> frozenset[VectorModality]:
        return frozenset({VectorModality.IMAGE})

    def can_handle(self, content: Content) -> bool:
        return content.major_type == "image"

    async def embed(self, content: Content) -> EmbeddingVector:
        vector = await self.controller.invoke(lambda engine: engine.embed_image(content.data))
        return [float(x) for x in vector]

    async def warmup(self) -> None:
        await self.controller.ensure_loaded()

    async def dispose(self) -> None:
        await self.controller.dispose()
