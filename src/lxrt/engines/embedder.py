"""SentenceTransformer-based text embedding engine."""

import asyncio
import os
from typing import TYPE_CHECKING, Sequence

# Disable tokenizers parallelism to avoid fork warnings with worker threads
os.environ.setdefault("TOKENIZERS_PARALLELISM", "false")

import numpy as np

from lxrt.backends.selector import LoadSettings, torch_dtype
from lxrt.core.constants import Device, DType
from lxrt.core.logging import get_logger

from .base import EmbeddingEngine
from .resources import apply_thread_budget, clear_device_memory

if TYPE_CHECKING:
    from sentence_transformers import SentenceTransformer

logger = get_logger(__name__)


class SentenceTransformerEngine(EmbeddingEngine):
    """Wrapper around SentenceTransformer implementing EmbeddingEngine."""

    def __init__(self, model: "SentenceTransformer", model_name: str):
        self._model = model
        self.model_name = model_name
        self._dimension = model.get_sentence_embedding_dimension()

    def get_dimension(self) -> int:
        return self._dimension

    def _encode(self, texts: list[str]) -> np.ndarray:
        embeddings = self._model.encode(
            texts,
            batch_size=32,
            show_progress_bar=False,
            convert_to_numpy=True,
        )
        return np.asarray(embeddings, dtype=np.float32)

    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        return await asyncio.to_thread(self._encode, list(texts))

    def unload(self) -> None:
        """Move model off the accelerator and free references."""
        if hasattr(self._model, "to"):
            self._model.to("cpu")
        del self._model
        clear_device_memory()
        logger.debug("SentenceTransformer unloaded: %s", self.model_name)


def _load_sync(settings: LoadSettings) -> SentenceTransformerEngine:
    from sentence_transformers import SentenceTransformer

    if settings.device == Device.WASM:
        apply_thread_budget(settings.num_threads)

    # Quantized sentence-transformers weights are not supported, run them in fp16
    dtype = DType.FP16 if settings.dtype in DType.quantized() else settings.dtype
    model = SentenceTransformer(
        settings.model,
        device=settings.torch_device,
        cache_folder=settings.cache_folder,
        model_kwargs={"torch_dtype": torch_dtype(dtype)},
    )
    logger.debug(
        "Embedding model %s on %s, dim=%d",
        settings.model,
        settings.torch_device,
        model.get_sentence_embedding_dimension(),
    )
    return SentenceTransformerEngine(model, settings.model)


async def load_embedding_engine(settings: LoadSettings) -> SentenceTransformerEngine:
    """Engine loader for the ``embedding`` modality."""
    return await asyncio.to_thread(_load_sync, settings)
