"""lxrt: one API over locally executed models.

Key modules:
- provider: AIProvider façade (chat, complete, stream, embed, similarity, speech)
- models: per-modality lifecycle controllers, presets, token streams
- backends: capability detection and device/dtype selection
- engines: wrappers over torch/transformers/sentence-transformers
- vectorization: content routing to text, image, audio and video embedders
- adapters: OpenAI, LangChain, streaming and browser-agent shims
- hub: model download and cache management

Quick start:
    from lxrt import create_ai_provider

    async with create_ai_provider({"llm": {"model": "tiny"}, "embedding": {}}) as ai:
        reply = await ai.chat([{"role": "user", "content": "Hello"}])
        vector = await ai.embed("Hello")
"""

__version__ = "0.1.0"

from lxrt.config import ModalityConfig, ProviderConfig
from lxrt.core import (
    AudioOutput,
    ChatResponse,
    ConfigError,
    ContentDecodeError,
    Device,
    DisposedError,
    DType,
    LoadFailedError,
    LxrtError,
    Message,
    Modality,
    ModelNotConfiguredError,
    ModelNotLoadedError,
    ModelState,
    TokenUsage,
    UnsupportedContentError,
)
from lxrt.models import ModelStatus, TokenStream
from lxrt.provider import AIProvider, create_ai_provider
from lxrt.vectorization import AdapterRegistry, Content, VectorizationAdapter

__all__ = [
    # Provider
    "AIProvider",
    "create_ai_provider",
    "ProviderConfig",
    "ModalityConfig",
    # Types
    "Message",
    "ChatResponse",
    "TokenUsage",
    "AudioOutput",
    "TokenStream",
    "ModelStatus",
    "Content",
    "AdapterRegistry",
    "VectorizationAdapter",
    # Constants
    "Modality",
    "Device",
    "DType",
    "ModelState",
    # Exceptions
    "LxrtError",
    "ConfigError",
    "ModelNotConfiguredError",
    "ModelNotLoadedError",
    "LoadFailedError",
    "DisposedError",
    "UnsupportedContentError",
    "ContentDecodeError",
]
