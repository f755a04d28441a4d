"""AIProvider: one API over locally executed models.

Composes one ModelController per configured modality and the
vectorization adapter registry.

Usage:
    async with create_ai_provider({"llm": {"model": "tiny"}, "embedding": {}}) as ai:
        await ai.warmup("llm")
        reply = await ai.chat([{"role": "user", "content": "Hi"}])

        async with ai.stream("Tell me a story") as tokens:
            async for token in tokens:
                print(token, end="")

        score = await ai.similarity("cat", "kitten")
"""

import asyncio
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Callable, Optional, Union

import numpy as np

from lxrt.backends.capabilities import CapabilityDescriptor
from lxrt.backends.selector import BackendSelector
from lxrt.config.schemas import ProviderConfig
from lxrt.core.constants import Modality
from lxrt.core.exceptions import ConfigError, DisposedError, ModelNotConfiguredError
from lxrt.core.logging import get_logger
from lxrt.core.types import AudioOutput, ChatResponse, EmbeddingVector, MessageLike, normalize_messages
from lxrt.engines import DEFAULT_LOADERS, EngineLoader
from lxrt.models.controller import LifecycleEvent, ModelController, ModelStatus
from lxrt.models.streaming import TokenStream
from lxrt.utils.audio import decode_audio, resample_audio
from lxrt.vectorization.content import Content
from lxrt.vectorization.registry import AdapterRegistry, create_default_registry

logger = get_logger(__name__)

AudioInput = Union[Content, bytes, str, Path, np.ndarray]
EmbedInput = Union[str, Sequence[str], Content]


def _prepare_audio(audio: AudioInput, target_rate: int, source_rate: Optional[int] = None) -> np.ndarray:
    """Decode or convert speech input to mono float32 at the engine's rate."""
    if isinstance(audio, Content):
        audio = audio.data
    if isinstance(audio, (bytes, bytearray, str, Path)):
        samples, _ = decode_audio(audio, target_rate=target_rate)
        return samples

    samples = np.asarray(audio, dtype=np.float32)
    if samples.ndim > 1:
        samples = samples.mean(axis=1)
    if source_rate:
        samples = resample_audio(samples, source_rate, target_rate)
    return samples


def _cosine(a: np.ndarray, b: np.ndarray) -> float:
    norm = float(np.linalg.norm(a) * np.linalg.norm(b))
    if norm == 0.0:
        return 0.0
    return float(np.clip(np.dot(a, b) / norm, -1.0, 1.0))


class AIProvider:
    """Unified façade over the configured modalities.

    Args:
        config: ProviderConfig or its mapping shape
        loaders: Engine loaders overriding the defaults, keyed by modality
        registry: Vectorization registry; the built-in one when omitted
        capabilities: Host capabilities; detected on first load when omitted
    """

    def __init__(
        self,
        config: Union[ProviderConfig, Mapping[str, Any]],
        loaders: Optional[Mapping[Union[Modality, str], EngineLoader]] = None,
        registry: Optional[AdapterRegistry] = None,
        capabilities: Optional[CapabilityDescriptor] = None,
    ):
        if not isinstance(config, ProviderConfig):
            config = ProviderConfig.from_dict(dict(config))
        self.config = config

        engine_loaders = dict(DEFAULT_LOADERS)
        for modality, loader in (loaders or {}).items():
            engine_loaders[self._parse_modality(modality)] = loader

        selector = BackendSelector(capabilities) if capabilities is not None else None
        self._controllers: dict[Modality, ModelController] = {
            modality: ModelController(
                modality.value,
                config.for_modality(modality),
                engine_loaders[modality],
                selector=selector,
                cache_dir=config.cache_dir,
                num_threads=config.num_threads,
                implicit_warmup=config.implicit_warmup,
            )
            for modality in config.configured_modalities()
        }
        self.registry = registry or create_default_registry(
            self._embed_texts,
            cache_dir=config.cache_dir,
            selector=selector,
            implicit_warmup=config.implicit_warmup,
        )
        self._disposed = False

        logger.info(
            "AIProvider created: %s",
            ", ".join(f"{c.modality}={c.model_id}" for c in self._controllers.values()) or "no modalities",
        )

    # === Controller resolution ===

    @staticmethod
    def _parse_modality(modality: Union[Modality, str]) -> Modality:
        try:
            return Modality.parse(modality)
        except ValueError as e:
            valid = ", ".join(m.value for m in Modality)
            raise ConfigError(f"Unknown modality: {modality}", details={"valid": valid}, cause=e) from e

    def _controller(self, modality: Union[Modality, str]) -> ModelController:
        modality = self._parse_modality(modality)
        if self._disposed:
            raise DisposedError(modality.value)
        controller = self._controllers.get(modality)
        if controller is None:
            raise ModelNotConfiguredError(modality.value)
        return controller

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def modalities(self) -> list[Modality]:
        """Configured modalities, skipped ones included."""
        return list(self._controllers)

    # === Generation ===

    async def complete(self, prompt: str, **options: Any) -> str:
        """Continue a raw prompt.

        Options (``temperature``, ``top_p``, ``max_tokens``) are passed to the
        engine unmodified.
        """
        controller = self._controller(Modality.LLM)
        result = await controller.invoke(lambda engine: engine.complete(prompt, **options))
        return result.text

    async def chat(self, messages: Union[str, Sequence[MessageLike]], **options: Any) -> ChatResponse:
        """Answer a conversation; usage counts are zeros if the engine reports none.

        A plain string is treated as a single user message.
        """
        controller = self._controller(Modality.LLM)
        turns = normalize_messages(messages)
        result = await controller.invoke(lambda engine: engine.chat(turns, **options))
        return ChatResponse(content=result.text, usage=result.usage)

    def stream(self, messages: Union[str, Sequence[MessageLike]], **options: Any) -> TokenStream:
        """Stream generated tokens in order.

        A plain string is treated as a single user message. Generation only
        starts when the first token is pulled; close the stream to stop it.
        """
        controller = self._controller(Modality.LLM)
        turns = normalize_messages(messages)
        return controller.open_stream(lambda engine: engine.stream(turns, **options))

    # === Embedding ===

    async def _embed_texts(self, texts: Sequence[str]) -> list[EmbeddingVector]:
        controller = self._controller(Modality.EMBEDDING)
        vectors = await controller.invoke(lambda engine: engine.embed(list(texts)))
        return np.asarray(vectors, dtype=np.float32).tolist()

    async def embed(self, input: EmbedInput) -> Union[EmbeddingVector, list[EmbeddingVector]]:
        """Embed text or content.

        Args:
            input: A string (one vector), a list of strings (one vector each)
                or Content (routed to the adapter registry)

        Raises:
            UnsupportedContentError: No adapter claims the content
        """
        if isinstance(input, Content):
            if self._disposed:
                raise DisposedError(Modality.EMBEDDING.value)
            return await self.registry.dispatch(input)
        if isinstance(input, str):
            return (await self._embed_texts([input]))[0]
        texts = list(input)
        if not texts:
            self._controller(Modality.EMBEDDING)
            return []
        return await self._embed_texts(texts)

    async def similarity(self, a: Union[str, Content], b: Union[str, Content]) -> float:
        """Cosine similarity of two embeddings, in [-1, 1]."""
        self._controller(Modality.EMBEDDING)
        if isinstance(a, str) and isinstance(b, str):
            vec_a, vec_b = await self._embed_texts([a, b])
        else:
            vec_a = await self.embed(a)
            vec_b = await self.embed(b)
        return _cosine(np.asarray(vec_a, dtype=np.float64), np.asarray(vec_b, dtype=np.float64))

    # === Speech ===

    async def synthesize(self, text: str, **options: Any) -> AudioOutput:
        """Speak text with the ``tts`` model."""
        controller = self._controller(Modality.TTS)
        return await controller.invoke(lambda engine: engine.synthesize(text, **options))

    async def transcribe(self, audio: AudioInput, sampling_rate: Optional[int] = None, **options: Any) -> str:
        """Transcribe speech with the ``asr`` model.

        Args:
            audio: Content, encoded bytes, a file path or float samples
            sampling_rate: Rate of raw sample input (assumed to be the model's when omitted)
            **options: ``language``, ``task``, ``return_timestamps``
        """
        controller = self._controller(Modality.ASR)

        async def run(engine):
            rate = engine.sampling_rate
            samples = await asyncio.to_thread(_prepare_audio, audio, rate, sampling_rate)
            return await engine.transcribe(samples, rate, **options)

        return await controller.invoke(run)

    # === Lifecycle ===

    async def warmup(self, modality: Union[Modality, str, None] = None) -> None:
        """Load a modality ahead of first use; all non-skipped ones when omitted.

        Vectorization adapter models (``image``, ``audio``, ``video``) are
        only loaded when named. Concurrent warmups of one modality share a
        single load.
        """
        if isinstance(modality, str) and modality in self.registry.names():
            if self._disposed:
                raise DisposedError(modality)
            await self.registry.warmup(modality)
            return
        if modality is not None:
            await self._controller(modality).ensure_loaded()
            return
        if self._disposed:
            raise DisposedError("provider")
        await asyncio.gather(
            *(c.ensure_loaded() for c in self._controllers.values() if c.is_configured)
        )

    async def dispose(self) -> None:
        """Release every model, adapters included. Safe to call repeatedly."""
        if self._disposed:
            return
        self._disposed = True
        for controller in self._controllers.values():
            await controller.dispose()
        await self.registry.dispose()
        logger.info("AIProvider disposed")

    def status(self, modality: Union[Modality, str]) -> ModelStatus:
        modality = self._parse_modality(modality)
        controller = self._controllers.get(modality)
        if controller is None:
            raise ModelNotConfiguredError(modality.value)
        return controller.status()

    def statuses(self) -> dict[str, ModelStatus]:
        """Status of every configured modality, keyed by name."""
        return {m.value: c.status() for m, c in self._controllers.items()}

    def on_event(self, callback: Callable[[LifecycleEvent], None]) -> None:
        """Subscribe to ready/error/disposed transitions of every modality."""
        for controller in self._controllers.values():
            controller.on_event(callback)

    async def __aenter__(self) -> "AIProvider":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.dispose()

    def __repr__(self) -> str:
        states = ", ".join(f"{m.value}={c.state.value}" for m, c in self._controllers.items())
        return f"AIProvider({states})"


def create_ai_provider(
    config: Union[ProviderConfig, Mapping[str, Any], str, Path],
    **kwargs: Any,
) -> AIProvider:
    """Create a provider from a config object, a mapping, or a YAML/JSON file path.

    Keyword arguments are passed to AIProvider (``loaders``, ``registry``,
    ``capabilities``).
    """
    if isinstance(config, (str, Path)):
        config = ProviderConfig.from_file(config)
    return AIProvider(config, **kwargs)
