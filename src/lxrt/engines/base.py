"""Engine interfaces.

An engine wraps one loaded model of the execution stack. Engines are
created by loader coroutines (``EngineLoader``) that the lifecycle
controller receives at construction, and are only ever touched through
the controller.
"""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any, Sequence

import numpy as np

from lxrt.backends.selector import LoadSettings
from lxrt.core.types import AudioOutput, Message, TokenUsage


@dataclass(frozen=True)
class GenerationResult:
    """Text produced by a generation engine."""

    text: str
    usage: TokenUsage = field(default_factory=TokenUsage)


class Engine(ABC):
    """Base class for all engines."""

    def unload(self) -> None:  # noqa: B027
        """Release model weights and device memory (optional override)."""


class GenerationEngine(Engine):
    """Text generation."""

    @abstractmethod
    async def complete(self, prompt: str, **options: Any) -> GenerationResult:
        """Continue a raw prompt."""
        ...

    @abstractmethod
    async def chat(self, messages: Sequence[Message], **options: Any) -> GenerationResult:
        """Answer a conversation."""
        ...

    @abstractmethod
    def stream(self, messages: Sequence[Message], **options: Any) -> AsyncIterator[str]:
        """Yield tokens one at a time, computing each only when requested.

        Implementations are async generators; closing the generator must
        release any per-stream state.
        """
        ...


class EmbeddingEngine(Engine):
    """Text embedding."""

    @abstractmethod
    async def embed(self, texts: Sequence[str]) -> np.ndarray:
        """Encode texts, shape (len(texts), dimension)."""
        ...

    @abstractmethod
    def get_dimension(self) -> int:
        """Embedding dimension."""
        ...


class SpeechSynthesisEngine(Engine):
    """Text to speech."""

    @abstractmethod
    async def synthesize(self, text: str, **options: Any) -> AudioOutput:
        ...


class SpeechRecognitionEngine(Engine):
    """Speech to text."""

    @abstractmethod
    async def transcribe(self, samples: np.ndarray, sampling_rate: int, **options: Any) -> str:
        ...


EngineLoader = Callable[[LoadSettings], Awaitable[Engine]]
