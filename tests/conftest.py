"""Pytest fixtures and fakes for lxrt tests.

This module provides reusable test doubles so no test downloads a model:
- Stub engines for every modality (counting what they compute)
- CountingLoader: an engine loader that records each call
- Capability descriptors for CPU-only and GPU hosts
- Small encoded media (PNG, WAV)

Usage:
    async def test_something(make_provider):
        provider, loaders = make_provider({"llm": {}})
        reply = await provider.chat([{"role": "user", "content": "hi"}])
"""

import asyncio
import io
from typing import Any, Callable, Optional

import numpy as np
import pytest

from lxrt.backends.capabilities import CapabilityDescriptor
from lxrt.backends.selector import BackendSelector
from lxrt.core.constants import DType, Modality
from lxrt.core.types import AudioOutput, TokenUsage
from lxrt.engines.base import (
    EmbeddingEngine,
    GenerationEngine,
    GenerationResult,
    SpeechRecognitionEngine,
    SpeechSynthesisEngine,
)
from lxrt.provider import AIProvider

# === Stub engines ===


class StubGenerationEngine(GenerationEngine):
    """Generates a fixed token sequence and counts produced tokens."""

    def __init__(self, tokens=("Hello", ",", " local", " world", "!"), fail_after: Optional[int] = None):
        self.tokens = list(tokens)
        self.fail_after = fail_after
        self.produced = 0
        self.stream_closed = False
        self.calls: list[tuple[str, Any, dict]] = []
        self.unloaded = False

    async def complete(self, prompt, **options):
        self.calls.append(("complete", prompt, options))
        return GenerationResult(text=f"echo: {prompt}", usage=TokenUsage(prompt_tokens=3, completion_tokens=2))

    async def chat(self, messages, **options):
        self.calls.append(("chat", list(messages), options))
        return GenerationResult(
            text="".join(self.tokens),
            usage=TokenUsage(prompt_tokens=4 * len(messages), completion_tokens=len(self.tokens)),
        )

    async def stream(self, messages, **options):
        self.calls.append(("stream", list(messages), options))
        try:
            for i, token in enumerate(self.tokens):
                if self.fail_after is not None and i == self.fail_after:
                    raise RuntimeError("decoder crashed")
                self.produced += 1
                yield token
                await asyncio.sleep(0)
        finally:
            self.stream_closed = True

    def unload(self):
        self.unloaded = True


# Words sharing a concept map to the same axis, so related texts score high
CONCEPTS = {
    "cat": 0,
    "cats": 0,
    "kitten": 0,
    "feline": 0,
    "dog": 1,
    "puppy": 1,
    "car": 2,
    "engine": 2,
    "truck": 2,
    "weather": 3,
    "rain": 3,
}
STUB_DIMENSION = 8


class StubEmbeddingEngine(EmbeddingEngine):
    """Deterministic concept-count embeddings."""

    def __init__(self):
        self.batches: list[list[str]] = []
        self.unloaded = False

    def get_dimension(self) -> int:
        return STUB_DIMENSION

    def _vector(self, text: str) -> np.ndarray:
        vector = np.full(STUB_DIMENSION, 0.05, dtype=np.float32)
        for word in text.lower().split():
            axis = CONCEPTS.get(word.strip(".,!?"))
            if axis is not None:
                vector[axis] += 1.0
        return vector

    async def embed(self, texts):
        self.batches.append(list(texts))
        return np.stack([self._vector(t) for t in texts])

    def unload(self):
        self.unloaded = True


class StubImageEngine:
    """Fixed unit-length image embedding."""

    def __init__(self):
        self.calls = 0
        self.unloaded = False

    async def embed_image(self, data):
        self.calls += 1
        return np.array([0.6, 0.8], dtype=np.float32)

    def unload(self):
        self.unloaded = True


class StubSynthesisEngine(SpeechSynthesisEngine):
    def __init__(self):
        self.unloaded = False

    async def synthesize(self, text, **options):
        samples = np.sin(np.linspace(0, 2 * np.pi * 10, 1600)).astype(np.float32) * 0.5
        return AudioOutput(samples=samples, sampling_rate=16000)

    def unload(self):
        self.unloaded = True


class StubRecognitionEngine(SpeechRecognitionEngine):
    sampling_rate = 16000

    def __init__(self):
        self.received: list[tuple[np.ndarray, int, dict]] = []
        self.unloaded = False

    async def transcribe(self, samples, sampling_rate, **options):
        self.received.append((samples, sampling_rate, options))
        return "hello world"

    def unload(self):
        self.unloaded = True


# === Loaders ===


class CountingLoader:
    """Engine loader recording every call.

    Args:
        factory: Creates the engine returned by a successful load
        error: Raised by every load
        fail_times: Number of initial loads that fail
        fail_devices: Devices on which loading fails
        gate: When given, loads wait for this event before finishing
    """

    def __init__(
        self,
        factory: Callable[[], Any],
        error: Optional[BaseException] = None,
        fail_times: int = 0,
        fail_devices: tuple = (),
        gate: Optional[asyncio.Event] = None,
    ):
        self.factory = factory
        self.error = error
        self.fail_times = fail_times
        self.fail_devices = fail_devices
        self.gate = gate
        self.calls = 0
        self.settings = []
        self.engines = []
        self.entered = asyncio.Event() if gate is not None else None

    @property
    def engine(self):
        return self.engines[-1] if self.engines else None

    async def __call__(self, settings):
        self.calls += 1
        self.settings.append(settings)
        if self.entered is not None:
            self.entered.set()
        if self.gate is not None:
            await self.gate.wait()
        await asyncio.sleep(0.01)

        if self.error is not None:
            raise self.error
        if self.calls <= self.fail_times:
            raise RuntimeError(f"load attempt {self.calls} failed")
        if settings.device in self.fail_devices:
            raise RuntimeError(f"{settings.device.value} backend unavailable")

        engine = self.factory()
        self.engines.append(engine)
        return engine


# === Capabilities ===


@pytest.fixture
def cpu_caps():
    return CapabilityDescriptor(accelerated_compute_available=False, preferred_precision=DType.FP32, cpu_count=8)


@pytest.fixture
def gpu_caps():
    return CapabilityDescriptor(
        accelerated_compute_available=True,
        preferred_precision=DType.FP16,
        accelerator="cuda",
        device_name="Fake GPU",
        gpu_mem_gb=24.0,
        cpu_count=8,
    )


@pytest.fixture
def cpu_selector(cpu_caps):
    return BackendSelector(cpu_caps)


@pytest.fixture
def gpu_selector(gpu_caps):
    return BackendSelector(gpu_caps)


# === Providers ===

STUB_FACTORIES = {
    Modality.LLM: StubGenerationEngine,
    Modality.EMBEDDING: StubEmbeddingEngine,
    Modality.TTS: StubSynthesisEngine,
    Modality.ASR: StubRecognitionEngine,
}


@pytest.fixture
def make_provider(cpu_caps):
    """Build an AIProvider whose every modality loads a stub engine.

    Returns (provider, loaders) where loaders maps Modality to its CountingLoader.
    """

    def _make(config, **loader_overrides):
        loaders = {m: CountingLoader(factory) for m, factory in STUB_FACTORIES.items()}
        loaders.update({Modality.parse(k): v for k, v in loader_overrides.items()})
        provider = AIProvider(config, loaders=loaders, capabilities=cpu_caps)
        return provider, loaders

    return _make


@pytest.fixture
def chat_messages():
    return [
        {"role": "system", "content": "You are terse."},
        {"role": "user", "content": "Say hello."},
    ]


# === Media ===


def make_wav(seconds: float = 0.1, sampling_rate: int = 16000, channels: int = 1, amplitude: float = 0.25) -> bytes:
    import soundfile as sf

    t = np.linspace(0, seconds, int(seconds * sampling_rate), endpoint=False)
    tone = (amplitude * np.sin(2 * np.pi * 440 * t)).astype(np.float32)
    data = np.stack([tone] * channels, axis=1) if channels > 1 else tone
    buffer = io.BytesIO()
    sf.write(buffer, data, sampling_rate, format="WAV", subtype="PCM_16")
    return buffer.getvalue()


def make_png(size=(4, 4), color=(200, 30, 30)) -> bytes:
    from PIL import Image

    buffer = io.BytesIO()
    Image.new("RGB", size, color).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def wav_bytes():
    return make_wav()


@pytest.fixture
def png_bytes():
    return make_png()
