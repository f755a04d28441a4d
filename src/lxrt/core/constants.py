"""Constants and enums for lxrt.

Centralizes all magic strings and constants used throughout the codebase.
"""

from enum import Enum
from typing import List


class Modality(str, Enum):
    """Model kinds a provider can host."""

    LLM = "llm"
    EMBEDDING = "embedding"
    TTS = "tts"
    ASR = "asr"

    @classmethod
    def parse(cls, value: "str | Modality") -> "Modality":
        """Parse a modality name, accepting the ``stt`` alias for ``asr``."""
        if isinstance(value, cls):
            return value
        name = str(value).lower()
        if name == "stt":
            name = cls.ASR.value
        return cls(name)


class Device(str, Enum):
    """Execution devices."""

    CPU = "cpu"
    WASM = "wasm"  # Portable CPU path with a bounded thread pool
    GPU = "gpu"


class DType(str, Enum):
    """Numeric precision of model weights."""

    FP32 = "fp32"
    FP16 = "fp16"
    Q8 = "q8"
    Q4 = "q4"

    @classmethod
    def quantized(cls) -> List["DType"]:
        """Precisions that need a quantization backend."""
        return [cls.Q8, cls.Q4]


class ModelState(str, Enum):
    """Lifecycle state of one modality's model."""

    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"
    DISPOSED = "disposed"


class VectorModality(str, Enum):
    """Content kinds the vectorization adapters understand."""

    TEXT = "text"
    IMAGE = "image"
    AUDIO = "audio"
    VIDEO = "video"


class Role(str, Enum):
    """Chat message roles."""

    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"


# === Default Values ===


class Defaults:
    """Default configuration values."""

    # Generation
    MAX_TOKENS = 256
    TEMPERATURE = 0.7
    TOP_P = 1.0

    # WASM-class CPU path
    MAX_WASM_THREADS = 4

    # Multimodal embedding models
    IMAGE_EMBEDDING_MODEL = "openai/clip-vit-base-patch32"
    AUDIO_EMBEDDING_MODEL = "laion/clap-htsat-fused"
    AUDIO_SAMPLING_RATE = 48000

    # Log level environment variable
    LOG_LEVEL_ENV = "LXRT_LOG_LEVEL"
