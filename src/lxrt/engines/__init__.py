"""Engines: thin wrappers over the HuggingFace execution stack.

The concrete engine modules import torch/transformers lazily inside their
loaders, so importing this package stays cheap.

- base: engine ABCs and the EngineLoader signature
- generator: AutoModelForCausalLM text generation with token streaming
- embedder: SentenceTransformer text embeddings
- speech: text-to-speech and speech-recognition pipelines
- multimodal: CLIP image and CLAP audio embeddings
"""

from lxrt.core.constants import Modality

from .base import (
    EmbeddingEngine,
    Engine,
    EngineLoader,
    GenerationEngine,
    GenerationResult,
    SpeechRecognitionEngine,
    SpeechSynthesisEngine,
)
from .embedder import load_embedding_engine
from .generator import load_generation_engine
from .multimodal import load_clap_engine, load_clip_engine
from .speech import load_speech_recognition_engine, load_speech_synthesis_engine

DEFAULT_LOADERS: dict[Modality, EngineLoader] = {
    Modality.LLM: load_generation_engine,
    Modality.EMBEDDING: load_embedding_engine,
    Modality.TTS: load_speech_synthesis_engine,
    Modality.ASR: load_speech_recognition_engine,
}

__all__ = [
    "Engine",
    "EngineLoader",
    "GenerationEngine",
    "GenerationResult",
    "EmbeddingEngine",
    "SpeechSynthesisEngine",
    "SpeechRecognitionEngine",
    "DEFAULT_LOADERS",
    "load_generation_engine",
    "load_embedding_engine",
    "load_speech_synthesis_engine",
    "load_speech_recognition_engine",
    "load_clip_engine",
    "load_clap_engine",
]
