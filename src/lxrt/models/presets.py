"""Model presets: short semantic names for Hugging Face model ids.

Naming convention: size (tiny, light, medium, heavy) or priority (fast,
balanced, quality), plus ``default``. Anything that is not a preset is
passed through unchanged as a model id.
"""

from lxrt.core.constants import Modality

LLM_PRESETS = {
    "tiny": "HuggingFaceTB/SmolLM2-135M-Instruct",
    "light": "Qwen/Qwen2.5-0.5B-Instruct",
    "medium": "Qwen/Qwen2.5-1.5B-Instruct",
    "heavy": "microsoft/Phi-3-mini-4k-instruct",
    "chat-light": "Qwen/Qwen2.5-0.5B-Instruct",
    "chat-medium": "Qwen/Qwen2.5-1.5B-Instruct",
    "chat-heavy": "microsoft/Phi-3-mini-4k-instruct",
    "fast": "HuggingFaceTB/SmolLM2-135M-Instruct",
    "balanced": "Qwen/Qwen2.5-0.5B-Instruct",
    "quality": "microsoft/Phi-3-mini-4k-instruct",
    "default": "Qwen/Qwen2.5-0.5B-Instruct",
}

EMBEDDING_PRESETS = {
    "tiny": "sentence-transformers/all-MiniLM-L6-v2",
    "light": "sentence-transformers/all-MiniLM-L6-v2",
    "heavy": "BAAI/bge-m3",
    "fast": "sentence-transformers/all-MiniLM-L6-v2",  # 384 dims
    "balanced": "sentence-transformers/all-MiniLM-L6-v2",
    "quality": "BAAI/bge-m3",  # 1024 dims
    "default": "sentence-transformers/all-MiniLM-L6-v2",
}

ASR_PRESETS = {
    "tiny": "openai/whisper-tiny",
    "light": "openai/whisper-tiny",
    "medium": "openai/whisper-small",
    "fast": "openai/whisper-tiny",
    "balanced": "openai/whisper-tiny",
    "quality": "openai/whisper-small",
    "default": "openai/whisper-tiny",
}

TTS_PRESETS = {
    "light": "facebook/mms-tts-eng",
    "default": "facebook/mms-tts-eng",
}

MODEL_PRESETS = {
    Modality.LLM: LLM_PRESETS,
    Modality.EMBEDDING: EMBEDDING_PRESETS,
    Modality.ASR: ASR_PRESETS,
    Modality.TTS: TTS_PRESETS,
}


def resolve_model_id(modality: Modality, model_spec: str) -> str:
    """Resolve a preset name to a model id; other ids pass through.

    Example:
        >>> resolve_model_id(Modality.EMBEDDING, "fast")
        'sentence-transformers/all-MiniLM-L6-v2'
        >>> resolve_model_id(Modality.LLM, "my-org/custom")
        'my-org/custom'
    """
    return MODEL_PRESETS[Modality.parse(modality)].get(model_spec, model_spec)


def is_preset(modality: Modality, model_spec: str) -> bool:
    return model_spec in MODEL_PRESETS[Modality.parse(modality)]


def get_available_presets(modality: Modality) -> list[str]:
    return sorted(MODEL_PRESETS[Modality.parse(modality)])
