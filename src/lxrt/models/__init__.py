"""Model lifecycle: presets, per-modality controllers and token streams."""

from .controller import LifecycleEvent, ModelController, ModelStatus
from .presets import MODEL_PRESETS, get_available_presets, is_preset, resolve_model_id
from .streaming import TokenStream

__all__ = [
    "ModelController",
    "ModelStatus",
    "LifecycleEvent",
    "TokenStream",
    "MODEL_PRESETS",
    "resolve_model_id",
    "is_preset",
    "get_available_presets",
]
