"""Core infrastructure for lxrt.

This module provides foundational components:
- Exceptions: Custom exception hierarchy
- Logging: Structured logging configuration
- Constants: Enums and defaults
- Types: Messages, responses and audio containers
"""

from lxrt.core.constants import Device, DType, Modality, ModelState, Role, VectorModality
from lxrt.core.exceptions import (
    ConfigError,
    ContentDecodeError,
    DisposedError,
    LoadFailedError,
    LxrtError,
    ModelError,
    ModelNotConfiguredError,
    ModelNotLoadedError,
    UnsupportedContentError,
)
from lxrt.core.logging import configure_logging, get_logger
from lxrt.core.types import AudioOutput, ChatResponse, Message, TokenUsage

__all__ = [
    # Exceptions
    "LxrtError",
    "ConfigError",
    "ModelError",
    "ModelNotConfiguredError",
    "ModelNotLoadedError",
    "LoadFailedError",
    "DisposedError",
    "UnsupportedContentError",
    "ContentDecodeError",
    # Logging
    "get_logger",
    "configure_logging",
    # Constants
    "Modality",
    "Device",
    "DType",
    "ModelState",
    "Role",
    "VectorModality",
    # Types
    "Message",
    "TokenUsage",
    "ChatResponse",
    "AudioOutput",
]
