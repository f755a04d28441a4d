"""Custom exceptions for lxrt.

All exceptions inherit from LxrtError, making it easy to:
- Catch all lxrt-specific errors
- Distinguish from engine (torch/transformers) errors
- Add context to error messages

Usage:
    try:
        await provider.chat(messages)
    except ModelNotLoadedError:
        await provider.warmup("llm")
"""

from typing import Any, Dict, Optional


class LxrtError(Exception):
    """Base exception for all lxrt errors.

    Attributes:
        message: Human-readable error message
        details: Optional dictionary with additional context
        cause: Optional original exception that caused this error
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.details = details or {}
        self.cause = cause
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with details."""
        msg = self.message
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            msg = f"{msg} ({detail_str})"
        if self.cause:
            msg = f"{msg} [caused by: {type(self.cause).__name__}: {self.cause}]"
        return msg


class ConfigError(LxrtError):
    """Configuration error.

    Raised when:
    - Invalid device or dtype
    - Unknown modality name
    - Config file not found or unreadable
    """

    pass


class ModelError(LxrtError):
    """Error scoped to one modality's model."""

    def __init__(
        self,
        modality: str,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.modality = str(getattr(modality, "value", modality))
        super().__init__(message, details={"modality": self.modality, **(details or {})}, cause=cause)


class ModelNotConfiguredError(ModelError):
    """Modality absent from the provider config or explicitly skipped.

    Not retryable without reconfiguration.
    """

    def __init__(self, modality: str, reason: str = "not configured"):
        super().__init__(modality, f"Model {reason}")


class ModelNotLoadedError(ModelError):
    """Operation invoked before a successful load with implicit warmup disabled.

    Call ``provider.warmup(modality)`` first.
    """

    def __init__(self, modality: str, state: Optional[str] = None):
        details = {"state": state} if state else None
        super().__init__(modality, "Model not loaded, call warmup() first", details=details)


class LoadFailedError(ModelError):
    """The engine failed to materialize the model.

    The controller moves to the error state; a later ``ensure_loaded``
    may retry.
    """

    def __init__(self, modality: str, model: str, cause: Optional[BaseException] = None):
        self.model = model
        super().__init__(modality, "Model load failed", details={"model": model}, cause=cause)


class DisposedError(ModelError):
    """Operation invoked after disposal. Fatal for that provider instance."""

    def __init__(self, modality: str):
        super().__init__(modality, "Model has been disposed")


class UnsupportedContentError(LxrtError):
    """No vectorization adapter claims the input."""

    def __init__(self, mime_type: str):
        self.mime_type = mime_type
        super().__init__("No adapter can embed this content", details={"mime_type": mime_type})


class ContentDecodeError(LxrtError):
    """An adapter claimed the content but could not decode it."""

    pass
