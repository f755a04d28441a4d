"""Configuration schemas for lxrt providers.

Pydantic models for validating provider configurations. Both are frozen:
a provider's configuration cannot change after construction.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from lxrt.core.constants import Device, DType, Modality


class ModalityConfig(BaseModel):
    """Configuration of one modality's model."""

    model_config = ConfigDict(frozen=True, extra="forbid", protected_namespaces=())

    model: str = Field(default="default", description="Model identifier or preset name")
    device: Optional[Device] = Field(default=None, description="cpu, wasm or gpu; detected when omitted")
    dtype: Optional[DType] = Field(default=None, description="fp32, fp16, q8 or q4; detected when omitted")
    skip: bool = Field(default=False, description="Keep the modality declared but never load it")
    cache_dir: Optional[Path] = Field(default=None, description="Local model cache directory")

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        """Reject blank model identifiers."""
        if not v or not v.strip():
            raise ValueError("model must be a non-empty identifier")
        return v.strip()


class ProviderConfig(BaseModel):
    """Complete provider configuration: one optional entry per modality."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    llm: Optional[ModalityConfig] = Field(default=None, description="Text generation")
    embedding: Optional[ModalityConfig] = Field(default=None, description="Text embedding")
    tts: Optional[ModalityConfig] = Field(default=None, description="Speech synthesis")
    asr: Optional[ModalityConfig] = Field(default=None, description="Speech recognition")

    cache_dir: Optional[Path] = Field(
        default=None, description="Shared cache directory for modalities without their own"
    )
    implicit_warmup: bool = Field(
        default=True, description="Load models transparently on first use instead of requiring warmup()"
    )
    num_threads: Optional[int] = Field(
        default=None, ge=1, description="Thread count for the wasm CPU path (auto when omitted)"
    )

    @model_validator(mode="before")
    @classmethod
    def accept_stt_alias(cls, data: Any) -> Any:
        """Accept ``stt`` as an alias for ``asr``."""
        if isinstance(data, dict) and "stt" in data:
            data = dict(data)
            stt = data.pop("stt")
            if data.get("asr") is not None:
                raise ValueError("Both 'stt' and 'asr' given; use only 'asr'")
            data["asr"] = stt
        return data

    def for_modality(self, modality: Modality) -> Optional[ModalityConfig]:
        """Get the config of one modality (None when unconfigured)."""
        return getattr(self, Modality.parse(modality).value)

    def configured_modalities(self) -> list[Modality]:
        """Modalities with an entry, skipped ones included."""
        return [m for m in Modality if self.for_modality(m) is not None]

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderConfig":
        """Validate a plain mapping, raising ConfigError on invalid input."""
        from pydantic import ValidationError

        from lxrt.core.exceptions import ConfigError

        try:
            return cls.model_validate(data)
        except ValidationError as e:
            problems = "; ".join(
                f"{'.'.join(str(x) for x in err['loc']) or '<root>'}: {err['msg']}" for err in e.errors()
            )
            raise ConfigError("Invalid provider configuration", details={"errors": problems}, cause=e) from e

    @classmethod
    def from_file(cls, path: "str | Path") -> "ProviderConfig":
        """Load and validate a YAML or JSON config file."""
        from lxrt.config.loader import ConfigLoader

        return ConfigLoader.load_and_validate(path)
