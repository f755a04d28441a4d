"""Provider configuration."""

from lxrt.config.loader import ConfigLoader
from lxrt.config.schemas import ModalityConfig, ProviderConfig

__all__ = [
    "ProviderConfig",
    "ModalityConfig",
    "ConfigLoader",
]
