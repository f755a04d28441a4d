"""Configuration loading utilities for lxrt."""

import json
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from lxrt.config.schemas import ProviderConfig
from lxrt.core.exceptions import ConfigError


class ConfigLoader:
    """Utility class for loading and validating provider configs."""

    @staticmethod
    def load_yaml(path: Union[str, Path]) -> Dict[str, Any]:
        """Load YAML configuration file.

        Raises:
            ConfigError: If the file is missing or not valid YAML
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError("Config file not found", details={"path": path})

        with open(path, "r", encoding="utf-8") as f:
            try:
                return yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError("Invalid YAML", details={"path": path}, cause=e) from e

    @staticmethod
    def load_json(path: Union[str, Path]) -> Dict[str, Any]:
        """Load JSON configuration file.

        Raises:
            ConfigError: If the file is missing or not valid JSON
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError("Config file not found", details={"path": path})

        with open(path, "r", encoding="utf-8") as f:
            try:
                return json.load(f)
            except json.JSONDecodeError as e:
                raise ConfigError("Invalid JSON", details={"path": path}, cause=e) from e

    @staticmethod
    def load(path: Union[str, Path]) -> Dict[str, Any]:
        """Load configuration file (auto-detect format from the suffix)."""
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix in [".yaml", ".yml"]:
            return ConfigLoader.load_yaml(path)
        elif suffix == ".json":
            return ConfigLoader.load_json(path)
        else:
            raise ConfigError("Unsupported config format", details={"suffix": suffix})

    @staticmethod
    def load_and_validate(path: Union[str, Path]) -> ProviderConfig:
        """Load and validate configuration file."""
        return ProviderConfig.from_dict(ConfigLoader.load(path))
