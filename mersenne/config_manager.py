"""
Configuration Manager Utility

Reads mersenne.yaml and lays mersenne.local.yaml over it. The local file
is optional and a broken one is reported and skipped; a broken base file
is a ConfigurationError.
"""

import logging
from pathlib import Path
from typing import Dict, Any, Optional

import yaml

from .errors import ConfigurationError

logger = logging.getLogger(__name__)


def local_override_path(base_path: Path) -> Path:
    """mersenne.yaml -> mersenne.local.yaml, next to the base file."""
    return base_path.with_name(f"{base_path.stem}.local.yaml")


class ConfigManager:
    """
    Load a YAML config file plus its optional local override.

    Usage:
        raw = ConfigManager().load_config("mersenne.yaml")
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ConfigManager")

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load the base file and merge the local override into it.

        Returns:
            Merged configuration dictionary ({} for an empty base file)

        Raises:
            FileNotFoundError: If the base file doesn't exist
            ConfigurationError: If the base file isn't valid YAML or isn't a mapping
        """
        base_path = Path(config_path)
        if not base_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        self.logger.debug(f"Loading base configuration from: {config_path}")
        try:
            config = self._read_mapping(base_path)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Cannot parse {config_path}: {e}") from e

        if config is None:
            self.logger.warning(f"Configuration file is empty: {config_path}")
            config = {}

        override = self._load_override(local_override_path(base_path))
        if override:
            config = self.deep_merge(config, override)
        return config

    def _read_mapping(self, path: Path) -> Optional[Dict[str, Any]]:
        with open(path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
        if data is not None and not isinstance(data, dict):
            raise ConfigurationError(
                f"{path} must contain a mapping, got {type(data).__name__}"
            )
        return data

    def _load_override(self, path: Path) -> Optional[Dict[str, Any]]:
        if not path.exists():
            self.logger.debug(f"No local configuration file found at {path}")
            return None

        self.logger.info(f"Loading local configuration overrides from: {path}")
        try:
            override = self._read_mapping(path)
        except (yaml.YAMLError, OSError, ConfigurationError) as e:
            self.logger.error(f"Failed to load local configuration {path}: {e}")
            return None

        if not override:
            self.logger.warning(f"Local configuration file is empty: {path}")
        return override

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Return a new dict with `override` merged into `base`.

        Mappings present on both sides merge key by key; anything else in
        `override` wins outright.

        Example:
            deep_merge({'search': {'workers': 8, 'start': 1}}, {'search': {'workers': 4}})
            -> {'search': {'workers': 4, 'start': 1}}
        """
        merged = dict(base)
        for key, value in override.items():
            current = merged.get(key)
            if isinstance(current, dict) and isinstance(value, dict):
                value = self.deep_merge(current, value)
            merged[key] = value
        return merged
