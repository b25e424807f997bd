#!/usr/bin/env python3
"""
Configuration loader for layout analysis tools.

Settings live in a YAML file with a 'common' section and one section per
command (analyze, rank, optimize). Command settings override common ones.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Optional, List

from splitkb.errors import ConfigurationError

SECTIONS = ('analyze', 'rank', 'optimize')


class ConfigLoader:
    """Handles loading and processing of YAML configuration files."""

    def __init__(self, config_path: str = "config.yaml"):
        self.config_path = Path(config_path)
        self._config_cache: Optional[Dict[str, Any]] = None

    def load_config(self) -> Dict[str, Any]:
        """
        Load the YAML configuration file (cached after the first call).

        Raises:
            FileNotFoundError: If configuration file doesn't exist
            ConfigurationError: If the YAML cannot be parsed or is not a mapping
        """
        if self._config_cache is not None:
            return self._config_cache

        if not self.config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_path}")

        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Error parsing YAML configuration: {e}")

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ConfigurationError(f"Configuration in {self.config_path} must be a mapping")

        self._config_cache = config
        return config

    def get_section(self, name: str) -> Dict[str, Any]:
        """
        Get a command section with common settings merged underneath.

        Raises:
            ConfigurationError: If the section is unknown
        """
        if name not in SECTIONS:
            raise ConfigurationError(
                f"Unknown configuration section '{name}'. Available: {list(SECTIONS)}"
            )

        full_config = self.load_config()
        common_config = full_config.get('common') or {}
        section_config = full_config.get(name) or {}

        return {**common_config, **section_config}

    def get_available_sections(self) -> List[str]:
        full_config = self.load_config()
        return [name for name in SECTIONS if name in full_config]


def load_section(name: str, config_path: Optional[str] = "config.yaml") -> Dict[str, Any]:
    """
    Load a merged section, or an empty dict when no config file is given
    or the default one is absent.
    """
    loader = ConfigLoader(config_path or "config.yaml")
    if config_path is None or (config_path == "config.yaml" and not loader.config_path.exists()):
        if name not in SECTIONS:
            raise ConfigurationError(f"Unknown configuration section '{name}'")
        return {}
    return loader.get_section(name)
