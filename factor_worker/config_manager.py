"""
Configuration Manager Utility

Loads worker.yaml and deep merges worker.local.yaml overrides on top of it.
"""

import logging
from pathlib import Path
from typing import Dict, Any

import yaml

logger = logging.getLogger(__name__)


class ConfigManager:
    """
    Manage configuration loading with automatic local overrides.

    Handles:
    - Loading base configuration from worker.yaml
    - Auto-detecting and merging worker.local.yaml overrides
    - Deep merging nested dictionaries
    """

    def __init__(self):
        self.logger = logging.getLogger(f"{__name__}.ConfigManager")

    def load_config(self, config_path: str) -> Dict[str, Any]:
        """
        Load configuration from YAML file with automatic local overrides.

        Args:
            config_path: Path to base configuration file (e.g., 'worker.yaml')

        Returns:
            Merged configuration dictionary

        Raises:
            FileNotFoundError: If base config file doesn't exist
            yaml.YAMLError: If base YAML parsing fails
        """
        config_file = Path(config_path)

        if not config_file.exists():
            raise FileNotFoundError(
                f"Configuration file not found: {config_path}"
            )

        self.logger.debug(f"Loading base configuration from: {config_path}")
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)

        if not config:
            self.logger.warning(f"Configuration file is empty: {config_path}")
            config = {}

        local_config_path = self._get_local_config_path(config_file)

        if local_config_path.exists():
            self.logger.info(
                f"Loading local configuration overrides from: {local_config_path}"
            )
            try:
                with open(local_config_path, 'r', encoding='utf-8') as f:
                    local_config = yaml.safe_load(f)

                if local_config:
                    config = self.deep_merge(config, local_config)
                else:
                    self.logger.warning(
                        f"Local configuration file is empty: {local_config_path}"
                    )

            except yaml.YAMLError as e:
                # Continue with base config only
                self.logger.error(
                    f"Failed to parse local configuration {local_config_path}: {e}"
                )
            except OSError as e:
                self.logger.error(
                    f"Error loading local configuration {local_config_path}: {e}"
                )
        else:
            self.logger.debug(
                f"No local configuration file found at {local_config_path}"
            )

        return config

    def _get_local_config_path(self, base_config_path: Path) -> Path:
        """
        Path of the local override file: worker.yaml -> worker.local.yaml.
        """
        return base_config_path.parent / f"{base_config_path.stem}.local.yaml"

    def deep_merge(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """
        Deep merge override dictionary into base dictionary.

        Nested dictionaries are merged recursively; any other override value
        (including lists such as ``tiers``) replaces the base value.

        Example:
            base = {'a': {'b': 1, 'c': 2}, 'd': 3}
            override = {'a': {'b': 99}, 'e': 4}
            result = {'a': {'b': 99, 'c': 2}, 'd': 3, 'e': 4}

        Returns:
            Merged configuration dictionary (new dict, inputs unchanged)
        """
        result = base.copy()

        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self.deep_merge(result[key], value)
            else:
                result[key] = value

        return result
