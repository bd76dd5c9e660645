"""Simple YAML configuration loader for ReadAloud."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, List, Optional
import logging

from ..models.settings import RecorderSettings

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_NAME = "readaloud.yaml"


def find_config_file(start_dir: Optional[Path] = None) -> Optional[Path]:
    """Look for readaloud.yaml in start_dir and its parents."""
    current = (start_dir or Path.cwd()).resolve()
    for directory in [current, *current.parents]:
        candidate = directory / DEFAULT_CONFIG_NAME
        if candidate.exists():
            return candidate
    return None


class ReadAloudConfig:
    """ReadAloud configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, looks for readaloud.yaml
                        in current directory and parent directories.
        """
        if config_path is None:
            found = find_config_file()
            if found is None:
                raise FileNotFoundError(f"No {DEFAULT_CONFIG_NAME} found in {Path.cwd()} or its parents")
            config_path = str(found)

        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}") from e

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_path(self, path: str) -> str:
        if os.path.isabs(path):
            return path
        return str(self.config_file.parent / path)

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        if 'storage' in config and 'data_directory' in config['storage']:
            config['storage']['data_directory'] = self._resolve_path(config['storage']['data_directory'])

        if 'logging' in config and 'file_path' in config['logging']:
            config['logging']['file_path'] = self._resolve_path(config['logging']['file_path'])

        if 'recorder' in config and 'test_audio_path' in config['recorder']:
            config['recorder']['test_audio_path'] = self._resolve_path(config['recorder']['test_audio_path'])

        if 'lines' in config and 'test_audio_files' in config['lines']:
            config['lines']['test_audio_files'] = [
                self._resolve_path(p) for p in config['lines']['test_audio_files']
            ]

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recorder.silence_timeout_ms').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'recorder.test_mode')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def recorder_settings(self) -> RecorderSettings:
        """Build validated recorder settings from the 'recorder' block.

        Raises:
            pydantic.ValidationError: if a value is out of range or unknown
        """
        return RecorderSettings(**(self.get('recorder', {}) or {}))

    def get_line_max_record_time_ms(self) -> int:
        return int(self.get('lines.max_record_time_ms', 5000))

    def get_line_test_audio_files(self) -> List[str]:
        return list(self.get('lines.test_audio_files', []) or [])

    def get_line_keywords(self) -> List[str]:
        return list(self.get('lines.keywords', []) or [])

    def get_data_directory(self) -> str:
        """Get data directory path."""
        data_dir = self.get('storage.data_directory', 'data')
        return str(Path(data_dir).absolute())
