"""YAML configuration loader for Nebula."""

import os
import copy
import tempfile
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULTS: Dict[str, Any] = {
    "server": {
        "host": "0.0.0.0",
        "port": 3000,
        "max_request_bytes": 50 * 1024 * 1024,
    },
    "relay": {
        "enabled": True,
        "url": "http://localhost:3000",
        "connect_timeout_seconds": 3.0,
        "outbound_queue_size": 100,
    },
    "room": {
        "id": "room-demo-001",
        "speaker": "You",
    },
    "audio": {
        "sample_rate": 16000,
        "channels": 1,
        "frames_per_buffer": 1024,
        "chunk_interval_seconds": 1.0,
    },
    "transcription": {
        "backend": "placeholder",
        "language": "en",
        "long_audio_threshold_bytes": 50000,
        "temp_directory": os.path.join(tempfile.gettempdir(), "nebula"),
        "timeout_seconds": 30.0,
    },
    "captions": {
        "capacity": 10,
    },
    "summary": {
        "interval_seconds": 20.0,
        "min_captions": 3,
    },
    "logging": {
        "level": "INFO",
        "file_path": None,
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        else:
            base[key] = value
    return base


class NebulaConfig:
    """Nebula configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults are used.
        """
        self.config_file = Path(config_path) if config_path else None
        self.config = copy.deepcopy(DEFAULTS)

        if self.config_file is not None:
            if not self.config_file.exists():
                raise FileNotFoundError(f"Configuration file not found: {self.config_file}")
            logger.info(f"Loading configuration from: {self.config_file}")
            _merge(self.config, self._load_config())

        self._apply_environment()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if config is None:
            return {}
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        for section, key in (("transcription", "temp_directory"), ("logging", "file_path")):
            value = config.get(section, {}).get(key) if isinstance(config.get(section), dict) else None
            if value and not os.path.isabs(value):
                config[section][key] = str(config_dir / value)

    def _apply_environment(self) -> None:
        api_url = os.environ.get("NEBULA_API_URL")
        if api_url:
            self.set("relay.url", api_url)
        port = os.environ.get("PORT")
        if port:
            self.set("server.port", int(port))

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'relay.url').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        value = self.config
        for key in key_path.split('.'):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'room.id')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_temp_directory(self) -> str:
        return str(Path(self.get('transcription.temp_directory')).absolute())
