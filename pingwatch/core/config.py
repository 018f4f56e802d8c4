"""Configuration management for pingwatch."""

import json
import platform
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger

from pingwatch.core.constants import (
    APP_NAME,
    DEFAULT_INTERVAL_MS,
    DEFAULT_TIMEOUT_MS,
    FILE_ENCODING,
    RESULTS_DIR,
    TRACE_CONCURRENCY,
)


class Config:
    """Manages pingwatch configuration."""

    def __init__(self, config_path: Optional[Path] = None):
        """Initialize configuration.

        Args:
            config_path: Path to configuration file. If None, uses default path.
        """
        self.config_path = config_path or self._get_default_config_path()
        self.config_data: Dict[str, Any] = {}
        self._load_config()

    @staticmethod
    def _get_default_config_path() -> Path:
        """Get default configuration path based on platform."""
        system = platform.system()
        home = Path.home()

        if system == "Windows":
            config_dir = home / "AppData" / "Roaming" / APP_NAME
        elif system == "Darwin":
            config_dir = home / "Library" / "Application Support" / APP_NAME
        else:  # Linux and others
            config_dir = home / ".config" / APP_NAME

        config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir / "config.json"

    def _load_config(self) -> None:
        """Load configuration from file, filling in missing keys from defaults."""
        defaults = self._get_default_config()
        if self.config_path.exists() and self.config_path.stat().st_size > 0:
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    loaded = json.load(f)
                self.config_data = _merge(defaults, loaded if isinstance(loaded, dict) else {})
            except (json.JSONDecodeError, IOError) as e:
                logger.error(f"Error loading config: {e}. Using default configuration.")
                self.config_data = defaults
        else:
            self.config_data = defaults
            self.save()

    @staticmethod
    def _get_default_config() -> Dict[str, Any]:
        """Get default configuration."""
        return {
            "log_level": "info",
            "interval_ms": DEFAULT_INTERVAL_MS,
            "timeout_ms": DEFAULT_TIMEOUT_MS,
            "probe": {
                # None = decide from the current privileges
                "privileged": None,
            },
            "trace": {
                "concurrency": TRACE_CONCURRENCY,
                "no_resolve": True,
            },
            "export_dir": RESULTS_DIR,
            "file_encoding": FILE_ENCODING,
        }

    def save(self) -> None:
        """Save configuration to file."""
        self.config_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w", encoding="utf-8") as f:
            json.dump(self.config_data, f, indent=2)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value.

        Args:
            key: Configuration key (supports dot notation, e.g., 'trace.concurrency')
            default: Default value if key doesn't exist

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self.config_data
        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value.

        Args:
            key: Configuration key (supports dot notation)
            value: Value to set
        """
        keys = key.split(".")
        data = self.config_data
        for k in keys[:-1]:
            if not isinstance(data.get(k), dict):
                data[k] = {}
            data = data[k]
        data[keys[-1]] = value

    def import_config(self, config_file: Path, file_format: str = "json") -> bool:
        """Import configuration from file.

        Args:
            config_file: Path to configuration file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    data = yaml.safe_load(f)
                else:
                    data = json.load(f)

            # Merge with existing config
            if isinstance(data, dict):
                self.config_data = _merge(self.config_data, data)
                self.save()
                return True
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error(f"Error importing config: {e}")
        return False

    def export_config(self, output_file: Path, file_format: str = "json") -> bool:
        """Export configuration to file.

        Args:
            output_file: Path to output file
            file_format: File format ('json' or 'yaml')

        Returns:
            True if successful, False otherwise
        """
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                if file_format.lower() == "yaml":
                    yaml.dump(self.config_data, f, default_flow_style=False)
                else:
                    json.dump(self.config_data, f, indent=2)
            return True
        except (OSError, yaml.YAMLError) as e:
            logger.error(f"Error exporting config: {e}")
        return False


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge override into a copy of base."""
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged
