"""
Configuration management for ytbeats.
"""
import os
import sys
from pathlib import Path
from dataclasses import dataclass
from typing import Optional, Dict, Any

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from logging_config import get_logger

logger = get_logger('config')

SUPPORTED_DECODERS = ["auto", "ffplay", "mpv"]
VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

# TOML section/key -> AppConfig attribute
_CONFIG_KEYS = {
    ("search", "limit"): "search_limit",
    ("player", "resolver"): "resolver",
    ("player", "audio_format"): "audio_format",
    ("player", "decoder"): "decoder",
    ("logging", "level"): "log_level",
    ("logging", "file"): "log_file",
}


@dataclass
class AppConfig:
    """Application configuration settings."""

    # Search settings
    search_limit: int = 10

    # External commands
    resolver: str = "yt-dlp"
    audio_format: str = "bestaudio"
    decoder: str = "auto"  # auto, ffplay, mpv

    # Logging settings
    log_level: str = "WARNING"
    log_file: Optional[str] = None


class ConfigManager:
    """Loads and validates the optional TOML config file.

    The file is only ever read; a missing file means defaults.
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = config_path or self._get_default_config_path()
        self.config: AppConfig = AppConfig()
        self._load_config()

    def _get_default_config_path(self) -> Path:
        """Get default configuration file path."""
        xdg_config = os.environ.get("XDG_CONFIG_HOME")
        if xdg_config:
            return Path(xdg_config) / "ytbeats" / "ytbeats.toml"
        return Path.home() / ".config" / "ytbeats" / "ytbeats.toml"

    def _load_config(self) -> None:
        """Load configuration from file."""
        if not self.config_path.exists():
            logger.debug(f"Config file not found at {self.config_path}, using defaults")
            return

        try:
            with open(self.config_path, 'rb') as f:
                data = tomllib.load(f)
        except (tomllib.TOMLDecodeError, OSError) as e:
            logger.error(f"Failed to load config: {e}")
            logger.info("Using default configuration")
            return

        self._apply_config_data(data)
        logger.info(f"Loaded configuration from {self.config_path}")

    def _apply_config_data(self, data: Dict[str, Any]) -> None:
        """Apply parsed TOML sections to the AppConfig object."""
        for section, values in data.items():
            if not isinstance(values, dict):
                logger.warning(f"Ignoring config entry outside a section: {section}")
                continue
            for key, value in values.items():
                attr = _CONFIG_KEYS.get((section, key))
                if attr is None:
                    logger.warning(f"Unknown config key: {section}.{key}")
                    continue
                if attr == "log_file" and not value:
                    value = None
                setattr(self.config, attr, value)

    def validate_config(self) -> bool:
        """Validate current configuration."""
        issues = []

        if not isinstance(self.config.search_limit, int) or not (1 <= self.config.search_limit <= 10):
            issues.append(f"Search limit must be 1-10, got {self.config.search_limit}")

        if self.config.decoder not in SUPPORTED_DECODERS:
            issues.append(f"Invalid decoder: {self.config.decoder}")

        if not self.config.resolver:
            issues.append("Resolver command must not be empty")

        if str(self.config.log_level).upper() not in VALID_LOG_LEVELS:
            issues.append(f"Invalid log level: {self.config.log_level}")

        if issues:
            logger.warning(f"Configuration validation issues: {issues}")
            return False

        return True

    def reset_to_defaults(self) -> None:
        """Reset configuration to defaults."""
        self.config = AppConfig()
        logger.info("Configuration reset to defaults")


def load_config(config_path: Optional[Path] = None) -> ConfigManager:
    """Load configuration and return manager."""
    manager = ConfigManager(config_path)
    if not manager.validate_config():
        manager.reset_to_defaults()
    return manager
