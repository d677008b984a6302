"""
Configuration Management System for GeoQuiz.

This module provides centralized configuration management for the quiz engine.
It loads parameters from geoquiz_config.txt with type-safe parsing and
default values for every component.

Key Features:
- Type-safe parameter parsing (string, int, float, bool)
- Hierarchical configuration: CLI args → Config file → Defaults
- Support for list and mapping values (threshold options, abbreviation tables)

Architecture:
- ConfigLoader: Main configuration management class
- Global config singleton via get_config()
- Automatic project root detection

The configuration system supports:
- Statistics parameters (ranking size)
- Canonicalization defaults (abbreviation table)
- Threshold controls (attributes and their selectable cutoffs)
- Collection fetching and guess persistence settings
"""

import logging
from pathlib import Path
from typing import Dict, Any, List, Union

logger = logging.getLogger(__name__)

__all__ = ["ConfigLoader", "get_config", "reload_config"]


class ConfigLoader:
    """
    Loads and manages configuration parameters for the quiz engine.

    Provides type-safe access to configuration values with defaults.
    """

    def __init__(self, config_file: str = "geoquiz_config.txt"):
        """
        Initialize configuration loader.

        Args:
            config_file: Path to configuration file relative to project root
        """
        self.config_file = config_file
        self.config: Dict[str, Any] = {}
        self._load_config()

    def _load_config(self):
        """Load configuration from file."""
        current_path = Path(__file__).parent
        config_path = None

        # Search up the directory tree
        for _ in range(5):  # Limit search depth
            potential_path = current_path / self.config_file
            if potential_path.exists():
                config_path = potential_path
                break
            current_path = current_path.parent

        if config_path is None:
            logger.warning(f"Config file {self.config_file} not found, using defaults")
            self._load_defaults()
            return

        logger.info(f"Loading configuration from {config_path}")
        self._load_defaults()

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                for line_num, line in enumerate(f, 1):
                    line = line.strip()

                    # Skip comments and empty lines
                    if not line or line.startswith("#"):
                        continue

                    if "=" not in line:
                        logger.warning(f"Invalid config line {line_num}: {line}")
                        continue

                    key, value = line.split("=", 1)
                    self.config[key.strip()] = self._parse_value(value.strip())

            logger.info(f"Loaded {len(self.config)} configuration parameters")

        except OSError as e:
            logger.error(f"Failed to load config: {e}")
            self._load_defaults()

    def _parse_value(self, value: str) -> Union[str, int, float, bool]:
        """Parse string value to appropriate Python type."""
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        if value.replace(".", "", 1).replace("-", "", 1).isdigit():
            if "." in value:
                return float(value)
            else:
                return int(value)

        return value

    def _load_defaults(self):
        """Load default configuration values."""
        self.config = {
            # Statistics
            "RANKING_SIZE": 10,
            # Canonicalization
            "DEFAULT_ABBREVIATIONS": "saint:st,mt:mount",
            # Threshold controls
            "THRESHOLD_ATTRIBUTES": "prominence,elevation",
            "THRESHOLD_PROMINENCE_OPTIONS": "0,100,300,500,1000,2000,4000",
            "THRESHOLD_ELEVATION_OPTIONS": "0,1000,2000,3000,4000,5000,6000,8000",
            # Collection loading
            "FETCH_TIMEOUT_SECONDS": 20,
            # Guess persistence
            "GUESS_STORE_DIR": "",
            "DEFAULT_QUIZ_KEY": "default",
        }

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by key.

        Args:
            key: Configuration parameter name
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        return self.config.get(key, default)

    def get_int(self, key: str, default: int = 0) -> int:
        """Get integer configuration value."""
        value = self.get(key, default)
        try:
            return int(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid integer value for {key}: {value}")
            return default

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get float configuration value."""
        value = self.get(key, default)
        try:
            return float(value)
        except (ValueError, TypeError):
            logger.warning(f"Invalid float value for {key}: {value}")
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get boolean configuration value."""
        value = self.get(key, default)
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return default

    def get_string(self, key: str, default: str = "") -> str:
        """Get string configuration value."""
        value = self.get(key, default)
        return str(value) if value is not None else default

    def get_list_of_strings(self, key: str, default: str = "") -> List[str]:
        """Get list of strings from comma-separated string configuration value."""
        value = self.get_string(key, default)
        return [item.strip() for item in value.split(",") if item.strip()]

    def get_list_of_ints(self, key: str, default: str = "") -> list:
        """Get list of integers from comma-separated string configuration value."""
        value = self.get_string(key, default)
        if not value:
            return []
        try:
            return [int(item.strip()) for item in value.split(",")]
        except (ValueError, TypeError):
            logger.warning(f"Invalid list of integers for {key}: {value}")
            if default:
                return [int(item.strip()) for item in default.split(",")]
            return []

    def get_mapping(self, key: str, default: str = "") -> Dict[str, str]:
        """
        Get mapping from a "key:value,key:value" configuration value.

        Malformed pairs are skipped with a warning.
        """
        mapping = {}
        for pair in self.get_list_of_strings(key, default):
            if ":" not in pair:
                logger.warning(f"Invalid mapping entry for {key}: {pair}")
                continue
            source, target = pair.split(":", 1)
            mapping[source.strip()] = target.strip()
        return mapping

    def get_statistics_config(self) -> Dict[str, Any]:
        """Get statistics engine configuration."""
        return {
            "ranking_size": self.get_int("RANKING_SIZE", 10),
        }

    def get_threshold_config(self) -> Dict[str, List[int]]:
        """Get threshold control options keyed by attribute name."""
        options = {}
        for name in self.get_list_of_strings("THRESHOLD_ATTRIBUTES", "prominence,elevation"):
            values = self.get_list_of_ints(f"THRESHOLD_{name.upper()}_OPTIONS", "0")
            options[name] = sorted(set(values)) or [0]
        return options

    def get_cli_defaults(self) -> Dict[str, Any]:
        """Get CLI default values."""
        store_dir = self.get_string("GUESS_STORE_DIR", "")
        return {
            "guess_dir": store_dir or str(Path.home() / ".geoquiz" / "guesses"),
            "quiz_key": self.get_string("DEFAULT_QUIZ_KEY", "default"),
            "timeout": self.get_int("FETCH_TIMEOUT_SECONDS", 20),
            "ranking_size": self.get_int("RANKING_SIZE", 10),
        }


# Global configuration instance
_config = None


def get_config() -> ConfigLoader:
    """Get global configuration instance."""
    global _config
    if _config is None:
        _config = ConfigLoader()
    return _config


def reload_config():
    """Reload configuration from file."""
    global _config
    _config = ConfigLoader()
    return _config
