"""
Configuration management for battstatus.

Handles loading, validating, and saving monitor configuration.
"""

import json
import threading
from pathlib import Path
from typing import Any, Dict


class ConfigManager:
    """Thread-safe configuration manager."""

    DEFAULT_CONFIG = {
        "poll_interval_ms": 100,
        "max_revival_changes": 20,
        "revival_span_minutes": 30,
        "resume_span_minutes": 3,
        "lifetime_span_minutes": 0,
        "verbose": 0,
        "prevent_sleep": False,
        "enable_notifications": True,
        "notification_cooldown_minutes": 15,
        "log_level": "INFO",
        "log_retention_days": 30
    }

    # key: (minimum, maximum)
    INT_RANGES = {
        "poll_interval_ms": (10, 60000),
        "max_revival_changes": (2, 1000),
        "revival_span_minutes": (1, 1440),
        "resume_span_minutes": (0, 120),
        "lifetime_span_minutes": (0, 120),
        "verbose": (0, 3),
        "notification_cooldown_minutes": (0, 120),
        "log_retention_days": (1, 365),
    }

    BOOL_KEYS = ("prevent_sleep", "enable_notifications")

    VALID_LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]

    def __init__(self, config_path: str = "config.json"):
        """
        Initialize configuration manager.

        Args:
            config_path: Path to configuration file
        """
        self.config_path = Path(config_path)
        self.lock = threading.Lock()
        self.config = self._load_config()

    def _load_config(self) -> Dict:
        """
        Load configuration from file, applying defaults if missing.

        Returns:
            Configuration dictionary
        """
        config = self.DEFAULT_CONFIG.copy()

        if self.config_path.exists():
            try:
                with open(self.config_path, 'r') as f:
                    user_config = json.load(f)

                if not isinstance(user_config, dict):
                    raise ValueError("top level must be an object")

                # Merge user config with defaults
                config.update(user_config)
                print(f"Configuration loaded from {self.config_path}")

            except json.JSONDecodeError as e:
                print(f"Error parsing config file: {e}")
                print("Using default configuration")
            except (OSError, ValueError) as e:
                print(f"Error loading config: {e}")
                print("Using default configuration")
        else:
            print(f"Config file not found at {self.config_path}")
            print("Using default configuration")

        # Validate configuration
        config = self._validate_config(config)

        return config

    def _validate_config(self, config: Dict) -> Dict:
        """
        Validate and sanitize configuration values.

        Integers are clamped into range, booleans and the log level fall back
        to their defaults. A boolean verbose is accepted as level 0 or 1.

        Args:
            config: Configuration dictionary to validate

        Returns:
            Validated configuration dictionary
        """
        if isinstance(config.get("verbose"), bool):
            config["verbose"] = int(config["verbose"])

        for key, (minimum, maximum) in self.INT_RANGES.items():
            value = config.get(key)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                config[key] = self.DEFAULT_CONFIG[key]
            else:
                config[key] = int(max(minimum, min(maximum, value)))

        # Validate boolean settings
        for key in self.BOOL_KEYS:
            if not isinstance(config.get(key), bool):
                config[key] = self.DEFAULT_CONFIG[key]

        # Validate log level
        if config.get("log_level") not in self.VALID_LOG_LEVELS:
            config["log_level"] = "INFO"

        return config

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value.

        Args:
            key: Configuration key
            default: Default value if key not found

        Returns:
            Configuration value
        """
        with self.lock:
            return self.config.get(key, default)

    def get_all(self) -> Dict:
        """Copy of all configuration values."""
        with self.lock:
            return self.config.copy()

    def update(self, updates: Dict) -> bool:
        """
        Update configuration values and re-validate.

        Keys whose value is None are skipped, so unset command line options
        can be passed through unchanged.

        Args:
            updates: Dictionary of key-value pairs to update

        Returns:
            True if any value was applied, False otherwise
        """
        applied = {k: v for k, v in updates.items() if v is not None}
        if not applied:
            return False

        with self.lock:
            new_config = self.config.copy()
            new_config.update(applied)
            self.config = self._validate_config(new_config)

        print(f"Configuration updated: {sorted(applied)}")
        return True

    def save(self) -> bool:
        """
        Save configuration to file.

        Returns:
            True if successful, False otherwise
        """
        with self.lock:
            try:
                self.config_path.parent.mkdir(parents=True, exist_ok=True)

                with open(self.config_path, 'w') as f:
                    json.dump(self.config, f, indent=2)

                print(f"Configuration saved to {self.config_path}")
                return True

            except OSError as e:
                print(f"Error saving configuration: {e}")
                return False
