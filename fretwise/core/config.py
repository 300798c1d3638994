"""Configuration management for fretwise components."""

from typing import Dict, Any, Optional
import copy
import json
import os
from pathlib import Path

from ..logger import get_logger

logger = get_logger(__name__)

DEFAULT_CONFIGS: Dict[str, Dict[str, Any]] = {
    "analyzer": {
        "sample_rate": 44100,
        "silence_rms": 0.01,
        "min_frequency": 60.0,
        "max_frequency": 2000.0,
        "yin_tolerance": 0.1,
        "min_confidence": 0.0,
        "onset_threshold": 1.5,
        "min_onset_energy": 0.05,
    },
    "tempo": {
        "min_onsets": 4,
        "min_onset_interval_ms": 100.0,
        "min_bpm": 40,
        "max_bpm": 240,
    },
    "scoring": {
        "pitch_tolerance_cents": 50.0,
        "timing_window_ms": 500.0,
    },
    "session": {
        "tick_interval": 0.1,
        "energy_history_size": 20,
        "max_detected_notes": 50,
        "onset_window_ms": 30000.0,
        "note_repeat_ms": 200.0,
    },
    "audio_input": {
        "sample_rate": 44100,
        "frame_size": 2048,
        "channels": 1,
    },
}


class ConfigManager:
    """Configuration manager for fretwise components.

    Each section lives in its own JSON file; keys missing from a file are
    filled in from the defaults.
    """

    def __init__(self, config_dir: Optional[str] = None):
        """Initialize the configuration manager.

        Args:
            config_dir: Directory to store configuration files, or None to use default
        """
        if config_dir is None:
            home = os.path.expanduser("~")
            config_dir = os.path.join(home, ".config", "fretwise")

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.default_configs = copy.deepcopy(DEFAULT_CONFIGS)

        self.configs = {}
        for config_name, default_config in self.default_configs.items():
            self.configs[config_name] = self.load_config(config_name, default_config)

    def load_config(self, name: str, default_config: Dict[str, Any]) -> Dict[str, Any]:
        """Load configuration from file or create default.

        Args:
            name: Configuration name
            default_config: Default configuration to use if file doesn't exist

        Returns:
            Configuration dictionary
        """
        config_file = self.config_dir / f"{name}.json"

        if not config_file.exists():
            config = default_config.copy()
            self.save_config(name, config)
            return config

        try:
            with open(config_file, "r") as f:
                config = json.load(f)
            logger.info(f"Loaded configuration from {config_file}")
        except (OSError, ValueError) as e:
            logger.error(f"Error loading configuration from {config_file}: {e}")
            return default_config.copy()

        if not isinstance(config, dict):
            logger.error(f"Ignoring {config_file}: expected a JSON object")
            return default_config.copy()

        for key, value in default_config.items():
            config.setdefault(key, value)
        return config

    def save_config(self, name: str, config: Dict[str, Any]) -> bool:
        """Save configuration to file.

        Args:
            name: Configuration name
            config: Configuration dictionary

        Returns:
            True if saved successfully, False otherwise
        """
        config_file = self.config_dir / f"{name}.json"

        try:
            with open(config_file, "w") as f:
                json.dump(config, f, indent=2)
            logger.info(f"Saved configuration to {config_file}")
            return True
        except OSError as e:
            logger.error(f"Error saving configuration to {config_file}: {e}")
            return False

    def get_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of a configuration section ({} if unknown)."""
        return self.configs.get(name, {}).copy()

    def update_config(self, name: str, updates: Dict[str, Any]) -> bool:
        """Update configuration and save to file.

        Args:
            name: Configuration name
            updates: Dictionary of updates to apply

        Returns:
            True if updated and saved successfully, False otherwise
        """
        if name not in self.configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name].update(updates)
        return self.save_config(name, self.configs[name])

    def reset_config(self, name: str) -> bool:
        """Reset configuration to default.

        Args:
            name: Configuration name

        Returns:
            True if reset successfully, False otherwise
        """
        if name not in self.default_configs:
            logger.error(f"Unknown configuration: {name}")
            return False

        self.configs[name] = self.default_configs[name].copy()
        return self.save_config(name, self.configs[name])
