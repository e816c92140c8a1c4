"""
Configuration Management for SWARM

Loads and provides access to configuration from config.json.
Every tunable of the motion grid, gesture classifier, particle field and
attractor shapes lives there so the simulation can be tuned without code changes.
Supports both plain values and the [value, description] format.
"""

import json
import os
from typing import Dict, Any, Optional, Tuple
from pathlib import Path


DEFAULT_CONFIG_PATH = Path(__file__).parent / "config.json"


def _is_described(entry) -> bool:
    """True for a [value, "description"] entry; plain lists are values."""
    return isinstance(entry, list) and len(entry) == 2 and isinstance(entry[1], str)


class Config:
    """
    Singleton configuration manager that loads from config.json
    """
    _instance = None
    _config_data: Dict[str, Any] = {}
    _config_path: str = ""

    def __new__(cls, *args, **kwargs):
        # Config(path) must still hand back the shared instance
        if cls._instance is None:
            cls._instance = super(Config, cls).__new__(cls)
        return cls._instance

    def __init__(self, config_path: Optional[str] = None):
        """
        Initialize configuration from JSON file.

        Args:
            config_path: Path to config.json. If provided, force reload from
                         that path. If None, load from the default location
                         only on first initialization.
        """
        if config_path is not None:
            self._config_path = str(config_path)
            self.reload()
            return

        if not self._config_data:
            self._config_path = str(DEFAULT_CONFIG_PATH)
            self.reload()

    @property
    def path(self) -> str:
        return self._config_path

    def mtime(self) -> float:
        """Modification time of the backing file, 0 when it is missing."""
        try:
            return os.path.getmtime(self._config_path)
        except OSError:
            return 0.0

    def reload(self):
        """Reload configuration from file."""
        try:
            with open(self._config_path, 'r') as f:
                self._config_data = json.load(f)
            print(f"✓ Loaded configuration from {self._config_path}")
        except FileNotFoundError:
            print(f"⚠ Config file not found: {self._config_path}")
            print("  Using default values")
            self._config_data = self._get_defaults()
        except json.JSONDecodeError as e:
            print(f"⚠ Error parsing config file: {e}")
            print("  Using default values")
            self._config_data = self._get_defaults()

    def save(self):
        """Save current configuration back to file."""
        try:
            with open(self._config_path, 'w') as f:
                json.dump(self._config_data, f, indent=2)
            print(f"✓ Saved configuration to {self._config_path}")
        except OSError as e:
            print(f"✗ Error saving config: {e}")

    def get(self, *keys, default=None) -> Any:
        """
        Get configuration value using dot notation.
        Handles both plain values and the [value, description] format.

        Examples:
            config.get('motion', 'threshold')  # Returns 26
            config.get('particles', 'background')  # Returns [3, 7, 15]

        Args:
            keys: Path to value (e.g., 'gestures', 'sample_interval')
            default: Default value if path doesn't exist

        Returns:
            Configuration value or default
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default

        if _is_described(current):
            value = current[0]
            return default if value is None else value

        return current

    def get_with_description(self, *keys, default=None) -> Tuple[Any, str]:
        """
        Get configuration value AND description.

        Returns:
            Tuple of (value, description) or (default, "")
        """
        current = self._config_data
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return (default, "")

        if _is_described(current):
            return (current[0], current[1])

        return (current, "")

    def set(self, *keys, value):
        """
        Set configuration value using dot notation.
        Keeps the description when the entry uses the [value, description] format.

        Example:
            config.set('app_control', 'pause', value=True)
        """
        if len(keys) == 0:
            return

        current = self._config_data
        for key in keys[:-1]:
            if key not in current:
                current[key] = {}
            current = current[key]

        entry = current.get(keys[-1])
        if _is_described(entry):
            current[keys[-1]] = [value, entry[1]]
        else:
            current[keys[-1]] = value

    def _get_defaults(self) -> Dict:
        """Return default configuration values."""
        return {
            "camera": {
                "index": 0,
                "width": 1280,
                "height": 720,
                "fps": 60
            },
            "display": {
                "window_width": 1280,
                "window_height": 720,
                "flip_horizontal": True,
                "fps_update_interval": 30,
                "tick_interval_ms": 16,
                "show_fps": True
            },
            "motion": {
                "analysis_width": 180,
                "analysis_height": 100,
                "grid_cols": 24,
                "grid_rows": 14,
                "sample_step": 2,
                "threshold": 26
            },
            "gestures": {
                "enabled": True,
                "sample_interval": 3,
                "confidence_ramp_up": 0.08,
                "confidence_decay": 0.1,
                "idle_decay": 0.05,
                "switch_threshold": 0.2,
                "thumbs_up_margin": 0.05,
                "mirrored_feed": True
            },
            "particles": {
                "max_particles": 1200,
                "spawn_top_k": 32,
                "max_spawn_per_cell": 6,
                "spawn_strength_divisor": 90,
                "pull": 0.08,
                "pull_strength_divisor": 480,
                "max_pull": 1.4,
                "jitter": 0.08,
                "open_jitter": 0.18,
                "swirl": 0.08,
                "damping": 0.985,
                "point_damping": 0.99,
                "fist_damping": 0.96,
                "wrap_margin": 10,
                "fade_alpha": 0.24,
                "background": [[3, 7, 15], "Trail fade fill color (RGB)"],
                "seed": None
            },
            "attractors": {
                "text": "HELLO",
                "text_fit": 0.6,
                "text_stride": 6,
                "text_alpha_threshold": 32,
                "text_strength": 1050,
                "heart_scale": 0.32,
                "heart_step": 0.06,
                "heart_lift": 0.05,
                "heart_strength": 1050,
                "center_strength": 900,
                "corner_size": 0.5,
                "corner_strength": 800,
                "square_strength": 750,
                "triangle_radius": 0.3,
                "triangle_strength": 850,
                "triangle_center_strength": 200,
                "motion_passthrough": 8
            },
            "performance": {
                "use_gpu": True,
                "max_hands": 2,
                "min_detection_confidence": 0.6,
                "min_tracking_confidence": 0.5,
                "show_debug_info": False
            },
            "app_control": {
                "pause": False,
                "exit": False
            }
        }

    @property
    def data(self) -> Dict:
        """Get entire configuration dictionary."""
        return self._config_data


# Global configuration instance
config = Config()


# Convenience functions for common access patterns
def get_motion_setting(param_name: str, default=None):
    """Get a motion grid parameter."""
    return config.get('motion', param_name, default=default)


def get_gesture_setting(param_name: str, default=None):
    """Get a gesture classifier parameter."""
    return config.get('gestures', param_name, default=default)


def get_particle_setting(param_name: str, default=None):
    """Get a particle field parameter."""
    return config.get('particles', param_name, default=default)


def get_attractor_setting(param_name: str, default=None):
    """Get an attractor shape parameter."""
    return config.get('attractors', param_name, default=default)


if __name__ == "__main__":
    print("\n=== Configuration Test ===\n")

    print("Motion Grid:")
    print(f"  Analysis: {get_motion_setting('analysis_width')}x{get_motion_setting('analysis_height')}")
    print(f"  Grid: {get_motion_setting('grid_cols')}x{get_motion_setting('grid_rows')}")
    print(f"  Threshold: {get_motion_setting('threshold')}")

    print("\nParticles:")
    print(f"  Cap: {get_particle_setting('max_particles')}")
    print(f"  Damping: {get_particle_setting('damping')}")

    print("\nAttractors:")
    print(f"  Text: {get_attractor_setting('text')}")

    print("\n✓ Configuration system working!")
