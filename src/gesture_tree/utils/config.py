"""
Centralized configuration manager.
Loads a YAML config over built-in defaults and provides typed access.

    - Deep merge over defaults, so a partial file is enough
    - Schema validation for critical fields (warnings, never fatal)
    - Reset support for testing
"""

import copy
import os
import logging

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = os.path.join("config", "config.yaml")

_DEFAULTS = {
    "camera": {
        "device_id": 0,
        "width": 640,
        "height": 480,
        "fps": 30,
        "buffer_size": 1,
        "warmup_frames": 5,
        "flip_horizontal": False,
    },
    "mediapipe": {
        "model_path": "",
        "max_num_hands": 1,
        "min_detection_confidence": 0.5,
        "min_tracking_confidence": 0.5,
        "min_presence_confidence": 0.5,
    },
    "recognition": {
        "thumb_folded_distance": 0.20,
        "pinch_distance": 0.05,
        "open_palm_spread": 0.10,
        "fist_min_folded": 3,
    },
    "controller": {
        "cooldown_s": 1.5,
        "initial_mode": "tree",
    },
    "scene": {
        "ornament_count": 150,
        "tree_height": 12.0,
        "tree_radius": 5.0,
        "scatter_radius": 15.0,
        "seed": None,
    },
    "animation": {
        "lerp_speed": 0.05,
        "camera_smoothing": 0.1,
        "frame_rate_independent": False,
    },
    "visualization": {
        "window_name": "Gesture Tree",
        "width": 960,
        "height": 720,
        "show_hud": True,
        "show_camera": False,
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size_mb": 10,
        "backup_count": 3,
    },
}

# Schema: sections and their expected types
_CONFIG_SCHEMA = {
    "camera": {
        "device_id": int,
        "width": int,
        "height": int,
        "fps": int,
    },
    "mediapipe": {
        "min_detection_confidence": float,
        "min_tracking_confidence": float,
    },
    "controller": {
        "cooldown_s": float,
        "initial_mode": str,
    },
    "scene": {
        "ornament_count": int,
        "tree_height": float,
        "tree_radius": float,
        "scatter_radius": float,
    },
    "animation": {
        "lerp_speed": float,
        "camera_smoothing": float,
    },
}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge override into base dict."""
    merged = base.copy()
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class Config:
    """Singleton configuration manager."""

    _instance = None
    _data = copy.deepcopy(_DEFAULTS)

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def load(self, config_path=None):
        """Load configuration from a YAML file, merged over defaults."""
        config_path = config_path or DEFAULT_CONFIG_PATH

        try:
            with open(config_path, "r") as f:
                loaded = yaml.safe_load(f) or {}
            logger.info("Loaded config from %s", config_path)
        except FileNotFoundError:
            logger.warning("Config file not found: %s, using defaults", config_path)
            loaded = {}
        except yaml.YAMLError as e:
            logger.warning("Config file %s is not valid YAML, using defaults: %s", config_path, e)
            loaded = {}

        if not isinstance(loaded, dict):
            logger.warning("Config root should be a mapping, got %s; using defaults",
                           type(loaded).__name__)
            loaded = {}

        type(self)._data = _deep_merge(copy.deepcopy(_DEFAULTS), loaded)
        self._validate()
        return self

    def _validate(self):
        """Validate critical config fields against schema.

        A mistyped field is replaced with its default so downstream
        components never see it.
        """
        warnings = []
        for section_name, fields in _CONFIG_SCHEMA.items():
            section = self._data.get(section_name)
            if not isinstance(section, dict):
                warnings.append(f"Section '{section_name}' should be a dict, got {type(section).__name__}")
                self._data[section_name] = copy.deepcopy(_DEFAULTS[section_name])
                continue
            for field_name, expected_type in fields.items():
                if field_name in section:
                    value = section[field_name]
                    # Allow int where float is expected
                    if expected_type is float and isinstance(value, (int, float)) \
                            and not isinstance(value, bool):
                        continue
                    if not isinstance(value, expected_type):
                        warnings.append(
                            f"{section_name}.{field_name}: expected {expected_type.__name__}, "
                            f"got {type(value).__name__} ({value!r}), using default"
                        )
                        section[field_name] = _DEFAULTS[section_name][field_name]

        for w in warnings:
            logger.warning("Config validation: %s", w)
        if not warnings:
            logger.debug("Config validation passed")
        return warnings

    def get(self, key_path: str, default=None):
        """Get nested config value using dot notation: 'camera.width'."""
        value = self._data
        for key in key_path.split("."):
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default
        return value

    def get_section(self, section: str) -> dict:
        """Get an entire config section."""
        value = self._data.get(section, {})
        return value if isinstance(value, dict) else {}

    @property
    def camera(self) -> dict:
        return self.get_section("camera")

    @property
    def mediapipe(self) -> dict:
        return self.get_section("mediapipe")

    @property
    def recognition(self) -> dict:
        return self.get_section("recognition")

    @property
    def controller(self) -> dict:
        return self.get_section("controller")

    @property
    def scene(self) -> dict:
        return self.get_section("scene")

    @property
    def animation(self) -> dict:
        return self.get_section("animation")

    @property
    def visualization(self) -> dict:
        return self.get_section("visualization")

    @property
    def log_settings(self) -> dict:
        return self.get_section("logging")

    @classmethod
    def reset(cls):
        """Reset singleton instance (for testing)."""
        cls._instance = None
        cls._data = copy.deepcopy(_DEFAULTS)
