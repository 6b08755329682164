"""Configuration loading and validation.

Settings are layered: the JSON config file, then the ``OPENWEATHER_API_KEY``
environment variable, then command-line flags. The result handed to the
engine is an immutable :class:`DisplayConfig`.
"""

from __future__ import annotations

import json
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import ConfigError

CONFIG_FILE = Path.home() / ".config/ambient-display/config.json"
API_KEY_ENV = "OPENWEATHER_API_KEY"

DEFAULT_MIN_BRIGHTNESS = 0.6
DEFAULT_DAY_TEMP = 6500.0
DEFAULT_NIGHT_TEMP = 3500.0
DEFAULT_TRANSITION_HOURS = 2.0

# Fraction of daylight removed by full overcast. Fully clouded noon sky still
# yields 0.25 before the floor is applied.
DEFAULT_CLOUD_ATTENUATION = 0.75

# Nominal sun times used for the color curve when no weather was fetched
DEFAULT_SUNRISE_HOUR = 6.0
DEFAULT_SUNSET_HOUR = 18.0


def _require_finite(name: str, value: float) -> float:
    try:
        value = float(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}") from None
    if not math.isfinite(value):
        raise ConfigError(f"{name} must be finite, got {value!r}")
    return value


@dataclass(frozen=True)
class DisplayConfig:
    """Validated settings for a single run."""

    monitors: tuple[str, ...]
    min_brightness: float = DEFAULT_MIN_BRIGHTNESS
    day_temp: float = DEFAULT_DAY_TEMP
    night_temp: float = DEFAULT_NIGHT_TEMP
    transition_hours: float = DEFAULT_TRANSITION_HOURS
    cloud_attenuation: float = DEFAULT_CLOUD_ATTENUATION
    sunrise_hour: float = DEFAULT_SUNRISE_HOUR
    sunset_hour: float = DEFAULT_SUNSET_HOUR
    latitude: float | None = None
    longitude: float | None = None

    def __post_init__(self):
        # Normalize numeric fields; frozen dataclass needs object.__setattr__
        for name in (
            "min_brightness",
            "day_temp",
            "night_temp",
            "transition_hours",
            "cloud_attenuation",
            "sunrise_hour",
            "sunset_hour",
        ):
            object.__setattr__(self, name, _require_finite(name, getattr(self, name)))

        if not 0.0 <= self.min_brightness <= 1.0:
            raise ConfigError(f"min_brightness must be within 0.0-1.0, got {self.min_brightness}")
        if self.transition_hours < 0:
            raise ConfigError(f"transition_hours must be >= 0, got {self.transition_hours}")
        if self.transition_hours >= 24:
            raise ConfigError(f"transition_hours must be < 24, got {self.transition_hours}")
        if not 0.0 <= self.cloud_attenuation <= 1.0:
            raise ConfigError(f"cloud_attenuation must be within 0.0-1.0, got {self.cloud_attenuation}")
        if self.day_temp <= 0 or self.night_temp <= 0:
            raise ConfigError("day_temp and night_temp must be positive Kelvin values")
        for name in ("sunrise_hour", "sunset_hour"):
            if not 0.0 <= getattr(self, name) < 24.0:
                raise ConfigError(f"{name} must be within 0-24, got {getattr(self, name)}")
        if self.sunrise_hour >= self.sunset_hour:
            raise ConfigError("sunrise_hour must be earlier than sunset_hour")

        monitors = tuple(self.monitors)
        if not monitors:
            raise ConfigError("at least one monitor name is required")
        for name in monitors:
            if not isinstance(name, str) or not name.strip():
                raise ConfigError(f"invalid monitor name: {name!r}")
        object.__setattr__(self, "monitors", monitors)

        if (self.latitude is None) != (self.longitude is None):
            raise ConfigError("latitude and longitude must be given together")
        if self.latitude is not None:
            lat = _require_finite("latitude", self.latitude)
            lon = _require_finite("longitude", self.longitude)
            if not -90 <= lat <= 90 or not -180 <= lon <= 180:
                raise ConfigError(f"coordinates out of range: {lat}, {lon}")
            object.__setattr__(self, "latitude", lat)
            object.__setattr__(self, "longitude", lon)

    @property
    def has_location(self) -> bool:
        return self.latitude is not None and self.longitude is not None


def load_config(path: Path | None = None) -> dict:
    """
    Load the JSON config file.

    A missing file yields an empty dict. A file that exists but cannot be
    parsed is an error: silently ignoring it would apply unexpected defaults.
    """
    path = path or CONFIG_FILE
    if not path.exists():
        return {}

    try:
        with open(path) as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigError(f"cannot read {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"{path} must contain a JSON object")
    return config


def save_location(lat: float, lon: float, path: Path | None = None) -> Path:
    """Store coordinates in the config file, keeping other keys."""
    path = path or CONFIG_FILE
    config = load_config(path)
    config["lat"] = lat
    config["lon"] = lon
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(config, f, indent=2)
    return path


def parse_monitors(value: str | list | None) -> list[str]:
    """Accept ``"DP-0,HDMI-0"`` or a JSON list; blanks are dropped."""
    if value is None:
        return []
    if isinstance(value, str):
        items = value.split(",")
    else:
        items = list(value)
    return [str(item).strip() for item in items if str(item).strip()]


def resolve_api_key(cli_value: str | None, file_config: dict) -> str | None:
    """Flag wins over environment, environment over the config file."""
    for candidate in (cli_value, os.environ.get(API_KEY_ENV), file_config.get("api_key")):
        if candidate:
            return candidate
    return None


# Keys accepted in the config file, mapped to DisplayConfig fields
_FILE_KEYS = {
    "min_brightness": "min_brightness",
    "day_temp": "day_temp",
    "night_temp": "night_temp",
    "transition_hours": "transition_hours",
    "cloud_attenuation": "cloud_attenuation",
    "sunrise_hour": "sunrise_hour",
    "sunset_hour": "sunset_hour",
    "lat": "latitude",
    "lon": "longitude",
}


def build_config(
    file_config: dict,
    overrides: dict[str, Any],
    monitors: list[str],
) -> DisplayConfig:
    """
    Merge file values and non-None overrides into a DisplayConfig.

    Args:
        file_config: Parsed config file (see :func:`load_config`)
        overrides: DisplayConfig field names to values; None means unset
        monitors: Resolved monitor names (flag, file, or detection)

    Raises:
        ConfigError: If any value is invalid
    """
    values: dict[str, Any] = {}
    for key, field_name in _FILE_KEYS.items():
        if file_config.get(key) is not None:
            values[field_name] = file_config[key]

    for key, value in overrides.items():
        if value is not None:
            values[key] = value

    return DisplayConfig(monitors=tuple(monitors), **values)
