"""ambient-display library modules."""

from .config import DisplayConfig
from .engine import acquire_light, clamp_brightness, compute_temperature, decide, fallback_brightness
from .models import LightReading, LightSource, TargetState, WeatherSnapshot

__all__ = [
    "DisplayConfig",
    "LightReading",
    "LightSource",
    "TargetState",
    "WeatherSnapshot",
    "acquire_light",
    "clamp_brightness",
    "compute_temperature",
    "decide",
    "fallback_brightness",
]
