"""Light sensor abstraction layer with plugin support."""

from __future__ import annotations

from .loader import discover_backends, get_backend, get_best_backend, load_plugins
from .protocol import LightSensor, SensorReading
from .registry import SensorRegistry

__all__ = [
    "LightSensor",
    "SensorReading",
    "SensorRegistry",
    "discover_backends",
    "get_backend",
    "get_best_backend",
    "load_plugins",
]
