"""Plugin loading for light sensor backends."""

from __future__ import annotations

import importlib.metadata
from typing import TYPE_CHECKING

from ..log import log
from .registry import SensorRegistry

if TYPE_CHECKING:
    from .protocol import LightSensor

ENTRY_POINT_GROUP = "ambient_display.sensors"


def load_plugins() -> None:
    """
    Load sensor plugins from entry points.

    Plugins can register via pyproject.toml:

    [project.entry-points."ambient_display.sensors"]
    my_sensor = "my_package.sensors:MySensorBackend"
    """
    for ep in importlib.metadata.entry_points(group=ENTRY_POINT_GROUP):
        try:
            backend_class = ep.load()
        except Exception as e:
            log("warn", "plugin_load_failed", plugin=ep.name, error=str(e))
            continue
        # Check if it looks like a LightSensor
        if (
            isinstance(backend_class, type)
            and hasattr(backend_class, "name")
            and hasattr(backend_class, "is_available")
            and hasattr(backend_class, "read")
        ):
            SensorRegistry.register(backend_class)
        else:
            log("warn", "plugin_ignored", plugin=ep.name, reason="not a light sensor backend")


def load_builtin_backends() -> None:
    """Load the built-in sensor backends."""
    # Import backends to trigger registration
    from . import backends  # noqa: F401


def discover_backends(**options) -> list[dict]:
    """Discover and list all available backends."""
    load_builtin_backends()
    load_plugins()
    return SensorRegistry.list_backends(**options)


def get_best_backend(**options) -> LightSensor | None:
    """Get the best available backend for the current platform."""
    load_builtin_backends()
    load_plugins()
    return SensorRegistry.get_for_platform(**options)


def get_backend(name: str, **options) -> LightSensor | None:
    """Get a backend by class name, e.g. ``WebcamBackend``."""
    load_builtin_backends()
    load_plugins()
    return SensorRegistry.get_by_name(name, **options)
