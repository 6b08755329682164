"""Sensor backend registry with platform detection."""

from __future__ import annotations

import sys
from typing import TYPE_CHECKING

from ..log import log

if TYPE_CHECKING:
    from .protocol import LightSensor

ANY_PLATFORM = "any"


class SensorRegistry:
    """
    Registry for light sensor backends.

    Supports:
    - Automatic platform detection
    - Manual backend selection
    - Backend options (e.g. camera index) passed at instantiation
    """

    _backends: dict[str, type[LightSensor]] = {}
    _instances: dict[str, LightSensor] = {}

    @classmethod
    def register(cls, backend_class: type[LightSensor]) -> type[LightSensor]:
        """Register a backend class (decorator-friendly)."""
        name = backend_class.__name__
        cls._backends[name] = backend_class
        return backend_class

    @classmethod
    def get_for_platform(cls, platform: str | None = None, **options) -> LightSensor | None:
        """Get the best available backend for the current/specified platform."""
        platform = platform or sys.platform

        candidates = []
        for name in cls._backends:
            instance = cls._get_instance(name, **options)
            if instance is None or instance.platform not in (platform, ANY_PLATFORM):
                continue
            if instance.is_available():
                candidates.append(instance)

        if not candidates:
            return None

        return max(candidates, key=lambda b: b.priority)

    @classmethod
    def get_by_name(cls, name: str, **options) -> LightSensor | None:
        """Get a specific backend by class name."""
        return cls._get_instance(name, **options)

    @classmethod
    def _get_instance(cls, name: str, **options) -> LightSensor | None:
        """Get or create backend instance."""
        if name not in cls._instances and name in cls._backends:
            try:
                cls._instances[name] = cls._backends[name](**options)
            except Exception as e:
                log("debug", "backend_init_failed", backend=name, error=str(e))
                return None
        return cls._instances.get(name)

    @classmethod
    def list_backends(cls, **options) -> list[dict]:
        """List all registered backends with status."""
        result = []
        for name in cls._backends:
            instance = cls._get_instance(name, **options)
            if instance is None:
                continue
            result.append(
                {
                    "name": name,
                    "display_name": instance.name,
                    "platform": instance.platform,
                    "priority": instance.priority,
                    "available": instance.is_available(),
                }
            )
        return result

    @classmethod
    def clear(cls) -> None:
        """Clear all registered backends (for testing)."""
        cls._backends.clear()
        cls._instances.clear()
