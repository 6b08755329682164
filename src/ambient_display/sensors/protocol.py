"""Light sensor backend protocol and data types."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol, runtime_checkable


@dataclass
class SensorReading:
    """A reading from a light sensor backend."""

    luminance: float | None = None  # normalized 0-1
    raw_value: float | None = None  # backend-specific, e.g. mean pixel 0-255
    error: str | None = None

    @property
    def is_valid(self) -> bool:
        """Check if the reading is valid (no error and has luminance)."""
        return self.error is None and self.luminance is not None


@runtime_checkable
class LightSensor(Protocol):
    """Protocol for ambient light sensor backends."""

    @property
    def name(self) -> str:
        """Human-readable name for this backend."""
        ...

    @property
    def platform(self) -> str:
        """Platform this backend runs on (darwin, linux, win32, or 'any')."""
        ...

    @property
    def priority(self) -> int:
        """Higher wins when several backends are available."""
        ...

    def is_available(self) -> bool:
        """Check if this backend can be used on the current system."""
        ...

    def read(self) -> SensorReading:
        """Take a reading. Returns SensorReading with error on failure."""
        ...
