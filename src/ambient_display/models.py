"""Value types passed between sensors, environment, engine and display."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class LightSource(Enum):
    """Where a light reading came from. Informational only."""

    WEBCAM = "webcam"
    WEATHER_FALLBACK = "weather"
    LAST_RESORT = "last_resort"  # fallback path failed, floor used
    OVERRIDE = "override"  # --luminance on the command line


@dataclass(frozen=True)
class Coordinates:
    """Observer location, from config or IP geolocation."""

    lat: float
    lon: float
    city: str | None = None
    country: str | None = None
    timezone: str | None = None

    @property
    def label(self) -> str:
        if self.city and self.country:
            return f"{self.city}, {self.country}"
        return f"{self.lat:.4f}, {self.lon:.4f}"


@dataclass(frozen=True)
class WeatherSnapshot:
    """Cloud coverage and sun times for the observer's local day."""

    cloud_coverage: float  # fraction 0-1
    sunrise: datetime
    sunset: datetime
    now: datetime


@dataclass(frozen=True)
class LightReading:
    """
    Normalized ambient luminance in [0, 1] tagged with its source.

    ``weather`` is set when the value came from the weather model, so the
    color curve can reuse the real sunset instead of the nominal one.
    """

    value: float
    source: LightSource
    weather: WeatherSnapshot | None = None


@dataclass(frozen=True)
class TargetState:
    """Brightness and color temperature applied to every monitor."""

    brightness: float
    temperature: float  # Kelvin
    reading: LightReading
    sunset: datetime | None = None

    @property
    def source(self) -> LightSource:
        return self.reading.source

    def to_dict(self) -> dict:
        return {
            "brightness": round(self.brightness, 3),
            "temperature": round(self.temperature, 1),
            "source": self.reading.source.value,
            "raw_light": round(self.reading.value, 3),
            "sunset": self.sunset.isoformat() if self.sunset else None,
        }
