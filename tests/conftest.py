"""Shared pytest fixtures for ambient-display tests."""

from __future__ import annotations

from datetime import datetime

import pytest

from ambient_display.config import DisplayConfig
from ambient_display.errors import GeolocationFailed, WeatherFetchFailed
from ambient_display.models import Coordinates, WeatherSnapshot
from ambient_display.sensors.protocol import SensorReading

# A summer day with sun times on the hour to keep arithmetic readable
DAY = (2024, 6, 21)
SUNRISE = datetime(*DAY, 6, 0)
SUNSET = datetime(*DAY, 18, 0)
NOON = datetime(*DAY, 12, 0)


# =============================================================================
# Injected collaborators
# =============================================================================

class FakeSensor:
    """Light sensor returning a fixed luminance, or an error."""

    def __init__(self, luminance: float | None = None, error: str | None = None, available: bool = True):
        self._luminance = luminance
        self._error = error
        self._available = available
        self.reads = 0

    @property
    def name(self) -> str:
        return "Fake"

    @property
    def platform(self) -> str:
        return "any"

    @property
    def priority(self) -> int:
        return 0

    def is_available(self) -> bool:
        return self._available

    def read(self) -> SensorReading:
        self.reads += 1
        if self._error:
            return SensorReading(error=self._error)
        return SensorReading(luminance=self._luminance)


class FakeEnvironment:
    """Environment with a fixed clock and canned weather."""

    def __init__(
        self,
        now: datetime = NOON,
        cloud_coverage: float = 0.0,
        sunrise: datetime = SUNRISE,
        sunset: datetime = SUNSET,
        geolocation_error: bool = False,
        weather_error: bool = False,
    ):
        self.now = now
        self.cloud_coverage = cloud_coverage
        self.sunrise = sunrise
        self.sunset = sunset
        self.geolocation_error = geolocation_error
        self.weather_error = weather_error
        self.geolocate_calls = 0
        self.weather_calls = 0

    def current_time(self) -> datetime:
        return self.now

    def geolocate(self) -> Coordinates:
        self.geolocate_calls += 1
        if self.geolocation_error:
            raise GeolocationFailed("no route to host")
        return Coordinates(lat=52.52, lon=13.40, city="Berlin", country="Germany")

    def fetch_weather(self, coords: Coordinates) -> WeatherSnapshot:
        self.weather_calls += 1
        if self.weather_error:
            raise WeatherFetchFailed("HTTP Error 401: Unauthorized")
        return WeatherSnapshot(
            cloud_coverage=self.cloud_coverage,
            sunrise=self.sunrise,
            sunset=self.sunset,
            now=self.now,
        )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def config():
    """Stock defaults: floor 0.6, 6500K/3500K, 2h window."""
    return DisplayConfig(
        monitors=("DP-0", "HDMI-0"),
        min_brightness=0.6,
        day_temp=6500.0,
        night_temp=3500.0,
        transition_hours=2.0,
    )


@pytest.fixture
def low_floor_config():
    """Floor at zero so raw model output is visible after clamping."""
    return DisplayConfig(monitors=("DP-0",), min_brightness=0.0, transition_hours=2.0)


@pytest.fixture
def make_sensor():
    """Factory for fake light sensors: make_sensor(luminance=0.4)."""
    return FakeSensor


@pytest.fixture
def make_environment():
    """Factory for fake environments: make_environment(now=..., cloud_coverage=0.3)."""
    return FakeEnvironment


@pytest.fixture
def make_snapshot():
    """Factory for weather snapshots on the test day (sunrise 06:00, sunset 18:00)."""

    def _make(now: datetime, cloud_coverage: float = 0.0) -> WeatherSnapshot:
        return WeatherSnapshot(cloud_coverage=cloud_coverage, sunrise=SUNRISE, sunset=SUNSET, now=now)

    return _make


@pytest.fixture
def failing_sensor():
    return FakeSensor(error="cannot open camera 0")


@pytest.fixture
def environment():
    return FakeEnvironment()
