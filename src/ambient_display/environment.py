"""Environment provider: clock, location and weather."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable

from . import weather
from .models import Coordinates, WeatherSnapshot


@runtime_checkable
class Environment(Protocol):
    """What the decision engine needs to know about the outside world."""

    def current_time(self) -> datetime:
        """Current local time."""
        ...

    def geolocate(self) -> Coordinates:
        """Observer location. Raises GeolocationFailed."""
        ...

    def fetch_weather(self, coords: Coordinates) -> WeatherSnapshot:
        """Weather for ``coords``. Raises WeatherFetchFailed."""
        ...


class SystemEnvironment:
    """
    Real clock plus network lookups.

    Args:
        api_key: OpenWeatherMap key; without one Open-Meteo is used
        location: Fixed coordinates that skip IP geolocation
    """

    def __init__(self, api_key: str | None = None, location: Coordinates | None = None):
        self.api_key = api_key
        self.location = location

    def current_time(self) -> datetime:
        return datetime.now().astimezone()

    def geolocate(self) -> Coordinates:
        if self.location is not None:
            return self.location
        return weather.get_geolocation()

    def fetch_weather(self, coords: Coordinates) -> WeatherSnapshot:
        return weather.fetch_weather(coords, self.current_time(), api_key=self.api_key)
