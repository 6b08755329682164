"""IP geolocation and weather lookups for the fallback brightness path.

Two weather services are supported:
- OpenWeatherMap current weather, when an API key is configured
- Open-Meteo forecast (free, no API key required) otherwise
"""

from __future__ import annotations

import json
import math
from datetime import datetime, timedelta, timezone
from urllib.error import URLError
from urllib.parse import urlencode
from urllib.request import urlopen

from .errors import GeolocationFailed, WeatherFetchFailed
from .models import Coordinates, WeatherSnapshot

GEOLOCATION_URL = "http://ip-api.com/json"
OPENWEATHER_URL = "https://api.openweathermap.org/data/2.5/weather"
OPEN_METEO_URL = "https://api.open-meteo.com/v1/forecast"

GEOLOCATION_TIMEOUT = 5
WEATHER_TIMEOUT = 10


def _get_json(url: str, timeout: float) -> dict:
    with urlopen(url, timeout=timeout) as response:
        data = json.loads(response.read().decode("utf-8"))
    if not isinstance(data, dict):
        raise ValueError("expected a JSON object")
    return data


def parse_geolocation(data: dict) -> Coordinates:
    """Build Coordinates from an ip-api.com response."""
    if data.get("status", "success") != "success":
        raise GeolocationFailed(data.get("message") or "lookup rejected")

    lat = data.get("lat")
    lon = data.get("lon")
    if lat is None or lon is None:
        raise GeolocationFailed("response has no coordinates")

    try:
        lat = float(lat)
        lon = float(lon)
    except (TypeError, ValueError) as e:
        raise GeolocationFailed(f"response has invalid coordinates: {e}") from e

    return Coordinates(
        lat=lat,
        lon=lon,
        city=data.get("city"),
        country=data.get("country"),
        timezone=data.get("timezone"),
    )


def get_geolocation() -> Coordinates:
    """
    Locate this machine from its public IP address using ip-api.com.

    Free, no API key required.

    Raises:
        GeolocationFailed: On network errors or an unusable response
    """
    try:
        data = _get_json(GEOLOCATION_URL, GEOLOCATION_TIMEOUT)
    except (URLError, OSError, ValueError) as e:
        raise GeolocationFailed(str(e)) from e
    return parse_geolocation(data)


def _cloud_fraction(percent) -> float:
    if percent is None:
        raise WeatherFetchFailed("response has no cloud coverage")
    try:
        fraction = float(percent) / 100.0
    except (TypeError, ValueError) as e:
        raise WeatherFetchFailed(f"invalid cloud coverage: {percent!r}") from e
    if not math.isfinite(fraction):
        raise WeatherFetchFailed(f"invalid cloud coverage: {percent!r}")
    return min(max(fraction, 0.0), 1.0)


def parse_openweather(data: dict, now: datetime) -> WeatherSnapshot:
    """
    Build a snapshot from an OpenWeatherMap current-weather response.

    Sunrise and sunset arrive as unix timestamps; they are converted to the
    timezone of ``now`` (system local time, naive, if ``now`` is naive).
    """
    try:
        sys_info = data["sys"]
        sunrise_ts = int(sys_info["sunrise"])
        sunset_ts = int(sys_info["sunset"])
        cloud_percent = data["clouds"]["all"]
        if now.tzinfo is None:
            sunrise = datetime.fromtimestamp(sunrise_ts)
            sunset = datetime.fromtimestamp(sunset_ts)
        else:
            sunrise = datetime.fromtimestamp(sunrise_ts, tz=timezone.utc).astimezone(now.tzinfo)
            sunset = datetime.fromtimestamp(sunset_ts, tz=timezone.utc).astimezone(now.tzinfo)
    except (KeyError, TypeError, ValueError, OverflowError, OSError) as e:
        raise WeatherFetchFailed(f"malformed OpenWeather response: {e}") from e

    return WeatherSnapshot(
        cloud_coverage=_cloud_fraction(cloud_percent),
        sunrise=sunrise,
        sunset=sunset,
        now=now,
    )


def parse_open_meteo(data: dict, now: datetime) -> WeatherSnapshot:
    """
    Build a snapshot from an Open-Meteo forecast response.

    With ``timezone=auto`` Open-Meteo returns local wall-clock times plus
    ``utc_offset_seconds``; those are attached and the times converted to the
    timezone of ``now`` (system local time, naive, if ``now`` is naive).
    """
    try:
        current = data.get("current") or {}
        cloud_percent = current.get("cloud_cover")
        daily = data["daily"]
        sunrise = datetime.fromisoformat(daily["sunrise"][0])
        sunset = datetime.fromisoformat(daily["sunset"][0])
        offset = timezone(timedelta(seconds=int(data.get("utc_offset_seconds", 0))))
    except (AttributeError, KeyError, IndexError, TypeError, ValueError) as e:
        raise WeatherFetchFailed(f"malformed Open-Meteo response: {e}") from e

    if (sunrise.tzinfo is None) != (sunset.tzinfo is None):
        raise WeatherFetchFailed("malformed Open-Meteo response: mixed sun time formats")
    if sunrise.tzinfo is None:
        sunrise = sunrise.replace(tzinfo=offset)
        sunset = sunset.replace(tzinfo=offset)
    if now.tzinfo is None:
        sunrise = sunrise.astimezone().replace(tzinfo=None)
        sunset = sunset.astimezone().replace(tzinfo=None)
    else:
        sunrise = sunrise.astimezone(now.tzinfo)
        sunset = sunset.astimezone(now.tzinfo)

    return WeatherSnapshot(
        cloud_coverage=_cloud_fraction(cloud_percent),
        sunrise=sunrise,
        sunset=sunset,
        now=now,
    )


def fetch_weather(coords: Coordinates, now: datetime, api_key: str | None = None) -> WeatherSnapshot:
    """
    Fetch cloud coverage and today's sun times for ``coords``.

    Raises:
        WeatherFetchFailed: On network errors or an unusable response
    """
    if api_key:
        query = urlencode({"lat": coords.lat, "lon": coords.lon, "appid": api_key})
        url = f"{OPENWEATHER_URL}?{query}"
        parse = parse_openweather
    else:
        query = urlencode(
            {
                "latitude": coords.lat,
                "longitude": coords.lon,
                "current": "cloud_cover",
                "daily": "sunrise,sunset",
                "timezone": "auto",
                "forecast_days": 1,
            }
        )
        url = f"{OPEN_METEO_URL}?{query}"
        parse = parse_open_meteo

    try:
        data = _get_json(url, WEATHER_TIMEOUT)
    except (URLError, OSError, ValueError) as e:
        raise WeatherFetchFailed(str(e)) from e
    return parse(data, now)
