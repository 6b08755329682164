"""Exception types raised across ambient-display."""

from __future__ import annotations


class AmbientDisplayError(Exception):
    """Base class for all ambient-display errors."""


class ConfigError(AmbientDisplayError):
    """Configuration value is missing or out of range."""


class SensorUnavailable(AmbientDisplayError):
    """No usable light sensor (camera missing, capture or decode failed)."""


class GeolocationFailed(AmbientDisplayError):
    """IP geolocation lookup failed."""


class WeatherFetchFailed(AmbientDisplayError):
    """Weather service request failed or returned unusable data."""


class ActuationFailed(AmbientDisplayError):
    """Display command failed for a single monitor."""

    def __init__(self, monitor: str, reason: str):
        super().__init__(f"{monitor}: {reason}")
        self.monitor = monitor
        self.reason = reason
