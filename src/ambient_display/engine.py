"""
Brightness and color-temperature decision engine.

Everything here is a pure function of its arguments: the sensor, the
environment and the clock are injected, so a run is reproducible given the
same readings.

Brightness:
    webcam luminance, or on failure a weather model
    (daylight ramp around sunrise/sunset x cloud attenuation),
    or on failure of that the configured floor; then clamped to
    [min_brightness, 1.0].

Color temperature:
    day_temp until ``transition_hours`` before sunset, a linear ramp to
    night_temp ending at sunset, night_temp until the next sunrise.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, time, timedelta

from .config import DisplayConfig
from .environment import Environment
from .errors import GeolocationFailed, SensorUnavailable, WeatherFetchFailed
from .log import log
from .models import LightReading, LightSource, TargetState, WeatherSnapshot
from .sensors.protocol import LightSensor

ONE_DAY = timedelta(days=1)


def _clip01(value: float) -> float:
    return min(max(value, 0.0), 1.0)


def clamp_brightness(value: float, config: DisplayConfig) -> float:
    """Clamp to [min_brightness, 1.0]; the floor applies regardless of source."""
    return min(max(value, config.min_brightness), 1.0)


def _on_day_of(moment: datetime, now: datetime) -> datetime:
    """Move ``moment``'s wall-clock time onto ``now``'s local date."""
    if (moment.tzinfo is None) != (now.tzinfo is None):
        raise ValueError("cannot mix naive and timezone-aware datetimes")
    if moment.tzinfo is not None:
        moment = moment.astimezone(now.tzinfo)
    return datetime.combine(now.date(), moment.time(), tzinfo=now.tzinfo)


def _sun_window(sunrise: datetime, sunset: datetime, now: datetime) -> tuple[datetime, datetime]:
    """
    Sunrise and the sunset that follows it, on ``now``'s local date.

    A sunset whose clock time is at or before sunrise (after midnight at
    high latitudes in summer) belongs to the next day.
    """
    sunrise = _on_day_of(sunrise, now)
    sunset = _on_day_of(sunset, now)
    if sunset <= sunrise:
        sunset += ONE_DAY
    return sunrise, sunset


def _at_hour(now: datetime, hour: float) -> datetime:
    """``now``'s local date at a fractional hour, e.g. 18.5 -> 18:30."""
    midnight = datetime.combine(now.date(), time(), tzinfo=now.tzinfo)
    return midnight + timedelta(hours=hour)


def smoothstep(x: float) -> float:
    """Cubic Hermite ease on [0, 1]; zero slope at both ends."""
    x = _clip01(x)
    return x * x * (3.0 - 2.0 * x)


def daylight_factor(now: datetime, sunrise: datetime, sunset: datetime, margin_hours: float) -> float:
    """
    Fraction of full daylight at ``now``.

    1.0 between sunrise and sunset (inclusive). Outside, it eases down to 0
    over ``margin_hours`` from the nearest of sunset (evening, and the
    previous evening after midnight) or sunrise (pre-dawn). A zero margin
    makes the edges abrupt.
    """
    sunrise, sunset = _sun_window(sunrise, sunset, now)

    # today's window, and yesterday's when its sunset runs past midnight
    for shift in (timedelta(0), -ONE_DAY):
        if sunrise + shift <= now <= sunset + shift:
            return 1.0
    if margin_hours <= 0:
        return 0.0

    last_sunset = max(s for s in (sunset - 2 * ONE_DAY, sunset - ONE_DAY, sunset) if s < now)
    next_sunrise = min(r for r in (sunrise, sunrise + ONE_DAY) if r > now)
    gap = min(now - last_sunset, next_sunrise - now)

    return smoothstep(1.0 - gap / timedelta(hours=margin_hours))


def fallback_brightness(
    snapshot: WeatherSnapshot,
    config: DisplayConfig,
    now: datetime | None = None,
) -> float:
    """
    Synthetic ambient brightness from weather, before clamping.

    ``daylight * (1 - cloud_coverage * cloud_attenuation)``; non-increasing
    in cloud coverage. The dawn/dusk margin reuses ``transition_hours``.
    """
    now = now or snapshot.now
    daylight = daylight_factor(now, snapshot.sunrise, snapshot.sunset, config.transition_hours)
    clouds = _clip01(snapshot.cloud_coverage)
    return daylight * (1.0 - clouds * config.cloud_attenuation)


def compute_temperature(
    current_time: datetime,
    sunset_time: datetime,
    config: DisplayConfig,
    sunrise_time: datetime | None = None,
) -> float:
    """
    Color temperature in Kelvin for ``current_time``.

    Args:
        current_time: Now
        sunset_time: Today's sunset; only its wall-clock time is used
        config: Supplies day/night temperatures and the window length
        sunrise_time: Today's sunrise; defaults to ``config.sunrise_hour``

    Night persists past midnight until sunrise. A sunset clock time at or
    before sunrise is taken as the following night, so before sunrise the
    previous evening's curve may still be running.
    """
    now = current_time
    if sunrise_time is None:
        sunrise_time = _at_hour(now, config.sunrise_hour)
    sunrise, sunset = _sun_window(sunrise_time, sunset_time, now)

    if now < sunrise:
        sunset -= ONE_DAY
    if now >= sunset:
        return config.night_temp

    window_start = sunset - timedelta(hours=config.transition_hours)
    if now < window_start:
        return config.day_temp

    t = _clip01((now - window_start) / (sunset - window_start))
    return config.day_temp + t * (config.night_temp - config.day_temp)


def read_sensor(sensor: LightSensor | None) -> LightReading:
    """
    Take one reading from ``sensor``.

    Raises:
        SensorUnavailable: No backend, backend unavailable, or invalid reading
    """
    if sensor is None:
        raise SensorUnavailable("no light sensor backend")
    if not sensor.is_available():
        raise SensorUnavailable(f"{sensor.name} not available")

    try:
        reading = sensor.read()
    except (OSError, RuntimeError, ValueError) as e:
        raise SensorUnavailable(f"{sensor.name}: {e}") from e

    if not reading.is_valid:
        raise SensorUnavailable(reading.error or f"{sensor.name} returned no luminance")
    return LightReading(value=_clip01(reading.luminance), source=LightSource.WEBCAM)


def weather_reading(config: DisplayConfig, environment: Environment, now: datetime) -> LightReading:
    """
    Brightness from location and weather.

    Raises:
        GeolocationFailed: Location lookup failed
        WeatherFetchFailed: Weather lookup failed
    """
    coords = environment.geolocate()
    log("debug", "located", location=coords.label)
    snapshot = environment.fetch_weather(coords)
    value = fallback_brightness(snapshot, config, now=now)
    log(
        "debug",
        "weather",
        clouds=snapshot.cloud_coverage,
        sunrise=snapshot.sunrise.strftime("%H:%M"),
        sunset=snapshot.sunset.strftime("%H:%M"),
    )
    return LightReading(value=_clip01(value), source=LightSource.WEATHER_FALLBACK, weather=snapshot)


def acquire_light(
    config: DisplayConfig,
    sensor: LightSensor | None,
    environment: Environment,
    now: datetime | None = None,
    *,
    luminance_override: float | None = None,
) -> LightReading:
    """
    Run the fallback chain: override, sensor, weather, then the floor.

    Never raises for acquisition failures; the last resort is a reading of
    ``config.min_brightness`` tagged LAST_RESORT.
    """
    if luminance_override is not None:
        return LightReading(value=_clip01(luminance_override), source=LightSource.OVERRIDE)

    try:
        return read_sensor(sensor)
    except SensorUnavailable as e:
        log("warn", "sensor_failed", error=str(e))

    now = now or environment.current_time()
    try:
        return weather_reading(config, environment, now)
    except (GeolocationFailed, WeatherFetchFailed) as e:
        log("error", "fallback_failed", kind=type(e).__name__, error=str(e))

    return LightReading(value=config.min_brightness, source=LightSource.LAST_RESORT)


def decide(
    config: DisplayConfig,
    time_source: Callable[[], datetime],
    sensor: LightSensor | None,
    environment: Environment,
    *,
    luminance_override: float | None = None,
) -> TargetState:
    """
    Compute the brightness and color temperature for this run.

    Args:
        config: Validated settings
        time_source: Returns the current local time
        sensor: Light sensor backend, or None if none was found
        environment: Location and weather provider for the fallback path
        luminance_override: Use this luminance instead of reading the sensor

    Returns:
        TargetState to apply to every configured monitor
    """
    now = time_source()
    reading = acquire_light(config, sensor, environment, now, luminance_override=luminance_override)
    brightness = clamp_brightness(reading.value, config)

    if reading.weather is not None:
        sunrise = reading.weather.sunrise
        sunset = reading.weather.sunset
    else:
        sunrise = _at_hour(now, config.sunrise_hour)
        sunset = _at_hour(now, config.sunset_hour)

    temperature = compute_temperature(now, sunset, config, sunrise_time=sunrise)
    _, sunset = _sun_window(sunrise, sunset, now)

    state = TargetState(
        brightness=brightness,
        temperature=temperature,
        reading=reading,
        sunset=sunset,
    )
    log(
        "info",
        "decided",
        source=reading.source.value,
        light=reading.value,
        brightness=brightness,
        temperature=round(temperature),
    )
    return state
