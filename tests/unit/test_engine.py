"""Tests for ambient_display/engine.py - brightness and color temperature decisions."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ambient_display.config import DisplayConfig
from ambient_display.engine import (
    acquire_light,
    clamp_brightness,
    compute_temperature,
    daylight_factor,
    decide,
    fallback_brightness,
    read_sensor,
    smoothstep,
)
from ambient_display.errors import SensorUnavailable
from ambient_display.models import LightSource

DAY = (2024, 6, 21)
SUNRISE = datetime(*DAY, 6, 0)
SUNSET = datetime(*DAY, 18, 0)
NOON = datetime(*DAY, 12, 0)

# Midsummer in Oulu: sunrise 02:55, sunset 00:04 the following night
NORTH_SUNRISE = datetime(*DAY, 2, 55)
NORTH_SUNSET = datetime(2024, 6, 22, 0, 4)


class TestClampBrightness:
    """Tests for clamp_brightness()."""

    @pytest.mark.parametrize("raw", [-0.5, 0.0, 0.1, 0.59, 0.6, 0.75, 1.0, 1.5])
    def test_result_within_floor_and_one(self, config, raw):
        value = clamp_brightness(raw, config)
        assert config.min_brightness <= value <= 1.0

    def test_zero_raises_to_floor(self, config):
        assert clamp_brightness(0.0, config) == 0.6

    def test_value_above_floor_unchanged(self, config):
        assert clamp_brightness(0.8, config) == 0.8

    def test_floor_of_one_pins_brightness(self):
        config = DisplayConfig(monitors=("DP-0",), min_brightness=1.0)
        assert clamp_brightness(0.2, config) == 1.0


class TestSmoothstep:
    """Tests for smoothstep() easing."""

    def test_endpoints(self):
        assert smoothstep(0.0) == 0.0
        assert smoothstep(1.0) == 1.0

    def test_midpoint(self):
        assert smoothstep(0.5) == pytest.approx(0.5)

    def test_clamps_outside_unit_interval(self):
        assert smoothstep(-1.0) == 0.0
        assert smoothstep(2.0) == 1.0


class TestDaylightFactor:
    """Tests for daylight_factor() dawn/dusk ramp."""

    def test_full_daylight_between_sunrise_and_sunset(self):
        for hour in (6, 9, 12, 15, 18):
            now = datetime(*DAY, hour, 0)
            assert daylight_factor(now, SUNRISE, SUNSET, 2.0) == 1.0

    def test_dark_well_after_sunset(self):
        assert daylight_factor(datetime(*DAY, 21, 0), SUNRISE, SUNSET, 2.0) == 0.0

    def test_dark_well_before_sunrise(self):
        assert daylight_factor(datetime(*DAY, 3, 0), SUNRISE, SUNSET, 2.0) == 0.0

    def test_halfway_through_dusk_margin(self):
        assert daylight_factor(datetime(*DAY, 19, 0), SUNRISE, SUNSET, 2.0) == pytest.approx(0.5)

    def test_halfway_through_dawn_margin(self):
        assert daylight_factor(datetime(*DAY, 5, 0), SUNRISE, SUNSET, 2.0) == pytest.approx(0.5)

    def test_continuous_at_sunset(self):
        just_after = SUNSET + timedelta(seconds=1)
        assert daylight_factor(just_after, SUNRISE, SUNSET, 2.0) == pytest.approx(1.0, abs=1e-6)

    def test_ramp_is_non_increasing_after_sunset(self):
        values = [
            daylight_factor(SUNSET + timedelta(minutes=m), SUNRISE, SUNSET, 2.0)
            for m in range(0, 150, 10)
        ]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_zero_margin_is_abrupt(self):
        assert daylight_factor(SUNSET, SUNRISE, SUNSET, 0.0) == 1.0
        assert daylight_factor(SUNSET + timedelta(seconds=1), SUNRISE, SUNSET, 0.0) == 0.0

    def test_sun_times_from_another_day_are_projected(self):
        """Only the wall-clock time of sunrise/sunset matters."""
        yesterday_sunrise = SUNRISE - timedelta(days=1)
        yesterday_sunset = SUNSET - timedelta(days=1)
        assert daylight_factor(NOON, yesterday_sunrise, yesterday_sunset, 2.0) == 1.0

    def test_late_sunset_eases_past_midnight(self):
        """Shortly after midnight the previous evening's dusk still counts."""
        sunrise = datetime(*DAY, 4, 0)
        sunset = datetime(*DAY, 23, 30)
        value = daylight_factor(datetime(*DAY, 0, 30), sunrise, sunset, 2.0)
        assert 0.0 < value < 1.0

    def test_sunset_after_midnight_keeps_noon_bright(self):
        assert daylight_factor(NOON, NORTH_SUNRISE, NORTH_SUNSET, 2.0) == 1.0
        assert daylight_factor(datetime(*DAY, 23, 30), NORTH_SUNRISE, NORTH_SUNSET, 2.0) == 1.0

    def test_sunset_after_midnight_previous_evening(self):
        """00:02 is still before the previous day's 00:04 sunset."""
        assert daylight_factor(datetime(*DAY, 0, 2), NORTH_SUNRISE, NORTH_SUNSET, 2.0) == 1.0

    def test_sunset_after_midnight_short_night(self):
        value = daylight_factor(datetime(*DAY, 1, 30), NORTH_SUNRISE, NORTH_SUNSET, 2.0)
        assert 0.0 < value < 1.0

    def test_sunset_after_midnight_timezone_aware(self):
        """Sun times from another zone can land after local midnight."""
        utc = timezone.utc
        sunrise = datetime(*DAY, 0, 55, tzinfo=utc)
        sunset = datetime(*DAY, 22, 4, tzinfo=utc)
        now = datetime(*DAY, 12, 0, tzinfo=timezone(timedelta(hours=3)))
        assert daylight_factor(now, sunrise, sunset, 2.0) == 1.0


class TestFallbackBrightness:
    """Tests for fallback_brightness() weather model."""

    def test_clear_noon_is_full_brightness(self, low_floor_config, make_snapshot):
        assert fallback_brightness(make_snapshot(NOON, 0.0), low_floor_config) == 1.0

    def test_cloud_attenuation_is_linear(self, low_floor_config, make_snapshot):
        value = fallback_brightness(make_snapshot(NOON, 0.3), low_floor_config)
        assert value == pytest.approx(1.0 - 0.3 * low_floor_config.cloud_attenuation)

    def test_full_overcast(self, low_floor_config, make_snapshot):
        value = fallback_brightness(make_snapshot(NOON, 1.0), low_floor_config)
        assert value == pytest.approx(1.0 - low_floor_config.cloud_attenuation)

    @pytest.mark.parametrize("hour", [5, 12, 18, 19, 23])
    def test_monotonically_non_increasing_in_clouds(self, low_floor_config, make_snapshot, hour):
        now = datetime(*DAY, hour, 30)
        values = [fallback_brightness(make_snapshot(now, c / 20), low_floor_config) for c in range(21)]
        assert all(a >= b for a, b in zip(values, values[1:]))

    def test_night_is_dark(self, low_floor_config, make_snapshot):
        assert fallback_brightness(make_snapshot(datetime(*DAY, 23, 0)), low_floor_config) == 0.0

    def test_cloud_coverage_outside_range_is_clipped(self, low_floor_config, make_snapshot):
        over = fallback_brightness(make_snapshot(NOON, 1.7), low_floor_config)
        full = fallback_brightness(make_snapshot(NOON, 1.0), low_floor_config)
        assert over == full

    def test_explicit_now_overrides_snapshot_time(self, low_floor_config, make_snapshot):
        snap = make_snapshot(NOON, 0.0)
        assert fallback_brightness(snap, low_floor_config, now=datetime(*DAY, 23, 0)) == 0.0


class TestComputeTemperature:
    """Tests for compute_temperature() transition curve."""

    @pytest.mark.parametrize("hour,minute", [(7, 0), (12, 0), (15, 59)])
    def test_day_before_window(self, config, hour, minute):
        now = datetime(*DAY, hour, minute)
        assert compute_temperature(now, SUNSET, config) == 6500.0

    @pytest.mark.parametrize("hour,minute", [(18, 0), (18, 1), (21, 0), (23, 59)])
    def test_night_from_sunset(self, config, hour, minute):
        now = datetime(*DAY, hour, minute)
        assert compute_temperature(now, SUNSET, config) == 3500.0

    def test_night_persists_past_midnight(self, config):
        assert compute_temperature(datetime(*DAY, 2, 0), SUNSET, config) == 3500.0

    def test_morning_after_sunrise_is_day(self, config):
        assert compute_temperature(datetime(*DAY, 6, 30), SUNSET, config) == 6500.0

    def test_explicit_sunrise(self, config):
        sunrise = datetime(*DAY, 8, 0)
        assert compute_temperature(datetime(*DAY, 7, 0), SUNSET, config, sunrise_time=sunrise) == 3500.0
        assert compute_temperature(datetime(*DAY, 9, 0), SUNSET, config, sunrise_time=sunrise) == 6500.0

    def test_window_midpoint(self, config):
        assert compute_temperature(datetime(*DAY, 17, 0), SUNSET, config) == pytest.approx(5000.0)

    def test_linear_inside_window(self, config):
        quarter = compute_temperature(datetime(*DAY, 16, 30), SUNSET, config)
        assert quarter == pytest.approx(6500.0 - 0.25 * 3000.0)

    def test_continuous_at_window_start(self, config):
        start = SUNSET - timedelta(hours=2)
        before = compute_temperature(start - timedelta(seconds=1), SUNSET, config)
        after = compute_temperature(start + timedelta(seconds=1), SUNSET, config)
        assert abs(before - after) < 1.0

    def test_continuous_at_sunset(self, config):
        before = compute_temperature(SUNSET - timedelta(seconds=1), SUNSET, config)
        at = compute_temperature(SUNSET, SUNSET, config)
        assert abs(before - at) < 1.0

    def test_zero_window_switches_at_sunset(self):
        config = DisplayConfig(monitors=("DP-0",), transition_hours=0.0)
        assert compute_temperature(SUNSET - timedelta(seconds=1), SUNSET, config) == config.day_temp
        assert compute_temperature(SUNSET, SUNSET, config) == config.night_temp
        assert compute_temperature(SUNSET + timedelta(seconds=1), SUNSET, config) == config.night_temp

    def test_inverted_temperatures_invert_curve(self):
        config = DisplayConfig(monitors=("DP-0",), day_temp=3000.0, night_temp=6000.0)
        assert compute_temperature(NOON, SUNSET, config) == 3000.0
        assert compute_temperature(datetime(*DAY, 17, 0), SUNSET, config) == pytest.approx(4500.0)
        assert compute_temperature(datetime(*DAY, 20, 0), SUNSET, config) == 6000.0

    def test_sunset_date_is_ignored(self, config):
        last_week = SUNSET - timedelta(days=7)
        assert compute_temperature(datetime(*DAY, 17, 0), last_week, config) == pytest.approx(5000.0)

    def test_timezone_aware_times(self, config):
        tz = timezone(timedelta(hours=2))
        now = datetime(*DAY, 17, 0, tzinfo=tz)
        sunset_utc = datetime(*DAY, 16, 0, tzinfo=timezone.utc)  # 18:00 local
        assert compute_temperature(now, sunset_utc, config) == pytest.approx(5000.0)

    def test_mixing_naive_and_aware_rejected(self, config):
        with pytest.raises(ValueError):
            compute_temperature(datetime(*DAY, 12, 0, tzinfo=timezone.utc), SUNSET, config)

    def test_sunset_after_midnight_day_at_noon(self, config):
        temp = compute_temperature(NOON, NORTH_SUNSET, config, sunrise_time=NORTH_SUNRISE)
        assert temp == 6500.0

    def test_sunset_after_midnight_window_spans_midnight(self, config):
        """The ramp runs 22:04 to 00:04; 23:04 is halfway."""
        temp = compute_temperature(datetime(*DAY, 23, 4), NORTH_SUNSET, config, sunrise_time=NORTH_SUNRISE)
        assert temp == pytest.approx(5000.0)

    def test_sunset_after_midnight_previous_evening(self, config):
        """At 00:03 the previous evening's ramp is almost done."""
        temp = compute_temperature(datetime(*DAY, 0, 3), NORTH_SUNSET, config, sunrise_time=NORTH_SUNRISE)
        assert 3500.0 < temp < 3600.0

    def test_sunset_after_midnight_short_night(self, config):
        temp = compute_temperature(datetime(*DAY, 1, 0), NORTH_SUNSET, config, sunrise_time=NORTH_SUNRISE)
        assert temp == 3500.0


class TestReadSensor:
    """Tests for read_sensor()."""

    def test_valid_reading(self, make_sensor):
        reading = read_sensor(make_sensor(luminance=0.42))
        assert reading.value == 0.42
        assert reading.source == LightSource.WEBCAM

    def test_no_sensor(self):
        with pytest.raises(SensorUnavailable):
            read_sensor(None)

    def test_unavailable_sensor(self, make_sensor):
        with pytest.raises(SensorUnavailable):
            read_sensor(make_sensor(luminance=0.5, available=False))

    def test_error_reading(self, make_sensor):
        with pytest.raises(SensorUnavailable, match="cannot open camera"):
            read_sensor(make_sensor(error="cannot open camera 0"))

    def test_reading_without_luminance(self, make_sensor):
        with pytest.raises(SensorUnavailable):
            read_sensor(make_sensor(luminance=None))

    def test_out_of_range_luminance_clipped(self, make_sensor):
        assert read_sensor(make_sensor(luminance=1.3)).value == 1.0

    def test_raising_backend_becomes_unavailable(self, make_sensor):
        class Broken(make_sensor):
            def read(self):
                raise OSError("device busy")

        with pytest.raises(SensorUnavailable, match="device busy"):
            read_sensor(Broken())


class TestAcquireLight:
    """Tests for acquire_light() fallback chain."""

    def test_sensor_success_skips_network(self, config, environment, make_sensor):
        reading = acquire_light(config, make_sensor(luminance=0.7), environment)
        assert reading.source == LightSource.WEBCAM
        assert reading.weather is None
        assert environment.geolocate_calls == 0
        assert environment.weather_calls == 0

    def test_sensor_failure_uses_weather(self, config, failing_sensor, make_environment):
        env = make_environment(cloud_coverage=0.3)
        reading = acquire_light(config, failing_sensor, env)
        assert reading.source == LightSource.WEATHER_FALLBACK
        assert reading.value == pytest.approx(1.0 - 0.3 * config.cloud_attenuation)
        assert reading.weather is not None

    def test_missing_sensor_uses_weather(self, config, environment):
        reading = acquire_light(config, None, environment)
        assert reading.source == LightSource.WEATHER_FALLBACK

    def test_geolocation_failure_uses_floor(self, config, failing_sensor, make_environment):
        env = make_environment(geolocation_error=True)
        reading = acquire_light(config, failing_sensor, env)
        assert reading.source == LightSource.LAST_RESORT
        assert reading.value == config.min_brightness
        assert env.weather_calls == 0

    def test_weather_failure_uses_floor(self, config, failing_sensor, make_environment):
        env = make_environment(weather_error=True)
        reading = acquire_light(config, failing_sensor, env)
        assert reading.source == LightSource.LAST_RESORT
        assert reading.value == config.min_brightness

    def test_override_bypasses_sensor(self, config, environment, make_sensor):
        sensor = make_sensor(luminance=0.9)
        reading = acquire_light(config, sensor, environment, luminance_override=0.3)
        assert reading.source == LightSource.OVERRIDE
        assert reading.value == 0.3
        assert sensor.reads == 0

    def test_single_attempt_per_signal(self, config, make_sensor, make_environment):
        sensor = make_sensor(error="no frame")
        env = make_environment(weather_error=True)
        acquire_light(config, sensor, env)
        assert sensor.reads == 1
        assert env.geolocate_calls == 1
        assert env.weather_calls == 1


class TestDecide:
    """Tests for decide() orchestration."""

    def test_webcam_reading_above_floor(self, config, environment, make_sensor):
        state = decide(config, lambda: NOON, make_sensor(luminance=0.8), environment)
        assert state.brightness == 0.8
        assert state.temperature == 6500.0
        assert state.source == LightSource.WEBCAM

    def test_temperature_runs_when_sensor_succeeds(self, config, make_sensor, make_environment):
        env = make_environment(now=datetime(*DAY, 20, 0))
        state = decide(config, env.current_time, make_sensor(luminance=0.8), env)
        assert state.temperature == 3500.0

    def test_nominal_sunset_used_without_weather(self, environment, make_sensor):
        config = DisplayConfig(monitors=("DP-0",), sunset_hour=20.0, transition_hours=2.0)
        state = decide(config, lambda: datetime(*DAY, 19, 0), make_sensor(luminance=0.8), environment)
        assert state.temperature == pytest.approx(5000.0)
        assert state.sunset == datetime(*DAY, 20, 0)

    def test_weather_sunset_used_on_fallback(self, config, failing_sensor, make_environment):
        env = make_environment(now=datetime(*DAY, 20, 0), sunset=datetime(*DAY, 21, 0))
        state = decide(config, env.current_time, failing_sensor, env)
        assert state.temperature == pytest.approx(5000.0)

    def test_sunset_after_midnight_on_fallback(self, config, failing_sensor, make_environment):
        env = make_environment(now=NOON, sunrise=NORTH_SUNRISE, sunset=NORTH_SUNSET)
        state = decide(config, env.current_time, failing_sensor, env)
        assert state.brightness == 1.0
        assert state.temperature == 6500.0
        assert state.sunset == NORTH_SUNSET

    def test_source_does_not_change_clamping(self, config, failing_sensor, make_sensor, make_environment):
        env = make_environment(now=datetime(*DAY, 23, 0))
        fallback = decide(config, env.current_time, failing_sensor, env)
        webcam = decide(config, env.current_time, make_sensor(luminance=0.0), env)
        assert fallback.brightness == webcam.brightness == config.min_brightness
        assert fallback.temperature == webcam.temperature

    def test_idempotent(self, config, failing_sensor, make_environment):
        env = make_environment(cloud_coverage=0.45, now=datetime(*DAY, 16, 45))
        first = decide(config, env.current_time, failing_sensor, env)
        second = decide(config, env.current_time, failing_sensor, env)
        assert first == second

    def test_to_dict(self, config, environment, make_sensor):
        state = decide(config, lambda: NOON, make_sensor(luminance=0.8), environment)
        data = state.to_dict()
        assert data["brightness"] == 0.8
        assert data["temperature"] == 6500.0
        assert data["source"] == "webcam"
