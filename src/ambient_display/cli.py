"""
ambient-display - Match display brightness and color temperature to the room.

Reads ambient light from the webcam and sets every monitor's brightness and
gamma through xrandr. Without a webcam, brightness is estimated from the
local weather (cloud cover, sunrise, sunset). Color temperature follows the
time of day, warming up over the hours before sunset.

Meant to be run from cron; every run starts from scratch.

Usage:
    ambient-display                         # Measure and apply
    ambient-display --dry-run               # Show what would be applied
    ambient-display --json                  # Output the decision as JSON
    ambient-display --monitors DP-0,HDMI-0  # Only these outputs
    ambient-display --luminance 0.4         # Skip the sensor (for testing)
    ambient-display --sensor WebcamBackend  # Pick a sensor backend by name
    ambient-display --sensors               # Show available sensor backends
    ambient-display --setup                 # Store your location

Example crontab entry:
    */10 * * * * DISPLAY=:0 ambient-display >> ~/.cache/ambient-display.log 2>&1
"""

import argparse
import json
import sys
from datetime import datetime

from .config import (
    build_config,
    load_config,
    parse_monitors,
    resolve_api_key,
    save_location,
)
from .display import DryRunActuator, XrandrActuator, apply_state, detect_monitors
from .engine import decide
from .environment import SystemEnvironment
from .errors import ConfigError, GeolocationFailed
from .log import set_verbose
from .models import Coordinates, LightSource, TargetState
from .sensors import discover_backends, get_backend, get_best_backend
from .weather import get_geolocation

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_CONFIG = 2

SOURCE_LABELS = {
    LightSource.WEBCAM: "webcam",
    LightSource.WEATHER_FALLBACK: "weather",
    LightSource.LAST_RESORT: "minimum (no data)",
    LightSource.OVERRIDE: "override",
}


def format_output(
    state: TargetState,
    now: datetime,
    monitors: list[str],
    sensor_name: str | None = None,
    failed: dict[str, str] | None = None,
) -> str:
    """Format the run summary for display."""
    lines = []
    lines.append("╭" + "─" * 50 + "╮")

    source = SOURCE_LABELS.get(state.source, state.source.value)
    if state.source == LightSource.WEBCAM and sensor_name:
        source = f"{source} via {sensor_name}"
    lines.append(f"│ Light: {state.reading.value:.2f} ({source})".ljust(51) + "│")

    weather = state.reading.weather
    if weather is not None:
        lines.append(f"│ Clouds: {weather.cloud_coverage:.0%}".ljust(51) + "│")
        lines.append(
            f"│ Sun: rises {weather.sunrise.strftime('%H:%M')}, sets {weather.sunset.strftime('%H:%M')}".ljust(51) + "│"
        )
    elif state.sunset is not None:
        lines.append(f"│ Sunset: {state.sunset.strftime('%H:%M')} (nominal)".ljust(51) + "│")

    lines.append(f"│ Time: {now.strftime('%H:%M')}".ljust(51) + "│")
    lines.append(f"│ Brightness: {state.brightness:.0%}".ljust(51) + "│")
    lines.append(f"│ Temperature: {state.temperature:.0f}K".ljust(51) + "│")
    lines.append("╰" + "─" * 50 + "╯")

    failed = failed or {}
    for monitor in monitors:
        if monitor in failed:
            lines.append(f"  ✗ {monitor}: {failed[monitor]}")
        else:
            lines.append(f"  ✓ {monitor}")

    return "\n".join(lines)


def setup_config():
    """Interactive setup for the observer location."""
    print("ambient-display setup")
    print("=" * 40)
    print()
    print("Configure your location for accurate sunrise/sunset times.")
    print("Weather data is provided by Open-Meteo, or OpenWeatherMap if you set an API key.")
    print()

    lat = lon = None
    try:
        geo = get_geolocation()
    except GeolocationFailed:
        print("Could not detect location from IP.")
        custom = "y"
    else:
        lat, lon = geo.lat, geo.lon
        print(f"Detected location: {geo.label} ({geo.lat:.4f}, {geo.lon:.4f})")
        custom = input("Use different location? [y/N]: ").strip().lower()

    if custom == "y":
        try:
            lat = float(input("Latitude: ").strip())
            lon = float(input("Longitude: ").strip())
        except ValueError:
            print("Invalid coordinates, keeping detected location.")

    if lat is None or lon is None:
        print("Error: No location available.", file=sys.stderr)
        return EXIT_FAILED

    path = save_location(lat, lon)
    print()
    print(f"Config saved to {path}")
    return EXIT_OK


def show_sensors(camera: int = 0):
    """Display available sensor backends."""
    from rich import box
    from rich.console import Console
    from rich.table import Table

    console = Console()
    backends = discover_backends(camera=camera)

    if not backends:
        console.print("[yellow]No sensor backends found for this platform.[/]")
        return

    table = Table(title="Sensor backends", box=box.SIMPLE, header_style="bold cyan")
    table.add_column("name", style="bold")
    table.add_column("backend")
    table.add_column("platform")
    table.add_column("priority", justify="right")
    table.add_column("status")
    for backend in backends:
        status = "[green]available[/]" if backend["available"] else "[dim]not available[/]"
        table.add_row(backend["name"], backend["display_name"], backend["platform"], str(backend["priority"]), status)
    console.print(table)

    best = get_best_backend(camera=camera)
    if best:
        console.print(f"Active backend: [bold]{best.name}[/]")
        reading = best.read()
        if reading.luminance is not None:
            console.print(f"Current reading: {reading.luminance:.3f}")
        elif reading.error:
            console.print(f"[red]Error:[/] {reading.error}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Adjust monitor brightness and color temperature to ambient light"
    )
    parser.add_argument("--api-key", type=str, help="OpenWeatherMap API key (default: Open-Meteo, no key)")
    parser.add_argument("--min-brightness", type=float, help="Minimum brightness level (0.0 to 1.0, default 0.6)")
    parser.add_argument("--day-temp", type=float, help="Color temperature during day in Kelvin (default 6500)")
    parser.add_argument("--night-temp", type=float, help="Color temperature during night in Kelvin (default 3500)")
    parser.add_argument("--transition-hours", type=float, help="Hours before sunset to start transitioning (default 2)")
    parser.add_argument("--monitors", type=str, help='Comma-separated monitor names (e.g. "DP-0,HDMI-0")')
    parser.add_argument("--cloud-attenuation", type=float, help="Brightness removed by full overcast (0.0 to 1.0)")
    parser.add_argument("--camera", type=int, default=0, help="Webcam index (default 0)")
    parser.add_argument("--sensor", type=str, help="Use this sensor backend by name (see --sensors)")
    parser.add_argument("--luminance", type=float, help="Override ambient luminance 0-1 (for testing)")
    parser.add_argument("--dry-run", action="store_true", help="Compute but do not change any display")
    parser.add_argument("--json", action="store_true", help="Output as JSON")
    parser.add_argument("--sensors", action="store_true", help="Show available sensor backends")
    parser.add_argument("--setup", action="store_true", help="Configure location")
    parser.add_argument("--verbose", "-v", action="store_true", help="Log debug events")
    return parser


def run(args: argparse.Namespace) -> int:
    """Single evaluation: decide and apply. Returns the exit status."""
    try:
        file_config = load_config()
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    monitors = parse_monitors(args.monitors) or parse_monitors(file_config.get("monitors"))
    if not monitors:
        monitors = detect_monitors()
    if not monitors:
        print("Error: No monitors configured or detected", file=sys.stderr)
        return EXIT_FAILED

    overrides = {
        "min_brightness": args.min_brightness,
        "day_temp": args.day_temp,
        "night_temp": args.night_temp,
        "transition_hours": args.transition_hours,
        "cloud_attenuation": args.cloud_attenuation,
    }
    try:
        config = build_config(file_config, overrides, monitors)
    except ConfigError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    location = None
    if config.has_location:
        location = Coordinates(lat=config.latitude, lon=config.longitude)
    environment = SystemEnvironment(
        api_key=resolve_api_key(args.api_key, file_config),
        location=location,
    )

    sensor = None
    if args.luminance is None and args.sensor:
        sensor = get_backend(args.sensor, camera=args.camera)
        if sensor is None:
            print(f"Error: Unknown sensor backend: {args.sensor}", file=sys.stderr)
            return EXIT_CONFIG
    elif args.luminance is None:
        sensor = get_best_backend(camera=args.camera)
    now = environment.current_time()
    state = decide(config, lambda: now, sensor, environment, luminance_override=args.luminance)

    actuator = DryRunActuator() if args.dry_run else XrandrActuator()
    result = apply_state(state, config.monitors, actuator)

    if args.json:
        output = {
            "time": now.isoformat(),
            **state.to_dict(),
            "monitors": list(config.monitors),
            "applied": result.applied,
            "failed": result.failed,
            "dry_run": args.dry_run,
        }
        print(json.dumps(output, indent=2))
    elif sys.stdout.isatty():
        print(format_output(state, now, list(config.monitors), sensor.name if sensor else None, result.failed))

    return EXIT_OK if result.ok else EXIT_FAILED


def main():
    args = build_parser().parse_args()
    set_verbose(args.verbose)

    if args.setup:
        sys.exit(setup_config())

    if args.sensors:
        show_sensors(camera=args.camera)
        return

    sys.exit(run(args))


if __name__ == "__main__":
    main()
