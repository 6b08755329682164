"""Display actuation through xrandr."""

from __future__ import annotations

import math
import subprocess
from dataclasses import dataclass
from typing import Protocol, runtime_checkable

from .errors import ActuationFailed
from .log import log
from .models import TargetState

XRANDR_TIMEOUT = 5


def kelvin_to_gamma(temperature: float) -> tuple[float, float, float]:
    """
    Convert a color temperature (Kelvin) to xrandr R:G:B gamma multipliers.

    Tanner Helland's blackbody approximation, normalized to 0-1. 6600 K and
    above leave red and blue at 1.0; lower temperatures pull blue down.
    """
    temp = temperature / 100.0

    if temp <= 66.0:
        red = 1.0
    else:
        red = 1.29293618606274514 * (temp - 60.0) ** -0.1332047592

    if temp <= 66.0:
        green = 0.39008157876901960784 * math.log(max(temp, 1.0)) - 0.631841443788046
    else:
        green = 1.12989086089529411765 * (temp - 60.0) ** -0.0755148492

    if temp >= 66.0:
        blue = 1.0
    elif temp <= 19.0:
        blue = 0.0
    else:
        blue = 0.54320678911019607843 * math.log(temp - 10.0) - 1.19625408914

    def clamp(v: float) -> float:
        return min(max(v, 0.0), 1.0)

    return clamp(red), clamp(green), clamp(blue)


@runtime_checkable
class DisplayActuator(Protocol):
    """Applies brightness and color temperature to one monitor."""

    def apply(self, monitor: str, brightness: float, temperature: float) -> None:
        """Raises ActuationFailed if the monitor could not be updated."""
        ...


def xrandr_command(monitor: str, brightness: float, temperature: float) -> list[str]:
    """Build the xrandr invocation for one output."""
    r, g, b = kelvin_to_gamma(temperature)
    return [
        "xrandr",
        "--output",
        monitor,
        "--brightness",
        f"{brightness:.3f}",
        "--gamma",
        f"{r:.3f}:{g:.3f}:{b:.3f}",
    ]


class XrandrActuator:
    """Software brightness and gamma via ``xrandr`` (X11 only)."""

    def apply(self, monitor: str, brightness: float, temperature: float) -> None:
        cmd = xrandr_command(monitor, brightness, temperature)
        try:
            result = subprocess.run(cmd, capture_output=True, text=True, timeout=XRANDR_TIMEOUT)
        except FileNotFoundError:
            raise ActuationFailed(monitor, "xrandr not found") from None
        except subprocess.TimeoutExpired:
            raise ActuationFailed(monitor, "xrandr timed out") from None

        if result.returncode != 0:
            reason = result.stderr.strip() or f"xrandr exited with status {result.returncode}"
            raise ActuationFailed(monitor, reason)


class DryRunActuator:
    """Records what would be applied without touching any display."""

    def __init__(self):
        self.calls: list[tuple[str, float, float]] = []

    def apply(self, monitor: str, brightness: float, temperature: float) -> None:
        self.calls.append((monitor, brightness, temperature))
        log("info", "dry_run", command=" ".join(xrandr_command(monitor, brightness, temperature)))


def parse_listmonitors(output: str) -> list[str]:
    """
    Extract output names from ``xrandr --listmonitors``.

    The first line is the count ("Monitors: 2"); each following line ends
    with the output name, e.g. `` 0: +*DP-0 2560/597x1440/336+0+0  DP-0``.
    """
    monitors = []
    for line in output.splitlines()[1:]:
        parts = line.split()
        if parts:
            monitors.append(parts[-1])
    return monitors


def detect_monitors() -> list[str]:
    """Active monitor names from xrandr; empty if xrandr is unusable."""
    try:
        result = subprocess.run(
            ["xrandr", "--listmonitors"],
            capture_output=True,
            text=True,
            timeout=XRANDR_TIMEOUT,
        )
    except (subprocess.TimeoutExpired, FileNotFoundError) as e:
        log("error", "monitor_detection_failed", error=str(e))
        return []

    if result.returncode != 0:
        log("error", "monitor_detection_failed", error=result.stderr.strip())
        return []
    return parse_listmonitors(result.stdout)


@dataclass
class ApplyResult:
    """Outcome of applying a target state to every monitor."""

    applied: list[str]
    failed: dict[str, str]

    @property
    def ok(self) -> bool:
        return bool(self.applied)


def apply_state(state: TargetState, monitors: tuple[str, ...] | list[str], actuator: DisplayActuator) -> ApplyResult:
    """
    Apply ``state`` to each monitor in order.

    A failing monitor is logged and skipped; the rest are still updated.
    """
    applied: list[str] = []
    failed: dict[str, str] = {}
    for monitor in monitors:
        try:
            actuator.apply(monitor, state.brightness, state.temperature)
        except ActuationFailed as e:
            failed[monitor] = e.reason
            log("error", "monitor_failed", monitor=monitor, error=e.reason)
            continue
        applied.append(monitor)
        log("debug", "monitor_applied", monitor=monitor)
    return ApplyResult(applied=applied, failed=failed)
