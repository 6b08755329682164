"""Event logging: pretty lines on a terminal, JSON lines when piped (cron)."""

from __future__ import annotations

import json
import sys
from datetime import datetime

_verbose = False

LEVEL_COLORS = {"info": "green", "error": "red", "warn": "yellow", "debug": "dim"}


def set_verbose(enabled: bool) -> None:
    """Show or hide debug-level events."""
    global _verbose
    _verbose = enabled


def _log_json(level: str, msg: str, **kwargs) -> None:
    """Output a JSON log line (Loki-style)."""
    entry = {"ts": datetime.now().isoformat(), "level": level, "msg": msg, **kwargs}
    print(json.dumps(entry, default=str), file=sys.stderr, flush=True)


def _format_fields(kwargs: dict) -> str:
    parts = []
    for key, value in kwargs.items():
        if value is None:
            continue
        if isinstance(value, float):
            value = f"{value:.3f}"
        parts.append(f"[cyan]{key}[/]={value}")
    return " ".join(parts)


def _log_pretty(level: str, msg: str, **kwargs) -> None:
    """Output a human-readable log line with rich formatting."""
    from rich.console import Console
    from rich.markup import escape

    console = Console(stderr=True)

    ts = datetime.now().strftime("%H:%M:%S")
    color = LEVEL_COLORS.get(level, "white")

    if msg == "sensor_failed":
        console.print(
            f"[dim]{ts}[/] [yellow]sensor unavailable[/] {escape(str(kwargs.get('error', '?')))}, "
            "falling back to weather"
        )
    elif msg == "monitor_failed":
        console.print(
            f"[dim]{ts}[/] [red]failed[/] [bold]{escape(str(kwargs.get('monitor', '?')))}[/] "
            f"{escape(str(kwargs.get('error', '?')))}"
        )
    else:
        fields = {k: escape(str(v)) if isinstance(v, str) else v for k, v in kwargs.items()}
        console.print(f"[dim]{ts}[/] [{color}]{msg.replace('_', ' ')}[/] {_format_fields(fields)}")


def log(level: str, msg: str, **kwargs) -> None:
    """Log an event - pretty for TTY, JSON for pipes."""
    if level == "debug" and not _verbose:
        return
    if sys.stderr.isatty():
        _log_pretty(level, msg, **kwargs)
    else:
        _log_json(level, msg, **kwargs)
