"""Built-in sensor backends."""

from __future__ import annotations

from .webcam import WebcamBackend

__all__ = ["WebcamBackend"]
