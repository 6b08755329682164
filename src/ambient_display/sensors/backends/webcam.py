"""Webcam-based ambient light backend using OpenCV."""

from __future__ import annotations

import glob
import sys
import time

import numpy as np

from ...errors import SensorUnavailable
from ..protocol import LightSensor, SensorReading
from ..registry import ANY_PLATFORM, SensorRegistry

# Rec. 709 luma weights, in OpenCV's BGR channel order
BGR_LUMA_WEIGHTS = np.array([0.0722, 0.7152, 0.2126])


def luminance_from_frame(frame: np.ndarray) -> float:
    """
    Mean relative luminance of a frame, normalized to [0, 1].

    Accepts an 8-bit BGR frame (H x W x 3) as returned by OpenCV, or a
    single-channel grayscale frame (H x W).
    """
    pixels = np.asarray(frame, dtype=np.float64)
    if pixels.size == 0:
        raise ValueError("empty frame")

    if pixels.ndim == 3 and pixels.shape[2] >= 3:
        luma = pixels[..., :3] @ BGR_LUMA_WEIGHTS
    elif pixels.ndim == 2:
        luma = pixels
    else:
        raise ValueError(f"unsupported frame shape {pixels.shape}")

    return float(np.clip(luma.mean() / 255.0, 0.0, 1.0))


@SensorRegistry.register
class WebcamBackend(LightSensor):
    """
    Estimates ambient light from a single webcam frame.

    The first few frames after opening a camera are usually dark or
    mis-exposed while auto-exposure settles, so they are discarded.
    """

    FRAME_WIDTH = 640
    FRAME_HEIGHT = 480
    WARMUP_FRAMES = 5
    WARMUP_DELAY = 0.1  # seconds between warm-up frames

    def __init__(self, camera: int = 0):
        self.camera = camera

    @property
    def name(self) -> str:
        return f"Webcam #{self.camera}"

    @property
    def platform(self) -> str:
        return ANY_PLATFORM

    @property
    def priority(self) -> int:
        return 10

    def is_available(self) -> bool:
        try:
            import cv2  # noqa: F401
        except ImportError:
            return False
        if sys.platform == "linux":
            return bool(glob.glob("/dev/video*"))
        return True

    def _open(self):
        import cv2

        cap = cv2.VideoCapture(self.camera)
        if not cap.isOpened():
            cap.release()
            raise SensorUnavailable(f"cannot open camera {self.camera}")
        cap.set(cv2.CAP_PROP_FRAME_WIDTH, self.FRAME_WIDTH)
        cap.set(cv2.CAP_PROP_FRAME_HEIGHT, self.FRAME_HEIGHT)
        return cap

    def capture_frame(self) -> np.ndarray:
        """Grab one settled frame. Raises SensorUnavailable on any failure."""
        try:
            import cv2
        except ImportError as e:
            raise SensorUnavailable(f"OpenCV not installed: {e}") from e

        try:
            cap = self._open()
            try:
                for _ in range(self.WARMUP_FRAMES):
                    cap.read()
                    time.sleep(self.WARMUP_DELAY)
                ok, frame = cap.read()
            finally:
                cap.release()
        except cv2.error as e:
            raise SensorUnavailable(f"camera {self.camera}: {e}") from e

        if not ok or frame is None:
            raise SensorUnavailable(f"camera {self.camera} returned no frame")
        return frame

    def capture_luminance(self) -> float:
        """Capture a frame and return its mean luminance in [0, 1]."""
        frame = self.capture_frame()
        try:
            return luminance_from_frame(frame)
        except ValueError as e:
            raise SensorUnavailable(f"cannot decode frame: {e}") from e

    def read(self) -> SensorReading:
        try:
            luminance = self.capture_luminance()
        except SensorUnavailable as e:
            return SensorReading(error=str(e))
        return SensorReading(luminance=luminance, raw_value=luminance * 255.0)
