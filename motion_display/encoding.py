"""
JPEG encoding of rendered frames.

Wraps OpenCV's imencode. Encoding never raises: a malformed buffer or a
codec failure comes back as an EncodeResult without data, and the caller
drops the frame.
"""

import threading
import logging
from dataclasses import dataclass
from typing import Optional

import cv2
import numpy as np

from motion_display.rendering.renderer.base import Frame, PIXEL_FORMAT_RGBA

logger = logging.getLogger(__name__)

MIN_QUALITY = 1
MAX_QUALITY = 100
DEFAULT_QUALITY = 85


def clamp_quality(quality) -> int:
    """Clamp a JPEG quality into [1, 100]."""
    return max(MIN_QUALITY, min(MAX_QUALITY, int(quality)))


@dataclass(frozen=True)
class EncodeResult:
    """Outcome of one encode call."""
    data: Optional[bytes]
    quality: int
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.data is not None

    @property
    def size(self) -> int:
        return len(self.data) if self.data is not None else 0


class FrameEncoder:
    """
    JPEG encoder with a thread-safe default quality.

    Args:
        quality: Default quality (clamped to 1-100)
    """

    def __init__(self, quality: int = DEFAULT_QUALITY):
        self._lock = threading.Lock()
        self._quality = clamp_quality(quality)

    @property
    def quality(self) -> int:
        with self._lock:
            return self._quality

    @quality.setter
    def quality(self, value: int) -> None:
        clamped = clamp_quality(value)
        if clamped != int(value):
            logger.debug(f"JPEG quality {value} clamped to {clamped}")
        with self._lock:
            self._quality = clamped

    def encode(self, frame: Frame, quality: Optional[int] = None) -> EncodeResult:
        """
        Compress a frame to JPEG.

        Args:
            frame: RGBA frame
            quality: Override quality for this call (clamped); None uses the default
        """
        q = self.quality if quality is None else clamp_quality(quality)

        try:
            pixels = frame.pixels
            if frame.pixel_format != PIXEL_FORMAT_RGBA:
                raise ValueError(f"Unsupported pixel format '{frame.pixel_format}'")
            if pixels.ndim != 3 or pixels.shape[2] != 4 or pixels.dtype != np.uint8:
                raise ValueError(f"Expected (h, w, 4) uint8 pixels, got {pixels.shape} {pixels.dtype}")
            if pixels.shape[0] == 0 or pixels.shape[1] == 0:
                raise ValueError("Empty frame")

            bgr = cv2.cvtColor(pixels, cv2.COLOR_RGBA2BGR)
            ok, buffer = cv2.imencode('.jpg', bgr, [cv2.IMWRITE_JPEG_QUALITY, q])
            if not ok:
                raise RuntimeError("JPEG codec rejected the frame")
            return EncodeResult(data=buffer.tobytes(), quality=q)

        except (ValueError, RuntimeError, cv2.error, AttributeError) as e:
            logger.warning(f"Frame encode failed: {e}")
            return EncodeResult(data=None, quality=q, error=str(e))
