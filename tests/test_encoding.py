"""Tests for JPEG frame encoding."""

from types import SimpleNamespace

import cv2
import numpy as np

from motion_display.encoding import (
    DEFAULT_QUALITY,
    FrameEncoder,
    clamp_quality,
)
from motion_display.rendering.renderer.base import Frame


JPEG_MAGIC = b"\xff\xd8"


class TestEncode:
    """Tests for FrameEncoder.encode."""

    def test_produces_jpeg(self, gradient_frame):
        """Output is a decodable JPEG of the same size."""
        result = FrameEncoder().encode(gradient_frame)
        assert result.ok
        assert result.data.startswith(JPEG_MAGIC)
        assert result.quality == DEFAULT_QUALITY

        decoded = cv2.imdecode(np.frombuffer(result.data, dtype=np.uint8), cv2.IMREAD_COLOR)
        assert decoded.shape == (48, 64, 3)

    def test_colors_survive(self):
        """A solid red frame decodes back to (mostly) red."""
        frame = Frame.solid(32, 32, (255, 0, 0, 255))
        result = FrameEncoder(quality=95).encode(frame)
        decoded = cv2.imdecode(np.frombuffer(result.data, dtype=np.uint8), cv2.IMREAD_COLOR)
        b, g, r = decoded[16, 16]
        assert r > 200 and g < 50 and b < 50

    def test_quality_below_range_clamped(self, gradient_frame):
        """Quality 0 encodes exactly like quality 1."""
        encoder = FrameEncoder()
        low = encoder.encode(gradient_frame, quality=0)
        one = encoder.encode(gradient_frame, quality=1)
        assert low.quality == 1
        assert low.data == one.data

    def test_quality_above_range_clamped(self, gradient_frame):
        """Quality 500 encodes exactly like quality 100."""
        encoder = FrameEncoder()
        high = encoder.encode(gradient_frame, quality=500)
        top = encoder.encode(gradient_frame, quality=100)
        assert high.quality == 100
        assert high.data == top.data

    def test_higher_quality_is_larger(self, gradient_frame):
        """Higher quality yields more bytes for a structured image."""
        encoder = FrameEncoder()
        assert encoder.encode(gradient_frame, 95).size > encoder.encode(gradient_frame, 5).size

    def test_malformed_buffer_returns_no_data(self):
        """A three-channel buffer is rejected without raising."""
        bogus = SimpleNamespace(pixels=np.zeros((4, 4, 3), dtype=np.uint8),
                                pixel_format="RGBA")
        result = FrameEncoder().encode(bogus)
        assert not result.ok
        assert result.data is None
        assert result.size == 0
        assert result.error

    def test_wrong_pixel_format_returns_no_data(self):
        """Only RGBA frames are accepted."""
        bogus = SimpleNamespace(pixels=np.zeros((4, 4, 4), dtype=np.uint8),
                                pixel_format="BGRA")
        assert FrameEncoder().encode(bogus).data is None


class TestQuality:
    """Tests for the default quality setting."""

    def test_clamp_quality(self):
        """Values are clamped into [1, 100]."""
        assert clamp_quality(-5) == 1
        assert clamp_quality(50) == 50
        assert clamp_quality(101) == 100

    def test_setter_clamps(self):
        """Assigning out-of-range quality clamps it."""
        encoder = FrameEncoder()
        encoder.quality = 0
        assert encoder.quality == 1
        encoder.quality = 250
        assert encoder.quality == 100

    def test_constructor_clamps(self):
        """The constructor clamps as well."""
        assert FrameEncoder(quality=1000).quality == 100
