"""
Unit tests for annotator module.
"""

import pytest
import numpy as np
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from annotator import Annotator, MARKER_RADIUS, BOX_SIZE, OVERLAY_COLOR
from speed_calculator import SpeedCalculator
from point_tracker import TrackingConfig
from color_model import Color


def blank(width=200, height=200):
    return np.zeros((height, width, 3), dtype=np.uint8)


class TestAnnotator:
    """Test cases for Annotator."""

    def test_marker_glyph(self):
        """Test circle and square placement."""
        frame = blank()
        Annotator().draw_marker(frame, 100, 100)

        half = BOX_SIZE // 2
        assert tuple(frame[100, 100 + MARKER_RADIUS]) == OVERLAY_COLOR
        assert tuple(frame[100 - half, 100 - half]) == OVERLAY_COLOR
        assert tuple(frame[100 + half, 100 + half]) == OVERLAY_COLOR
        assert tuple(frame[100, 100]) == (0, 0, 0)

    def test_speed_first_frame_is_zero(self):
        frame = blank()
        speed = Annotator().annotate(frame, [(100, 100)], 0)
        assert speed == 0.0

    def test_speed_uses_config(self):
        config = TrackingConfig(target_color=Color(0, 255, 0), fps=10, scale_ratio=2, track_width=5)
        annotator = Annotator.from_config(config)

        speed = annotator.annotate(blank(), [(100, 100), (103, 104)], 1)

        # 5 px / 0.1 s / 2 / 5
        assert speed == pytest.approx(5.0)

    def test_speed_text_drawn_above_marker(self):
        frame = blank()
        Annotator().draw_speed(frame, 100, 100, 12.5)

        region = frame[40:70, 70:200]
        assert region.any()
        assert not frame[100:, :].any()

    def test_annotation_is_not_idempotent(self):
        """Annotating twice blends the anti-aliased text a second time."""
        track = [(100, 100), (110, 105)]
        once = blank()
        Annotator().annotate(once, track, 1)
        twice = once.copy()
        Annotator().annotate(twice, track, 1)

        assert not np.array_equal(once, twice)

    def test_custom_speed_calculator(self):
        annotator = Annotator(SpeedCalculator(fps=1))
        assert annotator.annotate(blank(), [(0, 0), (0, 10)], 1) == pytest.approx(10.0)
