"""
Unit tests for point_tracker module.
"""

import pytest
import numpy as np
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

import point_tracker
from color_model import Color
from motion_predictor import Position
from point_tracker import PointTracker, TrackingConfig, InvalidConfig, SearchExhausted


GREEN = Color(0, 255, 0)


def make_frame(width=100, height=100):
    return np.zeros((height, width, 3), dtype=np.uint8)


def paint(frame, x, y, color=GREEN):
    frame[y, x] = color.bgr
    return frame


def moving_marker_frames(count=5, start=(50, 50), step=(2, 1), size=(100, 100)):
    frames = []
    for i in range(count):
        frame = make_frame(*size)
        paint(frame, start[0] + step[0] * i, start[1] + step[1] * i)
        frames.append(frame)
    return frames


@pytest.fixture
def tracker():
    return PointTracker(TrackingConfig(target_color=GREEN), annotate=False, verbose=False)


class TestTrackingConfig:
    """Test cases for TrackingConfig validation."""

    def test_defaults(self):
        config = TrackingConfig(target_color=GREEN)
        config.validate()
        assert config.threshold == 15
        assert config.max_iterations == 20
        assert config.window_divisions == 20

    def test_missing_color(self):
        with pytest.raises(InvalidConfig):
            TrackingConfig().validate()

    @pytest.mark.parametrize("field", ["fps", "scale_ratio", "track_width"])
    def test_non_positive_values(self, field):
        with pytest.raises(InvalidConfig):
            TrackingConfig(target_color=GREEN, **{field: 0}).validate()

    def test_invalid_config_is_value_error(self):
        with pytest.raises(ValueError):
            TrackingConfig().validate()


class TestLocate:
    """Test cases for the expanding window search."""

    def test_exact_position_near_prediction(self, tracker):
        frame = paint(make_frame(), 54, 52)

        position = tracker.locate(GREEN, frame, 54, 52)

        assert position == Position(54, 52)
        assert tracker.last_iterations == 2

    def test_window_grows_until_marker_found(self, tracker):
        frame = paint(make_frame(), 50, 50)

        position = tracker.locate(GREEN, frame, 0, 0)

        assert position == Position(50, 50)
        # Step is 5px; [0, 55) first contains x=50 at k=11, confirmed at k=12
        assert tracker.last_iterations == 12

    def test_shifting_centroid_does_not_stop_early(self, tracker):
        """Test that the centroid must be stable across two window sizes."""
        frame = make_frame()
        paint(frame, 51, 51)
        paint(frame, 58, 50)

        position = tracker.locate(GREEN, frame, 50, 50)

        assert position == Position(54, 50)
        assert tracker.last_iterations == 3

    def test_marker_at_origin(self, tracker):
        """Test that a real marker at (0, 0) is not mistaken for a miss."""
        frame = paint(make_frame(), 0, 0)

        assert tracker.locate(GREEN, frame, 0, 0) == Position(0, 0)

    def test_full_frame_window_is_accepted(self):
        """Test acceptance once the window spans the whole frame."""
        tracker = PointTracker(TrackingConfig(target_color=GREEN), annotate=False, verbose=False)
        frame = paint(make_frame(10, 10), 9, 9)

        assert tracker.locate(GREEN, frame, 0, 0) == Position(9, 9)
        assert tracker.last_iterations == 10

    def test_prediction_outside_frame(self, tracker):
        frame = paint(make_frame(), 95, 95)

        assert tracker.locate(GREEN, frame, 130, 130) == Position(95, 95)

    def test_exhausted_after_twenty_iterations(self, tracker, monkeypatch):
        """Test that a frame without the marker fails after exactly 20 windows."""
        calls = []
        original = point_tracker.search_window

        def counting_search(*args, **kwargs):
            calls.append(args[1])
            return original(*args, **kwargs)

        monkeypatch.setattr(point_tracker, "search_window", counting_search)
        frame = make_frame()

        with pytest.raises(SearchExhausted) as exc_info:
            tracker.locate(GREEN, frame, 50, 50)

        assert len(calls) == 20
        assert exc_info.value.iterations == 20
        assert exc_info.value.degenerate
        assert "point not found" in str(exc_info.value)

    def test_windows_grow_linearly(self, tracker, monkeypatch):
        windows = []
        original = point_tracker.search_window

        def recording_search(frame, window, *args, **kwargs):
            windows.append(window)
            return original(frame, window, *args, **kwargs)

        monkeypatch.setattr(point_tracker, "search_window", recording_search)

        with pytest.raises(SearchExhausted):
            tracker.locate(GREEN, make_frame(200, 100), 100, 50)

        assert (windows[0].x_lo, windows[0].x_hi) == (90, 110)
        assert (windows[0].y_lo, windows[0].y_hi) == (45, 55)
        assert (windows[2].x_lo, windows[2].x_hi) == (70, 130)
        assert windows[-1].area == 200 * 100


class TestTrackSequence:
    """Test cases for the driving loop."""

    def test_moving_marker(self, tracker):
        """Test exact recovery of a marker moving by (+2, +1) per frame."""
        frames = moving_marker_frames()

        track = tracker.track_sequence(frames)

        assert track == [Position(50 + 2 * i, 50 + i) for i in range(5)]
        assert all(k <= 3 for k in tracker.iterations[2:])

    def test_track_data(self, tracker):
        tracker.track_sequence(moving_marker_frames(3))

        data = tracker.get_track_data()

        assert data["frames_tracked"] == 3
        assert data["start_position"] == (50, 50)
        assert data["end_position"] == (54, 52)

    def test_on_frame_called_in_order(self, tracker):
        seen = []
        tracker.track_sequence(moving_marker_frames(4), on_frame=lambda i, f: seen.append(i))
        assert seen == [0, 1, 2, 3]

    def test_generator_input(self, tracker):
        frames = moving_marker_frames(3)
        track = tracker.track_sequence(f for f in frames)
        assert len(track) == 3

    def test_empty_sequence(self, tracker):
        with pytest.raises(InvalidConfig):
            tracker.track_sequence([])

        with pytest.raises(InvalidConfig):
            tracker.track_sequence(iter([]))

    def test_missing_target_color(self):
        tracker = PointTracker(TrackingConfig(), annotate=False, verbose=False)
        with pytest.raises(InvalidConfig):
            tracker.track_sequence(moving_marker_frames(2))

    def test_failure_reports_frame_and_last_position(self, tracker):
        """Test that a lost marker aborts the run with context."""
        frames = moving_marker_frames(3) + [make_frame(), make_frame()]
        seen = []

        with pytest.raises(SearchExhausted) as exc_info:
            tracker.track_sequence(frames, on_frame=lambda i, f: seen.append(i))

        assert exc_info.value.frame_index == 3
        assert exc_info.value.last_position == Position(54, 52)
        assert "frame 3" in str(exc_info.value)
        assert seen == [0, 1, 2]
        assert len(tracker.track) == 3

    def test_frames_annotated_in_place(self):
        tracker = PointTracker(TrackingConfig(target_color=GREEN), verbose=False)
        frames = moving_marker_frames(3)
        originals = [f.copy() for f in frames]

        tracker.track_sequence(frames)

        for before, after in zip(originals, frames):
            assert not np.array_equal(before, after)
        assert tracker.speeds[0] == 0.0
        assert tracker.speeds[1] == pytest.approx(np.sqrt(5) * 30)
