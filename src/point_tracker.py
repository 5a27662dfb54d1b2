"""
Point tracking module: follows a uniquely colored marker through a frame
sequence using an expanding search window re-centered by motion prediction.

For every frame the window starts small around the predicted position and
grows until the centroid of matching pixels stops moving between two
consecutive window sizes.
"""

import numpy as np
from typing import Callable, Dict, Iterable, List, Optional
from dataclasses import dataclass

from color_model import Color, MATCH_THRESHOLD
from point_search import SearchWindow, SearchResult, search_window
from motion_predictor import Position, predict_from_track
from annotator import Annotator


MAX_ITERATIONS = 20
WINDOW_DIVISIONS = 20


class TrackingError(Exception):
    """Base class for tracking failures."""


class InvalidConfig(TrackingError, ValueError):
    """Tracking was started with unusable settings or no frames."""


class SearchExhausted(TrackingError):
    """The search window reached its cap without a stable centroid."""

    def __init__(self, iterations: int, degenerate: bool,
                 frame_index: Optional[int] = None,
                 last_position: Optional[Position] = None):
        super().__init__()
        self.iterations = iterations
        self.degenerate = degenerate
        self.frame_index = frame_index
        self.last_position = last_position

    def __str__(self):
        where = f"frame {self.frame_index}" if self.frame_index is not None else "frame"
        msg = f"point not found in {where} after {self.iterations} iterations"
        if self.degenerate:
            msg += " (no matching pixels)"
        if self.last_position is not None:
            msg += f", last known position ({self.last_position.x}, {self.last_position.y})"
        return msg


@dataclass(frozen=True)
class TrackingConfig:
    """Settings for one tracking run."""
    target_color: Optional[Color] = None
    scale_ratio: float = 1.0
    track_width: float = 1.0
    fps: float = 30.0
    threshold: float = MATCH_THRESHOLD
    max_iterations: int = MAX_ITERATIONS
    window_divisions: int = WINDOW_DIVISIONS

    def validate(self) -> None:
        """
        Raises:
            InvalidConfig: If any setting is unusable
        """
        if self.target_color is None:
            raise InvalidConfig("Target color is not set")
        if self.fps <= 0:
            raise InvalidConfig(f"Invalid fps: {self.fps}")
        if self.scale_ratio <= 0:
            raise InvalidConfig(f"Invalid scale_ratio: {self.scale_ratio}")
        if self.track_width <= 0:
            raise InvalidConfig(f"Invalid track_width: {self.track_width}")
        if not 0 <= self.threshold <= 100:
            raise InvalidConfig(f"Invalid threshold: {self.threshold}. Must be between 0 and 100.")
        if self.max_iterations < 1:
            raise InvalidConfig(f"Invalid max_iterations: {self.max_iterations}")
        if self.window_divisions < 1:
            raise InvalidConfig(f"Invalid window_divisions: {self.window_divisions}")


class PointTracker:
    """Tracks a colored marker frame by frame."""

    def __init__(self,
                 config: TrackingConfig,
                 annotator: Optional[Annotator] = None,
                 annotate: bool = True,
                 verbose: bool = True):
        """
        Initialize point tracker.

        Args:
            config: Tracking settings for the run
            annotator: Annotator instance (built from config if None)
            annotate: Draw the overlay on each frame after locating the marker
            verbose: Print progress lines
        """
        self.config = config
        self.annotator = annotator if annotator is not None else (
            Annotator.from_config(config) if annotate else None)
        self.verbose = verbose

        self.track: List[Position] = []
        self.iterations: List[int] = []
        self.speeds: List[float] = []
        self.last_iterations = 0

    def locate(self, target: Color, frame: np.ndarray,
               pred_x: int, pred_y: int) -> Position:
        """
        Find the marker near a predicted position.

        The window half extents are k * width / divisions and
        k * height / divisions for k = 1..max_iterations. The search stops
        when a non-empty match set yields the same centroid as the previous
        window size, or as soon as the window spans the whole frame.

        The step is rounded up (ceil(width / divisions)) so the largest
        window always reaches every edge, and a full-frame window is accepted
        on its first non-empty result because growing it cannot change the
        centroid.

        Args:
            target: Marker color
            frame: BGR frame
            pred_x: Predicted column
            pred_y: Predicted row

        Returns:
            Marker position

        Raises:
            SearchExhausted: If no stable centroid was found
        """
        height, width = frame.shape[:2]
        divisions = self.config.window_divisions
        # Ceiling division so the largest window always covers the frame
        step_x = max(1, -(-width // divisions))
        step_y = max(1, -(-height // divisions))

        prev: Optional[SearchResult] = None
        result: Optional[SearchResult] = None

        for k in range(1, self.config.max_iterations + 1):
            window = SearchWindow.around(pred_x, pred_y, k * step_x, k * step_y,
                                         width, height)
            result = search_window(frame, window, target, self.config.threshold)

            if result.found:
                stable = prev is not None and prev.found and result.position == prev.position
                saturated = window.area == width * height
                if stable or saturated:
                    self.last_iterations = k
                    return result.position

            prev = result

        self.last_iterations = self.config.max_iterations
        raise SearchExhausted(
            iterations=self.config.max_iterations,
            degenerate=result is None or not result.found
        )

    def track_sequence(self, frames: Iterable[np.ndarray],
                       on_frame: Optional[Callable[[int, np.ndarray], None]] = None,
                       total: Optional[int] = None) -> List[Position]:
        """
        Track the marker through an ordered frame sequence.

        Frames are annotated in place. A failure on any frame stops the run;
        frames already handed to on_frame stay as they were written.

        Args:
            frames: Frames in temporal order
            on_frame: Called with (index, frame) after each frame is annotated
            total: Number of frames, for progress output

        Returns:
            One position per frame

        Raises:
            InvalidConfig: If the config is invalid or there are no frames
            SearchExhausted: If the marker is lost on some frame
        """
        self.config.validate()
        if total is None and hasattr(frames, "__len__"):
            total = len(frames)
        if total == 0:
            raise InvalidConfig("Frame sequence is empty")

        self.clear_track()
        target = self.config.target_color

        for i, frame in enumerate(frames):
            predicted = predict_from_track(self.track)
            pred_x, pred_y = predicted if predicted is not None else (0, 0)

            try:
                position = self.locate(target, frame, pred_x, pred_y)
            except SearchExhausted as e:
                e.frame_index = i
                e.last_position = self.track[-1] if self.track else None
                if self.verbose:
                    print(f"  Lost marker at frame {i}: {e}")
                raise

            self.track.append(position)
            self.iterations.append(self.last_iterations)

            if self.annotator is not None:
                self.speeds.append(self.annotator.annotate(frame, self.track, i))

            if on_frame is not None:
                on_frame(i, frame)

            if self.verbose:
                print(f"  Progress: {i + 1} out of {total if total is not None else '?'} "
                      f"({self.last_iterations} iterations)")

        if not self.track:
            raise InvalidConfig("Frame sequence is empty")

        return list(self.track)

    def get_track_data(self) -> Dict:
        """
        Get track data as a dictionary.

        Returns:
            Dictionary with track information
        """
        if not self.track:
            return {"track": [], "frames_tracked": 0}

        return {
            "track": [tuple(p) for p in self.track],
            "frames_tracked": len(self.track),
            "start_position": tuple(self.track[0]),
            "end_position": tuple(self.track[-1]),
            "iterations": list(self.iterations),
            "speeds": list(self.speeds),
        }

    def clear_track(self):
        """Clear stored track data."""
        self.track = []
        self.iterations = []
        self.speeds = []
        self.last_iterations = 0
