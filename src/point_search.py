"""
Bounded-window search for pixels of the marker color.
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass

from color_model import Color, MATCH_THRESHOLD, match_mask
from motion_predictor import Position


@dataclass(frozen=True)
class SearchWindow:
    """Half-open pixel rectangle [x_lo, x_hi) x [y_lo, y_hi)."""
    x_lo: int
    x_hi: int
    y_lo: int
    y_hi: int

    @classmethod
    def around(cls, center_x: int, center_y: int,
               half_width: int, half_height: int,
               frame_width: int, frame_height: int) -> "SearchWindow":
        """Window centered on a point, clamped to the frame on every edge."""
        return cls(
            x_lo=_clamp(center_x - half_width, 0, frame_width),
            x_hi=_clamp(center_x + half_width, 0, frame_width),
            y_lo=_clamp(center_y - half_height, 0, frame_height),
            y_hi=_clamp(center_y + half_height, 0, frame_height),
        )

    @property
    def area(self) -> int:
        return max(0, self.x_hi - self.x_lo) * max(0, self.y_hi - self.y_lo)

    @property
    def x_range(self) -> Tuple[int, int]:
        return (self.x_lo, self.x_hi)

    @property
    def y_range(self) -> Tuple[int, int]:
        return (self.y_lo, self.y_hi)


@dataclass(frozen=True)
class SearchResult:
    """Centroid of the matching pixels in a window."""
    x: int
    y: int
    match_count: int

    @property
    def found(self) -> bool:
        return self.match_count > 0

    @property
    def position(self) -> Position:
        return Position(self.x, self.y)


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def search(frame: np.ndarray,
           x_range: Tuple[int, int],
           y_range: Tuple[int, int],
           target: Color,
           threshold: float = MATCH_THRESHOLD) -> SearchResult:
    """
    Locate the centroid of target-colored pixels inside a rectangle.

    Ranges are half-open and are clamped to the frame, so the scan never
    reads outside the image. The centroid is integer-truncated.

    Args:
        frame: BGR frame of shape (height, width, 3)
        x_range: (lo, hi) column bounds
        y_range: (lo, hi) row bounds
        target: Marker color
        threshold: Match threshold on the 0-100 distance scale

    Returns:
        SearchResult; (0, 0) with match_count 0 when nothing matched
    """
    height, width = frame.shape[:2]
    x_lo, x_hi = _clamp(x_range[0], 0, width), _clamp(x_range[1], 0, width)
    y_lo, y_hi = _clamp(y_range[0], 0, height), _clamp(y_range[1], 0, height)

    if x_lo >= x_hi or y_lo >= y_hi:
        return SearchResult(0, 0, 0)

    mask = match_mask(frame[y_lo:y_hi, x_lo:x_hi], target, threshold)
    ys, xs = np.nonzero(mask)
    count = len(xs)

    if count == 0:
        return SearchResult(0, 0, 0)

    sum_x = int(np.sum(xs)) + x_lo * count
    sum_y = int(np.sum(ys)) + y_lo * count
    return SearchResult(sum_x // count, sum_y // count, count)


def search_window(frame: np.ndarray, window: SearchWindow, target: Color,
                  threshold: float = MATCH_THRESHOLD) -> SearchResult:
    """Run search over a SearchWindow."""
    return search(frame, window.x_range, window.y_range, target, threshold)
