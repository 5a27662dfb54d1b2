"""
Frame annotation: marker glyph and speed readout.

Annotation draws straight into the frame buffer. It is not idempotent:
annotating the same frame twice draws the overlay twice.
"""

import cv2
import numpy as np
from typing import Optional, Sequence, Tuple

from speed_calculator import SpeedCalculator


MARKER_RADIUS = 5
BOX_SIZE = 50
TEXT_OFFSET = (-25, -40)
OVERLAY_COLOR = (0, 0, 255)  # red, BGR


class Annotator:
    """Draws tracking overlays onto frames."""

    def __init__(self,
                 speed_calculator: Optional[SpeedCalculator] = None,
                 color: Tuple[int, int, int] = OVERLAY_COLOR,
                 font_scale: float = 0.5,
                 thickness: int = 1):
        self.speed_calc = speed_calculator if speed_calculator is not None else SpeedCalculator()
        self.color = color
        self.font_scale = font_scale
        self.thickness = thickness

    @classmethod
    def from_config(cls, config) -> "Annotator":
        """Build an annotator using the speed settings of a TrackingConfig."""
        return cls(SpeedCalculator(
            fps=config.fps,
            scale_ratio=config.scale_ratio,
            track_width=config.track_width
        ))

    def draw_marker(self, frame: np.ndarray, x: int, y: int) -> None:
        """Draw the circle and bounding square centered on (x, y)."""
        half = BOX_SIZE // 2
        cv2.circle(frame, (int(x), int(y)), MARKER_RADIUS, self.color, self.thickness)
        cv2.rectangle(frame, (int(x) - half, int(y) - half),
                      (int(x) + half, int(y) + half), self.color, self.thickness)

    def draw_speed(self, frame: np.ndarray, x: int, y: int, speed: float) -> None:
        """Render the speed label offset from (x, y)."""
        # Round half up, not to even
        label = f"Speed: {int(np.floor(speed + 0.5))} tw/s"
        cv2.putText(frame, label,
                    (int(x) + TEXT_OFFSET[0], int(y) + TEXT_OFFSET[1]),
                    cv2.FONT_HERSHEY_SIMPLEX, self.font_scale, self.color,
                    self.thickness, cv2.LINE_AA)

    def annotate(self, frame: np.ndarray,
                 track: Sequence[Tuple[int, int]],
                 frame_index: int) -> float:
        """
        Mark the tracked position and speed on a frame, in place.

        Args:
            frame: BGR frame to draw on
            track: Tracked positions for frames 0..frame_index (at least)
            frame_index: Index of this frame in the track

        Returns:
            The speed drawn, in track widths per second
        """
        x, y = track[frame_index][:2]
        speed = self.speed_calc.instantaneous_speed(track, frame_index)
        self.draw_marker(frame, x, y)
        self.draw_speed(frame, x, y, speed)
        return speed
