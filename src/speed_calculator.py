"""
Speed calculation module for point tracking.

Speeds are expressed in track widths per second: pixel distance between
consecutive frames, divided by the frame interval, the scale ratio and the
track width.
"""

import numpy as np
from typing import List, Tuple, Dict, Sequence


class SpeedCalculator:
    """Calculates marker speed from tracked positions."""

    def __init__(self,
                 fps: float = 30.0,
                 scale_ratio: float = 1.0,
                 track_width: float = 1.0):
        """
        Initialize speed calculator.

        Args:
            fps: Video frame rate (frames per second)
            scale_ratio: Pixels spanned by the reference scale
            track_width: Track width value the reference scale represents

        Raises:
            ValueError: If parameters are invalid
        """
        if fps <= 0:
            raise ValueError(f"Invalid fps: {fps}")

        if scale_ratio <= 0:
            raise ValueError(f"Invalid scale_ratio: {scale_ratio}")

        if track_width <= 0:
            raise ValueError(f"Invalid track_width: {track_width}")

        self.fps = fps
        self.scale_ratio = scale_ratio
        self.track_width = track_width

    @staticmethod
    def scale_ratio_from_points(point1: Tuple[int, int],
                                point2: Tuple[int, int]) -> float:
        """
        Derive the scale ratio from the two ends of the reference scale.

        Args:
            point1: (x, y) pixel coordinates of one end
            point2: (x, y) pixel coordinates of the other end

        Returns:
            Pixel length of the reference scale

        Raises:
            ValueError: If the points coincide
        """
        ratio = SpeedCalculator.calculate_distance(point1, point2)
        if ratio == 0:
            raise ValueError(f"Scale points must differ: {point1}, {point2}")
        return ratio

    @staticmethod
    def calculate_distance(point1: Tuple[int, int],
                           point2: Tuple[int, int]) -> float:
        """
        Calculate distance between two points in pixels.

        Args:
            point1: (x, y) coordinates
            point2: (x, y) coordinates

        Returns:
            Distance in pixels
        """
        x1, y1 = point1[:2]
        x2, y2 = point2[:2]
        return float(np.sqrt((x2 - x1)**2 + (y2 - y1)**2))

    def to_track_widths(self, pixels: float) -> float:
        """Convert a pixel distance to track widths."""
        return pixels / self.scale_ratio / self.track_width

    def instantaneous_speed(self,
                            track: Sequence[Tuple[int, int]],
                            frame_index: int) -> float:
        """
        Speed at a frame, from the displacement since the previous frame.

        Args:
            track: Tracked (x, y) positions, one per frame
            frame_index: Frame to compute the speed for

        Returns:
            Speed in track widths per second (0 for the first frame)
        """
        if frame_index < 0 or frame_index >= len(track):
            raise IndexError(f"Frame index {frame_index} outside track of length {len(track)}")

        if frame_index == 0:
            return 0.0

        distance = self.calculate_distance(track[frame_index], track[frame_index - 1])
        time = 1.0 / self.fps
        return (distance / time) / self.scale_ratio / self.track_width

    def speed_profile(self, track: Sequence[Tuple[int, int]]) -> List[float]:
        """Instantaneous speed at every frame of a track."""
        return [self.instantaneous_speed(track, i) for i in range(len(track))]

    def get_statistics(self, track: Sequence[Tuple[int, int]]) -> Dict:
        """
        Aggregate speed and path statistics for a track.

        Args:
            track: Tracked (x, y) positions

        Returns:
            Dictionary with statistics
        """
        if len(track) < 2:
            return {"error": "Insufficient track data"}

        speeds = self.speed_profile(track)[1:]
        path_pixels = sum(
            self.calculate_distance(track[i - 1], track[i])
            for i in range(1, len(track))
        )

        return {
            "average_speed": round(float(np.mean(speeds)), 2),
            "max_speed": round(float(np.max(speeds)), 2),
            "min_speed": round(float(np.min(speeds)), 2),
            "path_length_pixels": round(path_pixels, 2),
            "path_length_track_widths": round(self.to_track_widths(path_pixels), 2),
            "duration_seconds": round((len(track) - 1) / self.fps, 2),
            "total_frames": len(track),
        }
