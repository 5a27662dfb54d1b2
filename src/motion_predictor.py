"""
Constant-velocity prediction of the marker position.
"""

from typing import NamedTuple, Optional, Sequence


class Position(NamedTuple):
    """Integer pixel coordinate."""
    x: int
    y: int


def predict(prev: Position, prev_prev: Position) -> Position:
    """
    Extrapolate the next position from the last two.

    Args:
        prev: Position in the previous frame
        prev_prev: Position two frames back

    Returns:
        Predicted position, 2 * prev - prev_prev
    """
    return Position(2 * prev[0] - prev_prev[0], 2 * prev[1] - prev_prev[1])


def predict_from_track(track: Sequence[Position]) -> Optional[Position]:
    """Predict the next position of a track, or None with under two points."""
    if len(track) < 2:
        return None
    return predict(track[-1], track[-2])
