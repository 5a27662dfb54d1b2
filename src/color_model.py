"""
Color model for marker tracking.

Colors are compared with a normalized Euclidean distance in RGB space,
scaled to 0-100 so that black vs. white is exactly 100.
"""

import numpy as np
from typing import Tuple
from dataclasses import dataclass


MATCH_THRESHOLD = 15
MAX_DISTANCE = np.sqrt(255.0 ** 2 * 3)


@dataclass(frozen=True)
class Color:
    """Immutable 8-bit RGB color."""
    red: int
    green: int
    blue: int

    def __post_init__(self):
        for name in ("red", "green", "blue"):
            value = getattr(self, name)
            if not isinstance(value, (int, np.integer)) or not 0 <= value <= 255:
                raise ValueError(f"Invalid {name} channel: {value}. Must be an integer in 0-255.")
            object.__setattr__(self, name, int(value))

    @classmethod
    def from_packed(cls, value: int) -> "Color":
        """Build a color from a 0xAARRGGBB / 0xRRGGBB integer (alpha ignored)."""
        return cls((value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF)

    @classmethod
    def from_bgr(cls, pixel) -> "Color":
        """Build a color from an OpenCV (B, G, R) pixel."""
        b, g, r = (int(c) for c in pixel[:3])
        return cls(r, g, b)

    @classmethod
    def parse(cls, text: str) -> "Color":
        """
        Parse a color from the command line.

        Accepts "r,g,b" or "#rrggbb".

        Raises:
            ValueError: If the text is not a valid color
        """
        text = text.strip()
        if text.startswith("#"):
            if len(text) != 7:
                raise ValueError(f"Invalid hex color: {text}")
            return cls.from_packed(int(text[1:], 16))

        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 3:
            raise ValueError(f"Invalid color: {text}. Expected 'r,g,b' or '#rrggbb'.")
        return cls(*(int(p) for p in parts))

    @property
    def packed(self) -> int:
        return (self.red << 16) | (self.green << 8) | self.blue

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return (self.red, self.green, self.blue)

    @property
    def bgr(self) -> Tuple[int, int, int]:
        return (self.blue, self.green, self.red)

    @property
    def hex(self) -> str:
        return f"#{self.packed:06x}"

    def __str__(self):
        return f"rgb({self.red}, {self.green}, {self.blue})"


def distance(a: Color, b: Color) -> float:
    """
    Normalized Euclidean distance between two colors.

    Args:
        a: First color
        b: Second color

    Returns:
        Distance in the range [0, 100]
    """
    d = np.sqrt((a.red - b.red) ** 2 + (a.green - b.green) ** 2 + (a.blue - b.blue) ** 2)
    return float(d / MAX_DISTANCE * 100)


def matches(a: Color, b: Color, threshold: float = MATCH_THRESHOLD) -> bool:
    """Check whether two colors are the same within the threshold."""
    return distance(a, b) <= threshold


def distance_map(pixels: np.ndarray, target: Color) -> np.ndarray:
    """
    Distance of every pixel in a BGR block to the target color.

    Args:
        pixels: Array of shape (..., 3) in BGR order
        target: Target color

    Returns:
        Float array of shape pixels.shape[:-1] with values in [0, 100]
    """
    diff = pixels[..., :3].astype(np.float64) - np.array(target.bgr, dtype=np.float64)
    return np.sqrt(np.sum(diff ** 2, axis=-1)) / MAX_DISTANCE * 100


def match_mask(pixels: np.ndarray, target: Color,
               threshold: float = MATCH_THRESHOLD) -> np.ndarray:
    """Boolean mask of pixels matching the target color."""
    return distance_map(pixels, target) <= threshold


def sample_color(frame: np.ndarray, x: int, y: int) -> Color:
    """
    Pick the target color from a single frame pixel.

    Raises:
        ValueError: If (x, y) lies outside the frame
    """
    height, width = frame.shape[:2]
    if not (0 <= x < width and 0 <= y < height):
        raise ValueError(f"Sample point ({x}, {y}) outside frame of size {width}x{height}")
    return Color.from_bgr(frame[y, x])
