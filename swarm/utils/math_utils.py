import colorsys
import numpy as np
from typing import Iterable, Tuple


NUM_LANDMARKS = 21


def landmarks_to_array(landmarks: Iterable) -> np.ndarray:
    """Convert an iterable of landmarks into a (21, 2) NumPy array.

    Accepts objects with `.x` and `.y` (MediaPipe landmarks, normalized 0..1)
    or plain (x, y) pairs.

    Returns:
        np.ndarray of shape (21, 2) dtype float with columns (x, y).

    Raises:
        ValueError: if the landmark set is not 21 points of 2 coordinates.
    """
    points = []
    for lm in landmarks:
        if hasattr(lm, 'x') and hasattr(lm, 'y'):
            points.append((lm.x, lm.y))
        else:
            points.append((lm[0], lm[1]))
    arr = np.array(points, dtype=float)
    if arr.shape != (NUM_LANDMARKS, 2):
        raise ValueError(f"expected {NUM_LANDMARKS} landmarks of (x, y), got shape {arr.shape}")
    return arr


def hsl_to_bgr(hue_deg: float, saturation: float = 0.9, lightness: float = 0.7) -> Tuple[int, int, int]:
    """Map an HSL color (hue in degrees) to an OpenCV BGR tuple."""
    r, g, b = colorsys.hls_to_rgb((hue_deg % 360.0) / 360.0, lightness, saturation)
    return (int(round(b * 255)), int(round(g * 255)), int(round(r * 255)))


def rgb_to_bgr(rgb: Iterable) -> Tuple[int, int, int]:
    r, g, b = [int(c) for c in rgb]
    return (b, g, r)


__all__ = [
    "NUM_LANDMARKS",
    "landmarks_to_array",
    "hsl_to_bgr",
    "rgb_to_bgr",
]
