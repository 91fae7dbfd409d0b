"""Color classification of rendered frames.

Every pixel is assigned to the nearest color of a fixed named palette using
squared Euclidean distance in RGB space. The share of pixels assigned to a name
is that color's significance in the frame. A color is *significant* when its
share exceeds :data:`SIGNIFICANCE_THRESHOLD`.
"""
from __future__ import annotations

import logging
from typing import Dict, Mapping, Optional, Tuple

import numpy as np

from ..models.media import ColorSample, Frame

logger = logging.getLogger(__name__)

# Minimum share of the frame area a color must cover to count as present.
SIGNIFICANCE_THRESHOLD = 0.10

# Pixels classified per pass; bounds the size of the distance matrix.
ANALYSIS_CHUNK = 1 << 16

PALETTE: Dict[str, Tuple[int, int, int]] = {
    "black": (0, 0, 0),
    "white": (255, 255, 255),
    "gray": (128, 128, 128),
    "silver": (192, 192, 192),
    "red": (255, 0, 0),
    "maroon": (128, 0, 0),
    "lime": (0, 255, 0),
    "green": (0, 128, 0),
    "blue": (0, 0, 255),
    "navy": (0, 0, 128),
    "yellow": (255, 255, 0),
    "olive": (128, 128, 0),
    "cyan": (0, 255, 255),
    "teal": (0, 128, 128),
    "magenta": (255, 0, 255),
    "purple": (128, 0, 128),
    "orange": (255, 165, 0),
}

ALIASES: Dict[str, str] = {
    "aqua": "cyan",
    "fuchsia": "magenta",
    "grey": "gray",
}


def normalize_color_name(name: str) -> Optional[str]:
    """Return the palette name for ``name`` (case-insensitive, aliases resolved)."""
    key = name.strip().lower()
    key = ALIASES.get(key, key)
    return key if key in PALETTE else None


def known_color_names() -> Tuple[str, ...]:
    return tuple(sorted(set(PALETTE) | set(ALIASES)))


class ColorAnalyzer:
    """Classifies frame pixels against a named palette."""

    def __init__(
        self,
        palette: Optional[Mapping[str, Tuple[int, int, int]]] = None,
        threshold: float = SIGNIFICANCE_THRESHOLD,
    ):
        self.palette = dict(palette or PALETTE)
        self.threshold = threshold
        self._names = list(self.palette)
        self._colors = np.array([self.palette[name] for name in self._names], dtype=np.int32)

    def sample(self, frame: Frame) -> ColorSample:
        """Compute the area fraction of every palette color in ``frame``.

        A frame without pixels yields 0.0 for every color.
        """
        fractions = {name: 0.0 for name in self._names}
        if frame.is_empty:
            logger.debug(f"Empty frame from {frame.element}, all colors at 0")
            return ColorSample(width=frame.width, height=frame.height, fractions=fractions)

        pixels = frame.pixels.reshape(-1, 3).astype(np.int32)
        counts = np.zeros(len(self._names), dtype=np.int64)
        for offset in range(0, len(pixels), ANALYSIS_CHUNK):
            chunk = pixels[offset : offset + ANALYSIS_CHUNK]
            # (pixels, palette) matrix of squared distances
            distances = ((chunk[:, None, :] - self._colors[None, :, :]) ** 2).sum(axis=2)
            counts += np.bincount(distances.argmin(axis=1), minlength=len(self._names))
        total = float(counts.sum())

        for index, name in enumerate(self._names):
            fractions[name] = float(counts[index]) / total

        return ColorSample(width=frame.width, height=frame.height, fractions=fractions)

    def color_significance(self, frame: Frame, color_name: str) -> float:
        """Return the fraction of pixels classified as ``color_name``.

        Raises:
            KeyError: If the color is not part of the palette
        """
        name = normalize_color_name(color_name)
        if name is None or name not in self.palette:
            raise KeyError(color_name)
        return self.sample(frame).fraction(name)

    def is_significant(self, fraction: float) -> bool:
        return fraction > self.threshold
