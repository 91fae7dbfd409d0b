"""Frame sampling and color classification."""

from .color_analyzer import (
    PALETTE,
    SIGNIFICANCE_THRESHOLD,
    ColorAnalyzer,
    known_color_names,
    normalize_color_name,
)
from .frame_sampler import FrameSampler

__all__ = [
    "PALETTE",
    "SIGNIFICANCE_THRESHOLD",
    "ColorAnalyzer",
    "FrameSampler",
    "known_color_names",
    "normalize_color_name",
]
