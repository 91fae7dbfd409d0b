"""Data models for sampled frames, color samples and validation issues."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


@dataclass
class Frame:
    """A rendered video frame converted to packed RGB.

    ``pixels`` is a ``height x width x 3`` uint8 array. A malformed capture may
    produce a frame with zero pixels; analysis treats it as empty rather than
    failing.
    """

    element: str
    width: int
    height: int
    pixels: np.ndarray
    caps: str = ""
    timestamp: Optional[int] = None
    captured_at: datetime = field(default_factory=datetime.now)

    @property
    def pixel_count(self) -> int:
        return int(self.width) * int(self.height)

    @property
    def is_empty(self) -> bool:
        return self.pixel_count == 0 or self.pixels.size == 0

    @classmethod
    def solid(cls, element: str, rgb: Tuple[int, int, int], width: int = 64, height: int = 48) -> "Frame":
        """Create a frame filled with a single color."""
        pixels = np.empty((height, width, 3), dtype=np.uint8)
        pixels[:, :] = rgb
        return cls(element=element, width=width, height=height, pixels=pixels, caps="video/x-raw,format=RGB")

    def to_dict(self) -> Dict[str, Any]:
        """Convert frame metadata (not pixel data) to a dictionary."""
        return {
            "element": self.element,
            "width": self.width,
            "height": self.height,
            "caps": self.caps,
            "timestamp": self.timestamp,
            "captured_at": self.captured_at.isoformat(),
        }


@dataclass
class ColorSample:
    """Per-palette-color area fractions computed from one frame."""

    width: int
    height: int
    fractions: Dict[str, float]

    def fraction(self, color_name: str) -> float:
        return self.fractions.get(color_name, 0.0)

    def dominant(self, limit: int = 5) -> List[Tuple[str, float]]:
        """Return the ``limit`` largest colors, biggest first."""
        ranked = sorted(self.fractions.items(), key=lambda item: item[1], reverse=True)
        return [(name, value) for name, value in ranked[:limit] if value > 0.0]

    def to_dict(self) -> Dict[str, Any]:
        return {"width": self.width, "height": self.height, "fractions": dict(self.fractions)}


@dataclass(frozen=True)
class ValidationIssue:
    """An issue reported by the validator.

    The harness only cares whether issues exist; level and message are kept
    verbatim for reporting.
    """

    level: str
    message: str
    issue_id: Optional[str] = None
    source: Optional[str] = None

    def __str__(self) -> str:
        origin = f" ({self.source})" if self.source else ""
        ident = f" [{self.issue_id}]" if self.issue_id else ""
        return f"{self.level}{ident}{origin}: {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "message": self.message,
            "issue_id": self.issue_id,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ValidationIssue":
        return cls(
            level=data["level"],
            message=data["message"],
            issue_id=data.get("issue_id"),
            source=data.get("source"),
        )
