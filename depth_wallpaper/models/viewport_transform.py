from __future__ import annotations
from dataclasses import dataclass


@dataclass(frozen=True)
class ViewportTransform:
    """Per-paint cover-fit placement. Recomputed on every draw, never stored."""
    scale: float
    offset_x: float
    offset_y: float

    def scaled_size(self, width: int, height: int) -> tuple[float, float]:
        return width * self.scale, height * self.scale

    @classmethod
    def identity(cls) -> "ViewportTransform":
        return cls(scale=1.0, offset_x=0.0, offset_y=0.0)
