# models/raster.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import numpy as np


@dataclass
class Raster:
    """
    Simple data object: RGBA pixels (+ optional source path for bookkeeping).
    No codec logic outside ImageRepository.
    """
    pixels: np.ndarray  # Shape (H, W, 4), dtype uint8, RGBA order, row-major.
    path: Path | None = None  # Source of the image, if any.

    def __post_init__(self):
        px = self.pixels
        if not isinstance(px, np.ndarray) or px.ndim != 3 or px.shape[2] != 4:
            shape = getattr(px, "shape", None)
            raise ValueError(f"Raster pixels must be (H, W, 4), got {shape}")
        if px.dtype != np.uint8:
            raise ValueError(f"Raster pixels must be uint8, got {px.dtype}")
        if px.shape[0] == 0 or px.shape[1] == 0:
            raise ValueError(f"Raster must be non-empty, got {px.shape[1]}x{px.shape[0]}")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @property
    def size(self) -> tuple[int, int]:
        """(width, height)"""
        return self.width, self.height

    @property
    def rgb(self) -> np.ndarray:
        return self.pixels[:, :, :3]

    @property
    def alpha(self) -> np.ndarray:
        """Alpha channel as an (H, W) uint8 view; doubles as the cutout mask."""
        return self.pixels[:, :, 3]

    def copy(self) -> "Raster":
        return Raster(pixels=self.pixels.copy(), path=self.path)

    def freeze(self) -> "Raster":
        """Mark the pixel buffer read-only; used once a run reaches READY."""
        self.pixels.setflags(write=False)
        return self

    @classmethod
    def blank(cls, width: int, height: int, fill=(0, 0, 0, 0)) -> "Raster":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:] = fill
        return cls(pixels)
