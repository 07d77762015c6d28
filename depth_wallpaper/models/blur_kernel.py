from __future__ import annotations
from dataclasses import dataclass
import numpy as np


@dataclass(frozen=True)
class BlurKernel:
    """
    Normalised 1-D Gaussian weights for a separable blur.

    size = 2 * radius + 1, sigma = 2/3 * radius, weights sum to 1.
    """
    radius: int
    weights: tuple[float, ...]

    @classmethod
    def from_radius(cls, radius: int) -> "BlurKernel":
        if radius < 0:
            raise ValueError(f"Blur radius must be non-negative, got {radius}")
        if radius == 0:
            return cls(radius=0, weights=(1.0,))

        sigma = radius * (2.0 / 3.0)
        xs = np.arange(-radius, radius + 1, dtype=np.float64)
        w = np.exp(-(xs * xs) / (2.0 * sigma * sigma))
        w /= w.sum()
        return cls(radius=radius, weights=tuple(float(v) for v in w))

    @property
    def size(self) -> int:
        return len(self.weights)

    def as_array(self) -> np.ndarray:
        """Column vector (size, 1) float32, the shape cv2.sepFilter2D expects."""
        return np.asarray(self.weights, dtype=np.float32).reshape(-1, 1)
