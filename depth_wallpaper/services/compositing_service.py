# services/compositing_service.py
from __future__ import annotations

import numpy as np

from ..models.raster import Raster
from .blur_service import BlurService


class CompositingService:
    """
    Builds the two depth layers from an original raster.

    Neither layer is cropped or resized here; both keep the original
    dimensions.  Scaling happens at draw time in BlitService.
    """

    def __init__(self, blur_service: BlurService | None = None):
        self.blur_service = blur_service or BlurService()

    @staticmethod
    def _as_alpha(mask: np.ndarray) -> np.ndarray:
        """Accept uint8 0-255, bool, or float 0-1 masks; return uint8 0-255."""
        if mask.dtype == np.uint8:
            return mask
        if mask.dtype == np.bool_:
            return mask.astype(np.uint8) * 255
        return (np.clip(mask, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

    def build_foreground(self, original: Raster, mask: np.ndarray) -> Raster:
        """Original colours, alpha taken from *mask* pixel for pixel."""
        if mask.shape != (original.height, original.width):
            raise ValueError(
                f"Mask shape {mask.shape} does not match raster "
                f"{original.height}x{original.width}"
            )
        pixels = original.pixels.copy()
        pixels[:, :, 3] = self._as_alpha(mask)
        return Raster(pixels=pixels)

    def build_background(self, original: Raster, blur_radius: int) -> Raster:
        """Fully opaque copy of the original, then blurred."""
        opaque = original.pixels.copy()
        opaque[:, :, 3] = 255
        return self.blur_service.gaussian_blur(Raster(pixels=opaque), blur_radius)
