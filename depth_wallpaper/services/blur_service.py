# services/blur_service.py
from __future__ import annotations

import logging

import cv2
import numpy as np

from ..models.blur_kernel import BlurKernel
from ..models.raster import Raster

logger = logging.getLogger(__name__)


class BlurService:
    """
    Separable Gaussian blur on RGBA rasters.

    • Two 1-D passes (horizontal, then vertical) with the same kernel.
    • Clamp-to-edge borders, so edges don't darken.
    • Output always has the input's dimensions.
    """

    @staticmethod
    def gaussian_blur(raster: Raster, radius: int) -> Raster:
        if radius < 0:
            raise ValueError(f"Blur radius must be non-negative, got {radius}")
        if radius == 0:
            return raster.copy()

        kernel = BlurKernel.from_radius(radius).as_array()
        # float32 throughout: OpenCV's 8-bit path quantises the kernel to 1/256
        blurred = cv2.sepFilter2D(
            raster.pixels.astype(np.float32),
            cv2.CV_32F,
            kernelX=kernel,
            kernelY=kernel,
            borderType=cv2.BORDER_REPLICATE,
        )
        blurred = np.clip(np.rint(blurred), 0, 255).astype(np.uint8)
        logger.debug(f"Blurred {raster.width}x{raster.height} with radius {radius}")
        return Raster(pixels=blurred)
