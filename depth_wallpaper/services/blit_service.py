# services/blit_service.py
from __future__ import annotations

import logging
from typing import Tuple

import cv2
import numpy as np

from ..models.pipeline_state import PipelineResult
from ..models.raster import Raster
from ..models.viewport_transform import ViewportTransform

logger = logging.getLogger(__name__)

Size = Tuple[int, int]  # (width, height)


class BlitService:
    """
    Cover-fit drawing of layers onto a viewport-sized surface.

    The image is scaled until it fills the viewport in both directions,
    centred, and the overflow is cropped (never letterboxed).
    """

    @staticmethod
    def compute_transform(source_size: Size, target_size: Size) -> ViewportTransform | None:
        """
        scale  = max(tw / sw, th / sh)
        offset = ((tw - sw * scale) / 2, (th - sh * scale) / 2)

        Returns None when either size is degenerate; drawing is then a no-op.
        """
        sw, sh = source_size
        tw, th = target_size
        if sw <= 0 or sh <= 0 or tw <= 0 or th <= 0:
            return None

        scale = max(tw / sw, th / sh)
        return ViewportTransform(
            scale=scale,
            offset_x=(tw - sw * scale) / 2.0,
            offset_y=(th - sh * scale) / 2.0,
        )

    # ---------- alpha helpers ----------
    @staticmethod
    def premultiply(pixels: np.ndarray) -> np.ndarray:
        f = pixels.astype(np.float32) / 255.0
        f[..., :3] *= f[..., 3:4]
        return f

    @staticmethod
    def unpremultiply(f: np.ndarray) -> np.ndarray:
        alpha = f[..., 3:4]
        rgb = np.where(alpha > 0, f[..., :3] / np.maximum(alpha, 1e-6), 0.0)
        out = np.concatenate([rgb, alpha], axis=-1)
        return (np.clip(out, 0.0, 1.0) * 255.0 + 0.5).astype(np.uint8)

    # ---------- public API ----------
    def draw(
            self,
            raster: Raster,
            transform: ViewportTransform | None,
            surface: Raster,
            opacity: float = 1.0,
    ) -> Raster:
        """
        Resample *raster* at the transform's scale/offset and alpha-blend it
        (source-over) onto *surface* in place.  Anything falling outside the
        surface is simply not drawn.
        """
        if transform is None or transform.scale <= 0 or opacity <= 0:
            return surface

        scaled_w, scaled_h = transform.scaled_size(raster.width, raster.height)
        dst_w = max(1, int(round(scaled_w)))
        dst_h = max(1, int(round(scaled_h)))
        x0 = int(round(transform.offset_x))
        y0 = int(round(transform.offset_y))

        left, top = max(0, x0), max(0, y0)
        right = min(surface.width, x0 + dst_w)
        bottom = min(surface.height, y0 + dst_h)
        if right <= left or bottom <= top:
            return surface

        src = self.premultiply(raster.pixels)
        if (dst_w, dst_h) != raster.size:
            interp = cv2.INTER_AREA if transform.scale < 1.0 else cv2.INTER_LINEAR
            src = cv2.resize(src, (dst_w, dst_h), interpolation=interp)

        src = src[top - y0:bottom - y0, left - x0:right - x0] * min(opacity, 1.0)
        dst = self.premultiply(surface.pixels[top:bottom, left:right])

        out = src + dst * (1.0 - src[..., 3:4])
        surface.pixels[top:bottom, left:right] = self.unpremultiply(out)
        return surface

    def blit_cover(self, raster: Raster, surface: Raster, opacity: float = 1.0) -> Raster:
        transform = self.compute_transform(raster.size, surface.size)
        return self.draw(raster, transform, surface, opacity=opacity)

    def render_layers(
            self,
            result: PipelineResult,
            size: Size,
            overlay: Raster | None = None,
            opacity: float = 1.0,
    ) -> Raster:
        """
        Paint background → overlay → foreground onto a transparent surface.

        The overlay (e.g. a rendered clock) is viewport-sized UI and is drawn
        unscaled at the origin; both image layers are cover-fitted.
        """
        width, height = size
        surface = Raster.blank(width, height)

        self.blit_cover(result.background, surface, opacity=opacity)
        if overlay is not None:
            self.draw(overlay, ViewportTransform.identity(), surface, opacity=opacity)
        self.blit_cover(result.foreground, surface, opacity=opacity)

        logger.debug(f"Rendered {result.foreground.width}x{result.foreground.height} layers into {width}x{height}")
        return surface
