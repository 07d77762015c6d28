# services/segmentation_service.py
"""
Subject / background separation.

Three interchangeable strategies share one `segment` coroutine:

• RemoteSegmentationStrategy      – remove.bg-style service, returns a pre-matted image
• LocalSegmentationStrategy       – centre-radius heuristic (crude, always available)
• PassthroughSegmentationStrategy – full-opacity mask, i.e. no cutout

SegmentationService picks one from the ProcessingConfig and never lets an
error out: remote failures fall back to the heuristic, anything unexpected
degrades to the passthrough result.
"""
from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

import cv2
import numpy as np

from ..config import ProcessingConfig
from ..errors import DecodeError, InternalSegmentationError, RemoteSegmentationError
from ..models.raster import Raster
from ..models.segmentation_result import SegmentationResult
from ..repositories.background_removal_repository import BackgroundRemovalRepository
from ..repositories.image_repository import ImageFormat
from .blit_service import BlitService
from .compositing_service import CompositingService
from .image_service import ImageService

logger = logging.getLogger(__name__)


class SegmentationStrategy(ABC):
    name: str = "abstract"

    @abstractmethod
    async def segment(self, raster: Raster, config: ProcessingConfig) -> SegmentationResult:
        ...


class LocalSegmentationStrategy(SegmentationStrategy):
    """
    Keeps a disc of radius `subject_radius_ratio * width` around the image
    centre fully opaque and clears everything else.

    Not real segmentation.  It is deterministic, single pass and needs no
    network, which is all a fallback has to be.
    """
    name = "local"

    def __init__(self, compositing_service: CompositingService | None = None):
        self.compositing_service = compositing_service or CompositingService()

    @staticmethod
    def center_mask(width: int, height: int, radius_ratio: float = 0.3) -> np.ndarray:
        """uint8 (H, W) mask: 255 inside the centred disc, 0 outside."""
        # pixel-grid centre keeps the mask symmetric under 180° rotation
        cx = (width - 1) / 2.0
        cy = (height - 1) / 2.0
        radius = radius_ratio * width

        ys, xs = np.ogrid[:height, :width]
        dist_sq = (xs - cx) ** 2 + (ys - cy) ** 2
        return np.where(dist_sq <= radius * radius, 255, 0).astype(np.uint8)

    async def segment(self, raster: Raster, config: ProcessingConfig) -> SegmentationResult:
        mask = await asyncio.to_thread(
            self.center_mask, raster.width, raster.height, config.subject_radius_ratio
        )
        foreground = await asyncio.to_thread(self.compositing_service.build_foreground, raster, mask)
        return SegmentationResult(foreground=foreground, strategy=self.name)


class PassthroughSegmentationStrategy(SegmentationStrategy):
    """No cutout: every pixel opaque.  Last resort, cannot fail on a valid raster."""
    name = "passthrough"

    def __init__(self, compositing_service: CompositingService | None = None):
        self.compositing_service = compositing_service or CompositingService()

    def full_opacity(self, raster: Raster) -> SegmentationResult:
        mask = np.full((raster.height, raster.width), 255, dtype=np.uint8)
        foreground = self.compositing_service.build_foreground(raster, mask)
        return SegmentationResult(foreground=foreground, strategy=self.name, degraded=True)

    async def segment(self, raster: Raster, config: ProcessingConfig) -> SegmentationResult:
        return await asyncio.to_thread(self.full_opacity, raster)


class RemoteSegmentationStrategy(SegmentationStrategy):
    """
    Sends the original encoded bytes to the removal service and uses the
    returned (already matted) image directly as the foreground.
    """
    name = "remote"

    def __init__(
            self,
            repository: BackgroundRemovalRepository | None = None,
            image_service: ImageService | None = None,
    ):
        self.repository = repository or BackgroundRemovalRepository()
        self.image_service = image_service or ImageService()

    @staticmethod
    def _match_size(foreground: Raster, width: int, height: int) -> Raster:
        if foreground.size == (width, height):
            return foreground
        logger.info(
            f"Resizing remote foreground {foreground.width}x{foreground.height} → {width}x{height}"
        )
        shrinking = foreground.width > width or foreground.height > height
        interp = cv2.INTER_AREA if shrinking else cv2.INTER_LINEAR
        # resample premultiplied so transparent colour does not bleed into the matte edge
        resized = cv2.resize(BlitService.premultiply(foreground.pixels), (width, height), interpolation=interp)
        return Raster(pixels=BlitService.unpremultiply(resized))

    async def segment(self, raster: Raster, config: ProcessingConfig) -> SegmentationResult:
        if not config.api_key:
            raise RemoteSegmentationError("No API key configured for background removal")

        payload = config.image_bytes
        if not payload:
            payload = await asyncio.to_thread(self.image_service.encode, raster, ImageFormat.PNG)

        content = await self.repository.remove_background(
            payload,
            api_key=config.api_key,
            url=config.remote_url,
            timeout=config.remote_timeout,
        )

        try:
            foreground = await asyncio.to_thread(self.image_service.decode, content)
        except DecodeError as exc:
            raise RemoteSegmentationError(f"Removal service returned undecodable data: {exc}") from exc

        foreground = await asyncio.to_thread(self._match_size, foreground, raster.width, raster.height)
        return SegmentationResult(foreground=foreground, strategy=self.name)


class SegmentationService:
    """
    Chooses a strategy per config and absorbs every segmentation failure.

    api_key                      → remote, then local (or passthrough) on failure
    no key, use_local_processing → local
    neither                      → passthrough
    """

    def __init__(
            self,
            remote: RemoteSegmentationStrategy | None = None,
            local: LocalSegmentationStrategy | None = None,
            passthrough: PassthroughSegmentationStrategy | None = None,
    ) -> None:
        compositing_service = CompositingService()
        self.remote = remote or RemoteSegmentationStrategy()
        self.local = local or LocalSegmentationStrategy(compositing_service)
        self.passthrough = passthrough or PassthroughSegmentationStrategy(compositing_service)

    def select_strategy(self, config: ProcessingConfig) -> SegmentationStrategy:
        if config.uses_remote:
            return self.remote
        if config.use_local_processing:
            return self.local
        return self.passthrough

    def fallback_for(self, config: ProcessingConfig) -> SegmentationStrategy:
        return self.local if config.use_local_processing else self.passthrough

    @staticmethod
    async def _run(strategy: SegmentationStrategy, raster: Raster, config: ProcessingConfig) -> SegmentationResult:
        try:
            return await strategy.segment(raster, config)
        except RemoteSegmentationError:
            raise
        except Exception as exc:
            raise InternalSegmentationError(f"{strategy.name} segmentation failed: {exc}") from exc

    async def segment(self, raster: Raster, config: ProcessingConfig) -> SegmentationResult:
        """Never raises for a valid raster (cancellation aside)."""
        strategy = self.select_strategy(config)
        try:
            return await self._run(strategy, raster, config)
        except RemoteSegmentationError as exc:
            fallback = self.fallback_for(config)
            logger.warning(f"Remote segmentation failed, falling back to {fallback.name}: {exc}")
        except InternalSegmentationError as exc:
            logger.warning(f"Degrading to full-opacity mask: {exc}")
            return await asyncio.to_thread(self.passthrough.full_opacity, raster)

        try:
            result = await self._run(fallback, raster, config)
        except InternalSegmentationError as exc:
            logger.warning(f"Degrading to full-opacity mask: {exc}")
            return await asyncio.to_thread(self.passthrough.full_opacity, raster)
        result.degraded = True
        return result
