from io import BytesIO

import httpx
import numpy as np
import pytest
from PIL import Image as PILImage

from depth_wallpaper.models.raster import Raster
from depth_wallpaper.repositories.background_removal_repository import BackgroundRemovalRepository
from depth_wallpaper.repositories.image_repository import ImageRepository
from depth_wallpaper.services.segmentation_service import (
    RemoteSegmentationStrategy,
    SegmentationService,
)


def make_raster(width: int = 40, height: int = 30, seed: int = 0, opaque: bool = True) -> Raster:
    rng = np.random.default_rng(seed)
    pixels = rng.integers(0, 256, size=(height, width, 4), dtype=np.uint8)
    if opaque:
        pixels[:, :, 3] = 255
    return Raster(pixels=pixels)


def solid_raster(width: int, height: int, rgba) -> Raster:
    return Raster.blank(width, height, fill=rgba)


def png_bytes(raster: Raster) -> bytes:
    buf = BytesIO()
    PILImage.fromarray(raster.pixels).save(buf, format="PNG")
    return buf.getvalue()


def jpeg_bytes(width: int = 64, height: int = 48) -> bytes:
    buf = BytesIO()
    PILImage.new("RGB", (width, height), (120, 60, 200)).save(buf, format="JPEG")
    return buf.getvalue()


def remote_service(handler) -> SegmentationService:
    """SegmentationService whose remote strategy talks to an httpx.MockTransport."""
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    remote = RemoteSegmentationStrategy(repository=BackgroundRemovalRepository(client=client))
    return SegmentationService(remote=remote)


@pytest.fixture
def raster() -> Raster:
    return make_raster()


@pytest.fixture
def photo_png(raster) -> bytes:
    return png_bytes(raster)


@pytest.fixture
def repository() -> ImageRepository:
    return ImageRepository()
