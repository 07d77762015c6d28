from __future__ import annotations

from pathlib import Path
from typing import Dict, Union

from ..models.pipeline_state import PipelineResult
from ..models.raster import Raster
from ..repositories.image_repository import ImageFormat, ImageRepository


class ImageService:
    """Codec helpers.  No segmentation or blur logic."""
    def __init__(self, image_repository: ImageRepository | None = None):
        self.image_repository = image_repository or ImageRepository()

    def decode(self, data: bytes) -> Raster:
        """Raises DecodeError for unsupported, truncated or corrupt bytes."""
        return self.image_repository.decode(data)

    def encode(self, raster: Raster, fmt: Union[str, ImageFormat] = ImageFormat.PNG) -> bytes:
        return self.image_repository.encode(raster, fmt)

    def load(self, path: Union[str, Path]) -> Raster:
        """Load a single image from disk into a Raster."""
        raster = self.decode(self.image_repository.read_bytes(path))
        raster.path = Path(path)
        return raster

    def encode_layers(
            self,
            result: PipelineResult,
            fmt: Union[str, ImageFormat] = ImageFormat.PNG,
    ) -> Dict[str, bytes]:
        """
        Encode both READY layers for display hand-off.
        Use PNG: the foreground cutout lives in the alpha channel.
        """
        return {
            "foreground": self.encode(result.foreground, fmt),
            "background": self.encode(result.background, fmt),
        }
