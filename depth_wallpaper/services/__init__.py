from .image_service import ImageService
from .blur_service import BlurService
from .compositing_service import CompositingService
from .segmentation_service import (
    SegmentationService,
    SegmentationStrategy,
    LocalSegmentationStrategy,
    RemoteSegmentationStrategy,
    PassthroughSegmentationStrategy,
)
from .blit_service import BlitService

__all__ = [
    "ImageService",
    "BlurService",
    "CompositingService",
    "SegmentationService",
    "SegmentationStrategy",
    "LocalSegmentationStrategy",
    "RemoteSegmentationStrategy",
    "PassthroughSegmentationStrategy",
    "BlitService",
]
