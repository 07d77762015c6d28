from .image_repository import ImageRepository, ImageFormat
from .background_removal_repository import BackgroundRemovalRepository

__all__ = ["ImageRepository", "ImageFormat", "BackgroundRemovalRepository"]
