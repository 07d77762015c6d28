"""
Depth-of-field "parallax portrait" layers from a single photo.

    result = await RenderPipeline(ProcessingConfig.from_env(image_bytes)).run()
    result.foreground  # subject cutout (alpha = mask)
    result.background  # blurred, fully opaque
"""
from .config import ProcessingConfig
from .errors import (
    DepthWallpaperError,
    ConfigError,
    DecodeError,
    EncodeError,
    RemoteSegmentationError,
    InternalSegmentationError,
    PipelineError,
    PipelineStateError,
)
from .models import Raster, PipelineState, PipelineResult, ViewportTransform
from .pipeline import RenderPipeline, process_image

__version__ = "1.0.0"

__all__ = [
    "ProcessingConfig",
    "DepthWallpaperError",
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "RemoteSegmentationError",
    "InternalSegmentationError",
    "PipelineError",
    "PipelineStateError",
    "Raster",
    "PipelineState",
    "PipelineResult",
    "ViewportTransform",
    "RenderPipeline",
    "process_image",
]
