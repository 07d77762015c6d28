# depth_wallpaper/errors.py
"""
Exception hierarchy shared by every layer.

Only DecodeError (and PipelineError for genuinely unexpected stage
failures) ever escapes a pipeline run; segmentation trouble is absorbed
by SegmentationService.
"""
from __future__ import annotations


class DepthWallpaperError(Exception):
    """Base class for everything raised by this package."""


class ConfigError(DepthWallpaperError, ValueError):
    pass


class DecodeError(DepthWallpaperError):
    """Encoded bytes could not be parsed into a Raster."""


class EncodeError(DepthWallpaperError):
    pass


class RemoteSegmentationError(DepthWallpaperError):
    """Transport error, non-200 status or undecodable body from the removal service."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class InternalSegmentationError(DepthWallpaperError):
    """Unexpected failure inside a segmentation strategy."""


class PipelineError(DepthWallpaperError):
    """A stage after decoding failed; fatal to the run."""


class PipelineStateError(DepthWallpaperError):
    pass
