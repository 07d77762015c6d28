from .raster import Raster
from .blur_kernel import BlurKernel
from .viewport_transform import ViewportTransform
from .segmentation_result import SegmentationResult
from .pipeline_state import PipelineState, PipelineResult

__all__ = [
    "Raster",
    "BlurKernel",
    "ViewportTransform",
    "SegmentationResult",
    "PipelineState",
    "PipelineResult",
]
