from __future__ import annotations
from dataclasses import dataclass
import numpy as np
from .raster import Raster


@dataclass
class SegmentationResult:
    """
    Output of one SubjectSegmenter call.

    foreground : original colours, alpha = subject mask
    strategy   : name of the strategy that actually produced the mask
    degraded   : True when a fallback (heuristic or no-cutout) was used
    """
    foreground: Raster
    strategy: str
    degraded: bool = False

    @property
    def mask(self) -> np.ndarray:
        return self.foreground.alpha
