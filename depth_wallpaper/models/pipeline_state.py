from __future__ import annotations
from dataclasses import dataclass
from enum import Enum

from .raster import Raster
from .segmentation_result import SegmentationResult


class PipelineState(str, Enum):
    """Forward-only lifecycle of one pipeline run."""
    IDLE = "idle"
    DECODING = "decoding"
    SEGMENTING = "segmenting"
    COMPOSITING = "compositing"
    READY = "ready"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (PipelineState.READY, PipelineState.FAILED)


_ORDER = [
    PipelineState.IDLE,
    PipelineState.DECODING,
    PipelineState.SEGMENTING,
    PipelineState.COMPOSITING,
    PipelineState.READY,
]


def can_advance(current: PipelineState, target: PipelineState) -> bool:
    """FAILED is reachable from any non-terminal state; otherwise one step forward."""
    if current.is_terminal:
        return False
    if target is PipelineState.FAILED:
        return True
    return _ORDER.index(target) == _ORDER.index(current) + 1


@dataclass(frozen=True)
class PipelineResult:
    """The two layers handed to the presentation layer once READY."""
    foreground: Raster
    background: Raster
    strategy: str
    degraded: bool = False

    @classmethod
    def from_segmentation(cls, seg: SegmentationResult, background: Raster) -> "PipelineResult":
        return cls(
            foreground=seg.foreground,
            background=background,
            strategy=seg.strategy,
            degraded=seg.degraded,
        )

    @property
    def size(self) -> tuple[int, int]:
        return self.foreground.size
