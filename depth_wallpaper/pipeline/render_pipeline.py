# pipeline/render_pipeline.py
"""
One pipeline run per input image:

    IDLE → DECODING → SEGMENTING → COMPOSITING → READY

Every stage is awaited (CPU work goes through asyncio.to_thread), so the
host event loop keeps running between stages.  Segmentation never fails
the run; only DecodeError (or a PipelineError from compositing) ends in
FAILED.  A run is single-shot: re-processing means a new RenderPipeline.
"""
from __future__ import annotations

import asyncio
import logging
import time
import uuid
from typing import Callable, Optional

from ..config import ProcessingConfig
from ..errors import DecodeError, PipelineError, PipelineStateError
from ..models.pipeline_state import PipelineResult, PipelineState, can_advance
from ..models.raster import Raster
from ..models.segmentation_result import SegmentationResult
from ..services.compositing_service import CompositingService
from ..services.image_service import ImageService
from ..services.segmentation_service import SegmentationService

logger = logging.getLogger(__name__)

StateListener = Callable[[PipelineState], None]


class RenderPipeline:
    def __init__(
        self,
        config: ProcessingConfig,
        *,
        image_service: ImageService | None = None,
        segmentation_service: SegmentationService | None = None,
        compositing_service: CompositingService | None = None,
        on_state_change: Optional[StateListener] = None,
    ):
        self.config = config
        self.image_service = image_service or ImageService()
        self.segmentation_service = segmentation_service or SegmentationService()
        self.compositing_service = compositing_service or CompositingService()
        self.on_state_change = on_state_change

        self.run_id = uuid.uuid4().hex[:8]
        self.result: PipelineResult | None = None
        self.error: Exception | None = None
        self._state = PipelineState.IDLE
        self._started = False
        self._disposed = False
        self._task: asyncio.Task | None = None

    # ─── State ─────────────────────────────────────────────────────
    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state is PipelineState.READY

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _advance(self, target: PipelineState) -> None:
        if not can_advance(self._state, target):
            raise PipelineStateError(f"Illegal transition {self._state.value} → {target.value}")
        logger.info(f"[{self.run_id}] {self._state.value} → {target.value}")
        self._state = target
        if self.on_state_change is not None:
            self.on_state_change(target)

    def _checkpoint(self) -> None:
        """Stop between stages once the owning widget has been torn down."""
        if self._disposed:
            raise asyncio.CancelledError(f"pipeline run {self.run_id} disposed")

    def _fail(self, exc: Exception) -> None:
        self.error = exc
        logger.error(f"[{self.run_id}] run failed in {self._state.value}: {exc}")
        self._advance(PipelineState.FAILED)

    def _blur_radius_for(self, seg: SegmentationResult) -> int:
        if seg.strategy == "remote":
            return self.config.background_blur_radius
        return self.config.preview_blur_radius

    # ─── Stages ────────────────────────────────────────────────────
    async def _decode(self) -> Raster:
        self._advance(PipelineState.DECODING)
        return await asyncio.to_thread(self.image_service.decode, self.config.image_bytes)

    async def _segment(self, original: Raster) -> SegmentationResult:
        self._advance(PipelineState.SEGMENTING)
        return await self.segmentation_service.segment(original, self.config)

    async def _composite(self, original: Raster, seg: SegmentationResult) -> PipelineResult:
        self._advance(PipelineState.COMPOSITING)
        radius = self._blur_radius_for(seg)
        try:
            background = await asyncio.to_thread(
                self.compositing_service.build_background, original, radius
            )
        except Exception as exc:
            raise PipelineError(f"Building background (radius {radius}) failed: {exc}") from exc

        if background.size != seg.foreground.size:
            raise PipelineError(
                f"Layer size mismatch: foreground {seg.foreground.size}, background {background.size}"
            )
        return PipelineResult.from_segmentation(seg, background)

    # ─── Public API ────────────────────────────────────────────────
    async def run(self) -> PipelineResult:
        """
        Execute the run to READY and return both layers.

        Raises DecodeError / PipelineError after moving to FAILED, and
        asyncio.CancelledError if disposed mid-run (state is left as-is).
        """
        if self._started:
            raise PipelineStateError(f"Pipeline run {self.run_id} already started")
        self._started = True
        self._task = asyncio.current_task()
        self._checkpoint()

        started = time.perf_counter()
        try:
            original = await self._decode()
            self._checkpoint()
            seg = await self._segment(original)
            self._checkpoint()
            result = await self._composite(original, seg)
            self._checkpoint()
        except (DecodeError, PipelineError) as exc:
            self._fail(exc)
            raise

        result.foreground.freeze()
        result.background.freeze()
        self.result = result
        self._advance(PipelineState.READY)
        logger.debug(
            f"[{self.run_id}] ready in {time.perf_counter() - started:.3f}s "
            f"(strategy={result.strategy}, degraded={result.degraded})"
        )
        return result

    def start(self) -> asyncio.Task:
        """Schedule run() on the running loop and return its task."""
        task = asyncio.ensure_future(self.run())
        self._task = task
        return task

    def dispose(self) -> None:
        """
        Called when the hosting widget goes away: no further stages run and
        any in-flight network call is cancelled with the task.
        """
        if self._disposed:
            return
        self._disposed = True
        logger.info(f"[{self.run_id}] disposed in state {self._state.value}")
        try:
            current = asyncio.current_task()
        except RuntimeError:  # called outside the event loop
            current = None
        task = self._task
        if task is not None and not task.done() and task is not current:
            task.cancel()


async def process_image(config: ProcessingConfig, **services) -> PipelineResult:
    """Convenience wrapper: one fresh pipeline run for *config*."""
    return await RenderPipeline(config, **services).run()
