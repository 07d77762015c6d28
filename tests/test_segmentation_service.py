import asyncio
import threading

import httpx
import numpy as np
import pytest

from depth_wallpaper.config import ProcessingConfig
from depth_wallpaper.services.compositing_service import CompositingService
from depth_wallpaper.services.segmentation_service import (
    LocalSegmentationStrategy,
    PassthroughSegmentationStrategy,
    SegmentationService,
)

from conftest import jpeg_bytes, make_raster, png_bytes, remote_service


def matted(raster):
    """What a removal service would send back: same photo, left half transparent."""
    cut = raster.copy()
    cut.pixels[:, : raster.width // 2, 3] = 0
    return cut


# ---------- local heuristic ----------
@pytest.mark.parametrize("size", [10, 11, 64, 101])
def test_center_mask_is_symmetric_under_180_rotation(size):
    mask = LocalSegmentationStrategy.center_mask(size, size)
    np.testing.assert_array_equal(mask, np.rot90(mask, 2))


def test_center_mask_keeps_centre_and_clears_corners():
    mask = LocalSegmentationStrategy.center_mask(100, 80)
    assert mask.shape == (80, 100)
    assert set(np.unique(mask)) <= {0, 255}
    assert mask[40, 50] == 255
    assert mask[0, 0] == mask[0, 99] == mask[79, 0] == mask[79, 99] == 0
    # radius = 0.3 * width = 30 px around (49.5, 39.5)
    assert mask[39, 79] == 255 and mask[39, 80] == 0


def test_local_strategy_cuts_out_disc():
    raster = make_raster(50, 50, seed=7)
    result = asyncio.run(LocalSegmentationStrategy().segment(raster, ProcessingConfig()))
    assert result.strategy == "local"
    assert not result.degraded
    np.testing.assert_array_equal(result.mask, LocalSegmentationStrategy.center_mask(50, 50))
    np.testing.assert_array_equal(result.foreground.rgb, raster.rgb)


def test_passthrough_strategy_is_fully_opaque(raster):
    result = asyncio.run(PassthroughSegmentationStrategy().segment(raster, ProcessingConfig()))
    assert (result.mask == 255).all()
    assert result.degraded


# ---------- strategy selection ----------
def test_strategy_selection():
    service = SegmentationService()
    assert service.select_strategy(ProcessingConfig(api_key="k")).name == "remote"
    assert service.select_strategy(ProcessingConfig()).name == "local"
    assert service.select_strategy(ProcessingConfig(use_local_processing=False)).name == "passthrough"
    assert service.fallback_for(ProcessingConfig(api_key="k", use_local_processing=False)).name == "passthrough"


# ---------- remote ----------
def test_remote_success_uses_matted_image_as_foreground(raster):
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["request"] = request
        return httpx.Response(200, content=png_bytes(matted(raster)))

    config = ProcessingConfig(image_bytes=png_bytes(raster), api_key="secret", remote_url="https://bg.test/remove")
    result = asyncio.run(remote_service(handler).segment(raster, config))

    assert result.strategy == "remote"
    assert not result.degraded
    np.testing.assert_array_equal(result.foreground.pixels, matted(raster).pixels)

    request = seen["request"]
    assert request.method == "POST"
    assert str(request.url) == "https://bg.test/remove"
    assert request.headers["X-Api-Key"] == "secret"
    assert b'name="image_file"' in request.content
    assert b'name="size"' in request.content and b"auto" in request.content


def test_remote_encodes_raster_when_no_bytes_given(raster):
    def handler(request):
        return httpx.Response(200, content=png_bytes(raster))

    result = asyncio.run(remote_service(handler).segment(raster, ProcessingConfig(api_key="k")))
    assert result.strategy == "remote"


def test_remote_foreground_is_resized_to_original(raster):
    small = make_raster(raster.width // 2, raster.height // 2, seed=11)

    def handler(request):
        return httpx.Response(200, content=png_bytes(small))

    result = asyncio.run(remote_service(handler).segment(raster, ProcessingConfig(api_key="k")))
    assert result.foreground.size == raster.size


def _boom_503(request):
    return httpx.Response(503, text="busy")


def _garbage(request):
    return httpx.Response(200, content=b"<html>definitely not a png</html>")


def _empty(request):
    return httpx.Response(200, content=b"")


def _connect_error(request):
    raise httpx.ConnectError("connection refused", request=request)


def _timeout(request):
    raise httpx.ReadTimeout("too slow", request=request)


@pytest.mark.parametrize("handler", [_boom_503, _garbage, _empty, _connect_error, _timeout])
def test_remote_failures_fall_back_to_local(raster, handler):
    result = asyncio.run(remote_service(handler).segment(raster, ProcessingConfig(api_key="k")))
    assert result.strategy == "local"
    assert result.degraded
    np.testing.assert_array_equal(
        result.mask, LocalSegmentationStrategy.center_mask(raster.width, raster.height)
    )


def test_remote_failure_without_local_gives_no_cutout(raster):
    config = ProcessingConfig(api_key="k", use_local_processing=False)
    result = asyncio.run(remote_service(_boom_503).segment(raster, config))
    assert result.strategy == "passthrough"
    assert (result.mask == 255).all()


# ---------- internal errors ----------
class ExplodingStrategy(LocalSegmentationStrategy):
    async def segment(self, raster, config):
        raise RuntimeError("kaboom")


def test_internal_error_degrades_to_full_opacity(raster):
    service = SegmentationService(local=ExplodingStrategy())
    result = asyncio.run(service.segment(raster, ProcessingConfig()))
    assert result.strategy == "passthrough"
    assert result.degraded
    assert (result.mask == 255).all()
    np.testing.assert_array_equal(result.foreground.rgb, raster.rgb)


def test_internal_error_in_fallback_degrades_to_full_opacity(raster):
    service = remote_service(_boom_503)
    service.local = ExplodingStrategy()
    result = asyncio.run(service.segment(raster, ProcessingConfig(api_key="k")))
    assert result.strategy == "passthrough"
    assert (result.mask == 255).all()


# ---------- event loop stays free ----------
class ThreadRecordingCompositor(CompositingService):
    def __init__(self):
        super().__init__()
        self.threads = []

    def build_foreground(self, original, mask):
        self.threads.append(threading.current_thread())
        return super().build_foreground(original, mask)


def test_foreground_is_built_off_the_event_loop_thread(raster):
    compositor = ThreadRecordingCompositor()
    asyncio.run(LocalSegmentationStrategy(compositor).segment(raster, ProcessingConfig()))
    asyncio.run(PassthroughSegmentationStrategy(compositor).segment(raster, ProcessingConfig()))

    service = SegmentationService(
        local=ExplodingStrategy(), passthrough=PassthroughSegmentationStrategy(compositor)
    )
    asyncio.run(service.segment(raster, ProcessingConfig()))

    assert len(compositor.threads) == 3
    assert all(t is not threading.main_thread() for t in compositor.threads)


# ---------- upload labelling ----------
@pytest.mark.parametrize("payload,filename,content_type", [
    (png_bytes(make_raster(8, 8)), b"image.png", b"image/png"),
    (jpeg_bytes(8, 8), b"image.jpg", b"image/jpeg"),
])
def test_upload_is_labelled_after_its_format(raster, payload, filename, content_type):
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200, content=png_bytes(raster))

    config = ProcessingConfig(image_bytes=payload, api_key="k")
    asyncio.run(remote_service(handler).segment(raster, config))

    assert b'filename="' + filename + b'"' in seen["body"]
    assert b"Content-Type: " + content_type in seen["body"]


def test_encoded_fallback_upload_is_labelled_png(raster):
    seen = {}

    def handler(request):
        seen["body"] = request.content
        return httpx.Response(200, content=png_bytes(raster))

    asyncio.run(remote_service(handler).segment(raster, ProcessingConfig(api_key="k")))
    assert b'filename="image.png"' in seen["body"]


# ---------- matte edges ----------
@pytest.mark.parametrize("target", [40, 10])
def test_resized_remote_matte_has_no_dark_fringe(target):
    cut = make_raster(20, 20, seed=12)
    cut.pixels[:, :10] = (255, 255, 255, 255)
    cut.pixels[:, 10:] = (0, 0, 0, 0)

    def handler(request):
        return httpx.Response(200, content=png_bytes(cut))

    raster = make_raster(target, target, seed=13)
    result = asyncio.run(remote_service(handler).segment(raster, ProcessingConfig(api_key="k")))

    assert result.foreground.size == (target, target)
    visible = result.foreground.alpha > 0
    assert visible.any() and (~visible).any()
    assert (result.foreground.rgb[visible] >= 254).all()
