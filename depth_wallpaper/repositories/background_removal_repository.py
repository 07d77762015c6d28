# repositories/background_removal_repository.py
from __future__ import annotations

import logging
import mimetypes

import httpx

from ..errors import RemoteSegmentationError

logger = logging.getLogger(__name__)

_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"
_JPEG_SIGNATURE = b"\xff\xd8\xff"


def upload_filename(payload: bytes) -> str:
    """Name the multipart upload after what the bytes actually are."""
    if payload.startswith(_PNG_SIGNATURE):
        return "image.png"
    if payload.startswith(_JPEG_SIGNATURE):
        return "image.jpg"
    return "image"


def _content_type(filename: str) -> str:
    return mimetypes.guess_type(filename)[0] or "application/octet-stream"


class BackgroundRemovalRepository:
    """
    Thin async client for a remove.bg-compatible endpoint.

    • POST multipart `image_file` + `size=auto`, key in `X-Api-Key`.
    • 200 → raw matted image bytes (PNG with alpha expected).
    • Anything else → RemoteSegmentationError.

    A shared httpx.AsyncClient may be injected; it is safe for concurrent
    calls from independent pipeline runs.  Without one, a client is opened
    per request.
    """

    def __init__(self, client: httpx.AsyncClient | None = None):
        self._client = client

    async def remove_background(
            self,
            image_bytes: bytes,
            *,
            api_key: str,
            url: str,
            timeout: float,
            filename: str | None = None,
    ) -> bytes:
        headers = {"X-Api-Key": api_key}
        filename = filename or upload_filename(image_bytes)
        files = {"image_file": (filename, image_bytes, _content_type(filename))}
        data = {"size": "auto"}

        logger.info(f"Requesting background removal ({len(image_bytes)} bytes) from {url}")
        try:
            if self._client is not None:
                response = await self._client.post(
                    url, headers=headers, files=files, data=data, timeout=timeout
                )
            else:
                async with httpx.AsyncClient(timeout=timeout) as client:
                    response = await client.post(url, headers=headers, files=files, data=data)
        except httpx.TimeoutException as exc:
            raise RemoteSegmentationError(f"Background removal timed out after {timeout}s") from exc
        except httpx.HTTPError as exc:
            raise RemoteSegmentationError(f"Background removal request failed: {exc}") from exc

        if response.status_code != 200:
            raise RemoteSegmentationError(
                f"Background removal error {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

        content = response.content
        if not content:
            raise RemoteSegmentationError("Background removal returned an empty body", status_code=200)

        logger.info(f"Background removal success - {len(content)} bytes")
        return content
