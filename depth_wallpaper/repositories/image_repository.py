# repositories/image_repository.py
from __future__ import annotations

import os
from enum import Enum
from io import BytesIO
from pathlib import Path
from typing import Union

import numpy as np
from PIL import Image as PILImage
from PIL import ImageOps
from dotenv import load_dotenv

from ..errors import DecodeError, EncodeError
from ..models.raster import Raster

# Load environment variables
load_dotenv()


class ImageFormat(str, Enum):
    PNG = "PNG"
    JPEG = "JPEG"

    @classmethod
    def parse(cls, value: Union[str, "ImageFormat"]) -> "ImageFormat":
        if isinstance(value, cls):
            return value
        key = str(value).strip().upper().lstrip(".")
        if key == "JPG":
            key = "JPEG"
        try:
            return cls(key)
        except ValueError:
            raise EncodeError(f"Unsupported output format: {value!r}") from None


class ImageRepository:
    """
    Handles byte-level decode/encode for Raster entities (Pillow backed).
    """
    def __init__(self):
        self.jpeg_quality = int(os.getenv("JPEG_QUALITY", "92"))
        self.png_compression = int(os.getenv("PNG_COMPRESSION", "6"))

    @staticmethod
    def decode(data: bytes) -> Raster:
        """
        Parse encoded bytes (JPEG, PNG, anything Pillow reads) into RGBA.
        EXIF orientation is baked in so camera photos come out upright.
        """
        if not data:
            raise DecodeError("No image data supplied")
        try:
            with PILImage.open(BytesIO(data)) as pil:
                pil.load()  # force full decode; truncated files fail here
                pil = ImageOps.exif_transpose(pil)
                rgba = pil.convert("RGBA")
        except Exception as exc:  # Pillow plugins raise anything from OSError to struct.error on bad data
            raise DecodeError(f"Could not decode image ({len(data)} bytes): {exc}") from exc

        pixels = np.array(rgba, dtype=np.uint8)
        if pixels.ndim != 3 or pixels.shape[0] == 0 or pixels.shape[1] == 0:
            raise DecodeError(f"Decoded image has no pixels: {pixels.shape}")
        return Raster(pixels=pixels)

    def encode(self, raster: Raster, fmt: Union[str, ImageFormat] = ImageFormat.PNG) -> bytes:
        """Deterministic for a given raster + format. JPEG drops alpha."""
        fmt = ImageFormat.parse(fmt)
        pil = PILImage.fromarray(np.ascontiguousarray(raster.pixels))
        buf = BytesIO()
        try:
            if fmt is ImageFormat.JPEG:
                pil.convert("RGB").save(buf, format="JPEG", quality=self.jpeg_quality)
            else:
                pil.save(buf, format="PNG", compress_level=self.png_compression)
        except (OSError, ValueError) as exc:
            raise EncodeError(f"Could not encode {raster.width}x{raster.height} as {fmt.value}: {exc}") from exc
        return buf.getvalue()

    @staticmethod
    def read_bytes(path: Union[str, Path]) -> bytes:
        path = Path(path)
        if not path.is_file():
            raise FileNotFoundError(f"Image not found or unreadable: {path}")
        return path.read_bytes()
