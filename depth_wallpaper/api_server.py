#!/usr/bin/env python3
"""
Depth Wallpaper API Server
Thin HTTP shell around RenderPipeline for UI front-ends that can't run Python.
"""

import os
import asyncio
import base64
import logging
from io import BytesIO
from typing import Optional

from dotenv import load_dotenv

# Load environment variables first
load_dotenv()

from flask import Flask, request, jsonify, send_file
from flask_cors import CORS
from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from .config import ProcessingConfig
from .errors import ConfigError, DecodeError, PipelineError
from .models.raster import Raster
from .pipeline.render_pipeline import RenderPipeline
from .repositories.image_repository import ImageFormat
from .services.blit_service import BlitService
from .services.image_service import ImageService

logger = logging.getLogger(__name__)

# Configuration
ALLOWED_EXTENSIONS = set(os.getenv("ALLOWED_EXTENSIONS", "png,jpg,jpeg,gif,bmp,webp").split(","))
MAX_CONTENT_LENGTH = int(os.getenv("MAX_UPLOAD_SIZE_MB", "25")) * 1024 * 1024
MAX_PREVIEW_SIDE = int(os.getenv("MAX_PREVIEW_SIDE", "4096"))


def allowed_file(filename: str) -> bool:
    return "." in filename and filename.rsplit(".", 1)[1].lower() in ALLOWED_EXTENSIONS


def _read_upload(field: str, required: bool = True) -> Optional[bytes]:
    """Return the uploaded file's bytes, or raise ValueError with a client-facing message."""
    upload: Optional[FileStorage] = request.files.get(field)
    if upload is None or upload.filename == "":
        if required:
            raise ValueError(f"No '{field}' file provided")
        return None
    filename = secure_filename(upload.filename)
    if not allowed_file(filename):
        raise ValueError(f"File type not allowed: {filename}")
    return upload.read()


def _build_config(image_bytes: bytes) -> ProcessingConfig:
    overrides = {}
    api_key = request.headers.get("X-Api-Key")
    if api_key:
        overrides["api_key"] = api_key
    for name in ("preview_blur_radius", "background_blur_radius"):
        if name in request.form:
            overrides[name] = int(request.form[name])
    return ProcessingConfig.from_env(image_bytes, **overrides)


def _to_b64(data: bytes) -> str:
    return base64.b64encode(data).decode("utf-8")


def create_app(image_service: ImageService = None, blit_service: BlitService = None) -> Flask:
    app = Flask(__name__)
    CORS(app)  # Enable CORS for frontend communication
    app.config["MAX_CONTENT_LENGTH"] = MAX_CONTENT_LENGTH

    image_service = image_service or ImageService()
    blit_service = blit_service or BlitService()

    def run_pipeline(config: ProcessingConfig):
        pipeline = RenderPipeline(config, image_service=image_service)
        return asyncio.run(pipeline.run())

    @app.route("/api/health", methods=["GET"])
    def health():
        return jsonify({"status": "ok"})

    @app.route("/api/layers", methods=["POST"])
    def layers():
        """Split an uploaded photo into foreground + background PNG layers."""
        try:
            image_bytes = _read_upload("image")
            config = _build_config(image_bytes)
            result = run_pipeline(config)
        except (ValueError, ConfigError) as e:
            return jsonify({"error": str(e)}), 400
        except DecodeError as e:
            logger.warning(f"Undecodable upload: {e}")
            return jsonify({"error": "Processing failed: image could not be decoded"}), 400
        except PipelineError as e:
            logger.error(f"Pipeline error: {e}")
            return jsonify({"error": "Processing failed"}), 500

        encoded = image_service.encode_layers(result, ImageFormat.PNG)
        width, height = result.size
        return jsonify({
            "width": width,
            "height": height,
            "strategy": result.strategy,
            "degraded": result.degraded,
            "foreground": _to_b64(encoded["foreground"]),
            "background": _to_b64(encoded["background"]),
        })

    @app.route("/api/preview", methods=["POST"])
    def preview():
        """Composite background → overlay → foreground for a given viewport."""
        try:
            image_bytes = _read_upload("image")
            overlay_bytes = _read_upload("overlay", required=False)
            width = int(request.form.get("width", "1080"))
            height = int(request.form.get("height", "1920"))
            if not (0 < width <= MAX_PREVIEW_SIDE and 0 < height <= MAX_PREVIEW_SIDE):
                raise ValueError(f"Viewport must be within 1..{MAX_PREVIEW_SIDE} on each side")
            overlay: Optional[Raster] = image_service.decode(overlay_bytes) if overlay_bytes else None
            result = run_pipeline(_build_config(image_bytes))
        except (ValueError, ConfigError) as e:
            return jsonify({"error": str(e)}), 400
        except DecodeError as e:
            logger.warning(f"Undecodable upload: {e}")
            return jsonify({"error": "Processing failed: image could not be decoded"}), 400
        except PipelineError as e:
            logger.error(f"Pipeline error: {e}")
            return jsonify({"error": "Processing failed"}), 500

        surface = blit_service.render_layers(result, (width, height), overlay=overlay)
        png = image_service.encode(surface, ImageFormat.PNG)
        return send_file(BytesIO(png), mimetype="image/png", download_name="preview.png")

    return app


def main():
    # --- Centralized Logging Configuration ---
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)-25s - %(levelname)-8s - %(message)s',
        datefmt='%H:%M:%S'
    )
    app = create_app()
    host = os.getenv("API_HOST", "127.0.0.1")
    port = int(os.getenv("API_PORT", "5000"))
    logger.info(f"Starting Depth Wallpaper API on {host}:{port}")
    app.run(host=host, port=port, debug=os.getenv("FLASK_DEBUG", "0") == "1")


if __name__ == "__main__":
    main()
