# depth_wallpaper/config.py
from __future__ import annotations

import os
from dataclasses import dataclass, replace

from dotenv import load_dotenv

from .errors import ConfigError

# Load environment variables
load_dotenv()

DEFAULT_REMOTE_URL = "https://api.remove.bg/v1.0/removebg"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ProcessingConfig:
    """
    Everything a single pipeline run needs.  Passed explicitly, never global.

    • api_key present          → remote background removal, heuristic fallback
    • use_local_processing     → allow the centre-radius heuristic
    • preview_blur_radius      → background blur for heuristic results
    • background_blur_radius   → background blur when the remote service succeeded
    """
    image_bytes: bytes = b""
    api_key: str | None = None
    use_local_processing: bool = True
    preview_blur_radius: int = 10
    background_blur_radius: int = 15
    remote_url: str = DEFAULT_REMOTE_URL
    remote_timeout: float = 30.0
    subject_radius_ratio: float = 0.3

    def __post_init__(self):
        for name in ("preview_blur_radius", "background_blur_radius"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"{name} must be a non-negative integer, got {value!r}")
        if self.remote_timeout <= 0:
            raise ConfigError(f"remote_timeout must be positive, got {self.remote_timeout!r}")
        if not 0.0 < self.subject_radius_ratio <= 1.0:
            raise ConfigError(
                f"subject_radius_ratio must be in (0, 1], got {self.subject_radius_ratio!r}"
            )

    @property
    def uses_remote(self) -> bool:
        return bool(self.api_key)

    @classmethod
    def from_env(cls, image_bytes: bytes = b"", **overrides) -> "ProcessingConfig":
        """Build a config from environment variables (.env honoured); kwargs win."""
        try:
            values = dict(
                image_bytes=image_bytes,
                api_key=os.getenv("REMOVE_BG_API_KEY") or None,
                use_local_processing=_env_bool("USE_LOCAL_PROCESSING", True),
                preview_blur_radius=int(os.getenv("PREVIEW_BLUR_RADIUS", "10")),
                background_blur_radius=int(os.getenv("BACKGROUND_BLUR_RADIUS", "15")),
                remote_url=os.getenv("REMOVE_BG_URL", DEFAULT_REMOTE_URL),
                remote_timeout=float(os.getenv("REMOVE_BG_TIMEOUT", "30")),
                subject_radius_ratio=float(os.getenv("SUBJECT_RADIUS_RATIO", "0.3")),
            )
        except ValueError as exc:
            raise ConfigError(f"Invalid numeric environment setting: {exc}") from exc
        values.update(overrides)
        return cls(**values)

    def with_image(self, image_bytes: bytes) -> "ProcessingConfig":
        return replace(self, image_bytes=image_bytes)
