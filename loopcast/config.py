import json
from functools import lru_cache
from typing import Literal

from pydantic import computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Application
    app_name: str = "Loopcast API"
    app_version: str = "0.1.0"
    environment: Literal["development", "staging", "production"] = "development"
    debug: bool = True
    log_level: str = "INFO"

    # CORS - stored as string, parsed via computed property
    cors_origins_raw: str = "http://localhost:3000"

    @computed_field
    @property
    def cors_origins(self) -> list[str]:
        """Parse CORS origins from pipe/comma-separated string or JSON array."""
        v = self.cors_origins_raw
        if v.startswith("["):
            try:
                return json.loads(v)
            except json.JSONDecodeError:
                pass
        if "|" in v:
            return [origin.strip() for origin in v.split("|") if origin.strip()]
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    # FFmpeg
    ffmpeg_path: str = "ffmpeg"
    ffprobe_path: str = "ffprobe"

    # Asset tree root (catalog paths such as /assets/audio/... resolve below it)
    assets_root: str = "public"
    output_dir: str = "public/generated-videos"

    # Text overlays stay off until drawtext + fonts are confirmed on the host
    text_overlays_enabled: bool = False
    overlay_font_file: str = ""
    watermark_text: str = "Created with Fluet"

    # Composition limits
    fade_duration_seconds: float = 2.0
    max_target_duration_seconds: int = 28800  # 8 hours
    duration_tolerance_seconds: float = 2.0
    audio_sample_rate: int = 44100

    # Encoder process management
    max_concurrent_renders: int = 2
    cancel_grace_seconds: float = 5.0

    # Progress tracking
    progress_ttl_seconds: int = 3600
    progress_sweep_interval_seconds: int = 1800

    # Presets downgrade high quality to medium above this duration
    long_render_threshold_minutes: int = 120


@lru_cache
def get_settings() -> Settings:
    return Settings()
