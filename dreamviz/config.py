"""Centralized configuration loaded from environment variables."""

from __future__ import annotations

from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from dreamviz.errors import ConfigurationError


class Settings(BaseSettings):
    """Application-wide settings sourced from .env / environment.

    Instances are frozen: build one at process start and hand it to every
    service that needs it.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ── General ──────────────────────────────────────────────────────
    dreamviz_env: str = "development"
    dreamviz_log_level: str = "INFO"

    # ── OpenAI ───────────────────────────────────────────────────────
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_audio_model: str = "gpt-4o-transcribe"
    openai_text_model: str = "gpt-5-mini"
    openai_video_model: str = "sora-2"
    openai_project: str = ""
    openai_request_timeout_seconds: int = 120

    # ── API Server ───────────────────────────────────────────────────
    api_host: str = "0.0.0.0"
    dream_server_port: int = 8080

    # ── Video generation ─────────────────────────────────────────────
    dream_video_dir: str = "generated-videos"
    skip_video_generation: bool = False
    video_poll_max_attempts: int = 48  # ~8 minutes at the default interval
    video_poll_interval_seconds: float = 10.0
    default_duration_seconds: int = 5
    default_aspect_ratio: str = "16:9"
    default_video_format: str = "mp4"

    @field_validator("openai_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @field_validator("video_poll_max_attempts", "openai_request_timeout_seconds")
    @classmethod
    def _positive(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("must be a positive integer")
        return value

    # ── Derived ──────────────────────────────────────────────────────
    @property
    def video_dir(self) -> Path:
        """Directory where generated videos are persisted."""
        return Path(self.dream_video_dir)

    @property
    def api_host_url(self) -> str:
        """Scheme and host of the configured API, e.g. ``https://api.openai.com``."""
        parts = urlsplit(self.openai_base_url)
        return f"{parts.scheme}://{parts.netloc}"

    @property
    def project(self) -> Optional[str]:
        """The OpenAI project header value, or None when blank."""
        return self.openai_project.strip() or None

    def require_credentials(self) -> None:
        """Fail fast when the settings cannot talk to the API at all."""
        if not self.openai_api_key.strip():
            raise ConfigurationError("OPENAI_API_KEY env var must be set")
        if not self.openai_base_url:
            raise ConfigurationError("OPENAI_BASE_URL must not be blank")


_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Return the singleton Settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
