"""
Configuration module for the media transcriber API.

This module centralizes all environment variables and runtime configuration
using pydantic-settings for type-safe configuration management.

Settings are resolved once per process by get_settings() and then passed
explicitly into the services (normalizer, transcription client, downloader,
pipeline) at construction time, so tests can build their own Settings
without touching the environment.
"""

import shutil
from functools import lru_cache
from typing import Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


# Credential value shipped in .env.example; treated the same as "not configured"
PLACEHOLDER_API_KEY = "your-assemblyai-key"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # CORS Configuration
    allowed_origin: str = Field(
        default="*",
        validation_alias="ALLOWED_ORIGIN",
        description="Allowed CORS origin for API requests"
    )

    # API Authentication
    api_key: str = Field(
        default="",
        validation_alias="API_KEY",
        description="API key for endpoint authentication (empty = open API)"
    )

    # AssemblyAI Configuration
    assemblyai_api_key: str = Field(
        default="",
        validation_alias="ASSEMBLYAI_API_KEY",
        description="AssemblyAI credential; empty or placeholder enables simulated results"
    )

    assemblyai_base_url: str = Field(
        default="https://api.assemblyai.com/v2",
        validation_alias="ASSEMBLYAI_BASE_URL",
        description="Base URL of the AssemblyAI v2 REST API"
    )

    transcription_poll_interval: float = Field(
        default=3.0,
        validation_alias="TRANSCRIPTION_POLL_INTERVAL",
        description="Seconds between transcript status polls"
    )

    transcription_poll_timeout: float = Field(
        default=3600.0,
        validation_alias="TRANSCRIPTION_POLL_TIMEOUT",
        description="Maximum seconds to wait for a transcript (0 = unbounded)"
    )

    transcription_poll_max_attempts: int = Field(
        default=0,
        validation_alias="TRANSCRIPTION_POLL_MAX_ATTEMPTS",
        description="Maximum status polls per transcript (0 = unbounded)"
    )

    default_language: str = Field(
        default="pt",
        validation_alias="DEFAULT_LANGUAGE",
        description="Language reported by simulated results when none was requested"
    )

    # FFmpeg Configuration
    ffmpeg_binary: str = Field(
        default="ffmpeg",
        validation_alias="FFMPEG_BINARY",
        description="Path or name of the ffmpeg executable"
    )

    audio_output_format: str = Field(
        default="mp3",
        validation_alias="AUDIO_OUTPUT_FORMAT",
        description="Preferred canonical audio container (mp3, m4a, ogg, flac or wav)"
    )

    # Directory Configuration
    uploads_dir: str = Field(
        default="./uploads",
        validation_alias="UPLOADS_DIR",
        description="Directory for incoming uploaded files"
    )

    temp_dir: str = Field(
        default="./tmp",
        validation_alias="TEMP_DIR",
        description="Directory for downloaded and converted artifacts"
    )

    max_upload_mb: int = Field(
        default=100,
        validation_alias="MAX_UPLOAD_MB",
        description="Maximum accepted upload size in megabytes"
    )

    # Concurrency Control
    max_concurrent_transcriptions: int = Field(
        default=2,
        validation_alias="MAX_CONCURRENT_TRANSCRIPTIONS",
        description="Maximum concurrent transcription pipelines"
    )

    # yt-dlp Configuration
    ytdlp_cookies_file: Optional[str] = Field(
        default=None,
        validation_alias="YTDLP_COOKIES_FILE",
        description="Path to cookies.txt for authenticated downloads"
    )

    ytdlp_min_sleep: int = Field(
        default=0,
        validation_alias="YTDLP_MIN_SLEEP",
        description="Minimum seconds between YouTube requests (0 = no rate limiting)"
    )

    ytdlp_max_sleep: int = Field(
        default=0,
        validation_alias="YTDLP_MAX_SLEEP",
        description="Maximum seconds between YouTube requests"
    )

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Logging level name"
    )

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"
    )

    @property
    def has_assemblyai_credential(self) -> bool:
        """True when a real AssemblyAI key is configured."""
        key = self.assemblyai_api_key.strip()
        return bool(key) and key != PLACEHOLDER_API_KEY

    @property
    def resolved_ffmpeg_path(self) -> Optional[str]:
        """Absolute path of the ffmpeg binary, or None if it cannot be found."""
        return shutil.which(self.ffmpeg_binary)

    @property
    def max_upload_bytes(self) -> int:
        return self.max_upload_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
