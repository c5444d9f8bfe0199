"""
Pytest configuration and shared fixtures for test suite.

This module provides:
- Isolated Settings pointing at temporary directories
- Test client fixtures for FastAPI with dependency overrides
- A real pipeline wired to fake ffmpeg/yt-dlp collaborators
"""

import asyncio
import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from media_transcriber.config import Settings, get_settings
from media_transcriber.dependencies import get_pipeline, get_transcription_semaphore
from media_transcriber.services.pipeline_service import TranscriptionPipeline
from media_transcriber.services.transcription_service import AssemblyAIClient

from tests.fakes import FakeDownloader, FakeNormalizer


@pytest.fixture
def make_settings(tmp_path):
    """Factory for Settings isolated from the environment and .env file."""
    def _make(**overrides):
        values = {
            "UPLOADS_DIR": str(tmp_path / "uploads"),
            "TEMP_DIR": str(tmp_path / "tmp"),
            "ASSEMBLYAI_API_KEY": "",
            "API_KEY": "",
            "ALLOWED_ORIGIN": "*",
            "DEFAULT_LANGUAGE": "pt",
            "AUDIO_OUTPUT_FORMAT": "mp3",
            "MAX_UPLOAD_MB": "1",
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def make_pipeline(settings):
    """Real TranscriptionPipeline with fake ffmpeg/yt-dlp collaborators."""
    def _make(normalizer=None, client=None, downloader=None, output_format="mp3"):
        return TranscriptionPipeline(
            normalizer=normalizer or FakeNormalizer(),
            client=client or AssemblyAIClient(api_key=""),
            downloader=downloader or FakeDownloader(),
            work_dir=settings.temp_dir,
            output_format=output_format
        )
    return _make


@pytest.fixture
def make_app(settings):
    """Build the FastAPI app with settings and pipeline overridden."""
    from main import create_app

    def _make(pipeline=None, app_settings=None):
        app_settings = app_settings or settings
        app = create_app(app_settings)
        app.dependency_overrides[get_settings] = lambda: app_settings
        app.dependency_overrides[get_pipeline] = (
            lambda: pipeline or TranscriptionPipeline.from_settings(app_settings)
        )
        app.dependency_overrides[get_transcription_semaphore] = lambda: asyncio.Semaphore(2)
        return app
    return _make


@pytest_asyncio.fixture
async def make_client(make_app):
    """
    Create async test clients for the FastAPI app.

    Uses httpx AsyncClient with ASGITransport to test the FastAPI app
    without needing to run a server.
    """
    clients = []

    async def _make(pipeline=None, app_settings=None):
        transport = ASGITransport(app=make_app(pipeline, app_settings))
        ac = AsyncClient(transport=transport, base_url="http://test")
        clients.append(ac)
        return ac

    yield _make

    for ac in clients:
        await ac.aclose()


@pytest_asyncio.fixture
async def client(make_client):
    return await make_client()


@pytest.fixture
def youtube_url():
    """Sample YouTube URL for testing."""
    return "https://www.youtube.com/watch?v=dQw4w9WgXcQ"


@pytest.fixture
def media_file(tmp_path):
    """A small non-empty file with an allowed extension."""
    path = tmp_path / "sample.mp4"
    path.write_bytes(b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64)
    return str(path)
