"""
Integration tests for all API routers.

This module tests:
- API authentication (401 for missing/invalid keys when API_KEY is set)
- Input validation (400 for bad input, 422 for malformed bodies)
- Endpoint responses with a real pipeline wired to fake ffmpeg/yt-dlp
- All routers: transcription, text, info
"""

import io
import os
import asyncio
import pytest

import yt_dlp
from fastapi import UploadFile

from media_transcriber.exceptions import AcquisitionError, JobError, TranscriptionTimeoutError
from media_transcriber.models.domain import TranscriptionResult
from media_transcriber.routers.transcription import transcribe_upload
from media_transcriber.utils.text_utils import TRANSLATION_PREFIX

from tests.fakes import FakeDownloader, FakePipeline, list_files


class TestAuthentication:
    """Test optional API key authentication."""

    @pytest.fixture
    def protected_settings(self, make_settings):
        return make_settings(API_KEY="secret-key")

    @pytest.mark.asyncio
    async def test_open_when_api_key_unset(self, client):
        response = await client.get("/languages")
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_missing_api_key(self, make_client, protected_settings):
        client = await make_client(app_settings=protected_settings)
        response = await client.get("/languages")
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_invalid_api_key(self, make_client, protected_settings):
        client = await make_client(app_settings=protected_settings)
        response = await client.post(
            "/process-text", json={"text": "Hi."}, headers={"X-API-Key": "wrong-key"}
        )
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_valid_api_key(self, make_client, protected_settings):
        client = await make_client(app_settings=protected_settings)
        response = await client.get("/languages", headers={"X-API-Key": "secret-key"})
        assert response.status_code == 200

    @pytest.mark.asyncio
    async def test_health_and_root_stay_open(self, make_client, protected_settings):
        client = await make_client(app_settings=protected_settings)
        assert (await client.get("/health")).status_code == 200
        assert (await client.get("/")).status_code == 200


class TestInfoRouter:
    """Test /languages and /health."""

    @pytest.mark.asyncio
    async def test_languages(self, client):
        response = await client.get("/languages")
        assert response.status_code == 200
        codes = [lang["code"] for lang in response.json()["languages"]]
        assert codes[0] == "auto"
        assert {"en", "es", "pt", "fr", "ja"} <= set(codes)

    @pytest.mark.asyncio
    async def test_health_without_credential(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["has_credential"] is False
        assert data["service"] == "AssemblyAI"
        assert "timestamp" in data
        assert "ffmpeg_path" in data

    @pytest.mark.asyncio
    async def test_health_with_credential(self, make_client, make_settings):
        client = await make_client(app_settings=make_settings(ASSEMBLYAI_API_KEY="real-key"))
        response = await client.get("/health")
        assert response.json()["has_credential"] is True

    @pytest.mark.asyncio
    async def test_health_placeholder_credential(self, make_client, make_settings):
        client = await make_client(app_settings=make_settings(ASSEMBLYAI_API_KEY="your-assemblyai-key"))
        response = await client.get("/health")
        assert response.json()["has_credential"] is False


class TestTextRouter:
    """Test /process-text."""

    @pytest.mark.asyncio
    async def test_defaults_translate_and_format(self, client):
        response = await client.post("/process-text", json={"text": "Hello world. Bye"})
        assert response.status_code == 200
        data = response.json()
        assert data["processedText"] == f"{TRANSLATION_PREFIX} Hello world.\n\nBye."
        assert data["operations"] == {"translated": True, "formatted": True}

    @pytest.mark.asyncio
    async def test_format_only(self, client):
        response = await client.post(
            "/process-text",
            json={"text": "One! Two?", "shouldTranslate": False, "shouldFormat": True}
        )
        assert response.json()["processedText"] == "One.\n\nTwo."
        assert response.json()["operations"] == {"translated": False, "formatted": True}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [{}, {"text": ""}, {"text": "   "}])
    async def test_missing_text(self, client, body):
        response = await client.post("/process-text", json=body)
        assert response.status_code == 400
        assert response.json()["detail"] == "No text provided"


class TestRemoteUrlRouter:
    """Test /transcribe/remote-url."""

    @pytest.mark.asyncio
    async def test_missing_body(self, client):
        response = await client.post("/transcribe/remote-url", json={})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_invalid_url(self, make_client, make_pipeline, settings):
        downloader = FakeDownloader()
        client = await make_client(pipeline=make_pipeline(downloader=downloader))

        response = await client.post("/transcribe/remote-url", json={"url": "https://vimeo.com/123"})

        assert response.status_code == 400
        assert "Invalid YouTube URL" in response.json()["detail"]
        assert downloader.downloads == []
        assert list_files(settings.temp_dir) == []

    @pytest.mark.asyncio
    async def test_plain_response(self, make_client, youtube_url):
        pipeline = FakePipeline()
        client = await make_client(pipeline=pipeline)

        response = await client.post(
            "/transcribe/remote-url", json={"url": youtube_url, "language": "en"}
        )

        assert response.status_code == 200
        assert response.json() == {
            "transcription": "Hello world. How are you? Fine!",
            "confidence": 0.91,
            "language_detected": "en",
        }
        _, url, options = pipeline.calls[0]
        assert url == youtube_url
        assert options.language == "en"
        assert options.speaker_labels is False

    @pytest.mark.asyncio
    async def test_speaker_labels(self, make_client, youtube_url):
        pipeline = FakePipeline()
        client = await make_client(pipeline=pipeline)

        response = await client.post(
            "/transcribe/remote-url", json={"url": youtube_url, "speakerLabels": True}
        )

        assert response.status_code == 200
        assert pipeline.calls[0][2].speaker_labels is True

    @pytest.mark.asyncio
    async def test_processed_response(self, make_client, youtube_url):
        client = await make_client(pipeline=FakePipeline())

        response = await client.post(
            "/transcribe/remote-url", json={"url": youtube_url, "shouldFormat": True}
        )

        data = response.json()
        assert response.status_code == 200
        assert data["originalTranscription"] == "Hello world. How are you? Fine!"
        assert data["processedTranscription"] == "Hello world.\n\nHow are you.\n\nFine."
        assert data["operations"] == {"translated": False, "formatted": True}
        assert data["confidence"] == 0.91
        assert data["language_detected"] == "en"

    @pytest.mark.asyncio
    async def test_placeholder_pipeline(self, make_client, make_pipeline, settings, youtube_url):
        client = await make_client(pipeline=make_pipeline())

        response = await client.post(
            "/transcribe/remote-url", json={"url": youtube_url, "language": "fr"}
        )

        assert response.status_code == 200
        assert response.json()["confidence"] == 0.95
        assert response.json()["language_detected"] == "fr"
        assert list_files(settings.temp_dir) == []

    @pytest.mark.asyncio
    async def test_acquisition_error(self, make_client, make_pipeline, settings, youtube_url):
        pipeline = make_pipeline(
            downloader=FakeDownloader(error=yt_dlp.utils.DownloadError("Private video"))
        )
        client = await make_client(pipeline=pipeline)

        response = await client.post("/transcribe/remote-url", json={"url": youtube_url})

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Error processing remote video:")
        assert "Private video" in response.json()["detail"]
        assert list_files(settings.temp_dir) == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error", [
        AcquisitionError("https://youtu.be/x"),
        JobError("job-1", "bad audio"),
        TranscriptionTimeoutError("job-1", 10, 30.0),
        RuntimeError("unexpected"),
    ])
    async def test_pipeline_errors_are_500(self, make_client, youtube_url, error):
        client = await make_client(pipeline=FakePipeline(error=error))
        response = await client.post("/transcribe/remote-url", json={"url": youtube_url})
        assert response.status_code == 500


class TestUploadRouter:
    """Test /transcribe/upload."""

    @pytest.mark.asyncio
    async def test_no_file(self, client):
        response = await client.post("/transcribe/upload", data={"language": "en"})
        assert response.status_code == 400
        assert response.json()["detail"] == "No file uploaded"

    @pytest.mark.asyncio
    async def test_unsupported_extension(self, make_client, make_pipeline, settings):
        client = await make_client(pipeline=make_pipeline())

        response = await client.post(
            "/transcribe/upload", files={"file": ("notes.txt", b"plain text", "text/plain")}
        )

        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail.startswith("Invalid file:")
        assert ".txt" in detail
        assert ".mp4" in detail and ".flac" in detail
        assert list_files(settings.uploads_dir) == []

    @pytest.mark.asyncio
    async def test_empty_file(self, make_client, make_pipeline, settings):
        client = await make_client(pipeline=make_pipeline())

        response = await client.post(
            "/transcribe/upload", files={"file": ("clip.mp4", b"", "video/mp4")}
        )

        assert response.status_code == 400
        assert "empty" in response.json()["detail"]
        assert list_files(settings.uploads_dir) == []

    @pytest.mark.asyncio
    async def test_file_too_large(self, make_client, settings):
        pipeline = FakePipeline()
        client = await make_client(pipeline=pipeline)

        response = await client.post(
            "/transcribe/upload",
            files={"file": ("big.mp4", b"\x00" * (1024 * 1024 + 1), "video/mp4")}
        )

        assert response.status_code == 400
        assert "1MB" in response.json()["detail"]
        assert pipeline.calls == []
        assert list_files(settings.uploads_dir) == []

    @pytest.mark.asyncio
    async def test_successful_upload(self, make_client, make_pipeline, settings, media_file):
        client = await make_client(pipeline=make_pipeline())

        with open(media_file, "rb") as f:
            response = await client.post(
                "/transcribe/upload",
                files={"file": ("sample.mp4", f, "video/mp4")},
                data={"language": "en"}
            )

        assert response.status_code == 200
        data = response.json()
        assert data["confidence"] == 0.95
        assert data["language_detected"] == "en"
        assert data["transcription"]
        assert list_files(settings.uploads_dir) == []
        assert list_files(settings.temp_dir) == []

    @pytest.mark.asyncio
    async def test_processed_upload(self, make_client, media_file):
        pipeline = FakePipeline(result=TranscriptionResult(text="Ola. Tudo bem", confidence=0.8, language_code="pt"))
        client = await make_client(pipeline=pipeline)

        with open(media_file, "rb") as f:
            response = await client.post(
                "/transcribe/upload",
                files={"file": ("sample.mp4", f, "video/mp4")},
                data={"shouldTranslate": "true", "shouldFormat": "true"}
            )

        data = response.json()
        assert response.status_code == 200
        assert data["originalTranscription"] == "Ola. Tudo bem"
        assert data["processedTranscription"] == f"{TRANSLATION_PREFIX} Ola.\n\nTudo bem."
        assert data["operations"] == {"translated": True, "formatted": True}
        assert pipeline.calls[0][1] == "sample.mp4"

    @pytest.mark.asyncio
    async def test_pipeline_error_is_500(self, make_client, settings, media_file):
        client = await make_client(pipeline=FakePipeline(error=JobError("job-1", "bad audio")))

        with open(media_file, "rb") as f:
            response = await client.post(
                "/transcribe/upload", files={"file": ("sample.mp4", f, "video/mp4")}
            )

        assert response.status_code == 500
        assert response.json()["detail"].startswith("Error processing file:")
        assert list_files(settings.uploads_dir) == []

    @pytest.mark.asyncio
    async def test_speaker_labels_form_field(self, make_client, media_file):
        pipeline = FakePipeline()
        client = await make_client(pipeline=pipeline)

        with open(media_file, "rb") as f:
            response = await client.post(
                "/transcribe/upload",
                files={"file": ("sample.mp4", f, "video/mp4")},
                data={"speakerLabels": "true"}
            )

        assert response.status_code == 200
        assert pipeline.calls[0][2].speaker_labels is True

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_removes_upload(self, settings):
        """A request cancelled before it gets a pipeline slot leaves no stored file."""
        content = b"\x00\x00\x00\x18ftypmp42" + b"\x00" * 64
        semaphore = asyncio.Semaphore(1)
        await semaphore.acquire()
        pipeline = FakePipeline()

        task = asyncio.create_task(transcribe_upload(
            file=UploadFile(file=io.BytesIO(content), filename="sample.mp4"),
            language=None,
            should_translate=False,
            should_format=False,
            speaker_labels=False,
            pipeline=pipeline,
            semaphore=semaphore,
            settings=settings,
            _=True
        ))
        for _ in range(200):
            stored = list_files(settings.uploads_dir)
            if stored and os.path.getsize(stored[0]) == len(content):
                break
            await asyncio.sleep(0.01)
        await asyncio.sleep(0.05)
        assert len(list_files(settings.uploads_dir)) == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert pipeline.calls == []
        assert list_files(settings.uploads_dir) == []


class TestRoot:

    @pytest.mark.asyncio
    async def test_welcome_message(self, client):
        response = await client.get("/")
        assert response.status_code == 200
        assert "Welcome" in response.json()["message"]
