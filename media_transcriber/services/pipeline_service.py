"""
Transcription pipeline service.

Composes acquisition, normalization and transcription into one
request-scoped pipeline:

    Idle -> Acquiring (remote URLs only) | Validating (uploads only)
         -> Converting -> Transcribing -> Cleanup -> Done

Stages run strictly in order. Once a request owns a local file, every
artifact it created is deleted in a finally block, whatever the outcome.
Cleanup failures are logged and never replace the pipeline error.
"""

import os
import uuid
import logging
from enum import Enum
from typing import List, Optional, Union

from media_transcriber.config import Settings
from media_transcriber.exceptions import TranscriberError
from media_transcriber.models.domain import TranscriptionOptions, TranscriptionResult
from media_transcriber.services.acquisition_service import YouTubeAudioDownloader
from media_transcriber.services.media_service import AUDIO_CODECS, AudioNormalizer, logging_observer
from media_transcriber.services.transcription_service import AssemblyAIClient
from media_transcriber.utils.logging_utils import get_request_logger
from media_transcriber.utils.media_utils import cleanup_files, unique_stem, validate_media_file


logger = logging.getLogger(__name__)

Log = Union[logging.Logger, logging.LoggerAdapter]


class PipelineStage(str, Enum):
    IDLE = "idle"
    ACQUIRING = "acquiring"
    VALIDATING = "validating"
    CONVERTING = "converting"
    TRANSCRIBING = "transcribing"
    CLEANUP = "cleanup"
    DONE = "done"


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class TranscriptionPipeline:
    """Runs one transcription request end to end."""

    def __init__(
        self,
        normalizer: AudioNormalizer,
        client: AssemblyAIClient,
        downloader: YouTubeAudioDownloader,
        work_dir: str,
        output_format: str = "mp3"
    ):
        extension = f".{output_format.lower().lstrip('.')}"
        if extension not in AUDIO_CODECS:
            raise ValueError(
                f"Unsupported audio output format '{output_format}'. "
                f"Must be one of: {', '.join(e.lstrip('.') for e in AUDIO_CODECS)}"
            )
        self.normalizer = normalizer
        self.client = client
        self.downloader = downloader
        self.work_dir = work_dir
        self.output_extension = extension
        os.makedirs(work_dir, exist_ok=True)

    @classmethod
    def from_settings(cls, settings: Settings) -> "TranscriptionPipeline":
        return cls(
            normalizer=AudioNormalizer.from_settings(settings),
            client=AssemblyAIClient.from_settings(settings),
            downloader=YouTubeAudioDownloader.from_settings(settings),
            work_dir=settings.temp_dir,
            output_format=settings.audio_output_format
        )

    async def run_remote(
        self,
        url: str,
        options: Optional[TranscriptionOptions] = None,
        request_id: Optional[str] = None
    ) -> TranscriptionResult:
        """
        Transcribe the audio of a YouTube video.

        Acquisition errors propagate immediately; the downloader removes its
        own partial files.
        """
        log = get_request_logger(request_id or new_request_id())
        stem = unique_stem(self.work_dir, "youtube")

        self._enter(log, PipelineStage.ACQUIRING, url)
        source = await self.downloader.acquire(url, stem, log=log)

        return await self._process(source.path, stem, options, log)

    async def run_upload(
        self,
        file_path: str,
        original_name: str,
        options: Optional[TranscriptionOptions] = None,
        request_id: Optional[str] = None
    ) -> TranscriptionResult:
        """
        Transcribe an uploaded file already stored at file_path.

        The pipeline owns file_path from entry: it is deleted even when
        validation rejects it.
        """
        log = get_request_logger(request_id or new_request_id())
        stem = unique_stem(self.work_dir, "upload")
        return await self._process(file_path, stem, options, log, original_name=original_name)

    def artifact_paths(self, source_path: str, stem: str) -> List[str]:
        """Every path a request may create: source, conversion target, WAV fallback."""
        target = f"{stem}_converted{self.output_extension}"
        return [source_path, target, AudioNormalizer.fallback_path(target)]

    async def _process(
        self,
        source_path: str,
        stem: str,
        options: Optional[TranscriptionOptions],
        log: Log,
        original_name: Optional[str] = None
    ) -> TranscriptionResult:
        artifacts = self.artifact_paths(source_path, stem)
        target = artifacts[1]

        try:
            if original_name is not None:
                self._enter(log, PipelineStage.VALIDATING, original_name)
                validate_media_file(source_path, original_name)

            self._enter(log, PipelineStage.CONVERTING, source_path)
            audio_path = await self.normalizer.normalize(
                source_path, target, on_event=logging_observer(log)
            )

            self._enter(log, PipelineStage.TRANSCRIBING, audio_path)
            result = await self.client.transcribe(audio_path, options, log=log)
        except TranscriberError as e:
            log.error(f"Pipeline failed: {e}")
            raise
        finally:
            self._enter(log, PipelineStage.CLEANUP)
            try:
                cleanup_files(artifacts, log)
            except Exception as cleanup_error:
                log.warning(f"Cleanup failed: {cleanup_error}")

        self._enter(log, PipelineStage.DONE)
        return result

    @staticmethod
    def _enter(log: Log, stage: PipelineStage, detail: Optional[str] = None) -> None:
        suffix = f": {detail}" if detail else ""
        log.info(f"Stage -> {stage.value}{suffix}")
