"""
Transcription service for the AssemblyAI v2 REST API.

This module handles the asynchronous transcript job lifecycle:
- Uploading raw audio bytes (POST /upload)
- Submitting a transcript job (POST /transcript)
- Polling job status until it completes or fails (GET /transcript/{id})
- Simulated results when no credential is configured

Polling runs at a fixed interval (3 seconds by default) and is bounded by a
PollPolicy; the bound is configurable and may be disabled.
"""

import os
import time
import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, Optional, Type, Union

import httpx

from media_transcriber.config import PLACEHOLDER_API_KEY, Settings
from media_transcriber.exceptions import (
    JobError,
    PollError,
    SubmissionError,
    TranscriptionTimeoutError,
    UploadError,
    VendorError,
)
from media_transcriber.models.domain import (
    JobStatus,
    TranscriptionJob,
    TranscriptionOptions,
    TranscriptionResult,
)


logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.assemblyai.com/v2"
DEFAULT_POLL_INTERVAL = 3.0
PLACEHOLDER_CONFIDENCE = 0.95

Log = Union[logging.Logger, logging.LoggerAdapter]


@dataclass(frozen=True)
class PollPolicy:
    """
    How long await_completion keeps polling.

    interval: seconds between status requests
    max_attempts: maximum status requests, None for no limit
    timeout: maximum seconds spent waiting, None for no limit
    """
    interval: float = DEFAULT_POLL_INTERVAL
    max_attempts: Optional[int] = None
    timeout: Optional[float] = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "PollPolicy":
        return cls(
            interval=settings.transcription_poll_interval,
            max_attempts=settings.transcription_poll_max_attempts or None,
            timeout=settings.transcription_poll_timeout or None
        )


class AssemblyAIClient:
    """Async client for AssemblyAI transcript jobs."""

    def __init__(
        self,
        api_key: str,
        base_url: str = DEFAULT_BASE_URL,
        poll_policy: Optional[PollPolicy] = None,
        default_language: str = "pt",
        transport: Optional[httpx.AsyncBaseTransport] = None,
        request_timeout: float = 120.0,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.monotonic
    ):
        self.api_key = (api_key or "").strip()
        self.base_url = base_url.rstrip("/")
        self.poll_policy = poll_policy or PollPolicy()
        self.default_language = default_language
        self._transport = transport
        self._request_timeout = request_timeout
        self._sleep = sleep
        self._clock = clock
        self._http: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "AssemblyAIClient":
        return cls(
            api_key=settings.assemblyai_api_key,
            base_url=settings.assemblyai_base_url,
            poll_policy=PollPolicy.from_settings(settings),
            default_language=settings.default_language,
            **kwargs
        )

    @property
    def has_credential(self) -> bool:
        return bool(self.api_key) and self.api_key != PLACEHOLDER_API_KEY

    async def __aenter__(self) -> "AssemblyAIClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._http is not None:
            await self._http.aclose()
            self._http = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"authorization": self.api_key},
                timeout=self._request_timeout,
                transport=self._transport
            )
        return self._http

    async def _request(
        self,
        method: str,
        path: str,
        error_cls: Type[VendorError],
        **kwargs
    ) -> Dict[str, Any]:
        """Send one request; non-2xx and transport failures raise error_cls."""
        try:
            response = await self._client().request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise error_cls(None, str(e) or e.__class__.__name__, e) from e

        if not response.is_success:
            raise error_cls(response.status_code, response.text)

        try:
            return response.json()
        except ValueError as e:
            raise error_cls(response.status_code, f"Invalid JSON response: {response.text[:200]}", e) from e

    async def upload(self, data: bytes, log: Optional[Log] = None) -> str:
        """
        Upload raw audio bytes.

        Returns:
            The upload_url to reference in submit()

        Raises:
            UploadError: non-success status or transport failure
        """
        log = log or logger
        log.info(f"Uploading {len(data)} bytes to AssemblyAI")
        body = await self._request(
            "POST", "/upload", UploadError,
            content=data,
            headers={"content-type": "application/octet-stream"}
        )
        upload_url = body.get("upload_url")
        if not upload_url:
            raise UploadError(200, f"Response missing upload_url: {body}")
        log.info(f"Upload complete: {upload_url}")
        return upload_url

    @staticmethod
    def build_transcript_request(audio_url: str, options: Optional[TranscriptionOptions] = None) -> Dict[str, Any]:
        """
        Build the POST /transcript payload.

        Punctuation and text formatting are always on. Language detection is
        on unless a concrete language was requested, in which case it is
        switched off and the code is sent verbatim.
        """
        options = options or TranscriptionOptions()
        request = {
            "audio_url": audio_url,
            "punctuate": True,
            "format_text": True,
            "language_detection": True,
        }
        language = options.explicit_language
        if language:
            request["language_code"] = language
            request["language_detection"] = False
        if options.speaker_labels:
            request["speaker_labels"] = True
        return request

    async def submit(
        self,
        audio_url: str,
        options: Optional[TranscriptionOptions] = None,
        log: Optional[Log] = None
    ) -> str:
        """
        Create a transcript job for an uploaded audio URL.

        Returns:
            The job id

        Raises:
            SubmissionError: non-success status, transport failure or missing id
        """
        log = log or logger
        payload = self.build_transcript_request(audio_url, options)
        body = await self._request("POST", "/transcript", SubmissionError, json=payload)
        job_id = body.get("id")
        if not job_id:
            raise SubmissionError(200, f"Response missing transcript id: {body}")
        log.info(f"Transcription started: {job_id}")
        return job_id

    async def get_job(self, job_id: str) -> TranscriptionJob:
        """Fetch the current state of a transcript job."""
        body = await self._request("GET", f"/transcript/{job_id}", PollError)
        try:
            status = JobStatus(body.get("status"))
        except ValueError as e:
            raise PollError(200, f"Unexpected transcript status: {body.get('status')!r}", e) from e
        return TranscriptionJob(
            id=job_id,
            status=status,
            error=body.get("error"),
            payload=body if status == JobStatus.COMPLETED else None
        )

    async def await_completion(
        self,
        job_id: str,
        poll_policy: Optional[PollPolicy] = None,
        log: Optional[Log] = None
    ) -> TranscriptionResult:
        """
        Poll a job until it reaches a terminal state.

        Raises:
            JobError: job finished with status 'error'
            TranscriptionTimeoutError: polling bound exhausted
            PollError: status request failed
        """
        log = log or logger
        policy = poll_policy or self.poll_policy
        started = self._clock()
        attempts = 0

        log.info(f"Waiting for transcription {job_id} (poll every {policy.interval}s)")
        while True:
            job = await self.get_job(job_id)
            attempts += 1
            log.info(f"Transcription status: {job.status.value}")

            if job.status == JobStatus.COMPLETED:
                log.info("Transcription completed")
                return job.to_result()
            if job.status == JobStatus.ERROR:
                raise JobError(job_id, job.error)

            elapsed = self._clock() - started
            if policy.max_attempts is not None and attempts >= policy.max_attempts:
                raise TranscriptionTimeoutError(job_id, attempts, elapsed)
            if policy.timeout is not None and elapsed + policy.interval > policy.timeout:
                raise TranscriptionTimeoutError(job_id, attempts, elapsed)

            await self._sleep(policy.interval)

    def placeholder_result(self, artifact_path: str, options: Optional[TranscriptionOptions] = None) -> TranscriptionResult:
        """Simulated result used when no credential is configured."""
        options = options or TranscriptionOptions()
        name = os.path.basename(artifact_path)
        return TranscriptionResult(
            text=(
                f"Simulated AssemblyAI transcription for file: {name}\n\n"
                "This is a demonstration. Set ASSEMBLYAI_API_KEY to transcribe for real."
            ),
            confidence=PLACEHOLDER_CONFIDENCE,
            language_code=options.explicit_language or self.default_language,
            is_placeholder=True
        )

    async def transcribe(
        self,
        artifact_path: str,
        options: Optional[TranscriptionOptions] = None,
        log: Optional[Log] = None
    ) -> TranscriptionResult:
        """
        Upload, submit and wait for one audio artifact.

        Without a credential this returns placeholder_result() and performs
        no network I/O.
        """
        log = log or logger
        if not self.has_credential:
            log.warning("ASSEMBLYAI_API_KEY not configured - returning simulated transcription")
            return self.placeholder_result(artifact_path, options)

        data = await asyncio.to_thread(Path(artifact_path).read_bytes)
        audio_url = await self.upload(data, log=log)
        job_id = await self.submit(audio_url, options, log=log)
        return await self.await_completion(job_id, log=log)
