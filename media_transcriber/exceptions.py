"""
Exception hierarchy for the transcription pipeline.

Every pipeline stage raises a subclass of TranscriberError. The routers map
InvalidInputError to HTTP 400 and everything else to HTTP 500.
"""

from typing import List, Optional


class TranscriberError(Exception):
    """Base class for all pipeline errors."""

    def __init__(self, message: str, cause: Optional[Exception] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class InvalidInputError(TranscriberError):
    """Raised for bad client input: unsupported URL, extension, empty file."""


class InvalidUrlError(InvalidInputError):
    """Raised when a URL is not a supported single-video reference."""

    def __init__(self, url: str, reason: str = "unsupported or malformed video URL"):
        self.url = url
        super().__init__(f"Invalid YouTube URL ({reason}): {url}")


class UnsupportedMediaError(InvalidInputError):
    """Raised when a file extension is not in the allow-list."""

    def __init__(self, extension: str, allowed: List[str]):
        self.extension = extension
        self.allowed = allowed
        super().__init__(
            f"Unsupported format: {extension or '(none)'}. "
            f"Accepted formats: {', '.join(allowed)}"
        )


class AcquisitionError(TranscriberError):
    """Raised when downloading remote media fails."""

    def __init__(self, url: str, cause: Optional[Exception] = None):
        self.url = url
        detail = f": {cause}" if cause else ""
        super().__init__(f"Failed to download audio from '{url}'{detail}", cause)


class ConversionError(TranscriberError):
    """Raised when ffmpeg cannot produce the requested audio artifact."""

    def __init__(self, output_path: str, detail: str, cause: Optional[Exception] = None):
        self.output_path = output_path
        self.detail = detail
        super().__init__(f"Audio conversion to '{output_path}' failed: {detail}", cause)


class VendorError(TranscriberError):
    """Raised when the transcription vendor answers with a non-success status."""

    stage = "request"

    def __init__(
        self,
        status_code: Optional[int],
        body: str,
        cause: Optional[Exception] = None
    ):
        self.status_code = status_code
        self.body = body
        status = status_code if status_code is not None else "no response"
        super().__init__(f"AssemblyAI {self.stage} failed: {status} - {body}", cause)


class UploadError(VendorError):
    stage = "upload"


class SubmissionError(VendorError):
    stage = "transcript submission"


class PollError(VendorError):
    stage = "status check"


class JobError(TranscriberError):
    """Raised when a remote transcript job ends in the 'error' state."""

    def __init__(self, job_id: str, vendor_message: Optional[str]):
        self.job_id = job_id
        self.vendor_message = vendor_message or "unknown error"
        super().__init__(f"Transcription job {job_id} failed: {self.vendor_message}")


class TranscriptionTimeoutError(TranscriberError, TimeoutError):
    """Raised when a job is still pending after the polling bound is exhausted."""

    def __init__(self, job_id: str, attempts: int, elapsed: float):
        self.job_id = job_id
        self.attempts = attempts
        self.elapsed = elapsed
        super().__init__(
            f"Transcription job {job_id} did not finish after "
            f"{attempts} status checks ({elapsed:.1f}s)"
        )
