"""
Domain models for the transcription pipeline.

These are request-scoped values passed between the acquisition, conversion
and transcription stages. Nothing here is persisted.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ArtifactSource(str, Enum):
    UPLOADED = "uploaded"
    DOWNLOADED = "downloaded"
    CONVERTED = "converted"


class JobStatus(str, Enum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.ERROR)


class MediaArtifact(BaseModel):
    """A media file on local disk owned by a single request."""
    path: str
    source: ArtifactSource
    original_name: str
    size: int = Field(0, ge=0)
    extension: str = ""


class TranscriptionOptions(BaseModel):
    """Options forwarded to the transcript submission."""
    language: Optional[str] = Field(None, description="ISO-639-1 code or 'auto'")
    speaker_labels: bool = Field(False, description="Request speaker-segmented utterances")

    @property
    def explicit_language(self) -> Optional[str]:
        """The requested language, or None when auto-detection applies."""
        if not self.language or self.language.strip().lower() == "auto":
            return None
        return self.language.strip()


class Word(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    text: str
    start: Optional[int] = None
    end: Optional[int] = None
    confidence: Optional[float] = None
    speaker: Optional[str] = None


class Utterance(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    speaker: Optional[str] = None
    text: str
    start: Optional[int] = None
    end: Optional[int] = None
    confidence: Optional[float] = None
    words: Optional[List[Word]] = None


class TranscriptionResult(BaseModel):
    """Terminal transcript payload. Immutable once produced."""
    model_config = ConfigDict(frozen=True, extra="ignore")

    text: str = ""
    confidence: Optional[float] = Field(None, ge=0.0, le=1.0)
    language_code: Optional[str] = None
    words: Optional[List[Word]] = None
    utterances: Optional[List[Utterance]] = None
    is_placeholder: bool = False


class TranscriptionJob(BaseModel):
    """One outstanding transcript at the vendor, as last observed."""
    id: str
    status: JobStatus
    error: Optional[str] = None
    payload: Optional[Dict[str, Any]] = None

    def to_result(self) -> TranscriptionResult:
        """Build the result from a completed job's payload."""
        payload = self.payload or {}
        return TranscriptionResult.model_validate({
            "text": payload.get("text") or "",
            "confidence": payload.get("confidence"),
            "language_code": payload.get("language_code"),
            "words": payload.get("words"),
            "utterances": payload.get("utterances"),
        })
