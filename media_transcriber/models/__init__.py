"""
Models package for request/response validation and pipeline values.

schemas: Pydantic models used by the HTTP routers
domain: request-scoped pipeline values (artifacts, jobs, results)
"""

from .schemas import (
    RemoteUrlTranscriptionRequest,
    TextOperations,
    TranscriptionResponse,
    ProcessedTranscriptionResponse,
    ProcessTextRequest,
    ProcessTextResponse,
    Language,
    LanguagesResponse,
    HealthResponse,
)
from .domain import (
    ArtifactSource,
    JobStatus,
    MediaArtifact,
    TranscriptionJob,
    TranscriptionOptions,
    TranscriptionResult,
)

__all__ = [
    "RemoteUrlTranscriptionRequest",
    "TextOperations",
    "TranscriptionResponse",
    "ProcessedTranscriptionResponse",
    "ProcessTextRequest",
    "ProcessTextResponse",
    "Language",
    "LanguagesResponse",
    "HealthResponse",
    "ArtifactSource",
    "JobStatus",
    "MediaArtifact",
    "TranscriptionJob",
    "TranscriptionOptions",
    "TranscriptionResult",
]
