"""
Pydantic models for request/response validation.

This module contains the BaseModel schemas used by the HTTP routers.
Wire names follow the frontend's camelCase where the API exposes them
(shouldTranslate, originalTranscription, ...).
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class RemoteUrlTranscriptionRequest(BaseModel):
    """Request model for transcribing a remote video URL."""
    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(..., description="YouTube video URL", min_length=1)
    language: Optional[str] = Field(None, description="Language code or 'auto'")
    should_translate: bool = Field(False, alias="shouldTranslate", description="Apply placeholder translation")
    should_format: bool = Field(False, alias="shouldFormat", description="Reflow into one sentence per paragraph")
    speaker_labels: bool = Field(False, alias="speakerLabels", description="Request speaker-attributed utterances")


class TextOperations(BaseModel):
    """Which post-processing steps were applied."""
    translated: bool
    formatted: bool


class TranscriptionResponse(BaseModel):
    """Plain transcription response: transcription, confidence, language_detected."""
    transcription: str
    confidence: Optional[float] = None
    language_detected: Optional[str] = None


class ProcessedTranscriptionResponse(BaseModel):
    """Transcription response when translation or formatting was requested."""
    model_config = ConfigDict(populate_by_name=True)

    original_transcription: str = Field(..., alias="originalTranscription")
    processed_transcription: str = Field(..., alias="processedTranscription")
    confidence: Optional[float] = None
    language_detected: Optional[str] = None
    operations: TextOperations


class ProcessTextRequest(BaseModel):
    """Request model for /process-text."""
    model_config = ConfigDict(populate_by_name=True)

    text: Optional[str] = Field(None, description="Raw text to process")
    should_translate: bool = Field(True, alias="shouldTranslate")
    should_format: bool = Field(True, alias="shouldFormat")


class ProcessTextResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    processed_text: str = Field(..., alias="processedText")
    operations: TextOperations


class Language(BaseModel):
    code: str
    name: str


class LanguagesResponse(BaseModel):
    languages: List[Language]


class HealthResponse(BaseModel):
    """Service status: credential presence and encoder configuration."""
    status: str
    timestamp: str
    has_credential: bool
    ffmpeg_path: Optional[str] = None
    service: str = "AssemblyAI"
