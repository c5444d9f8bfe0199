"""
FastAPI dependency injection functions.

This module provides reusable dependencies for:
- API key authentication and verification
- The process-wide transcription pipeline and its concurrency limit

Tests replace get_pipeline / get_settings through app.dependency_overrides.
"""

import asyncio
from functools import lru_cache

from fastapi import Depends, Header, HTTPException

from media_transcriber.config import Settings, get_settings
from media_transcriber.services.pipeline_service import TranscriptionPipeline


def verify_api_key(
    x_api_key: str = Header(None),
    settings: Settings = Depends(get_settings)
) -> bool:
    """
    Dependency to verify API key from request header.
    The API is open when API_KEY is not configured; otherwise a missing
    or wrong X-API-Key raises HTTPException 401.
    """
    if not settings.api_key:
        return True
    if x_api_key != settings.api_key:
        raise HTTPException(status_code=401, detail="Invalid API Key")
    return True


@lru_cache
def get_pipeline() -> TranscriptionPipeline:
    """Build the pipeline once from the process settings."""
    return TranscriptionPipeline.from_settings(get_settings())


@lru_cache
def get_transcription_semaphore() -> asyncio.Semaphore:
    """Semaphore bounding concurrent pipelines (MAX_CONCURRENT_TRANSCRIPTIONS)."""
    return asyncio.Semaphore(get_settings().max_concurrent_transcriptions)
