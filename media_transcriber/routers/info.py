"""
Informational endpoints: supported languages and service health.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from media_transcriber.config import Settings, get_settings
from media_transcriber.dependencies import verify_api_key
from media_transcriber.models import HealthResponse, Language, LanguagesResponse


router = APIRouter(tags=["Info"])

SUPPORTED_LANGUAGES = [
    Language(code="auto", name="Auto-detect"),
    Language(code="en", name="English"),
    Language(code="es", name="Español (Spanish)"),
    Language(code="fr", name="Français (French)"),
    Language(code="de", name="Deutsch (German)"),
    Language(code="it", name="Italiano (Italian)"),
    Language(code="pt", name="Português (Portuguese)"),
    Language(code="nl", name="Nederlands (Dutch)"),
    Language(code="hi", name="हिन्दी (Hindi)"),
    Language(code="ja", name="日本語 (Japanese)"),
    Language(code="zh", name="中文 (Chinese)"),
    Language(code="fi", name="Suomi (Finnish)"),
    Language(code="ko", name="한국어 (Korean)"),
    Language(code="pl", name="Polski (Polish)"),
    Language(code="ru", name="Русский (Russian)"),
    Language(code="tr", name="Türkçe (Turkish)"),
    Language(code="uk", name="Українська (Ukrainian)"),
    Language(code="vi", name="Tiếng Việt (Vietnamese)"),
]


@router.get("/languages", response_model=LanguagesResponse)
async def list_languages(_: bool = Depends(verify_api_key)):
    """List language codes accepted by the transcription endpoints."""
    return LanguagesResponse(languages=SUPPORTED_LANGUAGES)


@router.get("/health", response_model=HealthResponse)
async def health(settings: Settings = Depends(get_settings)):
    """
    Report service status.

    has_credential is false when ASSEMBLYAI_API_KEY is missing or still the
    placeholder value (transcriptions are simulated). ffmpeg_path is null
    when the configured binary cannot be found.
    """
    return HealthResponse(
        status="ok",
        timestamp=datetime.now(timezone.utc).isoformat(),
        has_credential=settings.has_assemblyai_credential,
        ffmpeg_path=settings.resolved_ffmpeg_path,
        service="AssemblyAI"
    )
