"""
Transcription router for remote videos and uploaded files.

Both endpoints run the full pipeline (acquire/validate -> convert ->
transcribe -> cleanup) inside the shared concurrency semaphore and
optionally post-process the transcript text.
"""

import os
import time
import asyncio
from typing import Any, BinaryIO, Dict, Optional

from fastapi import APIRouter, Body, Depends, File, Form, HTTPException, UploadFile

from media_transcriber.config import Settings, get_settings
from media_transcriber.dependencies import get_pipeline, get_transcription_semaphore, verify_api_key
from media_transcriber.exceptions import InvalidInputError, TranscriberError
from media_transcriber.models import (
    ProcessedTranscriptionResponse,
    RemoteUrlTranscriptionRequest,
    TextOperations,
    TranscriptionOptions,
    TranscriptionResponse,
    TranscriptionResult,
)
from media_transcriber.services.pipeline_service import TranscriptionPipeline, new_request_id
from media_transcriber.utils.media_utils import cleanup_file, sanitize_filename
from media_transcriber.utils.text_utils import process_text


router = APIRouter(prefix="/transcribe", tags=["Transcription"])

UPLOAD_CHUNK_SIZE = 1024 * 1024


def build_transcription_response(
    result: TranscriptionResult,
    should_translate: bool,
    should_format: bool
) -> Dict[str, Any]:
    """Plain response, or original + processed text when post-processing was requested."""
    if should_translate or should_format:
        return ProcessedTranscriptionResponse(
            original_transcription=result.text,
            processed_transcription=process_text(result.text, should_translate, should_format),
            confidence=result.confidence,
            language_detected=result.language_code,
            operations=TextOperations(translated=should_translate, formatted=should_format)
        ).model_dump(by_alias=True)

    return TranscriptionResponse(
        transcription=result.text,
        confidence=result.confidence,
        language_detected=result.language_code
    ).model_dump()


def _store_upload(source: BinaryIO, dest_path: str, max_bytes: int) -> int:
    """Copy an upload stream to disk, enforcing the size limit. Returns bytes written."""
    written = 0
    with open(dest_path, 'wb') as out:
        while True:
            chunk = source.read(UPLOAD_CHUNK_SIZE)
            if not chunk:
                break
            written += len(chunk)
            if written > max_bytes:
                raise InvalidInputError(f"File exceeds the {max_bytes // (1024 * 1024)}MB upload limit")
            out.write(chunk)
    return written


@router.post("/remote-url")
async def transcribe_remote_url(
    request: RemoteUrlTranscriptionRequest = Body(...),
    pipeline: TranscriptionPipeline = Depends(get_pipeline),
    semaphore: asyncio.Semaphore = Depends(get_transcription_semaphore),
    _: bool = Depends(verify_api_key)
):
    """
    Transcribe the audio track of a YouTube video.

    Workflow:
    1. Validate the URL (400 if it is not a single YouTube video)
    2. Download the audio-only track
    3. Convert to mono 16 kHz audio
    4. Transcribe with AssemblyAI (simulated if no credential is configured)
    5. Delete every temporary file

    Set shouldTranslate / shouldFormat to receive original and processed text.
    speakerLabels asks the vendor for speaker-attributed utterances.
    """
    request_id = new_request_id()
    options = TranscriptionOptions(language=request.language, speaker_labels=request.speaker_labels)

    try:
        async with semaphore:
            result = await pipeline.run_remote(request.url, options, request_id=request_id)
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TranscriberError as e:
        raise HTTPException(status_code=500, detail=f"Error processing remote video: {str(e)}")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error processing remote video: {str(e)}")

    return build_transcription_response(result, request.should_translate, request.should_format)


@router.post("/upload")
async def transcribe_upload(
    file: Optional[UploadFile] = File(None, description="Audio or video file"),
    language: Optional[str] = Form(None, description="Language code or 'auto'"),
    should_translate: bool = Form(False, alias="shouldTranslate"),
    should_format: bool = Form(False, alias="shouldFormat"),
    speaker_labels: bool = Form(False, alias="speakerLabels"),
    pipeline: TranscriptionPipeline = Depends(get_pipeline),
    semaphore: asyncio.Semaphore = Depends(get_transcription_semaphore),
    settings: Settings = Depends(get_settings),
    _: bool = Depends(verify_api_key)
):
    """
    Transcribe an uploaded audio or video file.

    Accepted extensions: .mp4 .avi .mov .mkv .webm .mp3 .wav .m4a .aac .flac
    Empty files, unsupported extensions and files over MAX_UPLOAD_MB are
    rejected with 400. The stored upload is always deleted afterwards.
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    request_id = new_request_id()
    os.makedirs(settings.uploads_dir, exist_ok=True)
    stored_path = os.path.join(
        settings.uploads_dir, f"{time.time_ns()}-{sanitize_filename(file.filename)}"
    )

    try:
        await asyncio.to_thread(_store_upload, file.file, stored_path, settings.max_upload_bytes)
    except InvalidInputError as e:
        cleanup_file(stored_path)
        raise HTTPException(status_code=400, detail=f"Invalid file: {str(e)}")
    except Exception as e:
        cleanup_file(stored_path)
        raise HTTPException(status_code=500, detail=f"Error storing upload: {str(e)}")
    finally:
        await file.close()

    options = TranscriptionOptions(language=language, speaker_labels=speaker_labels)
    try:
        async with semaphore:
            result = await pipeline.run_upload(
                stored_path, file.filename, options, request_id=request_id
            )
    except InvalidInputError as e:
        raise HTTPException(status_code=400, detail=f"Invalid file: {str(e)}")
    except TranscriberError as e:
        raise HTTPException(status_code=500, detail=f"Error processing file: {str(e)}")
    except HTTPException:
        raise
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Error processing file: {str(e)}")
    finally:
        # the pipeline owns stored_path once it runs; this covers a request
        # cancelled while waiting for a slot
        cleanup_file(stored_path)

    return build_transcription_response(result, should_translate, should_format)
