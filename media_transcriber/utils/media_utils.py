"""
Media file utility functions.

This module provides utilities for:
- Validating uploaded media files against the extension allow-list
- Generating collision-free artifact paths for concurrent requests
- Best-effort removal of transient artifacts
"""

import os
import time
import uuid
import logging
import unicodedata
from typing import Iterable, List, Optional, Union

from media_transcriber.exceptions import InvalidInputError, UnsupportedMediaError
from media_transcriber.models.domain import ArtifactSource, MediaArtifact


logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = ['.mp4', '.avi', '.mov', '.mkv', '.webm', '.mp3', '.wav', '.m4a', '.aac', '.flac']


def validate_media_file(
    file_path: str,
    original_name: str,
    source: ArtifactSource = ArtifactSource.UPLOADED
) -> MediaArtifact:
    """
    Check that a stored file exists, is non-empty and has an allowed extension.

    The extension is taken from the client-supplied original name, not the
    stored path.

    Raises:
        InvalidInputError: file missing or empty
        UnsupportedMediaError: extension not in ALLOWED_EXTENSIONS
    """
    if not file_path or not os.path.exists(file_path):
        raise InvalidInputError("File not found")

    size = os.path.getsize(file_path)
    if size == 0:
        raise InvalidInputError("File is empty")

    extension = os.path.splitext(original_name or "")[1].lower()
    if extension not in ALLOWED_EXTENSIONS:
        raise UnsupportedMediaError(extension, ALLOWED_EXTENSIONS)

    logger.info(f"File validated: {original_name} ({size / 1024 / 1024:.2f}MB)")
    return MediaArtifact(
        path=file_path,
        source=source,
        original_name=original_name,
        size=size,
        extension=extension
    )


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to be safe for filesystem while preserving Unicode."""
    filename = unicodedata.normalize('NFC', os.path.basename(filename or ''))
    for char in '/\\:*?"<>|\0':
        filename = filename.replace(char, '-')
    filename = filename.replace(' ', '_').strip('. ')
    if len(filename) > 120:
        stem, ext = os.path.splitext(filename)
        filename = stem[:120 - len(ext)] + ext
    return filename or 'media'


def unique_stem(directory: str, prefix: str) -> str:
    """
    Return a path stem (no extension) that no other request will produce.
    Nanosecond timestamp plus a short random suffix.
    """
    return os.path.join(directory, f"{prefix}_{time.time_ns()}_{uuid.uuid4().hex[:6]}")


def replace_extension(path: str, extension: str) -> str:
    """Swap the extension of path; extension may be given with or without the dot."""
    if not extension.startswith('.'):
        extension = f'.{extension}'
    return os.path.splitext(path)[0] + extension


def cleanup_file(file_path: Optional[str], log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None) -> bool:
    """
    Delete a file if it exists. Never raises.
    Returns True if a file was removed.
    """
    log = log or logger
    if not file_path:
        return False
    try:
        if os.path.exists(file_path):
            os.remove(file_path)
            log.info(f"Removed file: {file_path}")
            return True
    except OSError as e:
        log.warning(f"Failed to remove file {file_path}: {e}")
    return False


def cleanup_files(
    file_paths: Iterable[Optional[str]],
    log: Optional[Union[logging.Logger, logging.LoggerAdapter]] = None
) -> List[str]:
    """Best-effort removal of several files. Returns the paths actually removed."""
    removed = []
    for file_path in dict.fromkeys(p for p in file_paths if p):
        if cleanup_file(file_path, log):
            removed.append(file_path)
    return removed
