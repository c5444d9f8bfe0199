"""
Audio acquisition service for remote YouTube videos.

Validates YouTube URLs without network access and downloads the best
audio-only track with the yt-dlp library. Downloads run in a worker thread
so the event loop keeps serving other requests, with optional rate limiting
between YouTube requests.
"""

import os
import re
import time
import random
import asyncio
import logging
from typing import Any, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlparse

import yt_dlp

from media_transcriber.config import Settings
from media_transcriber.exceptions import AcquisitionError, InvalidUrlError
from media_transcriber.models.domain import ArtifactSource, MediaArtifact
from media_transcriber.utils.media_utils import cleanup_files


logger = logging.getLogger(__name__)

Log = Union[logging.Logger, logging.LoggerAdapter]

YOUTUBE_HOSTS = {
    'youtube.com',
    'www.youtube.com',
    'm.youtube.com',
    'music.youtube.com',
    'youtube-nocookie.com',
    'www.youtube-nocookie.com',
}
SHORT_HOSTS = {'youtu.be', 'www.youtu.be'}
PATH_PREFIXES = ('shorts', 'embed', 'live', 'v')

_VIDEO_ID_RE = re.compile(r'^[A-Za-z0-9_-]{11}$')


def extract_video_id(url: str) -> Optional[str]:
    """Return the 11-character video id of a single-video YouTube URL, else None."""
    if not url or not isinstance(url, str):
        return None
    try:
        parsed = urlparse(url.strip())
    except ValueError:
        return None
    if parsed.scheme not in ('http', 'https'):
        return None

    host = (parsed.hostname or '').lower()
    segments = [s for s in parsed.path.split('/') if s]
    candidate = None

    if host in SHORT_HOSTS:
        candidate = segments[0] if segments else None
    elif host in YOUTUBE_HOSTS:
        if segments == ['watch']:
            candidate = (parse_qs(parsed.query).get('v') or [None])[0]
        elif len(segments) >= 2 and segments[0] in PATH_PREFIXES:
            candidate = segments[1]

    if candidate and _VIDEO_ID_RE.match(candidate):
        return candidate
    return None


class YouTubeAudioDownloader:
    """Materializes the audio track of a YouTube video as a local file."""

    def __init__(
        self,
        cookies_file: Optional[str] = None,
        min_sleep: int = 0,
        max_sleep: int = 0
    ):
        self.cookies_file = cookies_file
        self.min_sleep = min_sleep
        self.max_sleep = max(max_sleep, min_sleep)
        self._last_request = 0.0
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "YouTubeAudioDownloader":
        return cls(
            cookies_file=settings.ytdlp_cookies_file,
            min_sleep=settings.ytdlp_min_sleep,
            max_sleep=settings.ytdlp_max_sleep
        )

    def validate(self, url: str) -> str:
        """
        Check that url references a single YouTube video.

        Returns:
            The video id

        Raises:
            InvalidUrlError: unsupported or malformed URL (no network I/O)
        """
        video_id = extract_video_id(url)
        if video_id is None:
            raise InvalidUrlError(url)
        return video_id

    async def rate_limit(self, log: Optional[Log] = None) -> None:
        """Apply rate limiting for YouTube requests with random delay."""
        if self.min_sleep <= 0:
            return
        async with self._lock:
            elapsed = time.time() - self._last_request
            if elapsed < self.min_sleep:
                delay = random.uniform(self.min_sleep, self.max_sleep)
                (log or logger).info(f"Rate limiting - sleeping {delay:.1f}s before YouTube request")
                await asyncio.sleep(delay)
            self._last_request = time.time()

    def _ydl_options(self, dest_stem: str) -> Dict[str, Any]:
        ydl_opts = {
            'format': 'bestaudio/best',
            'outtmpl': f'{dest_stem}.%(ext)s',
            'noplaylist': True,
            'quiet': True,
            'no_warnings': True,
            'noprogress': True,
        }
        if self.cookies_file and os.path.exists(self.cookies_file):
            ydl_opts['cookiefile'] = self.cookies_file
        return ydl_opts

    def _download(self, url: str, dest_stem: str) -> Dict[str, Any]:
        with yt_dlp.YoutubeDL(self._ydl_options(dest_stem)) as ydl:
            return ydl.extract_info(url, download=True) or {}

    @staticmethod
    def files_for(dest_stem: str) -> List[str]:
        """Every file yt-dlp may have written for dest_stem, including partials."""
        directory = os.path.dirname(dest_stem) or '.'
        prefix = os.path.basename(dest_stem) + '.'
        if not os.path.isdir(directory):
            return []
        return [
            os.path.join(directory, f)
            for f in sorted(os.listdir(directory))
            if f.startswith(prefix)
        ]

    def _find_download(self, dest_stem: str) -> Optional[str]:
        for path in self.files_for(dest_stem):
            if not path.endswith(('.part', '.ytdl')) and os.path.isfile(path):
                return path
        return None

    async def acquire(self, url: str, dest_stem: str, log: Optional[Log] = None) -> MediaArtifact:
        """
        Download the audio-only track of url to '<dest_stem>.<ext>'.

        Any file left behind by a failed download is removed before the
        error is raised.

        Raises:
            InvalidUrlError: url is not a supported YouTube video reference
            AcquisitionError: download or local write failed
        """
        log = log or logger
        video_id = self.validate(url)
        await self.rate_limit(log)

        log.info(f"Downloading audio for YouTube video {video_id}")
        try:
            info = await asyncio.to_thread(self._download, url, dest_stem)
        except Exception as e:
            cleanup_files(self.files_for(dest_stem), log)
            raise AcquisitionError(url, e) from e

        path = self._find_download(dest_stem)
        if path is None:
            cleanup_files(self.files_for(dest_stem), log)
            raise AcquisitionError(url, FileNotFoundError("download completed but file not found"))

        extension = os.path.splitext(path)[1].lower()
        title = info.get('title') or video_id
        size = os.path.getsize(path)
        log.info(f"Audio downloaded: {path} ({size / 1024 / 1024:.2f}MB)")
        return MediaArtifact(
            path=path,
            source=ArtifactSource.DOWNLOADED,
            original_name=f"{title}{extension}",
            size=size,
            extension=extension
        )
