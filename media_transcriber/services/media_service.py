"""
Media normalization service.

Converts any input media file into canonical speech audio (mono, 16 kHz)
using the ffmpeg binary. The output container and codec follow the
extension of the requested output path:

    .wav   pcm_s16le (always available, used as the fallback target)
    .mp3   libmp3lame 64k
    .m4a   aac 64k
    .ogg   libopus 32k
    .flac  flac

normalize() tries the compressed target first and, if that conversion fails
for any reason, converts once more to the WAV path derived from it.
Progress is reported through an optional observer callback and is only
used for diagnostics.
"""

import os
import re
import asyncio
import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Tuple, Union

from media_transcriber.config import Settings
from media_transcriber.exceptions import ConversionError
from media_transcriber.utils.media_utils import replace_extension


logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
CHANNELS = 1

# extension -> (codec, muxer, bitrate)
AUDIO_CODECS: Dict[str, Tuple[str, str, Optional[str]]] = {
    '.wav': ('pcm_s16le', 'wav', None),
    '.mp3': ('libmp3lame', 'mp3', '64k'),
    '.m4a': ('aac', 'ipod', '64k'),
    '.ogg': ('libopus', 'ogg', '32k'),
    '.flac': ('flac', 'flac', None),
}

_DURATION_RE = re.compile(r'Duration:\s*(\d+):(\d+):(\d+(?:\.\d+)?)')


@dataclass(frozen=True)
class ConversionEvent:
    """Lifecycle notification from a running conversion."""
    kind: str  # start | progress | end | error
    output_path: str
    percent: Optional[int] = None
    detail: Optional[str] = None


ConversionObserver = Callable[[ConversionEvent], None]


def logging_observer(log: Union[logging.Logger, logging.LoggerAdapter]) -> ConversionObserver:
    """Build an observer that writes conversion events to log."""

    def observe(event: ConversionEvent) -> None:
        if event.kind == 'start':
            log.info(f"FFmpeg started: {event.detail}")
        elif event.kind == 'progress':
            log.debug(f"Conversion progress: {event.percent}%")
        elif event.kind == 'end':
            log.info(f"Conversion finished: {event.output_path}")
        elif event.kind == 'error':
            log.error(f"Conversion error for {event.output_path}: {event.detail}")

    return observe


log_conversion_event = logging_observer(logger)


def is_wav(path: str) -> bool:
    return os.path.splitext(path)[1].lower() == '.wav'


def _parse_duration(line: str) -> Optional[float]:
    match = _DURATION_RE.search(line)
    if not match:
        return None
    hours, minutes, seconds = match.groups()
    return int(hours) * 3600 + int(minutes) * 60 + float(seconds)


class AudioNormalizer:
    """Runs ffmpeg to produce canonical transcription audio."""

    def __init__(
        self,
        ffmpeg_binary: str = "ffmpeg",
        sample_rate: int = SAMPLE_RATE,
        channels: int = CHANNELS
    ):
        self.ffmpeg_binary = ffmpeg_binary
        self.sample_rate = sample_rate
        self.channels = channels

    @classmethod
    def from_settings(cls, settings: Settings) -> "AudioNormalizer":
        return cls(ffmpeg_binary=settings.ffmpeg_binary)

    @staticmethod
    def fallback_path(output_path: str) -> str:
        """WAV path used when conversion to output_path fails."""
        return replace_extension(output_path, '.wav')

    def build_command(self, input_path: str, output_path: str) -> List[str]:
        """Build the ffmpeg argument list for output_path's format."""
        extension = os.path.splitext(output_path)[1].lower()
        if extension not in AUDIO_CODECS:
            raise ConversionError(
                output_path,
                f"unsupported output format '{extension}'. "
                f"Supported: {', '.join(AUDIO_CODECS)}"
            )
        codec, muxer, bitrate = AUDIO_CODECS[extension]

        cmd = [
            self.ffmpeg_binary,
            '-hide_banner',
            '-nostdin',
            '-y',  # Overwrite output file
            '-i', input_path,
            '-vn',  # No video
            '-ac', str(self.channels),
            '-ar', str(self.sample_rate),
            '-acodec', codec,
        ]
        if bitrate:
            cmd += ['-b:a', bitrate]
        cmd += [
            '-f', muxer,
            '-progress', 'pipe:1',
            '-nostats',
            output_path,
        ]
        return cmd

    async def convert(
        self,
        input_path: str,
        output_path: str,
        on_event: Optional[ConversionObserver] = None
    ) -> str:
        """
        Convert input_path to output_path in a single ffmpeg run.

        No fallback happens here. Partial output from a failed run is left
        on disk for the caller to clean up.

        Returns:
            output_path on success

        Raises:
            ConversionError: unsupported target, encoder missing, non-zero
                exit status, unreadable or empty output
        """
        notify = self._make_notifier(on_event)

        try:
            cmd = self.build_command(input_path, output_path)
        except ConversionError as e:
            notify(ConversionEvent('error', output_path, detail=e.detail))
            raise

        notify(ConversionEvent('start', output_path, detail=' '.join(cmd)))

        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except OSError as e:
            error = ConversionError(
                output_path, f"ffmpeg not available at '{self.ffmpeg_binary}': {e}", e
            )
            notify(ConversionEvent('error', output_path, detail=error.detail))
            raise error from e

        stderr_tail = deque(maxlen=15)
        state = {'duration': None, 'percent': -1}

        async def read_stderr():
            async for raw in process.stderr:
                line = raw.decode('utf-8', errors='replace').rstrip()
                if not line:
                    continue
                stderr_tail.append(line)
                if state['duration'] is None:
                    state['duration'] = _parse_duration(line)

        async def read_progress():
            async for raw in process.stdout:
                key, _, value = raw.decode('utf-8', errors='replace').strip().partition('=')
                # out_time_ms is reported in microseconds as well
                if key not in ('out_time_us', 'out_time_ms') or not state['duration']:
                    continue
                try:
                    elapsed = int(value) / 1_000_000
                except ValueError:
                    continue
                percent = max(0, min(100, int(elapsed / state['duration'] * 100)))
                if percent != state['percent']:
                    state['percent'] = percent
                    notify(ConversionEvent('progress', output_path, percent=percent))

        # ffmpeg must not outlive this call, or it keeps writing output_path
        # after the caller has cleaned it up
        try:
            await asyncio.gather(read_stderr(), read_progress())
            returncode = await process.wait()
        except Exception as e:
            await self._terminate(process)
            error = ConversionError(output_path, f"failed reading ffmpeg output: {e}", e)
            notify(ConversionEvent('error', output_path, detail=error.detail))
            raise error from e
        except BaseException:
            await self._terminate(process)
            raise

        if returncode != 0:
            tail = ' | '.join(stderr_tail) or 'no output'
            error = ConversionError(output_path, f"ffmpeg exited with code {returncode}: {tail}")
            notify(ConversionEvent('error', output_path, detail=error.detail))
            raise error

        if not os.path.exists(output_path) or os.path.getsize(output_path) == 0:
            error = ConversionError(output_path, "ffmpeg produced no output")
            notify(ConversionEvent('error', output_path, detail=error.detail))
            raise error

        notify(ConversionEvent('end', output_path, percent=100))
        return output_path

    async def normalize(
        self,
        input_path: str,
        output_path: str,
        on_event: Optional[ConversionObserver] = None
    ) -> str:
        """
        Produce canonical audio, falling back to WAV at most once.

        A .wav target is converted directly and has no fallback. Any other
        target that fails is retried as fallback_path(output_path).

        Returns:
            The path actually written (output_path or its WAV fallback)
        """
        if is_wav(output_path):
            return await self.convert(input_path, output_path, on_event)

        try:
            return await self.convert(input_path, output_path, on_event)
        except ConversionError as e:
            wav_path = self.fallback_path(output_path)
            logger.warning(f"Compressed conversion failed ({e.detail}); retrying as WAV: {wav_path}")
            return await self.convert(input_path, wav_path, on_event)

    @staticmethod
    async def _terminate(process: asyncio.subprocess.Process) -> None:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()

    @staticmethod
    def _make_notifier(on_event: Optional[ConversionObserver]) -> ConversionObserver:
        observer = on_event or log_conversion_event

        def notify(event: ConversionEvent) -> None:
            try:
                observer(event)
            except Exception as e:
                logger.warning(f"Conversion observer raised on '{event.kind}' event: {e}")

        return notify
