"""Streamed WAV writer for a single in-progress utterance."""

import wave
import logging
from pathlib import Path
from typing import Optional, BinaryIO

from .sampler import BYTES_PER_SAMPLE, frame_duration_ms

logger = logging.getLogger(__name__)


class RecorderIOError(Exception):
    """Raised when an utterance file cannot be created, written or finalized."""


class UtteranceRecorder:
    """Append-only WAV container for one utterance.

    The RIFF header is written with placeholder sizes on ``open`` and patched
    on ``finalize``. Each instance is owned by exactly one utterance.
    """

    def __init__(self, path: str, channels: int = 1, sample_rate: int = 16000):
        self.path = Path(path)
        self.channels = channels
        self.sample_rate = sample_rate
        self.frame_count = 0
        self.byte_count = 0
        self.finalized = False
        self._file: Optional[BinaryIO] = None
        self._wave: Optional[wave.Wave_write] = None

    @property
    def duration_ms(self) -> float:
        return frame_duration_ms(self.byte_count, self.sample_rate, self.channels)

    @property
    def is_open(self) -> bool:
        return self._wave is not None

    def open(self) -> None:
        """Create the file and write the header."""
        try:
            self._file = open(self.path, 'wb')
        except OSError as e:
            raise RecorderIOError(f"Cannot create utterance file {self.path}: {e}") from e

        try:
            self._wave = wave.open(self._file, 'wb')
            self._wave.setnchannels(self.channels)
            self._wave.setsampwidth(BYTES_PER_SAMPLE)
            self._wave.setframerate(self.sample_rate)
            # An empty write forces the header out with zero-length placeholders
            self._wave.writeframesraw(b'')
            self._file.flush()
        except (OSError, wave.Error) as e:
            self.discard()
            raise RecorderIOError(f"Cannot write header to {self.path}: {e}") from e

        logger.debug(f"Opened utterance file {self.path} "
                     f"({self.channels}ch, {self.sample_rate}Hz)")

    def append(self, data: bytes) -> None:
        """Append raw PCM bytes to the open file."""
        if self._wave is None:
            raise RecorderIOError(f"Utterance file {self.path} is not open")
        try:
            self._wave.writeframesraw(data)
        except (OSError, wave.Error) as e:
            raise RecorderIOError(f"Write to {self.path} failed: {e}") from e

        self.frame_count += 1
        self.byte_count += len(data)
        logger.debug(f"Appended {len(data)} bytes to {self.path.name} "
                     f"(frames={self.frame_count}, bytes={self.byte_count})")

    def finalize(self) -> str:
        """Patch the header sizes and close the file.

        Returns:
            Path of the finished WAV file
        """
        if self._wave is None:
            raise RecorderIOError(f"Utterance file {self.path} is not open")
        wf, self._wave = self._wave, None
        f, self._file = self._file, None
        try:
            # Wave_write.close() patches the size fields and flushes
            wf.close()
            f.close()
        except (OSError, wave.Error) as e:
            f.close()
            raise RecorderIOError(f"Finalize of {self.path} failed: {e}") from e

        self.finalized = True
        logger.debug(f"Finalized {self.path} ({self.byte_count} bytes, {self.duration_ms:.0f}ms)")
        return str(self.path)

    def discard(self) -> None:
        """Close (if needed) and delete the file. Never raises."""
        wf, self._wave = self._wave, None
        f, self._file = self._file, None
        for handle in (wf, f):
            if handle is None:
                continue
            try:
                handle.close()
            except (OSError, wave.Error) as e:
                logger.debug(f"Ignoring close error while discarding {self.path}: {e}")
        try:
            self.path.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not delete discarded utterance {self.path}: {e}")
        else:
            logger.debug(f"Discarded utterance file {self.path}")
