"""Per-source voice activity detection with hysteresis.

Each ``VoiceActivityDetector`` owns the state of one audio source. Frames are
pushed in one at a time; when speech starts an ``UtteranceRecorder`` is
opened and every following frame is written to it until the utterance ends on
silence, on a forced limit, or when the stream closes. Finished utterances at
least ``min_utterance_ms`` long are handed to ``on_utterance``; shorter ones
are deleted.
"""

import time
import logging
from pathlib import Path
from typing import Callable, Optional

from ..config import VadSettings
from ..models.audio import SourceVadState
from ..models.events import UtteranceEvent, PipelineErrorEvent
from .recorder import UtteranceRecorder, RecorderIOError
from .sampler import compute_loudness, frame_duration_ms

logger = logging.getLogger(__name__)

REASON_SILENCE = "silence"
REASON_MAX_DURATION = "max-duration"
REASON_BUFFER_LIMIT = "buffer-limit"
REASON_STREAM_CLOSED = "stream-closed"


def _now_ms() -> float:
    return time.monotonic() * 1000.0


class VoiceActivityDetector:
    """Speech/silence state machine for one audio source."""

    def __init__(self,
                 source: str,
                 settings: VadSettings,
                 output_dir: str,
                 on_utterance: Callable[[UtteranceEvent], None],
                 on_error: Optional[Callable[[PipelineErrorEvent], None]] = None,
                 recorder_factory: Callable[..., UtteranceRecorder] = UtteranceRecorder):
        """Initialize the detector.

        Args:
            source: Source id ("near" or "far")
            settings: Thresholds, durations and stream format
            output_dir: Directory utterance WAV files are written to
            on_utterance: Called with every dispatched utterance
            on_error: Called when an utterance is dropped because of an I/O failure
            recorder_factory: Builds a recorder from (path, channels, sample_rate)
        """
        self.source = source
        self.settings = settings
        self.output_dir = Path(output_dir)
        self.on_utterance = on_utterance
        self.on_error = on_error
        self.recorder_factory = recorder_factory
        self.state = SourceVadState()

        self.utterances_dispatched = 0
        self.utterances_discarded = 0
        self.io_errors = 0

    @property
    def is_speaking(self) -> bool:
        return self.state.active

    def reset(self, output_dir: Optional[str] = None) -> None:
        """Drop any in-progress utterance and return to silence.

        Passing ``output_dir`` starts a new session: the utterance sequence
        and the counters start over.
        """
        if self.state.recorder is not None:
            self.state.recorder.discard()
        if output_dir is None:
            self.state.reset()
            return
        self.state = SourceVadState()
        self.output_dir = Path(output_dir)
        self.utterances_dispatched = 0
        self.utterances_discarded = 0
        self.io_errors = 0

    def process_frame(self, data: bytes, now: Optional[float] = None) -> float:
        """Measure a raw PCM frame and feed it through the state machine.

        Returns:
            The loudness computed for the frame
        """
        loudness = compute_loudness(data, self.settings.channels)
        self.process(loudness, data, now)
        return loudness

    def process(self, loudness: float, data: bytes, now: Optional[float] = None) -> None:
        """Advance the state machine by one frame of known loudness."""
        if now is None:
            now = _now_ms()
        state = self.state
        settings = self.settings

        if not state.active:
            if loudness > settings.speech_threshold:
                self._begin_utterance(data, now)
            return

        recorder = state.recorder
        frame_ms = frame_duration_ms(len(data), settings.sample_rate, settings.channels)

        if recorder.duration_ms + frame_ms > settings.max_utterance_ms:
            self._end_utterance(now, REASON_MAX_DURATION)
            if loudness > settings.speech_threshold:
                self._begin_utterance(data, now)
            return

        if recorder.frame_count >= settings.max_buffered_frames:
            self._end_utterance(now, REASON_BUFFER_LIMIT)
            if self._begin_utterance(data, now):
                self._track_silence(loudness, now)
            return

        if self._append(data):
            self._track_silence(loudness, now)

    def close(self, now: Optional[float] = None,
              reason: str = REASON_STREAM_CLOSED) -> Optional[UtteranceEvent]:
        """Finalize the in-progress utterance when the stream stops."""
        if not self.state.active:
            return None
        if now is None:
            now = _now_ms()
        logger.info(f"[{self.source}] Stream closed while speaking, finalizing utterance")
        return self._end_utterance(now, reason)

    def _track_silence(self, loudness: float, now: float) -> None:
        state = self.state
        if loudness < self.settings.silence_threshold:
            if state.silence_start_time is None:
                state.silence_start_time = now
                state.in_silence = True
            elif now - state.silence_start_time > self.settings.silence_duration_ms:
                self._end_utterance(now, REASON_SILENCE)
        else:
            state.silence_start_time = None
            state.in_silence = False

    def _begin_utterance(self, data: bytes, now: float) -> bool:
        state = self.state
        state.utterance_sequence += 1
        sequence = state.utterance_sequence
        path = self.output_dir / f"{self.source}-{sequence:05d}.wav"

        recorder = self.recorder_factory(str(path), self.settings.channels, self.settings.sample_rate)
        try:
            recorder.open()
        except RecorderIOError as e:
            self._report_io_error(f"{self.source}-{sequence}", e)
            return False

        state.active = True
        state.in_silence = False
        state.recorder = recorder
        state.utterance_start_time = now
        state.silence_start_time = None
        logger.info(f"[{self.source}] Speech started (utterance {sequence})")
        return self._append(data)

    def _append(self, data: bytes) -> bool:
        state = self.state
        try:
            state.recorder.append(data)
        except RecorderIOError as e:
            state.recorder.discard()
            self._report_io_error(f"{self.source}-{state.utterance_sequence}", e)
            state.reset()
            return False
        return True

    def _end_utterance(self, now: float, reason: str) -> Optional[UtteranceEvent]:
        state = self.state
        recorder = state.recorder
        sequence = state.utterance_sequence
        start_time = state.utterance_start_time
        state.reset()

        try:
            path = recorder.finalize()
        except RecorderIOError as e:
            recorder.discard()
            self._report_io_error(f"{self.source}-{sequence}", e)
            return None

        duration_ms = recorder.duration_ms
        if duration_ms < self.settings.min_utterance_ms:
            recorder.discard()
            self.utterances_discarded += 1
            logger.debug(f"[{self.source}] Discarded utterance {sequence}: "
                         f"{duration_ms:.0f}ms < {self.settings.min_utterance_ms:.0f}ms ({reason})")
            return None

        event = UtteranceEvent(
            source=self.source,
            path=path,
            duration_ms=duration_ms,
            sequence=sequence,
            start_time=start_time,
            reason=reason,
        )
        self.utterances_dispatched += 1
        logger.info(f"[{self.source}] Utterance {sequence} complete: "
                    f"{duration_ms:.0f}ms, reason={reason}")
        self.on_utterance(event)
        return event

    def _report_io_error(self, utterance_id: str, error: Exception) -> None:
        self.io_errors += 1
        logger.error(f"[{self.source}] Utterance {utterance_id} abandoned: {error}")
        if self.on_error:
            self.on_error(PipelineErrorEvent(
                source=self.source,
                kind="io",
                message=str(error),
                utterance_id=utterance_id,
            ))
