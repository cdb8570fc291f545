"""Audio measurement, utterance recording and voice activity detection."""

from .sampler import compute_loudness, frame_duration_ms
from .recorder import UtteranceRecorder, RecorderIOError
from .vad import VoiceActivityDetector

__all__ = [
    'compute_loudness',
    'frame_duration_ms',
    'UtteranceRecorder',
    'RecorderIOError',
    'VoiceActivityDetector',
]
