"""Audio-related data models."""

from dataclasses import dataclass
from typing import Optional, Any


@dataclass
class AudioFrame:
    """A single frame of 16-bit PCM audio from one source."""
    data: bytes
    channels: int
    source: str
    timestamp: float  # Milliseconds, same clock as the VAD


@dataclass
class SourceVadState:
    """Mutable voice-activity state owned by exactly one source's VAD."""
    active: bool = False
    in_silence: bool = False
    utterance_start_time: Optional[float] = None
    silence_start_time: Optional[float] = None
    recorder: Optional[Any] = None  # UtteranceRecorder while speaking
    utterance_sequence: int = 0

    def reset(self) -> None:
        """Return to the inactive, silent state, keeping the sequence counter."""
        self.active = False
        self.in_silence = False
        self.utterance_start_time = None
        self.silence_start_time = None
        self.recorder = None
