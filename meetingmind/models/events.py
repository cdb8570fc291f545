"""Event models for the pub/sub audio processing pipeline."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class AudioEvent:
    """Audio chunk event from one capture source."""
    source: str
    chunk_id: str
    audio_data: bytes
    timestamp: float  # Unix timestamp when chunk was captured
    sequence_number: int
    sample_rate: int = 16000
    channels: int = 1
    chunk_duration_ms: Optional[int] = None  # Duration of this chunk in milliseconds
    final: bool = False  # True if this is the last chunk before the stream closes

    def __post_init__(self):
        """Calculate chunk duration if not provided."""
        if self.chunk_duration_ms is None and self.audio_data:
            # 16-bit audio (2 bytes per sample)
            bytes_per_second = self.sample_rate * self.channels * 2
            duration_seconds = len(self.audio_data) / bytes_per_second
            self.chunk_duration_ms = int(duration_seconds * 1000)


@dataclass
class UtteranceEvent:
    """A finalized utterance recording ready for transcription."""
    source: str
    path: str
    duration_ms: float
    sequence: int
    start_time: float
    reason: str  # "silence", "max-duration", "buffer-limit", "stream-closed"

    @property
    def utterance_id(self) -> str:
        return f"{self.source}-{self.sequence}"


@dataclass
class PipelineErrorEvent:
    """A dropped utterance or transcription, reported for observability."""
    source: str
    kind: str  # "io" or "transcription"
    message: str
    utterance_id: Optional[str] = None
    timestamp: datetime = field(default_factory=datetime.now)

