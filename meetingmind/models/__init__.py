"""Data models for the MeetingMind application."""

from .transcription import (
    TranscriptionResult,
    TranscriptEntry,
    ReconcileAction,
    ReconcileDecision,
)
from .audio import AudioFrame, SourceVadState
from .events import AudioEvent, UtteranceEvent, PipelineErrorEvent
from .session import SessionInfo

__all__ = [
    "TranscriptionResult",
    "TranscriptEntry",
    "ReconcileAction",
    "ReconcileDecision",
    "AudioFrame",
    "SourceVadState",
    "AudioEvent",
    "UtteranceEvent",
    "PipelineErrorEvent",
    "SessionInfo",
]
