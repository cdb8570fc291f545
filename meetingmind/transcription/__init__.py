"""Transcription module for MeetingMind."""

from .base import AbstractTranscriptionBackend, TranscriptionError
from .reconciler import TranscriptReconciler, text_similarity
from .publisher import TranscriptPublisher, PipelineEventPublisher
from .whisper_backend import WhisperBackend

__all__ = [
    "AbstractTranscriptionBackend",
    "TranscriptionError",
    "TranscriptReconciler",
    "text_similarity",
    "TranscriptPublisher",
    "PipelineEventPublisher",
    "WhisperBackend",
]
