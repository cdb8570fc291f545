"""Services layer for MeetingMind application logic."""

from .orchestrator import SourceOrchestrator, NEAR_SOURCE, FAR_SOURCE, SOURCE_LABELS
from .transcription_service import create_transcription_backend, create_orchestrator

__all__ = [
    "SourceOrchestrator",
    "NEAR_SOURCE",
    "FAR_SOURCE",
    "SOURCE_LABELS",
    "create_transcription_backend",
    "create_orchestrator",
]
