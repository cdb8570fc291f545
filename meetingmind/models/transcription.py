"""Transcription and transcript data models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


@dataclass
class TranscriptionResult:
    """Text returned by a transcription backend for one utterance."""
    source_utterance_id: str
    text: str
    source: str
    processing_time: float = 0.0
    service: Optional[str] = None


@dataclass
class TranscriptEntry:
    """One line of the reconciled transcript.

    Entries are mutable: a later result from the same source may extend
    ``text`` and bump ``last_updated_at`` instead of creating a new entry.
    Times are milliseconds on the reconciler's clock.
    """
    id: int
    source: str
    text: str
    created_at: float
    last_updated_at: float


class ReconcileAction(Enum):
    """What the reconciler did with an incoming result."""
    IGNORE = "ignore"
    APPEND = "append"
    CREATE = "create"


@dataclass
class ReconcileDecision:
    """Outcome of reconciling one transcription result."""
    action: ReconcileAction
    entry_id: Optional[int] = None
    similarity: float = 0.0
    reason: str = ""
