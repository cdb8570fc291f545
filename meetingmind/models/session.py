"""Session-related data models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict


@dataclass
class SessionInfo:
    """Information about a recording session."""
    session_id: str
    start_time: datetime
    duration_seconds: float
    sample_rate: int
    utterances_dispatched: Dict[str, int] = field(default_factory=dict)
    utterances_discarded: Dict[str, int] = field(default_factory=dict)
    transcript_entries: int = 0
