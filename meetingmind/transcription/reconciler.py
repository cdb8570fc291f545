"""Merges asynchronously arriving transcription results into one transcript.

Each result is either ignored as a near-duplicate of the latest entry from
the same source, appended to that entry when it arrives within the
continuation window, or turned into a new entry. The transcript stays sorted
by creation time and is capped at a fixed number of entries.
"""

import copy
import itertools
import logging
import threading
import time
from typing import Callable, List, Optional

from ..config import TranscriptSettings
from ..models.transcription import (
    TranscriptEntry,
    TranscriptionResult,
    ReconcileAction,
    ReconcileDecision,
)

logger = logging.getLogger(__name__)


def text_similarity(text1: str, text2: str) -> float:
    """Jaccard similarity of the lowercased word sets of two strings.

    Identical strings (ignoring case and surrounding whitespace) score 1.0,
    empty strings score 0.0.
    """
    a = (text1 or "").strip().lower()
    b = (text2 or "").strip().lower()
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0

    words_a = set(a.split())
    words_b = set(b.split())
    union = words_a | words_b
    if not union:
        return 0.0
    return len(words_a & words_b) / len(union)


class TranscriptReconciler:
    """Thread-safe, bounded, time-ordered transcript."""

    def __init__(self,
                 settings: Optional[TranscriptSettings] = None,
                 on_update: Optional[Callable[[List[TranscriptEntry]], None]] = None):
        """Initialize the reconciler.

        Args:
            settings: Similarity threshold, continuation window and entry cap
            on_update: Receives a snapshot of the transcript after every mutation
        """
        self.settings = settings or TranscriptSettings()
        self.on_update = on_update

        self.entries: List[TranscriptEntry] = []
        self.lock = threading.RLock()
        self._ids = itertools.count(1)

    def reconcile(self, text: str, source: str, now: Optional[float] = None) -> ReconcileDecision:
        """Decide what to do with a new result and apply it atomically.

        Args:
            text: Transcribed text
            source: Source id the text was spoken on
            now: Arrival time in milliseconds (defaults to wall-clock time)

        Returns:
            The decision taken
        """
        if now is None:
            now = time.time() * 1000.0
        text = (text or "").strip()
        if not text:
            return ReconcileDecision(ReconcileAction.IGNORE, reason="empty text")

        with self.lock:
            decision = self._decide(text, source, now)
            changed = self._apply(decision, text, source, now)
            snapshot = self._snapshot_locked() if changed else None

        logger.debug(f"Transcript decision for {source} '{text[:50]}': "
                     f"{decision.action.value} ({decision.reason})")

        # Publish outside the lock so subscribers can't stall reconciliation.
        # Snapshots publish in order only while one thread reconciles, which
        # is the orchestrator's transcription loop thread.
        if snapshot is not None and self.on_update:
            self.on_update(snapshot)
        return decision

    def handle_result(self, result: TranscriptionResult,
                      now: Optional[float] = None) -> ReconcileDecision:
        """Reconcile a backend result."""
        return self.reconcile(result.text, result.source, now)

    def _latest_from_source(self, source: str) -> Optional[TranscriptEntry]:
        for entry in reversed(self.entries):
            if entry.source == source:
                return entry
        return None

    def _decide(self, text: str, source: str, now: float) -> ReconcileDecision:
        latest = self._latest_from_source(source)
        if latest is None:
            return ReconcileDecision(ReconcileAction.CREATE, reason="first entry from source")

        similarity = text_similarity(latest.text, text)
        if similarity > self.settings.similarity_threshold:
            return ReconcileDecision(ReconcileAction.IGNORE, latest.id, similarity,
                                     f"duplicate ({similarity:.2f})")

        gap = now - latest.last_updated_at
        if gap <= self.settings.continuation_window_ms:
            return ReconcileDecision(ReconcileAction.APPEND, latest.id, similarity,
                                     f"continuation ({gap:.0f}ms gap)")

        return ReconcileDecision(ReconcileAction.CREATE, similarity=similarity,
                                 reason=f"outside continuation window ({gap:.0f}ms gap)")

    def _apply(self, decision: ReconcileDecision, text: str, source: str, now: float) -> bool:
        if decision.action is ReconcileAction.IGNORE:
            return False

        if decision.action is ReconcileAction.APPEND:
            entry = self._latest_from_source(source)
            if text.lower() in entry.text.lower():
                decision.reason = "text already present"
                return False
            entry.text = f"{entry.text} {text}"
            entry.last_updated_at = now
            return True

        entry = TranscriptEntry(
            id=next(self._ids),
            source=source,
            text=text,
            created_at=now,
            last_updated_at=now,
        )
        decision.entry_id = entry.id
        self.entries.append(entry)
        # Results can arrive out of order across sources; sort is stable
        self.entries.sort(key=lambda e: e.created_at)
        while len(self.entries) > self.settings.max_entries:
            evicted = self.entries.pop(0)
            logger.debug(f"Evicted transcript entry {evicted.id} ({evicted.source})")
        return True

    def _snapshot_locked(self) -> List[TranscriptEntry]:
        return [copy.copy(entry) for entry in self.entries]

    def snapshot(self) -> List[TranscriptEntry]:
        """Point-in-time copy of the transcript, oldest entry first."""
        with self.lock:
            return self._snapshot_locked()

    def clear(self) -> None:
        """Empty the transcript (new session)."""
        with self.lock:
            self.entries.clear()
            snapshot = self._snapshot_locked()
        logger.info("Transcript cleared")
        if self.on_update:
            self.on_update(snapshot)

    def get_full_text(self) -> str:
        """All entry texts joined in chronological order."""
        with self.lock:
            return " ".join(entry.text for entry in self.entries)
