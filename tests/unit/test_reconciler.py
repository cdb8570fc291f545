"""Unit tests for transcript reconciliation."""

import threading
import pytest

from meetingmind.config import TranscriptSettings
from meetingmind.models.transcription import ReconcileAction, TranscriptionResult
from meetingmind.transcription.reconciler import TranscriptReconciler, text_similarity


@pytest.fixture
def updates():
    return []


@pytest.fixture
def reconciler(updates):
    return TranscriptReconciler(TranscriptSettings(), on_update=updates.append)


@pytest.mark.unit
class TestTextSimilarity:

    def test_identical_ignoring_case_and_whitespace(self):
        assert text_similarity("Hello There", "  hello there ") == 1.0

    def test_disjoint_words(self):
        assert text_similarity("hello there", "and how are you") == 0.0

    def test_partial_overlap_is_jaccard(self):
        # {a, b, c} vs {b, c, d}: 2 shared of 4
        assert text_similarity("a b c", "b c d") == pytest.approx(0.5)

    def test_empty_strings(self):
        assert text_similarity("", "hello") == 0.0
        assert text_similarity("hello", "   ") == 0.0
        assert text_similarity(None, None) == 0.0


@pytest.mark.unit
class TestReconcile:

    def test_create_ignore_append_sequence(self, reconciler):
        first = reconciler.reconcile("hello there", "near", now=0)
        assert first.action is ReconcileAction.CREATE

        duplicate = reconciler.reconcile("hello there", "near", now=100)
        assert duplicate.action is ReconcileAction.IGNORE
        assert duplicate.similarity == pytest.approx(1.0)

        continuation = reconciler.reconcile("and how are you", "near", now=2000)
        assert continuation.action is ReconcileAction.APPEND

        entries = reconciler.snapshot()
        assert len(entries) == 1
        assert entries[0].text == "hello there and how are you"
        assert entries[0].created_at == 0
        assert entries[0].last_updated_at == 2000

    def test_sources_never_merge(self, reconciler):
        reconciler.reconcile("foo", "near", now=0)
        reconciler.reconcile("bar", "far", now=50)

        entries = reconciler.snapshot()
        assert [(e.source, e.text) for e in entries] == [("near", "foo"), ("far", "bar")]
        assert entries[0].created_at <= entries[1].created_at

    def test_same_text_on_other_source_is_new_entry(self, reconciler):
        reconciler.reconcile("good morning everyone", "near", now=0)
        decision = reconciler.reconcile("good morning everyone", "far", now=10)

        assert decision.action is ReconcileAction.CREATE
        assert len(reconciler.snapshot()) == 2

    def test_outside_window_creates_entry(self, reconciler):
        reconciler.reconcile("first thought", "near", now=0)
        decision = reconciler.reconcile("something else", "near", now=10001)

        assert decision.action is ReconcileAction.CREATE
        assert len(reconciler.snapshot()) == 2

    def test_window_boundary_is_inclusive(self, reconciler):
        reconciler.reconcile("first thought", "near", now=0)
        decision = reconciler.reconcile("second idea", "near", now=10000)
        assert decision.action is ReconcileAction.APPEND

    def test_window_measured_from_last_update(self, reconciler):
        reconciler.reconcile("one", "near", now=0)
        reconciler.reconcile("two", "near", now=8000)
        decision = reconciler.reconcile("three", "near", now=16000)

        assert decision.action is ReconcileAction.APPEND
        assert reconciler.snapshot()[0].text == "one two three"

    def test_duplicate_check_uses_latest_entry_only(self, reconciler):
        reconciler.reconcile("alpha beta", "near", now=0)
        reconciler.reconcile("gamma delta", "near", now=20000)
        # Matches the older entry but not the latest, and the window has passed
        decision = reconciler.reconcile("alpha beta", "near", now=40000)

        assert decision.action is ReconcileAction.CREATE
        assert len(reconciler.snapshot()) == 3

    def test_similarity_must_exceed_threshold(self, updates):
        reconciler = TranscriptReconciler(TranscriptSettings(similarity_threshold=0.5))
        reconciler.reconcile("a b c", "near", now=0)
        # Exactly 0.5 is not a duplicate
        decision = reconciler.reconcile("b c d", "near", now=100)
        assert decision.action is ReconcileAction.APPEND

    def test_append_skips_text_already_present(self, reconciler, updates):
        reconciler.reconcile("we should ship the release on friday", "near", now=0)
        updates.clear()

        decision = reconciler.reconcile("Release", "near", now=500)
        assert decision.action is ReconcileAction.APPEND
        assert decision.reason == "text already present"
        assert reconciler.snapshot()[0].text == "we should ship the release on friday"
        assert updates == []

    @pytest.mark.parametrize("text", ["", "   ", "\n\t"])
    def test_blank_text_ignored(self, reconciler, updates, text):
        decision = reconciler.reconcile(text, "near", now=0)

        assert decision.action is ReconcileAction.IGNORE
        assert reconciler.snapshot() == []
        assert updates == []

    def test_text_is_trimmed(self, reconciler):
        reconciler.reconcile("  spaced out  ", "far", now=0)
        assert reconciler.snapshot()[0].text == "spaced out"

    def test_handle_result(self, reconciler):
        result = TranscriptionResult(
            source_utterance_id="far-3",
            text="from the speaker",
            source="far",
            processing_time=0.2,
            service="fake",
        )
        decision = reconciler.handle_result(result, now=42)

        assert decision.action is ReconcileAction.CREATE
        entry = reconciler.snapshot()[0]
        assert entry.source == "far"
        assert entry.created_at == 42


@pytest.mark.unit
class TestOrderingAndCap:

    def test_out_of_order_creates_are_sorted(self, reconciler):
        reconciler.reconcile("late", "far", now=500)
        reconciler.reconcile("early", "near", now=100)

        assert [e.text for e in reconciler.snapshot()] == ["early", "late"]

    def test_equal_timestamps_keep_insertion_order(self, reconciler):
        reconciler.reconcile("first", "near", now=100)
        reconciler.reconcile("second", "far", now=100)

        assert [e.text for e in reconciler.snapshot()] == ["first", "second"]

    def test_entry_cap_evicts_oldest(self):
        reconciler = TranscriptReconciler(TranscriptSettings(max_entries=3, continuation_window_ms=0))
        for i, word in enumerate(["one", "two", "three", "four", "five"]):
            reconciler.reconcile(word, "near", now=i * 1000)

        entries = reconciler.snapshot()
        assert len(entries) == 3
        assert [e.text for e in entries] == ["three", "four", "five"]

    def test_entry_ids_are_unique(self):
        reconciler = TranscriptReconciler(TranscriptSettings(max_entries=2, continuation_window_ms=0))
        for i, word in enumerate(["one", "two", "three"]):
            reconciler.reconcile(word, "near", now=i * 1000)

        ids = [e.id for e in reconciler.snapshot()]
        assert len(set(ids)) == 2
        assert 1 not in ids


@pytest.mark.unit
class TestUpdates:

    def test_every_mutation_publishes_snapshot(self, reconciler, updates):
        reconciler.reconcile("hello there", "near", now=0)
        reconciler.reconcile("hello there", "near", now=100)
        reconciler.reconcile("and how are you", "near", now=2000)

        # The ignored duplicate publishes nothing
        assert len(updates) == 2
        assert updates[0][0].text == "hello there"
        assert updates[1][0].text == "hello there and how are you"

    def test_snapshots_are_copies(self, reconciler, updates):
        reconciler.reconcile("hello", "near", now=0)
        snapshot = reconciler.snapshot()
        snapshot[0].text = "tampered"
        snapshot.clear()

        assert reconciler.snapshot()[0].text == "hello"
        # Earlier published snapshot is unaffected by a later append
        reconciler.reconcile("world", "near", now=100)
        assert updates[0][0].text == "hello"

    def test_clear_publishes_empty_snapshot(self, reconciler, updates):
        reconciler.reconcile("hello", "near", now=0)
        reconciler.clear()

        assert reconciler.snapshot() == []
        assert updates[-1] == []

    def test_get_full_text(self, reconciler):
        reconciler.reconcile("good morning", "near", now=0)
        reconciler.reconcile("hi", "far", now=100)
        assert reconciler.get_full_text() == "good morning hi"


@pytest.mark.unit
def test_concurrent_reconcile_keeps_invariants():
    settings = TranscriptSettings(max_entries=50, continuation_window_ms=0)
    reconciler = TranscriptReconciler(settings)

    def worker(source, offset):
        for i in range(100):
            reconciler.reconcile(f"{source} phrase number {i}", source, now=offset + i * 10)

    threads = [threading.Thread(target=worker, args=(source, offset))
               for source, offset in (("near", 0), ("far", 5))]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    entries = reconciler.snapshot()
    assert len(entries) <= 50
    times = [e.created_at for e in entries]
    assert times == sorted(times)
