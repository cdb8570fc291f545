"""Source orchestrator: one VAD per source, async transcription, reconciliation."""

import asyncio
import logging
import threading
import time
from concurrent.futures import Future, wait
from datetime import datetime
from pathlib import Path
from typing import Dict, Any, Iterable, Optional, Set

from ..audio.vad import VoiceActivityDetector
from ..config import VadSettings
from ..models.audio import AudioFrame
from ..models.events import AudioEvent, UtteranceEvent, PipelineErrorEvent
from ..models.session import SessionInfo
from ..models.transcription import TranscriptionResult, ReconcileDecision
from ..storage.file_manager import FileManager
from ..transcription.base import AbstractTranscriptionBackend, TranscriptionError
from ..transcription.publisher import PipelineEventPublisher
from ..transcription.reconciler import TranscriptReconciler

logger = logging.getLogger(__name__)

NEAR_SOURCE = "near"
FAR_SOURCE = "far"
SOURCE_LABELS = {NEAR_SOURCE: "Microphone", FAR_SOURCE: "Speaker"}


class SourceOrchestrator:
    """Routes frames to per-source VADs and utterances to the transcription backend.

    Transcription calls run as coroutines on a private event loop thread, so
    several can be in flight at once and finish in any order. Each result is
    fed to the reconciler as soon as it arrives.
    """

    def __init__(self,
                 vad_settings: VadSettings,
                 backend: AbstractTranscriptionBackend,
                 reconciler: TranscriptReconciler,
                 file_manager: FileManager,
                 event_publisher: Optional[PipelineEventPublisher] = None,
                 keep_utterance_audio: bool = False,
                 sources: Iterable[str] = (NEAR_SOURCE, FAR_SOURCE)):
        """Initialize the orchestrator.

        Args:
            vad_settings: Settings shared by every source's VAD
            backend: Transcription backend
            reconciler: Transcript the results are merged into
            file_manager: Session and utterance storage
            event_publisher: Optional pub/sub publisher for utterances and errors
            keep_utterance_audio: Keep WAV files after transcription instead of deleting them
            sources: Source ids to create VADs for
        """
        self.vad_settings = vad_settings
        self.backend = backend
        self.reconciler = reconciler
        self.file_manager = file_manager
        self.event_publisher = event_publisher
        self.keep_utterance_audio = keep_utterance_audio

        self.vads: Dict[str, VoiceActivityDetector] = {}
        self._source_locks: Dict[str, threading.Lock] = {}
        self.stats: Dict[str, Dict[str, int]] = {}
        for source in sources:
            self.vads[source] = VoiceActivityDetector(
                source=source,
                settings=vad_settings,
                output_dir=str(file_manager.data_dir),
                on_utterance=self._on_utterance,
                on_error=self._on_error,
            )
            self._source_locks[source] = threading.Lock()
            self.stats[source] = self._empty_stats()

        self.session_id: Optional[str] = None
        self.session_start_time: Optional[datetime] = None
        self.is_running = False
        self.torn_down = False

        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_thread: Optional[threading.Thread] = None
        self.pending: Set[Future] = set()
        self.pending_lock = threading.Lock()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {"dispatched": 0, "transcribed": 0, "failed": 0, "dropped": 0}

    def start_session(self) -> str:
        """Start a recording session and return its id."""
        if self.is_running:
            logger.warning("Session already running")
            return self.session_id

        session_id = self.file_manager.create_session_directory()
        utterance_dir = self.file_manager.get_utterance_directory(session_id)
        for source, vad in self.vads.items():
            with self._source_locks[source]:
                vad.reset(str(utterance_dir))
            self.stats[source] = self._empty_stats()
        self.reconciler.clear()

        self.torn_down = False
        self._start_loop()
        self.session_id = session_id
        self.session_start_time = datetime.now()
        self.is_running = True
        logger.info(f"Session {session_id} started for sources: {', '.join(self.vads)}")
        return session_id

    def push_frame(self, source: str, data: bytes, timestamp: Optional[float] = None) -> None:
        """Feed one raw PCM frame from ``source``.

        Args:
            source: Source id
            data: 16-bit little-endian PCM bytes
            timestamp: Frame time in milliseconds (defaults to the VAD clock)
        """
        vad = self.vads.get(source)
        if vad is None:
            raise ValueError(f"Unknown audio source: {source}")
        if not self.is_running:
            return
        with self._source_locks[source]:
            vad.process_frame(data, timestamp)

    def submit_frame(self, frame: AudioFrame) -> None:
        self.push_frame(frame.source, frame.data, frame.timestamp)

    def on_audio_event(self, event: AudioEvent) -> None:
        """Capture callback: push the chunk and close the source on its last chunk."""
        self.submit_frame(AudioFrame(
            data=event.audio_data,
            channels=event.channels,
            source=event.source,
            timestamp=event.timestamp * 1000.0,
        ))
        if event.final:
            self.close_source(event.source)

    def close_source(self, source: str) -> None:
        """Finalize the in-progress utterance of a stream that has closed."""
        vad = self.vads.get(source)
        if vad is None:
            raise ValueError(f"Unknown audio source: {source}")
        with self._source_locks[source]:
            vad.close()

    def stop_session(self, timeout: float = 30.0) -> Dict[str, Any]:
        """Stop the session: finalize active utterances, then wait for in-flight transcriptions.

        Args:
            timeout: Seconds to wait for pending transcription calls

        Returns:
            Result dictionary with success status and per-source stats
        """
        if not self.is_running:
            logger.warning("No session in progress")
            return {"success": False, "error": "No session in progress"}

        logger.info(f"Stopping session {self.session_id}...")
        self.is_running = False
        for source in self.vads:
            self.close_source(source)

        completed = self.wait_for_pending(timeout)
        saved_files = self._save_session()

        logger.info(f"Session {self.session_id} stopped: all transcriptions complete={completed}")
        return {
            "success": completed,
            "session_id": self.session_id,
            "stats": self.get_stats(),
            "saved_files": saved_files,
        }

    def wait_for_pending(self, timeout: float = 30.0) -> bool:
        """Block until every in-flight transcription finished or ``timeout`` passes."""
        with self.pending_lock:
            pending = list(self.pending)
        if not pending:
            return True

        logger.info(f"Waiting up to {timeout}s for {len(pending)} transcriptions...")
        _, not_done = wait(pending, timeout=timeout)
        if not_done:
            logger.warning(f"Timeout reached while waiting for transcriptions. {len(not_done)} remain.")
            return False
        return True

    def teardown(self) -> None:
        """Tear the session down; results still in flight are dropped."""
        if self.is_running:
            self.is_running = False
            for source, vad in self.vads.items():
                with self._source_locks[source]:
                    vad.close()

        self.torn_down = True
        with self.pending_lock:
            pending = list(self.pending)
        for future in pending:
            future.cancel()

        if self.loop is not None and self.loop_thread is not None:
            self.loop.call_soon_threadsafe(self.loop.stop)
            self.loop_thread.join(timeout=5.0)
            if self.loop_thread.is_alive():
                logger.warning("Transcription loop thread did not stop cleanly")
        self.loop = None
        self.loop_thread = None

        try:
            self.backend.cleanup()
        except Exception as e:
            logger.warning(f"Error cleaning up transcription backend: {e}")
        logger.info("Orchestrator torn down")

    def get_stats(self) -> Dict[str, Any]:
        """Per-source utterance and transcription counters."""
        stats = {}
        for source, vad in self.vads.items():
            stats[source] = dict(self.stats[source],
                                 discarded=vad.utterances_discarded,
                                 io_errors=vad.io_errors,
                                 speaking=vad.is_speaking)
        with self.pending_lock:
            stats["pending"] = len(self.pending)
        return stats

    def _start_loop(self) -> None:
        if self.loop_thread is not None and self.loop_thread.is_alive():
            return
        self.loop = asyncio.new_event_loop()
        self.loop_thread = threading.Thread(target=self._run_loop, args=(self.loop,), daemon=True)
        self.loop_thread.name = "TranscriptionLoopThread"
        self.loop_thread.start()

    @staticmethod
    def _run_loop(loop: asyncio.AbstractEventLoop) -> None:
        asyncio.set_event_loop(loop)
        try:
            loop.run_forever()
        finally:
            remaining = asyncio.all_tasks(loop)
            for task in remaining:
                task.cancel()
            if remaining:
                loop.run_until_complete(asyncio.gather(*remaining, return_exceptions=True))
            loop.close()
            logger.debug("Transcription loop closed")

    def _on_utterance(self, event: UtteranceEvent) -> None:
        """VAD callback; runs on the capture thread of the event's source."""
        self.stats[event.source]["dispatched"] += 1
        if self.event_publisher:
            self.event_publisher.publish_utterance(event)

        if self.torn_down or self.loop is None:
            logger.debug(f"Dropping utterance {event.utterance_id}: session torn down")
            self._remove_audio(event.path)
            return

        future = asyncio.run_coroutine_threadsafe(self._transcribe(event, self.session_id), self.loop)
        with self.pending_lock:
            self.pending.add(future)
        future.add_done_callback(self._on_transcription_done)

    async def _transcribe(self, event: UtteranceEvent,
                          session_id: Optional[str]) -> Optional[ReconcileDecision]:
        label = SOURCE_LABELS.get(event.source, event.source)
        start_time = time.time()
        logger.info(f"Transcribing {label} utterance {event.utterance_id} ({event.duration_ms:.0f}ms)")
        try:
            text = await self.backend.transcribe(event.path, label)
        except TranscriptionError as e:
            self._transcription_failed(event, str(e))
            return None
        except Exception as e:
            logger.exception(f"Backend raised unexpected {type(e).__name__} for {event.utterance_id}")
            self._transcription_failed(event, f"{type(e).__name__}: {e}")
            return None
        finally:
            if not self.keep_utterance_audio:
                self._remove_audio(event.path)

        if self.torn_down or session_id != self.session_id:
            # Late result from a torn down or already replaced session
            logger.info(f"Dropping result for {event.utterance_id} from session {session_id}")
            self.stats[event.source]["dropped"] += 1
            return None

        self.stats[event.source]["transcribed"] += 1
        result = TranscriptionResult(
            source_utterance_id=event.utterance_id,
            text=text,
            source=event.source,
            processing_time=time.time() - start_time,
            service=self.backend.service_name,
        )
        decision = self.reconciler.handle_result(result)
        logger.info(f"✅ {label.upper()}: '{text}' -> {decision.action.value}")
        return decision

    def _transcription_failed(self, event: UtteranceEvent, message: str) -> None:
        self.stats[event.source]["failed"] += 1
        logger.error(f"Transcription failed for {event.utterance_id}: {message}")
        self._on_error(PipelineErrorEvent(
            source=event.source,
            kind="transcription",
            message=message,
            utterance_id=event.utterance_id,
        ))

    def _on_transcription_done(self, future: Future) -> None:
        with self.pending_lock:
            self.pending.discard(future)
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.error(f"Unhandled exception in transcription task: {error}", exc_info=error)

    def _on_error(self, event: PipelineErrorEvent) -> None:
        if self.event_publisher:
            self.event_publisher.publish_error(event)

    def _remove_audio(self, path: str) -> None:
        try:
            Path(path).unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove utterance file {path}: {e}")

    def _save_session(self) -> Dict[str, str]:
        stats = self.get_stats()
        entries = self.reconciler.snapshot()
        session_info = SessionInfo(
            session_id=self.session_id,
            start_time=self.session_start_time,
            duration_seconds=(datetime.now() - self.session_start_time).total_seconds(),
            sample_rate=self.vad_settings.sample_rate,
            utterances_dispatched={s: stats[s]["dispatched"] for s in self.vads},
            utterances_discarded={s: stats[s]["discarded"] for s in self.vads},
            transcript_entries=len(entries),
        )
        try:
            return {
                "session_info": self.file_manager.save_session_info(session_info),
                "transcript": self.file_manager.save_transcript(self.session_id, entries),
            }
        except OSError as e:
            logger.error(f"Failed to save session {self.session_id}: {e}")
            return {}
