"""Builds the transcription pipeline from configuration."""

import logging

from ..config import MeetingMindConfig
from ..storage.file_manager import FileManager
from ..transcription.base import AbstractTranscriptionBackend
from ..transcription.publisher import TranscriptPublisher, PipelineEventPublisher
from ..transcription.reconciler import TranscriptReconciler
from ..transcription.whisper_backend import WhisperBackend
from .orchestrator import SourceOrchestrator

logger = logging.getLogger(__name__)


def create_transcription_backend(config: MeetingMindConfig) -> AbstractTranscriptionBackend:
    """Create and initialize the configured transcription backend.

    Raises:
        ValueError: If the backend name is unknown or its credentials are missing
        RuntimeError: If the backend fails to initialize
    """
    name = config.get('transcription.backend', 'whisper')
    timeout_seconds = float(config.get('transcription.timeout_seconds', 30.0))

    if name == 'whisper':
        backend = WhisperBackend(
            api_key=config.get_openai_api_key(),
            model=config.get('openai.model', 'whisper-1'),
            language=config.get('openai.language', 'en'),
            timeout_seconds=timeout_seconds,
        )
    elif name == 'google':
        # Imported here so the Google SDK is only loaded when selected
        from ..transcription.google_backend import GoogleSpeechBackend
        backend = GoogleSpeechBackend(
            credentials_path=config.get_google_credentials_path(),
            language=config.get('google_cloud.language', 'en-US'),
            use_enhanced=config.get('google_cloud.use_enhanced_model', True),
            enable_automatic_punctuation=config.get('google_cloud.enable_automatic_punctuation', True),
            timeout_seconds=timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown transcription backend: {name}")

    logger.info(f"Initializing {backend.service_name} backend...")
    if not backend.initialize():
        raise RuntimeError(f"{backend.service_name} backend failed to initialize")
    logger.info(f"✅ {backend.service_name} backend initialized successfully")
    return backend


def create_orchestrator(config: MeetingMindConfig,
                        backend: AbstractTranscriptionBackend) -> SourceOrchestrator:
    """Wire reconciler, publishers, storage and VADs into an orchestrator."""
    transcript_publisher = TranscriptPublisher()
    reconciler = TranscriptReconciler(
        settings=config.get_transcript_settings(),
        on_update=transcript_publisher.get_callback(),
    )
    return SourceOrchestrator(
        vad_settings=config.get_vad_settings(),
        backend=backend,
        reconciler=reconciler,
        file_manager=FileManager(config.get_data_directory()),
        event_publisher=PipelineEventPublisher(),
        keep_utterance_audio=bool(config.get('storage.keep_utterance_audio', False)),
    )
