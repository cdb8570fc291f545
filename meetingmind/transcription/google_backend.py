"""Google Speech-to-Text transcription backend."""

import asyncio
import functools
import time
import wave
import logging
from typing import Optional

from .base import AbstractTranscriptionBackend, TranscriptionError

from google.cloud import speech
from google.api_core import exceptions as gax_exceptions
from google.auth import exceptions as google_auth_exceptions
from google.oauth2 import service_account

logger = logging.getLogger(__name__)


class GoogleSpeechBackend(AbstractTranscriptionBackend):
    """Google Speech-to-Text API backend for transcription."""

    service_name = "Google Speech-to-Text"

    def __init__(self,
                 credentials_path: Optional[str] = None,
                 language: str = "en-US",
                 use_enhanced: bool = True,
                 enable_automatic_punctuation: bool = True,
                 timeout_seconds: float = 30.0):
        """Initialize Google Speech backend.

        Args:
            credentials_path: Path to Google Cloud service account JSON file
            language: Language code (e.g., 'en-US', 'es-ES')
            use_enhanced: Whether to use enhanced model (costs more but better quality)
            enable_automatic_punctuation: Enable automatic punctuation
            timeout_seconds: Per-request deadline
        """
        super().__init__(language)
        self.credentials_path = credentials_path
        if not self.credentials_path:
            raise ValueError("Google credentials path is required - cannot initialize without credentials")
        self.use_enhanced = use_enhanced
        self.enable_automatic_punctuation = enable_automatic_punctuation
        self.timeout_seconds = timeout_seconds
        self.client = None
        self.project_id = None

    def initialize(self) -> bool:
        """Initialize Google Speech client and verify credentials."""
        logger.info(f"Loading Google credentials from: {self.credentials_path}")
        credentials = service_account.Credentials.from_service_account_file(self.credentials_path)

        # CRASH if credentials are invalid
        self.client = speech.SpeechClient(credentials=credentials)
        self.project_id = credentials.project_id
        logger.info(f"Using Google Cloud project: {self.project_id}")

        logger.info("Google Speech-to-Text backend initialized successfully")
        return True

    async def transcribe(self, file_path: str, source_label: str) -> str:
        """Transcribe an utterance file in a worker thread."""
        if self.client is None:
            raise TranscriptionError("Google Speech backend is not initialized")
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(
            None, functools.partial(self._recognize_file, file_path, source_label))

    def _recognize_file(self, file_path: str, source_label: str) -> str:
        start_time = time.time()
        try:
            with wave.open(file_path, 'rb') as wf:
                sample_rate = wf.getframerate()
                channels = wf.getnchannels()
                audio_bytes = wf.readframes(wf.getnframes())
        except (OSError, wave.Error) as e:
            raise TranscriptionError(f"Cannot read utterance {file_path}: {e}") from e

        config = speech.RecognitionConfig(
            encoding=speech.RecognitionConfig.AudioEncoding.LINEAR16,
            sample_rate_hertz=sample_rate,
            audio_channel_count=channels,
            language_code=self.language,
            use_enhanced=self.use_enhanced,
            enable_automatic_punctuation=self.enable_automatic_punctuation,
            # Use model optimized for short audio
            model="latest_short",
        )
        audio = speech.RecognitionAudio(content=audio_bytes)

        logger.debug(f"{source_label}: sending {len(audio_bytes)} bytes to Google STT; "
                     f"language={self.language}; enhanced={self.use_enhanced}")
        try:
            response = self.client.recognize(config=config, audio=audio, timeout=self.timeout_seconds)
        except gax_exceptions.DeadlineExceeded as e:
            logger.error("Google STT recognize deadline exceeded for %s", file_path)
            raise TranscriptionError(f"Google Speech recognize timeout ({file_path}): {e}") from e
        except gax_exceptions.ServiceUnavailable as e:
            logger.error("Google STT service unavailable for %s", file_path)
            raise TranscriptionError(f"Google Speech service unavailable ({file_path}): {e}") from e
        except gax_exceptions.GoogleAPIError as e:
            # Covers call errors as well as RetryError
            logger.error("Google STT API error for %s: %s", file_path, e)
            raise TranscriptionError(f"Google Speech API error ({file_path}): {e}") from e
        except google_auth_exceptions.GoogleAuthError as e:
            logger.error("Google credentials error for %s: %s", file_path, e)
            raise TranscriptionError(f"Google Speech credentials error ({file_path}): {e}") from e
        processing_time = time.time() - start_time

        if not response.results:
            logger.debug(f"--- NO SPEECH DETECTED ({source_label}) ---")
            return ""

        transcript = " ".join(
            result.alternatives[0].transcript.strip()
            for result in response.results
            if result.alternatives)
        logger.debug(f"✅ TRANSCRIPTION SUCCESS ({source_label}): '{transcript}' "
                     f"(processing_time: {processing_time:.3f}s)")
        return transcript

    def cleanup(self) -> None:
        """Clean up Google Speech client resources."""
        self.client = None
