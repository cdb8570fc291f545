"""Abstract base classes for transcription backends."""

from abc import ABC, abstractmethod
import logging

logger = logging.getLogger(__name__)


class TranscriptionError(Exception):
    """Raised when a backend fails to transcribe an utterance."""


class AbstractTranscriptionBackend(ABC):
    """Abstract base class for transcription backends."""

    service_name = "unknown"

    def __init__(self, language: str = "en-US"):
        """Initialize backend with language preference."""
        self.language = language

    @abstractmethod
    async def transcribe(self, file_path: str, source_label: str) -> str:
        """Transcribe a finished utterance WAV file.

        Args:
            file_path: Path to a 16-bit PCM WAV file
            source_label: Human readable source name, for logging and prompts

        Returns:
            The transcribed text, empty when no speech was recognised

        Raises:
            TranscriptionError: If the service call fails or times out
        """
        pass

    @abstractmethod
    def initialize(self) -> bool:
        """Initialize backend resources and verify configuration.

        Returns:
            True if initialization successful, False otherwise
        """
        pass

    @abstractmethod
    def cleanup(self) -> None:
        """Clean up backend resources."""
        pass
