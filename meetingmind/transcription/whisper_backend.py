"""OpenAI Whisper transcription backend over HTTP."""

import time
import asyncio
import logging
from pathlib import Path

import aiohttp

from .base import AbstractTranscriptionBackend, TranscriptionError

logger = logging.getLogger(__name__)


class WhisperBackend(AbstractTranscriptionBackend):
    """Sends utterance files to the OpenAI audio transcription endpoint."""

    service_name = "OpenAI Whisper"

    def __init__(self,
                 api_key: str,
                 model: str = "whisper-1",
                 language: str = "en",
                 timeout_seconds: float = 30.0,
                 base_url: str = "https://api.openai.com/v1/audio/transcriptions"):
        """Initialize Whisper backend.

        Args:
            api_key: OpenAI API key
            model: Transcription model name
            language: ISO-639-1 language hint
            timeout_seconds: Total timeout for one request
            base_url: Transcription endpoint
        """
        super().__init__(language)
        if not api_key:
            raise ValueError("OpenAI API key is required")
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.base_url = base_url

        logger.info(f"WhisperBackend initialized with model: {model}")

    def initialize(self) -> bool:
        return True

    async def transcribe(self, file_path: str, source_label: str) -> str:
        """Upload a WAV file and return the recognised text."""
        path = Path(file_path)
        try:
            audio_bytes = path.read_bytes()
        except OSError as e:
            raise TranscriptionError(f"Cannot read utterance {file_path}: {e}") from e

        form = aiohttp.FormData()
        form.add_field("model", self.model)
        form.add_field("language", self.language)
        form.add_field("response_format", "json")
        form.add_field("file", audio_bytes, filename=path.name, content_type="audio/wav")
        headers = {"Authorization": f"Bearer {self.api_key}"}

        start_time = time.time()
        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.post(self.base_url, headers=headers, data=form) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise TranscriptionError(
                            f"Whisper API error for {source_label}: {response.status} - {error_text}")
                    result = await response.json()
        except asyncio.TimeoutError as e:
            raise TranscriptionError(
                f"Whisper transcription timed out after {self.timeout_seconds}s ({path.name})") from e
        except aiohttp.ClientError as e:
            raise TranscriptionError(f"Whisper request failed ({path.name}): {e}") from e
        except ValueError as e:
            raise TranscriptionError(f"Whisper returned invalid JSON ({path.name}): {e}") from e

        if not isinstance(result, dict):
            raise TranscriptionError(f"Unexpected Whisper response for {path.name}: {result!r}")
        text = (result.get("text") or "").strip()
        logger.debug(f"Whisper result for {source_label} ({time.time() - start_time:.2f}s): '{text}'")
        return text

    def cleanup(self) -> None:
        pass
