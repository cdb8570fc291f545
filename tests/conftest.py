"""Pytest configuration and fixtures for MeetingMind tests."""

import pytest
import tempfile
import logging
from unittest.mock import Mock, patch
import numpy as np

from meetingmind.config import VadSettings


# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

SAMPLE_RATE = 16000
FRAME_MS = 100


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests without hardware or network")
    config.addinivalue_line("markers", "integration: tests spanning several components")


def make_frame(amplitude: int, duration_ms: int = FRAME_MS,
               sample_rate: int = SAMPLE_RATE, channels: int = 1) -> bytes:
    """Constant-amplitude 16-bit PCM frame; its RMS loudness equals |amplitude|."""
    samples = int(sample_rate * duration_ms / 1000) * channels
    return np.full(samples, amplitude, dtype='<i2').tobytes()


@pytest.fixture
def temp_data_dir():
    """Create temporary directory for test data."""
    with tempfile.TemporaryDirectory() as temp_dir:
        yield temp_dir


@pytest.fixture
def frame_factory():
    return make_frame


@pytest.fixture
def sample_audio_chunk():
    """A 1024-sample 440Hz sine chunk."""
    duration = 1024 / SAMPLE_RATE
    t = np.linspace(0, duration, 1024, False)
    wave_data = np.sin(2 * np.pi * 440 * t)
    return (wave_data * 32767).astype(np.int16).tobytes()


@pytest.fixture
def vad_settings():
    """Thresholds used by the reference segmentation scenario."""
    return VadSettings(
        speech_threshold=80,
        silence_threshold=50,
        silence_duration_ms=250,
        min_utterance_ms=200,
        max_utterance_ms=5000,
        max_buffered_frames=2000,
        sample_rate=SAMPLE_RATE,
        channels=1,
    )


@pytest.fixture
def mock_pyaudio():
    """Mock PyAudio for testing without actual audio hardware."""
    pytest.importorskip("pyaudio")
    with patch('pyaudio.PyAudio') as mock_pyaudio_class:
        mock_pyaudio_instance = Mock()
        mock_stream = Mock()

        mock_stream.read.return_value = b'\x00' * 2048  # Silent audio
        mock_stream.stop_stream.return_value = None
        mock_stream.close.return_value = None

        mock_pyaudio_instance.open.return_value = mock_stream
        mock_pyaudio_instance.terminate.return_value = None

        mock_pyaudio_class.return_value = mock_pyaudio_instance

        yield {
            'class': mock_pyaudio_class,
            'instance': mock_pyaudio_instance,
            'stream': mock_stream
        }
