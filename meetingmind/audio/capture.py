"""Per-source audio capture that pushes PCM chunks to a callback."""

import pyaudio
import time
import logging
from threading import Thread, Event
from typing import Optional, Callable
from ..models.events import AudioEvent


logger = logging.getLogger(__name__)


class AudioCapture:
    """Continuous capture from one input device (microphone or loopback monitor)."""

    def __init__(
        self,
        source: str,
        callback: Callable[[AudioEvent], None],
        sample_rate: int = 16000,
        chunk_size: int = 1024,
        channels: int = 1,
        device_index: Optional[int] = None,
        format: int = pyaudio.paInt16,
    ):
        """Initialize audio capture with specified parameters.

        Args:
            source: Source id stamped on every event ("near" or "far")
            callback: Receives one AudioEvent per chunk, on the capture thread
            sample_rate: Audio sample rate
            chunk_size: Size of each audio chunk in samples
            channels: Number of audio channels
            device_index: PyAudio input device index, None for the default input
            format: Audio format (16-bit signed int)
        """
        self.source = source
        self.audio_event_callback = callback
        self.sample_rate = sample_rate
        self.chunk_size = chunk_size
        self.channels = channels
        self.device_index = device_index
        self.format = format

        # Recording thread management
        self.recording_thread: Optional[Thread] = None
        self.stop_event = Event()
        self.is_recording = False

        self.total_chunks = 0

        self.pyaudio_instance: Optional[pyaudio.PyAudio] = None

    def start_recording(self) -> None:
        """Start continuous recording in background thread."""
        if self.is_recording:
            logger.warning(f"[{self.source}] Recording already in progress")
            return

        logger.info(f"[{self.source}] Starting audio recording")
        self.stop_event.clear()
        self.total_chunks = 0

        self.recording_thread = Thread(target=self._record_continuously, daemon=True)
        self.recording_thread.name = f"AudioCaptureThread-{self.source}"
        self.recording_thread.start()
        self.is_recording = True

    def stop_recording(self) -> None:
        """Stop recording and clean up resources."""
        if not self.is_recording:
            logger.warning(f"[{self.source}] No recording in progress")
            return

        logger.info(f"[{self.source}] Stopping audio recording")
        self.stop_event.set()

        if self.recording_thread and self.recording_thread.is_alive():
            self.recording_thread.join(timeout=2.0)
            if self.recording_thread.is_alive():
                logger.warning(f"[{self.source}] Recording thread did not stop cleanly")

        self.is_recording = False
        logger.info(f"[{self.source}] Recording stopped. Total chunks: {self.total_chunks}")

    def __open_audio_stream(self) -> pyaudio.Stream:
        self.pyaudio_instance = pyaudio.PyAudio()
        stream = self.pyaudio_instance.open(
            format=self.format,
            channels=self.channels,
            rate=self.sample_rate,
            input=True,
            input_device_index=self.device_index,
            frames_per_buffer=self.chunk_size,
            stream_callback=None
        )
        logger.info(f"[{self.source}] Audio stream opened: {self.sample_rate}Hz, "
                    f"{self.chunk_size} samples/chunk, device={self.device_index}")
        return stream

    def __read_audio_chunk(self, stream: pyaudio.Stream) -> bytes:
        audio_chunk = stream.read(self.chunk_size, exception_on_overflow=False)
        self.total_chunks += 1
        return audio_chunk

    def __publish_audio_event(self, audio_chunk: bytes, final: bool = False) -> None:
        audio_event = AudioEvent(
            source=self.source,
            chunk_id=f"{self.source}_chunk_{self.total_chunks}",
            audio_data=audio_chunk,
            timestamp=time.time(),
            sequence_number=self.total_chunks,
            sample_rate=self.sample_rate,
            channels=self.channels,
            final=final
        )
        self.audio_event_callback(audio_event)

    def _record_continuously(self) -> None:
        """Internal method: continuous recording loop in background thread."""
        stream = None
        try:
            stream = self.__open_audio_stream()
            while not self.stop_event.is_set():
                audio_chunk = self.__read_audio_chunk(stream)
                self.__publish_audio_event(audio_chunk)
            # Final event, so consumers know the stream is closing
            audio_chunk = self.__read_audio_chunk(stream)
            self.__publish_audio_event(audio_chunk, final=True)
        except OSError as e:
            logger.error(f"[{self.source}] Audio stream failed: {e}")
            # Let the consumer finalize whatever it was recording
            self.__publish_audio_event(b'', final=True)
        finally:
            if stream:
                stream.stop_stream()
                stream.close()
            if self.pyaudio_instance:
                self.pyaudio_instance.terminate()
                self.pyaudio_instance = None
