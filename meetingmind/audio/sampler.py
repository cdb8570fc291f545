"""Per-frame loudness measurement for 16-bit PCM audio."""

import math
import logging

import numpy as np

logger = logging.getLogger(__name__)

BYTES_PER_SAMPLE = 2  # 16-bit signed little-endian
MAX_SAMPLES_PER_FRAME = 100


def compute_loudness(buffer: bytes, channels: int = 1,
                     max_samples: int = MAX_SAMPLES_PER_FRAME) -> float:
    """Approximate RMS loudness of a raw PCM buffer.

    Only every Nth sample frame is examined, with N picked so that at most
    ``max_samples`` samples are read regardless of buffer size. A trailing
    odd byte is ignored. Empty or undecodable buffers give 0.0.

    Args:
        buffer: Raw signed 16-bit little-endian PCM bytes
        channels: Interleaved channel count of the buffer
        max_samples: Upper bound on samples examined

    Returns:
        Loudness in sample units (0 .. 32768)
    """
    try:
        usable = len(buffer) - (len(buffer) % BYTES_PER_SAMPLE)
        if usable <= 0:
            return 0.0

        channels = max(1, int(channels))
        samples = np.frombuffer(buffer, dtype='<i2', count=usable // BYTES_PER_SAMPLE)
        frame_count = samples.size // channels
        if frame_count == 0:
            return 0.0

        frames = samples[:frame_count * channels].reshape(frame_count, channels)
        frames_to_check = max(1, max_samples // channels)
        step = max(1, math.ceil(frame_count / frames_to_check))
        selected = frames[::step].astype(np.float64)

        rms = float(np.sqrt(np.mean(np.square(selected))))
    except (TypeError, ValueError) as e:
        logger.debug(f"Could not decode audio frame ({e}), treating as silence")
        return 0.0

    return rms if math.isfinite(rms) else 0.0


def frame_duration_ms(num_bytes: int, sample_rate: int, channels: int = 1) -> float:
    """Milliseconds of audio held in ``num_bytes`` of 16-bit PCM."""
    if sample_rate <= 0 or channels <= 0:
        return 0.0
    sample_frames = num_bytes // (BYTES_PER_SAMPLE * channels)
    return sample_frames * 1000.0 / sample_rate
