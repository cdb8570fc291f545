"""Unit tests for the frame loudness sampler."""

import pytest
import numpy as np

from meetingmind.audio.sampler import compute_loudness, frame_duration_ms


@pytest.mark.unit
class TestComputeLoudness:

    def test_empty_buffer_is_silent(self):
        assert compute_loudness(b'') == 0.0

    def test_all_zero_buffer_is_silent(self):
        assert compute_loudness(b'\x00' * 4096) == 0.0

    def test_constant_amplitude_gives_that_amplitude(self, frame_factory):
        assert compute_loudness(frame_factory(90)) == pytest.approx(90.0)
        assert compute_loudness(frame_factory(-1200)) == pytest.approx(1200.0)

    def test_trailing_odd_byte_is_ignored(self, frame_factory):
        frame = frame_factory(500)
        assert compute_loudness(frame + b'\x7f') == pytest.approx(500.0)

    def test_single_byte_buffer_is_silent(self):
        assert compute_loudness(b'\x10') == 0.0

    def test_undecodable_input_is_silent(self):
        assert compute_loudness(None) == 0.0

    def test_full_scale_sine_rms(self, sample_audio_chunk):
        # RMS of a full-scale sine is amplitude / sqrt(2)
        loudness = compute_loudness(sample_audio_chunk)
        assert loudness == pytest.approx(32767 / np.sqrt(2), rel=0.1)

    def test_stereo_frames(self, frame_factory):
        frame = frame_factory(300, channels=2)
        assert compute_loudness(frame, channels=2) == pytest.approx(300.0)

    def test_loudness_never_negative(self):
        rng = np.random.default_rng(1234)
        for size in (1, 2, 3, 100, 1023, 48000):
            data = rng.integers(-32768, 32767, size=size, dtype=np.int16).tobytes()
            assert compute_loudness(data) >= 0.0

    def test_examines_bounded_sample_count(self):
        # Only every Nth sample is read; a loud sample between picks is invisible
        samples = np.zeros(10000, dtype='<i2')
        samples[1] = 30000
        assert compute_loudness(samples.tobytes(), max_samples=100) == 0.0


@pytest.mark.unit
def test_frame_duration_ms():
    assert frame_duration_ms(3200, 16000) == pytest.approx(100.0)
    assert frame_duration_ms(6400, 16000, channels=2) == pytest.approx(100.0)
    assert frame_duration_ms(0, 16000) == 0.0
    assert frame_duration_ms(3200, 0) == 0.0
