import sys
import os

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
import pytest
from pydub import AudioSegment

from core.waveform import generate_peaks, peaks_from_segment, segment_to_array


def test_peaks_are_interleaved_min_max():
    samples = [0.1, -0.5, 0.3, 0.9, -0.2, 0.0]
    peaks = generate_peaks(samples, samples_per_peak=3)
    np.testing.assert_allclose(peaks, [-0.5, 0.3, -0.2, 0.9])


def test_short_last_bucket():
    peaks = generate_peaks(np.arange(5, dtype=np.float32), samples_per_peak=2)
    np.testing.assert_array_equal(peaks, [0, 1, 2, 3, 4, 4])


def test_empty_input():
    assert generate_peaks([]).size == 0


def test_invalid_bucket_size():
    with pytest.raises(ValueError):
        generate_peaks([0.0, 1.0], samples_per_peak=0)


def test_segment_channel_and_normalization():
    frames = np.array([[16384, -32768], [-16384, 0]], dtype=np.int16)
    segment = AudioSegment(data=frames.tobytes(), sample_width=2, frame_rate=8000, channels=2)

    np.testing.assert_allclose(segment_to_array(segment, channel=0), [0.5, -0.5])
    np.testing.assert_allclose(segment_to_array(segment, channel=1), [-1.0, 0.0])
    np.testing.assert_allclose(peaks_from_segment(segment, samples_per_peak=2, channel=1), [-1.0, 0.0])
