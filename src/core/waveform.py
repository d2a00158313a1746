"""
Waveform - Min/max peak extraction for drawing audio clips
"""
import numpy as np
from pydub import AudioSegment

from config import WAVEFORM_SAMPLES_PER_PEAK


def generate_peaks(samples, samples_per_peak: int = WAVEFORM_SAMPLES_PER_PEAK) -> np.ndarray:
    """Interleaved [min0, max0, min1, max1, ...] over fixed-size buckets.

    The last bucket may be shorter. Empty input gives an empty array.
    """
    samples = np.asarray(samples, dtype=np.float32)
    if samples.size == 0:
        return np.zeros(0, dtype=np.float32)
    if samples_per_peak < 1:
        raise ValueError("samples_per_peak must be >= 1")

    bucket_count = int(np.ceil(samples.size / samples_per_peak))
    peaks = np.empty(bucket_count * 2, dtype=np.float32)
    for i in range(bucket_count):
        bucket = samples[i * samples_per_peak:(i + 1) * samples_per_peak]
        peaks[2 * i] = bucket.min()
        peaks[2 * i + 1] = bucket.max()
    return peaks


def segment_to_array(segment: AudioSegment, channel: int = 0) -> np.ndarray:
    """One channel of *segment* as float samples normalized to [-1, 1]."""
    samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
    if segment.channels > 1:
        samples = samples.reshape((-1, segment.channels))[:, channel]
    full_scale = float(1 << (8 * segment.sample_width - 1))
    return samples / full_scale


def peaks_from_segment(
    segment: AudioSegment,
    samples_per_peak: int = WAVEFORM_SAMPLES_PER_PEAK,
    channel: int = 0,
) -> np.ndarray:
    return generate_peaks(segment_to_array(segment, channel), samples_per_peak)
