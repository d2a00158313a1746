"""
Audio Mixdown - Render every audio clip on the timeline into one track.

Each clip is cut from its source at its trim offset, shaped by the same
volume curve the live mixer uses (mute, fades, automation), panned, and
overlaid at its timeline position.
"""
import logging
from pathlib import Path
from typing import Callable, Dict, List, Optional

import numpy as np
from pydub import AudioSegment

from models.timeline import AudioClip, Timeline

logger = logging.getLogger(__name__)

MIX_FRAME_RATE = 44100
MIX_CHANNELS = 2
MIX_SAMPLE_WIDTH = 2  # 16-bit
ENVELOPE_STEP_MS = 10


def pan_gains(pan: float):
    """Left/right gains for a balance control in [-1, 1]."""
    pan = max(-1.0, min(1.0, pan))
    return min(1.0, 1.0 - pan), min(1.0, 1.0 + pan)


class AudioMixdown:
    """Mix the audio clips of a Timeline with pydub."""

    def __init__(
        self,
        loader: Callable[[str], AudioSegment] = AudioSegment.from_file,
        frame_rate: int = MIX_FRAME_RATE,
        envelope_step_ms: int = ENVELOPE_STEP_MS,
    ):
        self.loader = loader
        self.frame_rate = frame_rate
        self.envelope_step_ms = envelope_step_ms
        self._sources: Dict[str, AudioSegment] = {}

    def _load(self, path: str) -> AudioSegment:
        if path not in self._sources:
            source = self.loader(path)
            self._sources[path] = (
                source.set_frame_rate(self.frame_rate)
                .set_channels(MIX_CHANNELS)
                .set_sample_width(MIX_SAMPLE_WIDTH)
            )
        return self._sources[path]

    def clear_cache(self) -> None:
        self._sources.clear()

    # -- Per clip ----------------------------------------------------------

    def gain_envelope(self, clip: AudioClip, frame_count: int) -> np.ndarray:
        """Per-frame gain, stepped every ``envelope_step_ms``."""
        step_frames = max(1, self.frame_rate * self.envelope_step_ms // 1000)
        step_count = -(-frame_count // step_frames)
        step_times = np.arange(step_count) * step_frames / self.frame_rate
        gains = np.array([clip.get_volume_at_time(float(t)) for t in step_times], dtype=np.float32)
        return np.repeat(gains, step_frames)[:frame_count]

    def render_clip(self, clip: AudioClip) -> Optional[AudioSegment]:
        """The clip's audio with envelope and pan applied, or None when silent."""
        if clip.muted or not clip.path:
            return None

        source = self._load(clip.path)
        start_ms = int(round(clip.trim_start * 1000))
        end_ms = start_ms + int(round(clip.duration * 1000))
        segment = source[start_ms:end_ms]
        if len(segment) == 0:
            return None

        samples = np.array(segment.get_array_of_samples(), dtype=np.float32)
        frames = samples.reshape((-1, MIX_CHANNELS))
        frames *= self.gain_envelope(clip, len(frames))[:, np.newaxis]
        left, right = pan_gains(clip.pan)
        frames[:, 0] *= left
        frames[:, 1] *= right

        limit = float(1 << (8 * MIX_SAMPLE_WIDTH - 1))
        pcm = np.clip(frames, -limit, limit - 1).astype(np.int16)
        return AudioSegment(
            data=pcm.tobytes(),
            sample_width=MIX_SAMPLE_WIDTH,
            frame_rate=self.frame_rate,
            channels=MIX_CHANNELS,
        )

    # -- Whole timeline ----------------------------------------------------

    def audible_clips(self, timeline: Timeline) -> List[AudioClip]:
        """Audio clips that contribute; with any clip soloed, only soloed ones."""
        clips = [c for c in timeline.all_clips() if isinstance(c, AudioClip)]
        if any(c.solo for c in clips):
            clips = [c for c in clips if c.solo]
        return [c for c in clips if not c.muted]

    def mix(self, timeline: Timeline, start_time: float = 0.0, end_time: Optional[float] = None) -> AudioSegment:
        """Mix [start_time, end_time) of *timeline*; end defaults to its duration."""
        if end_time is None:
            end_time = timeline.duration
        length_ms = max(0, int(round((end_time - start_time) * 1000)))
        result = AudioSegment.silent(duration=length_ms, frame_rate=self.frame_rate)
        result = result.set_channels(MIX_CHANNELS).set_sample_width(MIX_SAMPLE_WIDTH)

        for clip in self.audible_clips(timeline):
            if clip.end_time <= start_time or clip.start_time >= end_time:
                continue
            rendered = self.render_clip(clip)
            if rendered is None:
                continue

            offset = clip.start_time - start_time
            if offset < 0:
                rendered = rendered[int(round(-offset * 1000)):]
                offset = 0.0
            result = result.overlay(rendered, position=int(round(offset * 1000)))
            logger.debug("Mixed %s at %.3fs", clip.id, clip.start_time)

        return result

    def export(self, timeline: Timeline, output_path, format: str = "wav", **kwargs) -> Path:
        """Mix and write to *output_path* (format as understood by pydub/ffmpeg)."""
        output_path = Path(output_path)
        self.mix(timeline, **kwargs).export(str(output_path), format=format)
        logger.info("Exported audio mixdown to %s", output_path)
        return output_path
