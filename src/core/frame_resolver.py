"""
Frame Resolver - What the renderer and the mixer need at a point in time.

Turns a Timeline into flat per-tick values: the visual clip and its local
time, normalized filter uniforms, the active transition's blend parameters,
and a volume/pan level for every sounding audio clip.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from models.timeline import AudioClip, Clip, Filters, MediaType, Timeline, TrackType
from models.transition import Transition, TransitionType

logger = logging.getLogger(__name__)


@dataclass
class TransitionState:
    transition: Transition
    from_clip: Clip
    to_clip: Clip
    elapsed: float
    progress: float
    uniforms: Dict[str, float]


@dataclass
class FrameState:
    time: float
    clip: Optional[Clip] = None
    local_time: float = 0.0
    filters: Dict[str, float] = field(default_factory=dict)
    transition: Optional[TransitionState] = None


@dataclass(frozen=True)
class AudioLevel:
    clip_id: str
    local_time: float
    volume: float
    pan: float


def filter_uniforms(filters: Filters) -> Dict[str, float]:
    """Engine filter values are [-100, 100]; the renderer takes [-1, 1]."""
    return {name: value / 100.0 for name, value in filters.to_dict().items()}


def transition_window(transition: Transition, from_clip: Clip):
    """[start, end) of the blend: the last *duration* seconds of the outgoing clip."""
    end = from_clip.end_time
    return end - transition.duration, end


def active_transition(timeline: Timeline, time: float) -> Optional[TransitionState]:
    """First transition whose window holds *time*.

    Transitions whose clips cannot be found are skipped.
    """
    for transition in timeline.transitions:
        if transition.type is TransitionType.NONE or transition.duration <= 0:
            continue
        _, from_clip = timeline.find_clip(transition.from_clip_id)
        _, to_clip = timeline.find_clip(transition.to_clip_id)
        if from_clip is None or to_clip is None:
            logger.debug("Skipping dangling transition %s", transition.id)
            continue

        start, end = transition_window(transition, from_clip)
        if start <= time < end:
            elapsed = time - start
            progress = transition.get_progress(elapsed)
            return TransitionState(
                transition=transition,
                from_clip=from_clip,
                to_clip=to_clip,
                elapsed=elapsed,
                progress=progress,
                uniforms=transition.get_shader_uniforms(progress),
            )
    return None


def resolve_frame(timeline: Timeline, time: float) -> FrameState:
    state = FrameState(time=time, filters=filter_uniforms(timeline.filters))

    for track in timeline.tracks:
        if track.track_type is not TrackType.VIDEO:
            continue
        hits = [c for c in track.clips_at_time(time) if c.media_type is not MediaType.AUDIO]
        if hits:
            state.clip = hits[0]
            state.local_time = time - hits[0].start_time
            break

    state.transition = active_transition(timeline, time)
    return state


def resolve_audio(timeline: Timeline, time: float) -> List[AudioLevel]:
    """Volume and pan for every audio clip sounding at *time*.

    When any clip on the timeline is soloed, clips that are not soloed are
    reported at volume 0.
    """
    audio_clips = [c for c in timeline.all_clips() if isinstance(c, AudioClip)]
    any_solo = any(c.solo for c in audio_clips)

    levels = []
    for clip in audio_clips:
        if not clip.contains(time):
            continue
        local_time = time - clip.start_time
        volume = clip.get_volume_at_time(local_time)
        if any_solo and not clip.solo:
            volume = 0.0
        levels.append(AudioLevel(clip.id, local_time, volume, clip.pan))
    return levels
