"""
Timeline - Tracks, clips and the aggregate arrangement.

Clips are *instances* of media sources placed on tracks. They reference the
source by an opaque path and store timeline coordinates plus type-specific
parameters (trim offsets, volume, fades, volume automation).

Times on the timeline are absolute seconds; keyframe times are local to the
owning clip.
"""
import copy
import math
import uuid
from dataclasses import dataclass, field, fields
from enum import Enum
from typing import Optional, List, Tuple

from config import (
    DEFAULT_FADE_DURATION,
    DEFAULT_TRACKS,
    FILTER_MIN,
    FILTER_MAX,
    VOLUME_KEYFRAME_TIME_TOLERANCE,
)
from models.easing import Easing
from models.keyframes import Keyframe, KeyframeProperty, KeyframeTrack
from models.transition import Transition


def new_clip_id() -> str:
    return f"clip-{uuid.uuid4()}"


class MediaType(str, Enum):
    VIDEO = "video"
    IMAGE = "image"
    AUDIO = "audio"


class TrackType(str, Enum):
    VIDEO = "video"
    AUDIO = "audio"


class FadeCurve(str, Enum):
    LINEAR = "linear"
    EXPONENTIAL = "exponential"
    LOGARITHMIC = "logarithmic"


def apply_fade_curve(progress: float, curve: FadeCurve) -> float:
    if curve is FadeCurve.EXPONENTIAL:
        return progress ** 2
    if curve is FadeCurve.LOGARITHMIC:
        return math.log10(1 + progress * 9)
    return progress


# ---------------------------------------------------------------------------
# Clips
# ---------------------------------------------------------------------------

@dataclass
class Clip:
    """A media source placed on a track.

    Attributes:
        start_time: Position on the timeline (seconds, >= 0).
        duration: Length on the timeline (seconds, > 0).
        trim_start / trim_end: Offsets cut from the head/tail of the source.
        original_duration: Length of the untrimmed source, 0 when unknown.
    """
    id: str = field(default_factory=new_clip_id)
    name: str = "Untitled"
    path: Optional[str] = None
    media_type: MediaType = MediaType.VIDEO
    start_time: float = 0.0
    duration: float = 0.0
    thumbnail: Optional[str] = None
    trim_start: float = 0.0
    trim_end: float = 0.0
    original_duration: float = 0.0

    @property
    def end_time(self) -> float:
        return self.start_time + self.duration

    def contains(self, time: float) -> bool:
        """Half-open hit test: the end time belongs to the next clip."""
        return self.start_time <= time < self.end_time

    def clone(self) -> "Clip":
        return copy.deepcopy(self)

    # -- Trim / split ------------------------------------------------------

    def effective_duration(self) -> float:
        return max(0.0, self.original_duration - self.trim_start - self.trim_end)

    def set_trim(self, trim_start: float, trim_end: float) -> bool:
        """Trim the source; refused when nothing would remain."""
        trim_start = max(0.0, trim_start)
        trim_end = max(0.0, trim_end)
        if self.original_duration <= 0 or trim_start + trim_end >= self.original_duration:
            return False
        self.trim_start = trim_start
        self.trim_end = trim_end
        self.duration = self.effective_duration()
        return True

    def split_at(self, at_time: float) -> Optional["Clip"]:
        """Split at absolute timeline time *at_time*.

        This clip keeps the head; the returned clip is the tail. Returns None
        when *at_time* is not strictly inside the clip.
        """
        split_point = at_time - self.start_time
        if split_point <= 0 or split_point >= self.duration:
            return None

        tail = self._make_tail(at_time, split_point)
        self.duration = split_point
        if self.original_duration > 0:
            self.trim_end = max(0.0, self.original_duration - self.trim_start - split_point)
        return tail

    def _make_tail(self, at_time: float, split_point: float) -> "Clip":
        return Clip(
            name=f"{self.name} (split)",
            path=self.path,
            media_type=self.media_type,
            start_time=at_time,
            duration=self.duration - split_point,
            thumbnail=self.thumbnail,
            trim_start=self.trim_start + split_point,
            trim_end=self.trim_end,
            original_duration=self.original_duration,
        )

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "path": self.path,
            "type": self.media_type.value,
            "startTime": self.start_time,
            "duration": self.duration,
            "thumbnail": self.thumbnail,
            "trimStart": self.trim_start,
            "trimEnd": self.trim_end,
            "originalDuration": self.original_duration,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Clip":
        """Dispatch to AudioClip for audio items."""
        if data.get("type") == MediaType.AUDIO.value:
            return AudioClip.from_dict(data)
        return cls(**cls._base_kwargs(data))

    @classmethod
    def _base_kwargs(cls, data: dict) -> dict:
        duration = float(data["duration"])
        if duration <= 0:
            raise ValueError(f"Clip duration must be positive, got {duration}")
        return {
            "id": data.get("id") or new_clip_id(),
            "name": data.get("name", "Untitled"),
            "path": data.get("path"),
            "media_type": MediaType(data.get("type", MediaType.VIDEO.value)),
            "start_time": max(0.0, float(data.get("startTime", 0.0))),
            "duration": duration,
            "thumbnail": data.get("thumbnail"),
            "trim_start": float(data.get("trimStart", 0.0)),
            "trim_end": float(data.get("trimEnd", 0.0)),
            "original_duration": float(data.get("originalDuration", 0.0)),
        }


@dataclass
class FadeSettings:
    enabled: bool = False
    duration: float = DEFAULT_FADE_DURATION
    curve: FadeCurve = FadeCurve.LINEAR

    def update(self, enabled=None, duration=None, curve=None) -> None:
        if enabled is not None:
            self.enabled = bool(enabled)
        if duration is not None and duration > 0:
            self.duration = float(duration)
        if curve is not None:
            self.curve = FadeCurve(curve)

    def to_dict(self) -> dict:
        return {"enabled": self.enabled, "duration": self.duration, "curve": self.curve.value}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "FadeSettings":
        data = data or {}
        return cls(
            enabled=bool(data.get("enabled", False)),
            duration=float(data.get("duration", DEFAULT_FADE_DURATION)),
            # "type" is the key older snapshots used
            curve=FadeCurve(data.get("curve", data.get("type", FadeCurve.LINEAR.value))),
        )


def _volume_track() -> KeyframeTrack:
    return KeyframeTrack(KeyframeProperty.VOLUME, tolerance=VOLUME_KEYFRAME_TIME_TOLERANCE)


@dataclass
class AudioClip(Clip):
    """An audio clip with mix settings and volume automation."""
    volume: float = 1.0
    pan: float = 0.0
    muted: bool = False
    solo: bool = False
    fade_in: FadeSettings = field(default_factory=FadeSettings)
    fade_out: FadeSettings = field(default_factory=FadeSettings)
    volume_keyframes: KeyframeTrack = field(default_factory=_volume_track)

    def __post_init__(self):
        self.media_type = MediaType.AUDIO
        self.volume = max(0.0, min(1.0, float(self.volume)))
        self.pan = max(-1.0, min(1.0, float(self.pan)))

    # -- Volume ------------------------------------------------------------

    def get_keyframe_volume_at_time(self, time: float) -> float:
        """Automation value at local *time*; the flat volume when unautomated."""
        if not self.volume_keyframes.keyframes:
            return self.volume
        return self.volume_keyframes.get_value_at_time(time)

    def get_volume_at_time(self, time: float) -> float:
        """Effective volume at local *time* with mute, fades and automation folded in."""
        if self.muted:
            return 0.0

        if self.fade_in.enabled and time < self.fade_in.duration:
            gain = apply_fade_curve(time / self.fade_in.duration, self.fade_in.curve)
            return gain * self.get_keyframe_volume_at_time(time)

        time_from_end = self.duration - time
        if self.fade_out.enabled and time_from_end < self.fade_out.duration:
            gain = apply_fade_curve(time_from_end / self.fade_out.duration, self.fade_out.curve)
            return gain * self.get_keyframe_volume_at_time(time)

        return self.get_keyframe_volume_at_time(time)

    def add_volume_keyframe(self, time: float, value: float, easing: Easing = Easing.LINEAR) -> Keyframe:
        return self.volume_keyframes.add_keyframe(time, value, easing)

    def remove_volume_keyframe(self, keyframe_id: str) -> Optional[Keyframe]:
        return self.volume_keyframes.remove_keyframe(keyframe_id)

    # -- Split -------------------------------------------------------------

    def split_at(self, at_time: float) -> Optional["AudioClip"]:
        split_point = at_time - self.start_time
        tail = super().split_at(at_time)
        if tail is None:
            return None

        moved = [kf for kf in self.volume_keyframes.keyframes if kf.time >= split_point]
        self.volume_keyframes.keyframes = [
            kf for kf in self.volume_keyframes.keyframes if kf.time < split_point
        ]
        tail.volume_keyframes.keyframes = [
            Keyframe(id=kf.id, time=kf.time - split_point, value=kf.value, easing=kf.easing)
            for kf in moved
        ]
        return tail

    def _make_tail(self, at_time: float, split_point: float) -> "AudioClip":
        return AudioClip(
            name=f"{self.name} (split)",
            path=self.path,
            start_time=at_time,
            duration=self.duration - split_point,
            thumbnail=self.thumbnail,
            trim_start=self.trim_start + split_point,
            trim_end=self.trim_end,
            original_duration=self.original_duration,
            volume=self.volume,
            pan=self.pan,
            muted=self.muted,
            solo=self.solo,
        )

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        d = super().to_dict()
        d.update({
            "volume": self.volume,
            "pan": self.pan,
            "muted": self.muted,
            "solo": self.solo,
            "fadeIn": self.fade_in.to_dict(),
            "fadeOut": self.fade_out.to_dict(),
            "volumeKeyframes": [kf.to_dict() for kf in self.volume_keyframes.keyframes],
        })
        return d

    @classmethod
    def from_dict(cls, data: dict) -> "AudioClip":
        kwargs = cls._base_kwargs(data)
        kwargs.pop("media_type")
        clip = cls(
            volume=data.get("volume", 1.0),
            pan=data.get("pan", 0.0),
            muted=bool(data.get("muted", False)),
            solo=bool(data.get("solo", False)),
            fade_in=FadeSettings.from_dict(data.get("fadeIn")),
            fade_out=FadeSettings.from_dict(data.get("fadeOut")),
            **kwargs,
        )
        for kf_data in data.get("volumeKeyframes", []):
            clip.volume_keyframes.insert(Keyframe.from_dict(kf_data))
        return clip


# ---------------------------------------------------------------------------
# Track
# ---------------------------------------------------------------------------

@dataclass
class Track:
    """A lane of clips of one kind.

    Clips are stored in insertion order; ``sorted_clips`` gives the
    start-ordered view. Overlap is not rejected here.
    """
    id: str = field(default_factory=lambda: f"track-{uuid.uuid4()}")
    name: str = ""
    track_type: TrackType = TrackType.VIDEO
    clips: List[Clip] = field(default_factory=list)

    def add_clip(self, clip: Clip) -> None:
        self.clips.append(clip)

    def remove_clip(self, clip_id: str) -> Optional[Clip]:
        for i, clip in enumerate(self.clips):
            if clip.id == clip_id:
                return self.clips.pop(i)
        return None

    def get_clip(self, clip_id: str) -> Optional[Clip]:
        for clip in self.clips:
            if clip.id == clip_id:
                return clip
        return None

    def sorted_clips(self) -> List[Clip]:
        return sorted(self.clips, key=lambda c: c.start_time)

    def clips_at_time(self, time: float) -> List[Clip]:
        return [c for c in self.sorted_clips() if c.contains(time)]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "type": self.track_type.value,
            "items": [clip.to_dict() for clip in self.clips],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Track":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            track_type=TrackType(data.get("type", TrackType.VIDEO.value)),
            clips=[Clip.from_dict(c) for c in data.get("items", [])],
        )


# ---------------------------------------------------------------------------
# Filters
# ---------------------------------------------------------------------------

@dataclass
class Filters:
    """Global color filters, each in [-100, 100]."""
    brightness: float = 0.0
    contrast: float = 0.0
    saturation: float = 0.0

    @classmethod
    def names(cls) -> List[str]:
        return [f.name for f in fields(cls)]

    def set(self, name: str, value: float) -> bool:
        if name not in self.names():
            return False
        setattr(self, name, max(FILTER_MIN, min(FILTER_MAX, float(value))))
        return True

    def to_dict(self) -> dict:
        return {"brightness": self.brightness, "contrast": self.contrast, "saturation": self.saturation}

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "Filters":
        filters = cls()
        for name, value in (data or {}).items():
            filters.set(name, value)
        return filters


# ---------------------------------------------------------------------------
# Timeline
# ---------------------------------------------------------------------------

@dataclass
class Timeline:
    """Tracks, cross-track transitions and global filters.

    ``duration`` is derived from clip extents on every read, so it can
    never go stale.
    """
    tracks: List[Track] = field(default_factory=list)
    transitions: List[Transition] = field(default_factory=list)
    filters: Filters = field(default_factory=Filters)

    @classmethod
    def with_default_tracks(cls) -> "Timeline":
        return cls(tracks=[
            Track(id=t["id"], name=t["name"], track_type=TrackType(t["type"]))
            for t in DEFAULT_TRACKS
        ])

    # -- Tracks ------------------------------------------------------------

    def add_track(self, track: Track) -> None:
        self.tracks.append(track)

    def remove_track(self, track_id: str) -> Optional[Track]:
        for i, t in enumerate(self.tracks):
            if t.id == track_id:
                return self.tracks.pop(i)
        return None

    def get_track(self, track_id: str) -> Optional[Track]:
        for t in self.tracks:
            if t.id == track_id:
                return t
        return None

    def get_track_by_type(self, track_type: TrackType) -> Optional[Track]:
        """Return the first track with the given type."""
        for t in self.tracks:
            if t.track_type == track_type:
                return t
        return None

    # -- Clips -------------------------------------------------------------

    def all_clips(self) -> List[Clip]:
        """Flatten all clips across all tracks."""
        result: List[Clip] = []
        for track in self.tracks:
            result.extend(track.clips)
        return result

    def find_clip(self, clip_id: str) -> Tuple[Optional[Track], Optional[Clip]]:
        for track in self.tracks:
            clip = track.get_clip(clip_id)
            if clip is not None:
                return track, clip
        return None, None

    @property
    def duration(self) -> float:
        """Total timeline duration (end of the last clip)."""
        ends = [clip.end_time for clip in self.all_clips()]
        return max(ends) if ends else 0.0

    # -- Transitions -------------------------------------------------------

    def get_transition(self, transition_id: str) -> Optional[Transition]:
        for t in self.transitions:
            if t.id == transition_id:
                return t
        return None

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "tracks": [t.to_dict() for t in self.tracks],
            "transitions": [t.to_dict() for t in self.transitions],
            "filters": self.filters.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Timeline":
        return cls(
            tracks=[Track.from_dict(t) for t in data.get("tracks", [])],
            transitions=[Transition.from_dict(t) for t in data.get("transitions", [])],
            filters=Filters.from_dict(data.get("filters")),
        )
