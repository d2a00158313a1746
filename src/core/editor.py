"""
Timeline Editor - Arrangement operations over a Timeline.

Every mutating call is a single synchronous state transition that is
recorded in the HistoryManager as a StateAction holding plain-data
snapshots of the affected scope (tracks, transitions, filters or the whole
timeline). Operations on unknown ids are absorbed: they return None/False,
leave state untouched and push nothing.
"""
import contextlib
import logging
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from config import BATCH_LABEL, DEFAULT_CLIP_DURATION, MIN_CLIP_DURATION
from core.history import ActionType, HistoryManager, StateAction
from models.easing import Easing
from models.timeline import (
    AudioClip,
    Clip,
    Filters,
    Timeline,
    Track,
    TrackType,
    MediaType,
    new_clip_id,
)
from models.transition import Transition, TransitionType
from runtime_config import RuntimeConfig

logger = logging.getLogger(__name__)


class EditorEvent(str, Enum):
    TIMELINE_CHANGED = "timeline_changed"
    SELECTION_CHANGED = "selection_changed"


# Which part of the timeline each action kind snapshots
_ACTION_SCOPES = {
    ActionType.ADD_ITEM: "tracks",
    ActionType.REMOVE_ITEM: "tracks",
    ActionType.MOVE_ITEM: "tracks",
    ActionType.REORDER_ITEMS: "tracks",
    ActionType.UPDATE_ITEM: "tracks",
    ActionType.SPLIT_ITEM: "tracks",
    ActionType.UPDATE_AUDIO_SETTINGS: "tracks",
    ActionType.ADD_AUDIO_KEYFRAME: "tracks",
    ActionType.REMOVE_AUDIO_KEYFRAME: "tracks",
    ActionType.UPDATE_AUDIO_KEYFRAME: "tracks",
    ActionType.ADD_TRANSITION: "transitions",
    ActionType.REMOVE_TRANSITION: "transitions",
    ActionType.UPDATE_TRANSITION: "transitions",
    ActionType.UPDATE_FILTERS: "filters",
    ActionType.RESET_FILTERS: "filters",
    ActionType.CLEAR_ALL: "timeline",
    ActionType.LOAD_PROJECT: "timeline",
}

# snake_case spellings accepted in clip specs
_SPEC_KEYS = {
    "start_time": "startTime",
    "media_type": "type",
    "trim_start": "trimStart",
    "trim_end": "trimEnd",
    "original_duration": "originalDuration",
    "fade_in": "fadeIn",
    "fade_out": "fadeOut",
    "volume_keyframes": "volumeKeyframes",
}

ClipSpec = Union[Clip, Mapping[str, Any]]
Listener = Callable[[EditorEvent, dict], None]


class TimelineEditor:
    """Owns a Timeline and applies reversible edits to it."""

    def __init__(
        self,
        timeline: Optional[Timeline] = None,
        history: Optional[HistoryManager] = None,
        config: Optional[RuntimeConfig] = None,
    ):
        self.timeline = timeline if timeline is not None else Timeline.with_default_tracks()
        if history is None:
            config = config or RuntimeConfig()
            history = HistoryManager(max_size=config.max_history_size)
        self.history = history
        self.selected_clip_id: Optional[str] = None
        self._listeners: List[Listener] = []

    # -- Listeners ---------------------------------------------------------

    def add_listener(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: EditorEvent, **payload) -> None:
        for listener in list(self._listeners):
            listener(event, payload)

    # -- Snapshots / history -----------------------------------------------

    def _snapshot(self, scope: str, track_ids=()) -> dict:
        if scope == "tracks":
            return {
                "tracks": {
                    tid: [c.to_dict() for c in self.timeline.get_track(tid).clips]
                    for tid in dict.fromkeys(track_ids)
                }
            }
        if scope == "transitions":
            return {"transitions": [t.to_dict() for t in self.timeline.transitions]}
        if scope == "filters":
            return {"filters": self.timeline.filters.to_dict()}
        if scope == "timeline":
            return {"timeline": self.timeline.to_dict()}
        raise ValueError(f"Unknown snapshot scope: {scope}")

    def _commit(self, action_type: ActionType, before: dict, after: dict, label: Optional[str] = None) -> None:
        self.history.push_action(StateAction(self, action_type, before, after, label))
        self._emit(EditorEvent.TIMELINE_CHANGED, action=action_type)

    def apply_state(self, action_type: ActionType, state: dict) -> None:
        """Restore a snapshot taken for *action_type* (undo/redo entry point)."""
        scope = _ACTION_SCOPES.get(ActionType(action_type))
        if scope is None:
            raise ValueError(f"No restore rule for action type {action_type!r}")

        if scope == "tracks":
            for track_id, clips in state["tracks"].items():
                track = self.timeline.get_track(track_id)
                if track is not None:
                    track.clips = [Clip.from_dict(c) for c in clips]
        elif scope == "transitions":
            self.timeline.transitions = [Transition.from_dict(t) for t in state["transitions"]]
        elif scope == "filters":
            self.timeline.filters = Filters.from_dict(state["filters"])
        else:
            restored = Timeline.from_dict(state["timeline"])
            self.timeline.tracks = restored.tracks
            self.timeline.transitions = restored.transitions
            self.timeline.filters = restored.filters

        self._revalidate_selection()
        self._emit(EditorEvent.TIMELINE_CHANGED, action=ActionType(action_type))

    @contextlib.contextmanager
    def batch(self, label: str = BATCH_LABEL):
        """Group the edits made inside the block into one undo step."""
        self.history.start_batch()
        try:
            yield self
        except BaseException:
            self.history.cancel_batch()
            raise
        self.history.end_batch(label)

    @property
    def is_busy(self) -> bool:
        """True while a multi-step edit is being collected."""
        return self.history.is_batching

    def undo(self) -> bool:
        return self.history.undo()

    def redo(self) -> bool:
        return self.history.redo()

    # -- Lookup ------------------------------------------------------------

    def _lookup(self, track_id: str, clip_id: str):
        track = self.timeline.get_track(track_id)
        if track is None:
            logger.debug("Unknown track %s", track_id)
            return None, None
        clip = track.get_clip(clip_id)
        if clip is None:
            logger.debug("Unknown clip %s on track %s", clip_id, track_id)
            return track, None
        return track, clip

    def _lookup_audio(self, track_id: str, clip_id: str) -> Optional[AudioClip]:
        _, clip = self._lookup(track_id, clip_id)
        if not isinstance(clip, AudioClip):
            return None
        return clip

    def get_clip(self, clip_id: str) -> Optional[Clip]:
        return self.timeline.find_clip(clip_id)[1]

    def get_clip_at_time(self, track_type: TrackType, time: float) -> Optional[Clip]:
        """First clip on a track of *track_type* whose [start, end) holds *time*."""
        for track in self.timeline.tracks:
            if track.track_type != TrackType(track_type):
                continue
            hits = track.clips_at_time(time)
            if hits:
                return hits[0]
        return None

    def get_all_clips_at_time(self, time: float) -> List[Clip]:
        result: List[Clip] = []
        for track in self.timeline.tracks:
            result.extend(track.clips_at_time(time))
        return result

    # -- Selection ---------------------------------------------------------

    def select_clip(self, clip_id: Optional[str]) -> None:
        if clip_id is not None and self.get_clip(clip_id) is None:
            clip_id = None
        if clip_id != self.selected_clip_id:
            self.selected_clip_id = clip_id
            self._emit(EditorEvent.SELECTION_CHANGED, clip_id=clip_id)

    def get_selected_clip(self) -> Optional[Clip]:
        if self.selected_clip_id is None:
            return None
        return self.get_clip(self.selected_clip_id)

    def _revalidate_selection(self) -> None:
        if self.selected_clip_id is not None and self.get_clip(self.selected_clip_id) is None:
            self.select_clip(None)

    # -- Clip operations ---------------------------------------------------

    def _build_clip(self, track: Track, spec: ClipSpec) -> Optional[Clip]:
        if isinstance(spec, Clip):
            clip = spec.clone()
            clip.id = new_clip_id()
            return clip if clip.duration > 0 else None

        data = {_SPEC_KEYS.get(k, k): v for k, v in spec.items()}
        data["id"] = new_clip_id()
        default_type = MediaType.AUDIO if track.track_type is TrackType.AUDIO else MediaType.VIDEO
        data.setdefault("type", default_type.value)
        if data.get("duration") is None:
            data["duration"] = DEFAULT_CLIP_DURATION
        if data.get("startTime") is None:
            # Append at the current end of the timeline
            data["startTime"] = self.timeline.duration
        data["startTime"] = max(0.0, float(data["startTime"]))
        if isinstance(data["type"], Enum):
            data["type"] = data["type"].value
        for key in ("fadeIn", "fadeOut"):
            if hasattr(data.get(key), "to_dict"):
                data[key] = data[key].to_dict()

        try:
            clip = Clip.from_dict(data)
        except (KeyError, TypeError, ValueError) as e:
            logger.debug("Rejected clip spec %r: %s", spec, e)
            return None
        if clip.duration <= 0:
            return None
        return clip

    def add_clip(self, track_id: str, clip_spec: ClipSpec) -> Optional[str]:
        """Place a new clip; returns its fresh id, or None when refused."""
        track = self.timeline.get_track(track_id)
        if track is None:
            logger.debug("add_clip: unknown track %s", track_id)
            return None
        clip = self._build_clip(track, clip_spec)
        if clip is None:
            return None

        before = self._snapshot("tracks", [track_id])
        track.add_clip(clip)
        self._commit(ActionType.ADD_ITEM, before, self._snapshot("tracks", [track_id]))
        return clip.id

    def remove_clip(self, track_id: str, clip_id: str) -> bool:
        track, clip = self._lookup(track_id, clip_id)
        if clip is None:
            return False

        before = self._snapshot("tracks", [track_id])
        track.remove_clip(clip_id)
        if self.selected_clip_id == clip_id:
            self.select_clip(None)
        self._commit(ActionType.REMOVE_ITEM, before, self._snapshot("tracks", [track_id]))
        return True

    def move_clip(self, track_id: str, clip_id: str, new_start_time: float) -> bool:
        """Reposition a clip on its track; overlap with neighbours is allowed."""
        track, clip = self._lookup(track_id, clip_id)
        if clip is None:
            return False

        before = self._snapshot("tracks", [track_id])
        clip.start_time = max(0.0, float(new_start_time))
        self._commit(ActionType.MOVE_ITEM, before, self._snapshot("tracks", [track_id]))
        return True

    def move_clip_to_track(self, from_track_id: str, to_track_id: str, clip_id: str, new_start_time: float) -> bool:
        """Relocate a clip between tracks in one state transition."""
        source, clip = self._lookup(from_track_id, clip_id)
        destination = self.timeline.get_track(to_track_id)
        if clip is None or destination is None:
            return False
        if source is destination:
            return self.move_clip(from_track_id, clip_id, new_start_time)

        before = self._snapshot("tracks", [from_track_id, to_track_id])
        source.remove_clip(clip_id)
        clip.start_time = max(0.0, float(new_start_time))
        destination.add_clip(clip)
        self._commit(ActionType.MOVE_ITEM, before, self._snapshot("tracks", [from_track_id, to_track_id]))
        return True

    def reorder_clips(self, track_id: str, from_index: int, to_index: int) -> bool:
        """Move the clip at *from_index* to *to_index*, then pack the track from 0.

        Packing is part of the contract: gaps collapse and every clip starts
        where the previous one ends.
        """
        track = self.timeline.get_track(track_id)
        if track is None:
            return False
        count = len(track.clips)
        if not (0 <= from_index < count and 0 <= to_index < count):
            logger.debug("reorder_clips: index out of range (%s -> %s of %s)", from_index, to_index, count)
            return False

        before = self._snapshot("tracks", [track_id])
        clips = list(track.clips)
        moved = clips.pop(from_index)
        clips.insert(to_index, moved)
        current = 0.0
        for clip in clips:
            clip.start_time = current
            current += clip.duration
        track.clips = clips
        self._commit(ActionType.REORDER_ITEMS, before, self._snapshot("tracks", [track_id]))
        return True

    def split_clip(self, track_id: str, clip_id: str, at_time: float) -> Optional[str]:
        """Split at absolute *at_time*; returns the new (tail) clip id."""
        track, clip = self._lookup(track_id, clip_id)
        if clip is None:
            return None

        before = self._snapshot("tracks", [track_id])
        tail = clip.split_at(at_time)
        if tail is None:
            return None
        track.clips.insert(track.clips.index(clip) + 1, tail)
        self._commit(ActionType.SPLIT_ITEM, before, self._snapshot("tracks", [track_id]))
        return tail.id

    def update_clip_duration(self, track_id: str, clip_id: str, new_duration: float) -> bool:
        track, clip = self._lookup(track_id, clip_id)
        if clip is None:
            return False

        before = self._snapshot("tracks", [track_id])
        clip.duration = max(MIN_CLIP_DURATION, float(new_duration))
        self._commit(ActionType.UPDATE_ITEM, before, self._snapshot("tracks", [track_id]))
        return True

    def trim_clip(self, track_id: str, clip_id: str, trim_start: float, trim_end: float) -> bool:
        track, clip = self._lookup(track_id, clip_id)
        if clip is None:
            return False

        before = self._snapshot("tracks", [track_id])
        if not clip.set_trim(trim_start, trim_end):
            return False
        self._commit(ActionType.UPDATE_ITEM, before, self._snapshot("tracks", [track_id]), "Trim Item")
        return True

    def update_clip_thumbnail(self, track_id: str, clip_id: str, thumbnail: Optional[str]) -> bool:
        """Attach a generated thumbnail. Not an undoable edit."""
        _, clip = self._lookup(track_id, clip_id)
        if clip is None:
            return False
        clip.thumbnail = thumbnail
        self._emit(EditorEvent.TIMELINE_CHANGED, action=None)
        return True

    # -- Audio settings and automation -------------------------------------

    def update_audio_settings(
        self,
        track_id: str,
        clip_id: str,
        volume: Optional[float] = None,
        pan: Optional[float] = None,
        muted: Optional[bool] = None,
        solo: Optional[bool] = None,
        fade_in: Optional[dict] = None,
        fade_out: Optional[dict] = None,
    ) -> bool:
        clip = self._lookup_audio(track_id, clip_id)
        if clip is None:
            return False

        before = self._snapshot("tracks", [track_id])
        if volume is not None:
            clip.volume = max(0.0, min(1.0, float(volume)))
        if pan is not None:
            clip.pan = max(-1.0, min(1.0, float(pan)))
        if muted is not None:
            clip.muted = bool(muted)
        if solo is not None:
            clip.solo = bool(solo)
        if fade_in:
            clip.fade_in.update(**fade_in)
        if fade_out:
            clip.fade_out.update(**fade_out)
        self._commit(ActionType.UPDATE_AUDIO_SETTINGS, before, self._snapshot("tracks", [track_id]))
        return True

    def add_volume_keyframe(
        self,
        track_id: str,
        clip_id: str,
        time: float,
        value: float,
        easing: Easing = Easing.LINEAR,
    ) -> Optional[str]:
        clip = self._lookup_audio(track_id, clip_id)
        if clip is None:
            return None

        before = self._snapshot("tracks", [track_id])
        keyframe = clip.add_volume_keyframe(time, value, easing)
        self._commit(ActionType.ADD_AUDIO_KEYFRAME, before, self._snapshot("tracks", [track_id]))
        return keyframe.id

    def remove_volume_keyframe(self, track_id: str, clip_id: str, keyframe_id: str) -> bool:
        clip = self._lookup_audio(track_id, clip_id)
        if clip is None or clip.volume_keyframes.get_keyframe(keyframe_id) is None:
            return False

        before = self._snapshot("tracks", [track_id])
        clip.remove_volume_keyframe(keyframe_id)
        self._commit(ActionType.REMOVE_AUDIO_KEYFRAME, before, self._snapshot("tracks", [track_id]))
        return True

    def update_volume_keyframe(
        self,
        track_id: str,
        clip_id: str,
        keyframe_id: str,
        time: Optional[float] = None,
        value: Optional[float] = None,
        easing: Optional[Easing] = None,
    ) -> bool:
        clip = self._lookup_audio(track_id, clip_id)
        if clip is None or clip.volume_keyframes.get_keyframe(keyframe_id) is None:
            return False

        before = self._snapshot("tracks", [track_id])
        clip.volume_keyframes.update_keyframe(keyframe_id, time=time, value=value, easing=easing)
        self._commit(ActionType.UPDATE_AUDIO_KEYFRAME, before, self._snapshot("tracks", [track_id]))
        return True

    # -- Transitions -------------------------------------------------------

    def add_transition(
        self,
        from_clip_id: str,
        to_clip_id: str,
        transition_type: TransitionType = TransitionType.CROSSFADE,
        duration: Optional[float] = None,
        easing: Easing = Easing.LINEAR,
    ) -> Optional[str]:
        if self.get_clip(from_clip_id) is None or self.get_clip(to_clip_id) is None:
            logger.debug("add_transition: unknown clip %s or %s", from_clip_id, to_clip_id)
            return None
        try:
            transition = Transition(
                transition_type=transition_type,
                duration=duration,
                easing=easing,
                from_clip_id=from_clip_id,
                to_clip_id=to_clip_id,
            )
        except ValueError as e:
            logger.debug("add_transition: %s", e)
            return None

        before = self._snapshot("transitions")
        self.timeline.transitions.append(transition)
        self._commit(ActionType.ADD_TRANSITION, before, self._snapshot("transitions"))
        return transition.id

    def remove_transition(self, transition_id: str) -> bool:
        transition = self.timeline.get_transition(transition_id)
        if transition is None:
            return False

        before = self._snapshot("transitions")
        self.timeline.transitions.remove(transition)
        self._commit(ActionType.REMOVE_TRANSITION, before, self._snapshot("transitions"))
        return True

    def update_transition(
        self,
        transition_id: str,
        transition_type: Optional[TransitionType] = None,
        duration: Optional[float] = None,
        easing: Optional[Easing] = None,
    ) -> bool:
        transition = self.timeline.get_transition(transition_id)
        if transition is None:
            return False

        try:
            new_type = TransitionType(transition_type) if transition_type is not None else None
            new_easing = Easing.parse(easing) if easing is not None else None
        except ValueError as e:
            logger.debug("update_transition: %s", e)
            return False

        before = self._snapshot("transitions")
        if new_type is not None:
            transition.set_type(new_type)
        if duration is not None:
            transition.set_duration(duration)
        if new_easing is not None:
            transition.easing = new_easing
        self._commit(ActionType.UPDATE_TRANSITION, before, self._snapshot("transitions"))
        return True

    def get_transition(self, transition_id: str) -> Optional[Transition]:
        return self.timeline.get_transition(transition_id)

    def get_transitions_for_clip(self, clip_id: str) -> List[Transition]:
        return [
            t for t in self.timeline.transitions
            if t.from_clip_id == clip_id or t.to_clip_id == clip_id
        ]

    # -- Filters -----------------------------------------------------------

    def set_filter(self, name: str, value: float) -> bool:
        if name not in Filters.names():
            return False

        before = self._snapshot("filters")
        self.timeline.filters.set(name, value)
        self._commit(ActionType.UPDATE_FILTERS, before, self._snapshot("filters"))
        return True

    def reset_filters(self) -> None:
        before = self._snapshot("filters")
        self.timeline.filters = Filters()
        self._commit(ActionType.RESET_FILTERS, before, self._snapshot("filters"))

    # -- Whole timeline ----------------------------------------------------

    def clear_all(self) -> None:
        """Back to the default empty tracks; filters are kept."""
        before = self._snapshot("timeline")
        self.timeline.tracks = Timeline.with_default_tracks().tracks
        self.timeline.transitions = []
        self.select_clip(None)
        self._commit(ActionType.CLEAR_ALL, before, self._snapshot("timeline"))

    def load_timeline(self, timeline: Timeline, record_history: bool = True) -> None:
        """Replace the arrangement, e.g. after opening a project.

        With *record_history* off the history is cleared instead, since
        earlier actions refer to the previous arrangement.
        """
        before = self._snapshot("timeline")
        self.timeline.tracks = timeline.tracks
        self.timeline.transitions = timeline.transitions
        self.timeline.filters = timeline.filters
        self.select_clip(None)
        if record_history:
            self._commit(ActionType.LOAD_PROJECT, before, self._snapshot("timeline"))
        else:
            self.history.clear()
            self._emit(EditorEvent.TIMELINE_CHANGED, action=ActionType.LOAD_PROJECT)

    def snapshot(self) -> Dict[str, Any]:
        return self.timeline.to_dict()
