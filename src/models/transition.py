"""
Transition - Blend between two clips that are adjacent in time.

A transition only computes blend parameters; compositing is left to the
renderer. Durations are always held inside the range of the current type.
"""
import uuid
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from models.easing import Easing, apply_easing


def _new_transition_id() -> str:
    return f"transition-{uuid.uuid4()}"


class TransitionType(str, Enum):
    NONE = "none"
    CROSSFADE = "crossfade"
    WIPE_LEFT = "wipe_left"
    WIPE_RIGHT = "wipe_right"
    WIPE_UP = "wipe_up"
    WIPE_DOWN = "wipe_down"
    FADE_BLACK = "fade_black"
    FADE_WHITE = "fade_white"


@dataclass(frozen=True)
class TransitionConfig:
    name: str
    description: str
    min_duration: float
    max_duration: float
    default_duration: float

    def clamp(self, duration: float) -> float:
        return max(self.min_duration, min(self.max_duration, float(duration)))


TRANSITION_CONFIG = {
    TransitionType.NONE: TransitionConfig("None", "No transition", 0.0, 0.0, 0.0),
    TransitionType.CROSSFADE: TransitionConfig("Crossfade", "Smoothly blend between clips", 0.1, 5.0, 1.0),
    TransitionType.WIPE_LEFT: TransitionConfig("Wipe Left", "Wipe from right to left", 0.2, 3.0, 0.5),
    TransitionType.WIPE_RIGHT: TransitionConfig("Wipe Right", "Wipe from left to right", 0.2, 3.0, 0.5),
    TransitionType.WIPE_UP: TransitionConfig("Wipe Up", "Wipe from bottom to top", 0.2, 3.0, 0.5),
    TransitionType.WIPE_DOWN: TransitionConfig("Wipe Down", "Wipe from top to bottom", 0.2, 3.0, 0.5),
    TransitionType.FADE_BLACK: TransitionConfig("Fade to Black", "Fade out to black, then fade in", 0.3, 5.0, 1.0),
    TransitionType.FADE_WHITE: TransitionConfig("Fade to White", "Fade out to white, then fade in", 0.3, 5.0, 1.0),
}

WIPE_TYPES = (
    TransitionType.WIPE_LEFT,
    TransitionType.WIPE_RIGHT,
    TransitionType.WIPE_UP,
    TransitionType.WIPE_DOWN,
)
FADE_COLOR_TYPES = (TransitionType.FADE_BLACK, TransitionType.FADE_WHITE)


@dataclass(frozen=True)
class CrossfadeOpacities:
    from_opacity: float
    to_opacity: float


@dataclass(frozen=True)
class WipePosition:
    """Clip-rectangle boundary as a fraction [0, 1] of the frame."""
    position: float
    horizontal: bool
    reverse: bool


@dataclass(frozen=True)
class FadeColorState:
    color_opacity: float
    clip_opacity: float
    fade_color: str


class Transition:
    """A timed blend connecting *from_clip_id* to *to_clip_id*."""

    def __init__(
        self,
        transition_type: TransitionType = TransitionType.NONE,
        duration: Optional[float] = None,
        easing: Easing = Easing.LINEAR,
        from_clip_id: Optional[str] = None,
        to_clip_id: Optional[str] = None,
        id: Optional[str] = None,
    ):
        self.id = id or _new_transition_id()
        self.type = TransitionType(transition_type)
        self.easing = Easing.parse(easing)
        self.from_clip_id = from_clip_id
        self.to_clip_id = to_clip_id
        config = TRANSITION_CONFIG[self.type]
        self.duration = config.clamp(config.default_duration if duration is None else duration)

    def __eq__(self, other) -> bool:
        if not isinstance(other, Transition):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def __repr__(self) -> str:
        return (
            f"Transition({self.type.value!r}, duration={self.duration}, "
            f"from={self.from_clip_id!r}, to={self.to_clip_id!r})"
        )

    @property
    def config(self) -> TransitionConfig:
        return TRANSITION_CONFIG[self.type]

    def set_type(self, transition_type: TransitionType) -> None:
        """Change type, re-clamping the current duration into the new range."""
        self.type = TransitionType(transition_type)
        self.duration = self.config.clamp(self.duration)

    def set_duration(self, duration: float) -> None:
        self.duration = self.config.clamp(duration)

    def get_progress(self, elapsed: float) -> float:
        """Eased progress in [0, 1] for *elapsed* seconds into the transition."""
        if self.type is TransitionType.NONE:
            return 0.0
        if self.duration <= 0:
            return 1.0
        raw = max(0.0, min(1.0, elapsed / self.duration))
        return apply_easing(raw, self.easing)

    def get_crossfade_opacities(self, progress: float) -> CrossfadeOpacities:
        return CrossfadeOpacities(from_opacity=1 - progress, to_opacity=progress)

    def get_wipe_position(self, progress: float) -> WipePosition:
        if self.type is TransitionType.WIPE_LEFT:
            return WipePosition(1 - progress, horizontal=True, reverse=True)
        if self.type is TransitionType.WIPE_RIGHT:
            return WipePosition(progress, horizontal=True, reverse=False)
        if self.type is TransitionType.WIPE_UP:
            return WipePosition(1 - progress, horizontal=False, reverse=True)
        if self.type is TransitionType.WIPE_DOWN:
            return WipePosition(progress, horizontal=False, reverse=False)
        return WipePosition(0.0, horizontal=True, reverse=False)

    def get_fade_color_state(self, progress: float) -> FadeColorState:
        fade_color = "#ffffff" if self.type is TransitionType.FADE_WHITE else "#000000"
        # First half fades to the color, second half fades back out of it
        if progress < 0.5:
            color_opacity = progress * 2
        else:
            color_opacity = (1 - progress) * 2
        return FadeColorState(color_opacity, 1 - color_opacity, fade_color)

    def type_index(self) -> int:
        return list(TransitionType).index(self.type)

    def get_shader_uniforms(self, progress: float) -> dict:
        """Flat uniform bundle for the renderer."""
        uniforms = {
            "u_transitionType": self.type_index(),
            "u_transitionProgress": progress,
        }
        if self.type is TransitionType.CROSSFADE:
            opacities = self.get_crossfade_opacities(progress)
            uniforms["u_fromOpacity"] = opacities.from_opacity
            uniforms["u_toOpacity"] = opacities.to_opacity
        elif self.type in WIPE_TYPES:
            wipe = self.get_wipe_position(progress)
            uniforms["u_wipePosition"] = wipe.position
            uniforms["u_wipeHorizontal"] = 1.0 if wipe.horizontal else 0.0
            uniforms["u_wipeReverse"] = 1.0 if wipe.reverse else 0.0
        elif self.type in FADE_COLOR_TYPES:
            fade = self.get_fade_color_state(progress)
            uniforms["u_fadeColor"] = 1.0 if self.type is TransitionType.FADE_WHITE else 0.0
            uniforms["u_fadeOpacity"] = fade.color_opacity
        return uniforms

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.type.value,
            "duration": self.duration,
            "easing": self.easing.value,
            "fromClipId": self.from_clip_id,
            "toClipId": self.to_clip_id,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Transition":
        return cls(
            id=data.get("id"),
            transition_type=data.get("type", TransitionType.NONE.value),
            duration=data.get("duration"),
            easing=data.get("easing"),
            from_clip_id=data.get("fromClipId"),
            to_clip_id=data.get("toClipId"),
        )
