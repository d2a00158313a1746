"""
Keyframes - Time-stamped property automation.

A KeyframeTrack owns the keyframes of exactly one property of one entity.
Keyframe times are local to the owner (seconds from its start) and the list
is kept sorted ascending by time after every edit.
"""
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List

from config import KEYFRAME_TIME_TOLERANCE, KEYFRAME_SEARCH_TOLERANCE
from models.easing import Easing, apply_easing


def _new_keyframe_id() -> str:
    return f"kf-{uuid.uuid4()}"


class KeyframeProperty(str, Enum):
    # Transform
    POSITION_X = "position_x"
    POSITION_Y = "position_y"
    SCALE_X = "scale_x"
    SCALE_Y = "scale_y"
    ROTATION = "rotation"

    # Opacity
    OPACITY = "opacity"

    # Color
    BRIGHTNESS = "brightness"
    CONTRAST = "contrast"
    SATURATION = "saturation"
    HUE = "hue"

    # Audio
    VOLUME = "volume"
    PAN = "pan"


@dataclass(frozen=True)
class PropertyRange:
    min: float
    max: float
    default: float
    unit: str = ""

    def clamp(self, value: float) -> float:
        return max(self.min, min(self.max, float(value)))


PROPERTY_RANGES = {
    KeyframeProperty.POSITION_X: PropertyRange(-1920, 1920, 0, "px"),
    KeyframeProperty.POSITION_Y: PropertyRange(-1080, 1080, 0, "px"),
    KeyframeProperty.SCALE_X: PropertyRange(0, 4, 1, "x"),
    KeyframeProperty.SCALE_Y: PropertyRange(0, 4, 1, "x"),
    KeyframeProperty.ROTATION: PropertyRange(-360, 360, 0, "°"),
    KeyframeProperty.OPACITY: PropertyRange(0, 1, 1),
    KeyframeProperty.BRIGHTNESS: PropertyRange(-100, 100, 0),
    KeyframeProperty.CONTRAST: PropertyRange(-100, 100, 0),
    KeyframeProperty.SATURATION: PropertyRange(-100, 100, 0),
    KeyframeProperty.HUE: PropertyRange(-180, 180, 0, "°"),
    KeyframeProperty.VOLUME: PropertyRange(0, 1, 1),
    KeyframeProperty.PAN: PropertyRange(-1, 1, 0),
}


@dataclass
class Keyframe:
    """A single (time, value, easing) sample.

    The easing describes the segment that *starts* at this keyframe.
    """
    time: float
    value: float
    easing: Easing = Easing.LINEAR
    id: str = field(default_factory=_new_keyframe_id)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "time": self.time,
            "value": self.value,
            "easing": self.easing.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Keyframe":
        return cls(
            id=data.get("id") or _new_keyframe_id(),
            time=max(0.0, float(data["time"])),
            value=float(data["value"]),
            easing=Easing.parse(data.get("easing")),
        )


class KeyframeTrack:
    """Ordered keyframes for one property, evaluated with per-segment easing."""

    def __init__(
        self,
        prop: KeyframeProperty,
        enabled: bool = True,
        tolerance: float = KEYFRAME_TIME_TOLERANCE,
    ):
        # Raises ValueError for unknown property names
        self.property = KeyframeProperty(prop)
        self.range = PROPERTY_RANGES[self.property]
        self.enabled = enabled
        self.tolerance = tolerance
        self.keyframes: List[Keyframe] = []

    def __len__(self) -> int:
        return len(self.keyframes)

    def __eq__(self, other) -> bool:
        if not isinstance(other, KeyframeTrack):
            return NotImplemented
        return (
            self.property == other.property
            and self.enabled == other.enabled
            and self.keyframes == other.keyframes
        )

    def __repr__(self) -> str:
        return f"KeyframeTrack({self.property.value!r}, keyframes={self.keyframes!r})"

    @property
    def count(self) -> int:
        return len(self.keyframes)

    def _sort(self) -> None:
        self.keyframes.sort(key=lambda kf: kf.time)

    # -- Editing -----------------------------------------------------------

    def add_keyframe(self, time: float, value: float, easing: Easing = Easing.LINEAR) -> Keyframe:
        """Insert a keyframe, replacing any existing one at (nearly) the same time."""
        time = max(0.0, float(time))
        self.keyframes = [kf for kf in self.keyframes if abs(kf.time - time) > self.tolerance]
        keyframe = Keyframe(time=time, value=self.range.clamp(value), easing=Easing.parse(easing))
        self.keyframes.append(keyframe)
        self._sort()
        return keyframe

    def insert(self, keyframe: Keyframe) -> Keyframe:
        """Insert an existing keyframe object (keeps its id), clamping its value."""
        keyframe.time = max(0.0, float(keyframe.time))
        keyframe.value = self.range.clamp(keyframe.value)
        self.keyframes = [kf for kf in self.keyframes if abs(kf.time - keyframe.time) > self.tolerance]
        self.keyframes.append(keyframe)
        self._sort()
        return keyframe

    def remove_keyframe(self, keyframe_id: str) -> Optional[Keyframe]:
        for i, kf in enumerate(self.keyframes):
            if kf.id == keyframe_id:
                return self.keyframes.pop(i)
        return None

    def update_keyframe(
        self,
        keyframe_id: str,
        time: Optional[float] = None,
        value: Optional[float] = None,
        easing: Optional[Easing] = None,
    ) -> Optional[Keyframe]:
        keyframe = self.get_keyframe(keyframe_id)
        if keyframe is None:
            return None
        if time is not None:
            keyframe.time = max(0.0, float(time))
            # Moving onto another keyframe replaces it
            self.keyframes = [
                kf for kf in self.keyframes
                if kf is keyframe or abs(kf.time - keyframe.time) > self.tolerance
            ]
        if value is not None:
            keyframe.value = self.range.clamp(value)
        if easing is not None:
            keyframe.easing = Easing.parse(easing)
        self._sort()
        return keyframe

    def clear(self) -> None:
        self.keyframes = []

    # -- Queries -----------------------------------------------------------

    def get_keyframe(self, keyframe_id: str) -> Optional[Keyframe]:
        for kf in self.keyframes:
            if kf.id == keyframe_id:
                return kf
        return None

    def get_keyframe_at_time(self, time: float, tolerance: float = KEYFRAME_SEARCH_TOLERANCE) -> Optional[Keyframe]:
        for kf in self.keyframes:
            if abs(kf.time - time) <= tolerance:
                return kf
        return None

    def get_keyframes_in_range(self, start_time: float, end_time: float) -> List[Keyframe]:
        return [kf for kf in self.keyframes if start_time <= kf.time <= end_time]

    def get_value_at_time(self, time: float) -> float:
        """Evaluate the curve at *time*.

        Holds the first value before the first keyframe and the last value
        after the last one. Between two keyframes the easing of the earlier
        keyframe shapes the segment.
        """
        if not self.enabled or not self.keyframes:
            return self.range.default

        before: Optional[Keyframe] = None
        after: Optional[Keyframe] = None
        for kf in self.keyframes:
            if kf.time <= time:
                before = kf
            else:
                after = kf
                break

        if before is None:
            return after.value
        if after is None:
            return before.value

        span = after.time - before.time
        if span <= 0:
            return before.value

        progress = (time - before.time) / span
        return before.value + (after.value - before.value) * apply_easing(progress, before.easing)

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        return {
            "property": self.property.value,
            "enabled": self.enabled,
            "keyframes": [kf.to_dict() for kf in self.keyframes],
        }

    @classmethod
    def from_dict(cls, data: dict, tolerance: float = KEYFRAME_TIME_TOLERANCE) -> "KeyframeTrack":
        track = cls(data["property"], enabled=data.get("enabled", True), tolerance=tolerance)
        for kf_data in data.get("keyframes", []):
            track.insert(Keyframe.from_dict(kf_data))
        return track
