"""
Easing - Normalized progress remapping shared by keyframes and transitions.

Every function maps t in [0, 1] to eased progress. Elastic curves overshoot
inside the interval but still start at 0 and end at 1.
"""
import math
from enum import Enum


class Easing(str, Enum):
    LINEAR = "linear"
    EASE_IN = "ease-in"
    EASE_OUT = "ease-out"
    EASE_IN_OUT = "ease-in-out"
    EASE_IN_CUBIC = "ease-in-cubic"
    EASE_OUT_CUBIC = "ease-out-cubic"
    EASE_IN_OUT_CUBIC = "ease-in-out-cubic"
    EASE_IN_ELASTIC = "ease-in-elastic"
    EASE_OUT_ELASTIC = "ease-out-elastic"
    EASE_OUT_BOUNCE = "ease-out-bounce"
    STEP = "step"

    @classmethod
    def parse(cls, value) -> "Easing":
        """Accept an Easing, its string value, or None (linear)."""
        if value is None:
            return cls.LINEAR
        return cls(value)


# Display names for pickers
EASING_NAMES = {
    Easing.LINEAR: "Linear",
    Easing.EASE_IN: "Ease In",
    Easing.EASE_OUT: "Ease Out",
    Easing.EASE_IN_OUT: "Ease In-Out",
    Easing.EASE_IN_CUBIC: "Ease In Cubic",
    Easing.EASE_OUT_CUBIC: "Ease Out Cubic",
    Easing.EASE_IN_OUT_CUBIC: "Ease In-Out Cubic",
    Easing.EASE_IN_ELASTIC: "Ease In Elastic",
    Easing.EASE_OUT_ELASTIC: "Ease Out Elastic",
    Easing.EASE_OUT_BOUNCE: "Bounce",
    Easing.STEP: "Step",
}

_ELASTIC_C = (2 * math.pi) / 3
_BOUNCE_N1 = 7.5625
_BOUNCE_D1 = 2.75


def _linear(t: float) -> float:
    return t


def _ease_in(t: float) -> float:
    return t * t


def _ease_out(t: float) -> float:
    return 1 - (1 - t) ** 2


def _ease_in_out(t: float) -> float:
    return 2 * t * t if t < 0.5 else 1 - (-2 * t + 2) ** 2 / 2


def _ease_in_cubic(t: float) -> float:
    return t * t * t


def _ease_out_cubic(t: float) -> float:
    return 1 - (1 - t) ** 3


def _ease_in_out_cubic(t: float) -> float:
    return 4 * t * t * t if t < 0.5 else 1 - (-2 * t + 2) ** 3 / 2


def _ease_in_elastic(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    return -(2 ** (10 * t - 10)) * math.sin((t * 10 - 10.75) * _ELASTIC_C)


def _ease_out_elastic(t: float) -> float:
    if t == 0:
        return 0.0
    if t == 1:
        return 1.0
    return 2 ** (-10 * t) * math.sin((t * 10 - 0.75) * _ELASTIC_C) + 1


def _ease_out_bounce(t: float) -> float:
    if t < 1 / _BOUNCE_D1:
        return _BOUNCE_N1 * t * t
    if t < 2 / _BOUNCE_D1:
        t -= 1.5 / _BOUNCE_D1
        return _BOUNCE_N1 * t * t + 0.75
    if t < 2.5 / _BOUNCE_D1:
        t -= 2.25 / _BOUNCE_D1
        return _BOUNCE_N1 * t * t + 0.9375
    t -= 2.625 / _BOUNCE_D1
    return _BOUNCE_N1 * t * t + 0.984375


def _step(t: float) -> float:
    # Jumps only when the segment reaches its end keyframe
    return 0.0 if t < 1 else 1.0


_EASING_FUNCTIONS = {
    Easing.LINEAR: _linear,
    Easing.EASE_IN: _ease_in,
    Easing.EASE_OUT: _ease_out,
    Easing.EASE_IN_OUT: _ease_in_out,
    Easing.EASE_IN_CUBIC: _ease_in_cubic,
    Easing.EASE_OUT_CUBIC: _ease_out_cubic,
    Easing.EASE_IN_OUT_CUBIC: _ease_in_out_cubic,
    Easing.EASE_IN_ELASTIC: _ease_in_elastic,
    Easing.EASE_OUT_ELASTIC: _ease_out_elastic,
    Easing.EASE_OUT_BOUNCE: _ease_out_bounce,
    Easing.STEP: _step,
}


def apply_easing(t: float, easing: Easing = Easing.LINEAR) -> float:
    """Remap progress *t* through *easing*."""
    return _EASING_FUNCTIONS[Easing.parse(easing)](t)
