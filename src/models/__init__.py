"""
Timeline engine data models.

Public API:

  Curves:
    Easing, apply_easing
    Keyframe, KeyframeTrack, KeyframeProperty, PROPERTY_RANGES

  Transitions:
    Transition, TransitionType, TRANSITION_CONFIG

  Timeline Layer:
    Timeline, Track, TrackType
    Clip, AudioClip, MediaType, FadeSettings, FadeCurve
    Filters

  Project:
    Project, ProjectSettings, ProjectLoadError
"""

from models.easing import Easing, apply_easing
from models.keyframes import (
    Keyframe,
    KeyframeTrack,
    KeyframeProperty,
    PROPERTY_RANGES,
)
from models.transition import Transition, TransitionType, TRANSITION_CONFIG
from models.timeline import (
    Timeline,
    Track,
    TrackType,
    Clip,
    AudioClip,
    MediaType,
    FadeSettings,
    FadeCurve,
    Filters,
)
from models.project import Project, ProjectSettings, ProjectLoadError

__all__ = [
    # Curves
    "Easing",
    "apply_easing",
    "Keyframe",
    "KeyframeTrack",
    "KeyframeProperty",
    "PROPERTY_RANGES",
    # Transitions
    "Transition",
    "TransitionType",
    "TRANSITION_CONFIG",
    # Timeline
    "Timeline",
    "Track",
    "TrackType",
    "Clip",
    "AudioClip",
    "MediaType",
    "FadeSettings",
    "FadeCurve",
    "Filters",
    # Project
    "Project",
    "ProjectSettings",
    "ProjectLoadError",
]
