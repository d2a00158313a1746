"""
Unit tests for the project snapshot format.

Tests cover:
  - Full round trip of a populated timeline
  - Version handling for older snapshots
  - All-or-nothing failure on malformed input
"""
import json
import sys
import os
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from config import PROJECT_VERSION
from core.editor import TimelineEditor
from models.easing import Easing
from models.project import Project, ProjectLoadError, ProjectSettings
from models.timeline import AudioClip, Timeline
from models.transition import TransitionType


def build_project() -> Project:
    editor = TimelineEditor()
    editor.add_clip("video-track", {"name": "intro", "path": "intro.mp4", "type": "video", "duration": 4.0, "thumbnail": "t.png"})
    editor.add_clip("video-track", {"name": "still", "path": "card.png", "type": "image", "duration": 3.0})
    music = editor.add_clip("audio-track", {
        "name": "music",
        "path": "music.mp3",
        "duration": 7.0,
        "volume": 0.8,
        "pan": -0.5,
        "fadeIn": {"enabled": True, "duration": 1.0, "curve": "exponential"},
        "fadeOut": {"enabled": True, "duration": 2.0},
    })
    editor.add_volume_keyframe("audio-track", music, 2.0, 0.3, Easing.EASE_IN_OUT)
    editor.add_volume_keyframe("audio-track", music, 5.0, 0.9)
    video = editor.timeline.get_track("video-track").clips
    editor.add_transition(video[0].id, video[1].id, TransitionType.FADE_BLACK, 1.5, Easing.EASE_OUT)
    editor.set_filter("saturation", -40)
    return Project(
        name="Demo",
        settings=ProjectSettings(width=1280, height=720, fps=24, background_color="#112233"),
        timeline=editor.timeline,
    )


class TestProjectRoundTrip(unittest.TestCase):
    def test_schema_keys(self):
        data = build_project().to_dict()
        for key in ("version", "id", "name", "created", "modified", "settings", "tracks", "transitions", "filters"):
            self.assertIn(key, data)
        self.assertEqual(data["settings"]["backgroundColor"], "#112233")
        audio_item = data["tracks"][1]["items"][0]
        for key in ("volume", "pan", "muted", "solo", "fadeIn", "fadeOut", "volumeKeyframes"):
            self.assertIn(key, audio_item)
        self.assertEqual(set(data["transitions"][0]), {"id", "type", "duration", "easing", "fromClipId", "toClipId"})

    def test_round_trip_through_json(self):
        project = build_project()
        restored = Project.from_json(project.to_json())

        self.assertEqual(restored.timeline, project.timeline)
        self.assertEqual(restored.settings, project.settings)
        self.assertEqual(restored.to_dict(), project.to_dict())

    def test_round_trip_preserves_audio_details(self):
        project = build_project()
        restored = Project.from_dict(json.loads(project.to_json()))
        clip = restored.timeline.get_track("audio-track").clips[0]
        self.assertIsInstance(clip, AudioClip)
        self.assertEqual([kf.easing for kf in clip.volume_keyframes.keyframes], [Easing.EASE_IN_OUT, Easing.LINEAR])
        self.assertEqual(clip.fade_in.curve.value, "exponential")
        self.assertEqual(clip.get_volume_at_time(3.0), project.timeline.get_track("audio-track").clips[0].get_volume_at_time(3.0))


class TestProjectVersion(unittest.TestCase):
    def test_missing_version_is_stamped(self):
        data = build_project().to_dict()
        del data["version"]
        with self.assertLogs("models.project", level="INFO") as logs:
            project = Project.from_dict(data)
        self.assertEqual(project.version, PROJECT_VERSION)
        self.assertIn("0.0.0", logs.output[0])

    def test_minimal_snapshot(self):
        project = Project.from_dict({"name": "Bare"})
        self.assertEqual(project.name, "Bare")
        self.assertEqual(project.timeline.tracks, [])
        self.assertEqual(project.settings, ProjectSettings())

    def test_new_project_has_default_tracks(self):
        project = Project()
        self.assertEqual(len(project.timeline.tracks), 2)
        self.assertEqual(project.version, PROJECT_VERSION)


class TestProjectLoadErrors(unittest.TestCase):
    def test_invalid_json(self):
        with self.assertRaises(ProjectLoadError):
            Project.from_json("{not json")

    def test_not_an_object(self):
        with self.assertRaises(ProjectLoadError):
            Project.from_dict(["tracks"])

    def test_tracks_must_be_list(self):
        with self.assertRaises(ProjectLoadError):
            Project.from_dict({"tracks": {"id": "x"}})

    def test_clip_without_duration(self):
        data = build_project().to_dict()
        del data["tracks"][0]["items"][0]["duration"]
        with self.assertRaises(ProjectLoadError):
            Project.from_dict(data)

    def test_bad_enum_value(self):
        data = build_project().to_dict()
        data["transitions"][0]["type"] = "spin"
        with self.assertRaises(ProjectLoadError):
            Project.from_dict(data)

    def test_invalid_utf8(self):
        with self.assertRaises(ProjectLoadError):
            Project.from_json(b'{"name": "\xff"}')

    def test_non_positive_clip_duration(self):
        for duration in (0.0, -2.0):
            data = build_project().to_dict()
            data["tracks"][0]["items"][0]["duration"] = duration
            with self.assertRaises(ProjectLoadError):
                Project.from_dict(data)

    def test_negative_times_clamped_on_load(self):
        data = build_project().to_dict()
        data["tracks"][0]["items"][0]["startTime"] = -1.5
        data["tracks"][1]["items"][0]["volumeKeyframes"][0]["time"] = -0.5
        timeline = Project.from_dict(data).timeline
        self.assertEqual(timeline.tracks[0].clips[0].start_time, 0.0)
        self.assertEqual(timeline.tracks[1].clips[0].volume_keyframes.keyframes[0].time, 0.0)

    def test_load_error_is_value_error(self):
        self.assertTrue(issubclass(ProjectLoadError, ValueError))


def test_timeline_from_dict_without_filters():
    timeline = Timeline.from_dict({"tracks": [], "transitions": []})
    assert timeline.filters.to_dict() == {"brightness": 0.0, "contrast": 0.0, "saturation": 0.0}
