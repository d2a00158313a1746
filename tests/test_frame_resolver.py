import sys
import os
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from core.editor import TimelineEditor
from core.frame_resolver import (
    active_transition,
    filter_uniforms,
    resolve_audio,
    resolve_frame,
)
from models.timeline import Filters
from models.transition import TransitionType


class TestResolveFrame(unittest.TestCase):
    def setUp(self):
        self.editor = TimelineEditor()
        self.a = self.editor.add_clip("video-track", {"name": "a", "duration": 4.0})
        self.b = self.editor.add_clip("video-track", {"name": "b", "duration": 4.0})

    def test_filters_normalized(self):
        self.assertEqual(
            filter_uniforms(Filters(brightness=50, contrast=-100, saturation=0)),
            {"brightness": 0.5, "contrast": -1.0, "saturation": 0.0},
        )

    def test_clip_and_local_time(self):
        state = resolve_frame(self.editor.timeline, 5.0)
        self.assertEqual(state.clip.id, self.b)
        self.assertEqual(state.local_time, 1.0)
        self.assertIsNone(state.transition)

    def test_gap_has_no_clip(self):
        self.assertIsNone(resolve_frame(self.editor.timeline, 9.0).clip)

    def test_transition_window(self):
        self.editor.add_transition(self.a, self.b, TransitionType.CROSSFADE, duration=2.0)
        self.assertIsNone(resolve_frame(self.editor.timeline, 1.9).transition)

        state = resolve_frame(self.editor.timeline, 3.0)
        self.assertEqual(state.transition.progress, 0.5)
        self.assertEqual(state.transition.uniforms["u_fromOpacity"], 0.5)
        self.assertEqual(state.transition.to_clip.id, self.b)

        # Window end is exclusive
        self.assertIsNone(resolve_frame(self.editor.timeline, 4.0).transition)

    def test_dangling_transition_skipped(self):
        self.editor.add_transition(self.a, self.b, TransitionType.CROSSFADE, duration=2.0)
        self.editor.remove_clip("video-track", self.b)
        self.assertEqual(len(self.editor.timeline.transitions), 1)
        self.assertIsNone(active_transition(self.editor.timeline, 3.0))

    def test_none_transition_ignored(self):
        self.editor.add_transition(self.a, self.b, TransitionType.NONE)
        self.assertIsNone(active_transition(self.editor.timeline, 3.99))


class TestResolveAudio(unittest.TestCase):
    def setUp(self):
        self.editor = TimelineEditor()
        self.music = self.editor.add_clip("audio-track", {"name": "music", "duration": 10.0, "pan": -0.5})
        self.voice = self.editor.add_clip("audio-track", {"name": "voice", "startTime": 2.0, "duration": 4.0, "volume": 0.5})

    def levels(self, time):
        return {level.clip_id: level for level in resolve_audio(self.editor.timeline, time)}

    def test_active_clips_only(self):
        self.assertEqual(set(self.levels(1.0)), {self.music})
        self.assertEqual(set(self.levels(3.0)), {self.music, self.voice})

    def test_volume_and_pan(self):
        levels = self.levels(3.0)
        self.assertEqual(levels[self.music].pan, -0.5)
        self.assertEqual(levels[self.voice].volume, 0.5)
        self.assertEqual(levels[self.voice].local_time, 1.0)

    def test_solo_silences_others(self):
        self.editor.update_audio_settings("audio-track", self.voice, solo=True)
        levels = self.levels(3.0)
        self.assertEqual(levels[self.music].volume, 0.0)
        self.assertEqual(levels[self.voice].volume, 0.5)

        # Solo applies even while the soloed clip is not sounding
        self.assertEqual(self.levels(8.0)[self.music].volume, 0.0)

    def test_fade_folded_in(self):
        self.editor.update_audio_settings("audio-track", self.music, fade_in={"enabled": True, "duration": 2.0})
        self.assertEqual(self.levels(1.0)[self.music].volume, 0.5)
