"""
Unit tests for export jobs, the export pipeline and the audio mixdown.
"""
import sys
import os
import unittest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import numpy as np
from pydub import AudioSegment

from core.editor import TimelineEditor
from exporters.audio_mixdown import AudioMixdown, MIX_FRAME_RATE, pan_gains
from exporters.export_job import (
    ExportFormat,
    ExportJob,
    ExportPipeline,
    ExportQuality,
    ExportSettings,
    ExportStatus,
)


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


# ---- Settings / job ----------------------------------------------------------

class TestExportSettings(unittest.TestCase):
    def test_defaults(self):
        settings = ExportSettings()
        self.assertIs(settings.format, ExportFormat.MP4_H264)
        self.assertEqual((settings.width, settings.height, settings.fps), (1920, 1080, 30))
        self.assertTrue(settings.include_audio)
        self.assertIsNone(settings.end_time)
        self.assertEqual(settings.extension, "mp4")

    def test_preset(self):
        settings = ExportSettings.from_preset("low", format="webm_vp9")
        self.assertEqual((settings.width, settings.height, settings.fps), (854, 480, 24))
        self.assertEqual(settings.video_bitrate, 1_500_000)
        self.assertEqual(settings.extension, "webm")
        self.assertEqual(settings.to_dict()["quality"], "low")

    def test_custom_preset_keeps_overrides(self):
        settings = ExportSettings.from_preset(ExportQuality.CUSTOM, width=640)
        self.assertEqual(settings.width, 640)
        self.assertEqual(settings.height, 1080)

    def test_unknown_format(self):
        with self.assertRaises(ValueError):
            ExportSettings(format="avi")


class TestExportJob(unittest.TestCase):
    def setUp(self):
        self.clock = FakeClock()
        self.job = ExportJob({"tracks": []}, clock=self.clock)

    def test_progress_clamped(self):
        self.job.update_progress(150, "encoding")
        self.assertEqual(self.job.progress, 100)
        self.job.update_progress(-3)
        self.assertEqual(self.job.progress, 0)
        self.assertEqual(self.job.current_phase, "encoding")

    def test_eta(self):
        self.assertIsNone(self.job.eta())
        self.job.set_status(ExportStatus.ENCODING)
        self.clock.now = 10.0
        self.job.update_progress(25)
        self.assertAlmostEqual(self.job.eta(), 30.0)

    def test_cancel_is_terminal(self):
        self.job.cancel()
        self.assertTrue(self.job.is_cancelled)
        self.assertIs(self.job.status, ExportStatus.CANCELLED)
        self.job.set_status(ExportStatus.ENCODING)
        self.assertIs(self.job.status, ExportStatus.CANCELLED)

    def test_fail(self):
        with self.assertLogs("exporters.export_job", level="ERROR"):
            self.job.fail(RuntimeError("disk full"))
        self.assertEqual(self.job.error, "disk full")
        self.assertEqual(self.job.summary()["status"], "failed")


class TestExportPipeline(unittest.TestCase):
    def setUp(self):
        self.pipeline = ExportPipeline(clock=FakeClock())
        self.summaries = []
        self.pipeline.add_listener(self.summaries.append)

    def test_successful_run(self):
        def encoder(job, snapshot, report):
            report(10, "Encoding frames", ExportStatus.ENCODING)
            report(80, "Mixing audio", ExportStatus.MIXING_AUDIO)
            return "file:///out.mp4"

        job = self.pipeline.create_job({"tracks": []})
        self.assertEqual(self.pipeline.run(job, encoder), "file:///out.mp4")
        self.assertIs(job.status, ExportStatus.COMPLETED)
        self.assertEqual(job.progress, 100)
        statuses = [s["status"] for s in self.summaries]
        self.assertEqual(statuses[0], "queued")
        self.assertIn("encoding", statuses)
        self.assertIn("mixing_audio", statuses)
        self.assertEqual(statuses[-1], "completed")
        self.assertEqual([s["id"] for s in self.pipeline.get_all_jobs()], [job.id])

    def test_encoder_error_fails_job(self):
        def encoder(job, snapshot, report):
            raise OSError("encoder crashed")

        job = self.pipeline.create_job({})
        self.assertIsNone(self.pipeline.run(job, encoder))
        self.assertIs(job.status, ExportStatus.FAILED)
        self.assertIn("encoder crashed", job.error)

    def test_cooperative_cancel(self):
        frames_done = []

        def encoder(job, snapshot, report):
            for frame in range(100):
                if frame == 3:
                    self.pipeline.cancel_job(job.id)
                if not report(frame, "Encoding", ExportStatus.ENCODING):
                    break
                frames_done.append(frame)
            return "never"

        job = self.pipeline.create_job({})
        self.assertIsNone(self.pipeline.run(job, encoder))
        self.assertIs(job.status, ExportStatus.CANCELLED)
        self.assertEqual(frames_done, [0, 1, 2])
        self.assertFalse(self.pipeline.cancel_job(job.id))

    def test_snapshot_is_passed_through(self):
        seen = []
        snapshot = {"tracks": [{"id": "video-track"}]}
        job = self.pipeline.create_job(snapshot)
        self.pipeline.run(job, lambda j, s, r: seen.append(s) or "ok")
        self.assertIs(seen[0], snapshot)

    def test_cleanup(self):
        clock = self.pipeline.clock
        job = self.pipeline.create_job({})
        self.pipeline.run(job, lambda j, s, r: "ok")
        clock.now = 4000.0
        self.assertEqual(self.pipeline.cleanup_jobs(max_age=3600), 1)
        self.assertIsNone(self.pipeline.get_job(job.id))


# ---- Audio mixdown -----------------------------------------------------------

def constant_segment(value: int, seconds: float) -> AudioSegment:
    frames = np.full((int(MIX_FRAME_RATE * seconds), 2), value, dtype=np.int16)
    return AudioSegment(data=frames.tobytes(), sample_width=2, frame_rate=MIX_FRAME_RATE, channels=2)


def frames_of(segment: AudioSegment) -> np.ndarray:
    return np.array(segment.get_array_of_samples()).reshape((-1, 2))


class TestAudioMixdown(unittest.TestCase):
    def setUp(self):
        self.sources = {
            "tone.wav": constant_segment(10000, 3.0),
            "steps.wav": constant_segment(1000, 1.0) + constant_segment(2000, 1.0),
        }
        self.mixdown = AudioMixdown(loader=self.sources.__getitem__)
        self.editor = TimelineEditor()

    def add(self, **spec):
        spec.setdefault("path", "tone.wav")
        return self.editor.add_clip("audio-track", spec)

    def test_clip_placed_and_scaled(self):
        self.add(startTime=0.5, duration=1.0, volume=0.5)
        frames = frames_of(self.mixdown.mix(self.editor.timeline))
        self.assertEqual(len(frames), int(MIX_FRAME_RATE * 1.5))
        self.assertEqual(frames[int(MIX_FRAME_RATE * 0.25)].tolist(), [0, 0])
        self.assertEqual(frames[MIX_FRAME_RATE].tolist(), [5000, 5000])

    def test_trim_offset(self):
        self.add(path="steps.wav", startTime=0.0, duration=1.0, trimStart=1.0)
        frames = frames_of(self.mixdown.mix(self.editor.timeline))
        self.assertEqual(frames[100].tolist(), [2000, 2000])

    def test_pan(self):
        self.add(startTime=0.0, duration=1.0, pan=1.0)
        frames = frames_of(self.mixdown.mix(self.editor.timeline))
        self.assertEqual(frames[100].tolist(), [0, 10000])
        self.assertEqual(pan_gains(-0.5), (1.0, 0.5))

    def test_muted_and_solo(self):
        loud = self.add(startTime=0.0, duration=1.0)
        quiet = self.add(startTime=0.0, duration=1.0, volume=0.1)
        muted = self.add(startTime=0.0, duration=1.0, muted=True)
        self.editor.update_audio_settings("audio-track", quiet, solo=True)

        audible = [c.id for c in self.mixdown.audible_clips(self.editor.timeline)]
        self.assertEqual(audible, [quiet])
        self.assertNotIn(loud, audible)
        self.assertNotIn(muted, audible)

        frames = frames_of(self.mixdown.mix(self.editor.timeline))
        self.assertEqual(frames[100].tolist(), [1000, 1000])

    def test_fade_in_envelope(self):
        self.add(startTime=0.0, duration=2.0, fadeIn={"enabled": True, "duration": 1.0})
        frames = frames_of(self.mixdown.mix(self.editor.timeline))
        self.assertEqual(frames[0].tolist(), [0, 0])
        self.assertAlmostEqual(float(frames[MIX_FRAME_RATE // 2][0]), 5000, delta=1)
        self.assertEqual(frames[int(MIX_FRAME_RATE * 1.5)].tolist(), [10000, 10000])

    def test_range(self):
        self.add(startTime=1.0, duration=2.0)
        mixed = self.mixdown.mix(self.editor.timeline, start_time=2.0, end_time=2.5)
        frames = frames_of(mixed)
        self.assertEqual(len(frames), MIX_FRAME_RATE // 2)
        self.assertEqual(frames[10].tolist(), [10000, 10000])

    def test_sources_loaded_once(self):
        calls = []

        def loader(path):
            calls.append(path)
            return self.sources[path]

        mixdown = AudioMixdown(loader=loader)
        self.add(startTime=0.0, duration=1.0)
        self.add(startTime=1.0, duration=1.0)
        mixdown.mix(self.editor.timeline)
        self.assertEqual(calls, ["tone.wav"])

        mixdown.clear_cache()
        mixdown.mix(self.editor.timeline)
        self.assertEqual(calls, ["tone.wav", "tone.wav"])


def test_mixdown_export_wav(tmp_path):
    editor = TimelineEditor()
    editor.add_clip("audio-track", {"path": "tone.wav", "startTime": 0.0, "duration": 0.5})
    mixdown = AudioMixdown(loader=lambda path: constant_segment(3000, 1.0))

    output = mixdown.export(editor.timeline, tmp_path / "mix.wav")
    assert output.exists()
    written = AudioSegment.from_wav(str(output))
    assert written.channels == 2
    assert len(written) == 500
