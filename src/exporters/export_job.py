"""
Export Job - Settings, job state machine and pipeline driver.

The actual encoder is a black box: any callable
``encoder(job, snapshot, report) -> output_url``. It reports progress through
``report(progress, phase, status)`` and should stop early once
``job.is_cancelled`` is set.
"""
import logging
import time
import uuid
from dataclasses import dataclass, asdict, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from config import VIDEO_WIDTH, VIDEO_HEIGHT, VIDEO_FPS

logger = logging.getLogger(__name__)


class ExportFormat(str, Enum):
    MP4_H264 = "mp4_h264"
    WEBM_VP9 = "webm_vp9"


FORMAT_CONFIG = {
    ExportFormat.MP4_H264: {
        "extension": "mp4",
        "mime_type": "video/mp4",
        "video_bitrate": 5_000_000,
        "audio_bitrate": 128_000,
        "description": "MP4 (H.264) - Widely compatible",
    },
    ExportFormat.WEBM_VP9: {
        "extension": "webm",
        "mime_type": "video/webm",
        "video_bitrate": 4_000_000,
        "audio_bitrate": 128_000,
        "description": "WebM (VP9) - Web optimized",
    },
}


class ExportQuality(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CUSTOM = "custom"


QUALITY_PRESETS = {
    ExportQuality.LOW: {"width": 854, "height": 480, "fps": 24, "video_bitrate": 1_500_000, "audio_bitrate": 96_000},
    ExportQuality.MEDIUM: {"width": 1280, "height": 720, "fps": 30, "video_bitrate": 3_500_000, "audio_bitrate": 128_000},
    ExportQuality.HIGH: {"width": 1920, "height": 1080, "fps": 30, "video_bitrate": 8_000_000, "audio_bitrate": 192_000},
}


class ExportStatus(str, Enum):
    QUEUED = "queued"
    PREPARING = "preparing"
    ENCODING = "encoding"
    MIXING_AUDIO = "mixing_audio"
    FINALIZING = "finalizing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


TERMINAL_STATUSES = (ExportStatus.COMPLETED, ExportStatus.FAILED, ExportStatus.CANCELLED)


@dataclass
class ExportSettings:
    format: ExportFormat = ExportFormat.MP4_H264
    quality: ExportQuality = ExportQuality.HIGH
    width: int = VIDEO_WIDTH
    height: int = VIDEO_HEIGHT
    fps: int = VIDEO_FPS
    video_bitrate: int = 8_000_000
    audio_bitrate: int = 192_000
    include_audio: bool = True
    start_time: float = 0.0
    end_time: Optional[float] = None  # None = full duration

    def __post_init__(self):
        self.format = ExportFormat(self.format)
        self.quality = ExportQuality(self.quality)

    @classmethod
    def from_preset(cls, quality: ExportQuality, **overrides) -> "ExportSettings":
        """Settings for a quality preset; CUSTOM keeps the plain defaults."""
        quality = ExportQuality(quality)
        values = dict(QUALITY_PRESETS.get(quality, {}))
        values.update(overrides)
        return cls(quality=quality, **values)

    @property
    def extension(self) -> str:
        return FORMAT_CONFIG[self.format]["extension"]

    def to_dict(self) -> dict:
        d = asdict(self)
        d["format"] = self.format.value
        d["quality"] = self.quality.value
        return d


class ExportJob:
    """A single export of one project snapshot."""

    def __init__(
        self,
        snapshot: dict,
        settings: Optional[ExportSettings] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.id = f"export-{uuid.uuid4()}"
        self.snapshot = snapshot
        self.settings = settings or ExportSettings()
        self.clock = clock

        self.status = ExportStatus.QUEUED
        self.progress = 0.0
        self.current_phase = ""
        self.started_at: Optional[float] = None
        self.completed_at: Optional[float] = None
        self.error: Optional[str] = None
        self.output_url: Optional[str] = None
        self.logs: List[Dict[str, str]] = []
        self._cancel_requested = False

    def log(self, message: str, level: int = logging.INFO) -> None:
        self.logs.append({"level": logging.getLevelName(level), "message": message})
        logger.log(level, "[Export %s] %s", self.id, message)

    @property
    def is_cancelled(self) -> bool:
        return self._cancel_requested

    @property
    def is_finished(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def set_status(self, status: ExportStatus) -> None:
        status = ExportStatus(status)
        if self.is_finished:
            return
        self.status = status
        if status is ExportStatus.ENCODING and self.started_at is None:
            self.started_at = self.clock()
        if status in TERMINAL_STATUSES:
            self.completed_at = self.clock()

    def update_progress(self, progress: float, phase: str = "") -> None:
        self.progress = min(100.0, max(0.0, float(progress)))
        if phase:
            self.current_phase = phase

    def eta(self) -> Optional[float]:
        """Estimated seconds remaining, extrapolated from progress so far."""
        if self.started_at is None or self.progress <= 0 or self.progress >= 100:
            return None
        elapsed = self.clock() - self.started_at
        estimated_total = elapsed / (self.progress / 100)
        return max(0.0, estimated_total - elapsed)

    def cancel(self) -> None:
        """Request cancellation; the encoder sees it via is_cancelled."""
        if self.is_finished:
            return
        self._cancel_requested = True
        self.set_status(ExportStatus.CANCELLED)
        self.log("Export cancelled by user", logging.WARNING)

    def fail(self, error) -> None:
        self.error = str(error)
        self.set_status(ExportStatus.FAILED)
        self.log(f"Export failed: {self.error}", logging.ERROR)

    def complete(self, output_url: str) -> None:
        self.output_url = output_url
        self.progress = 100.0
        self.set_status(ExportStatus.COMPLETED)
        self.log("Export completed successfully")

    def summary(self) -> dict:
        return {
            "id": self.id,
            "status": self.status.value,
            "progress": self.progress,
            "phase": self.current_phase,
            "eta": self.eta(),
            "error": self.error,
            "output_url": self.output_url,
            "started_at": self.started_at,
            "completed_at": self.completed_at,
            "settings": self.settings.to_dict(),
        }


Encoder = Callable[[ExportJob, dict, Callable[..., bool]], str]


class ExportPipeline:
    """Job registry that drives encoders and reports job summaries to listeners."""

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self.jobs: Dict[str, ExportJob] = {}
        self._listeners: List[Callable[[dict], None]] = []

    def add_listener(self, listener: Callable[[dict], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, job: ExportJob) -> None:
        summary = job.summary()
        for listener in list(self._listeners):
            listener(summary)

    def create_job(self, snapshot: dict, settings: Optional[ExportSettings] = None) -> ExportJob:
        job = ExportJob(snapshot, settings, clock=self.clock)
        self.jobs[job.id] = job
        self._notify(job)
        return job

    def get_job(self, job_id: str) -> Optional[ExportJob]:
        return self.jobs.get(job_id)

    def get_all_jobs(self) -> List[dict]:
        return [job.summary() for job in self.jobs.values()]

    def cancel_job(self, job_id: str) -> bool:
        job = self.jobs.get(job_id)
        if job is None or job.is_finished:
            return False
        job.cancel()
        self._notify(job)
        return True

    def run(self, job: ExportJob, encoder: Encoder) -> Optional[str]:
        """Drive *encoder* to completion; returns the output url on success.

        Encoder errors mark the job failed rather than propagating.
        """
        if job.is_finished:
            return None

        def report(progress: float, phase: str = "", status: Optional[ExportStatus] = None) -> bool:
            if status is not None:
                job.set_status(status)
            job.update_progress(progress, phase)
            self._notify(job)
            return not job.is_cancelled

        job.set_status(ExportStatus.PREPARING)
        job.log(f"Preparing {job.settings.format.value} export")
        self._notify(job)

        try:
            output_url = encoder(job, job.snapshot, report)
        except Exception as e:
            job.fail(e)
            self._notify(job)
            return None

        if job.is_cancelled:
            self._notify(job)
            return None

        job.set_status(ExportStatus.FINALIZING)
        job.complete(output_url)
        self._notify(job)
        return output_url

    def cleanup_jobs(self, max_age: float = 3600.0) -> int:
        """Forget finished jobs older than *max_age* seconds."""
        now = self.clock()
        expired = [
            job_id for job_id, job in self.jobs.items()
            if job.completed_at is not None and now - job.completed_at > max_age
        ]
        for job_id in expired:
            del self.jobs[job_id]
        return len(expired)
