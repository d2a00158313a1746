"""
Project - Top-level persistence snapshot.

Wraps the Timeline aggregate with project metadata (id, name, timestamps,
format version) and output settings. Loading is all-or-nothing: a malformed
snapshot raises ProjectLoadError and never yields a half-built Project.
"""
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from config import (
    PROJECT_VERSION,
    DEFAULT_PROJECT_NAME,
    VIDEO_WIDTH,
    VIDEO_HEIGHT,
    VIDEO_FPS,
    BACKGROUND_COLOR,
)
from models.timeline import Timeline

logger = logging.getLogger(__name__)

LEGACY_VERSION = "0.0.0"  # Assumed when a snapshot carries no version


class ProjectLoadError(ValueError):
    """Raised when a project snapshot cannot be parsed."""


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_project_id() -> str:
    return f"project-{uuid.uuid4()}"


@dataclass
class ProjectSettings:
    width: int = VIDEO_WIDTH
    height: int = VIDEO_HEIGHT
    fps: int = VIDEO_FPS
    background_color: str = BACKGROUND_COLOR

    def to_dict(self) -> dict:
        return {
            "width": self.width,
            "height": self.height,
            "fps": self.fps,
            "backgroundColor": self.background_color,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ProjectSettings":
        return cls(
            width=int(data.get("width", VIDEO_WIDTH)),
            height=int(data.get("height", VIDEO_HEIGHT)),
            fps=int(data.get("fps", VIDEO_FPS)),
            background_color=str(data.get("backgroundColor", BACKGROUND_COLOR)),
        )


@dataclass
class Project:
    """Root object of a saved project.

    Attributes:
        id: Unique project identifier.
        name: Human-readable project name.
        created / modified: ISO-8601 timestamps.
        version: Snapshot format version.
        settings: Output frame size, rate and background.
        timeline: The editing arrangement.
    """
    id: str = field(default_factory=new_project_id)
    name: str = DEFAULT_PROJECT_NAME
    created: str = field(default_factory=now_iso)
    modified: str = field(default_factory=now_iso)
    version: str = PROJECT_VERSION
    settings: ProjectSettings = field(default_factory=ProjectSettings)
    timeline: Timeline = field(default_factory=Timeline.with_default_tracks)

    def touch(self) -> None:
        self.modified = now_iso()

    # -- Serialization -----------------------------------------------------

    def to_dict(self) -> dict:
        d = {
            "version": self.version,
            "id": self.id,
            "name": self.name,
            "created": self.created,
            "modified": self.modified,
            "settings": self.settings.to_dict(),
        }
        d.update(self.timeline.to_dict())
        return d

    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    @classmethod
    def _parse_version(cls, version_str: str) -> tuple[int, ...]:
        """Parse a dotted version string into a comparable tuple of ints."""
        try:
            return tuple(int(p) for p in version_str.split("."))
        except (ValueError, AttributeError):
            return (0,)

    @classmethod
    def migrate(cls, data: dict) -> dict:
        """Bring a snapshot up to PROJECT_VERSION.

        No format changes exist yet; only the version stamp is updated.
        """
        version = data.get("version") or LEGACY_VERSION
        if cls._parse_version(version) < cls._parse_version(PROJECT_VERSION):
            logger.info("Upgrading project snapshot from version %s to %s", version, PROJECT_VERSION)
        migrated = dict(data)
        migrated["version"] = PROJECT_VERSION
        return migrated

    @classmethod
    def from_dict(cls, data: dict) -> "Project":
        if not isinstance(data, dict):
            raise ProjectLoadError(f"Project snapshot must be an object, got {type(data).__name__}")
        for key in ("tracks", "transitions"):
            if key in data and not isinstance(data[key], list):
                raise ProjectLoadError(f"'{key}' must be a list")

        data = cls.migrate(data)
        try:
            return cls(
                id=data.get("id") or new_project_id(),
                name=data.get("name", DEFAULT_PROJECT_NAME),
                created=data.get("created") or now_iso(),
                modified=data.get("modified") or now_iso(),
                version=data["version"],
                settings=ProjectSettings.from_dict(data.get("settings") or {}),
                timeline=Timeline.from_dict(data),
            )
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise ProjectLoadError(f"Malformed project snapshot: {e!r}") from e

    @classmethod
    def from_json(cls, text: Union[str, bytes]) -> "Project":
        try:
            data = json.loads(text)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise ProjectLoadError(f"Project file is not valid JSON: {e}") from e
        return cls.from_dict(data)
