"""
Project Manager - Current project lifecycle, save/load and autosave.
"""
import json
import logging
import time
from enum import Enum
from pathlib import Path
from typing import Callable, List, Optional, Union

from config import DEFAULT_PROJECT_NAME, PROJECT_VERSION
from core.autosave import AutosaveStore
from core.editor import EditorEvent, TimelineEditor
from models.project import Project, ProjectSettings, now_iso
from models.timeline import Timeline
from runtime_config import RuntimeConfig

logger = logging.getLogger(__name__)


class ProjectEvent(str, Enum):
    LOADED = "loaded"
    SAVED = "saved"
    AUTOSAVED = "autosaved"
    DIRTY_CHANGED = "dirty_changed"


class ProjectManager:
    """Holds the open Project and moves it to and from storage.

    Loading is all-or-nothing: a snapshot that fails to parse raises
    ProjectLoadError and the previously open project stays current.
    """

    def __init__(
        self,
        config: Optional[RuntimeConfig] = None,
        store: Optional[AutosaveStore] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.config = config if config is not None else RuntimeConfig()
        self.store = store
        self.clock = clock

        self.project: Optional[Project] = None
        self.project_path: Optional[Path] = None
        self.is_dirty = False
        self.last_autosave_time: Optional[float] = None

        self._revision = 0
        self._autosaved_revision = 0
        self._saved_snapshot: Optional[dict] = None
        self._listeners: List[Callable[[ProjectEvent, dict], None]] = []

    # -- Listeners ---------------------------------------------------------

    def add_listener(self, listener: Callable[[ProjectEvent, dict], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: ProjectEvent, **payload) -> None:
        for listener in list(self._listeners):
            listener(event, payload)

    def _set_dirty(self, dirty: bool) -> None:
        if dirty:
            self._revision += 1
        if dirty != self.is_dirty:
            self.is_dirty = dirty
            self._emit(ProjectEvent.DIRTY_CHANGED, dirty=dirty)

    # -- Lifecycle ---------------------------------------------------------

    def _open(self, project: Project, path: Optional[Path] = None) -> Project:
        self.project = project
        self.project_path = path
        self._saved_snapshot = project.to_dict()
        self._revision = 0
        self._autosaved_revision = 0
        self.last_autosave_time = None
        self._set_dirty(False)
        self._emit(ProjectEvent.LOADED, project_id=project.id)
        return project

    def create_new(self, name: str = DEFAULT_PROJECT_NAME, settings: Optional[ProjectSettings] = None) -> Project:
        project = Project(name=name, settings=settings or ProjectSettings())
        logger.info("Created project %s (%s)", project.name, project.id)
        return self._open(project)

    def load(self, data: Union[str, bytes, dict]) -> Project:
        """Open a snapshot given as JSON text or an already-parsed dict."""
        if isinstance(data, dict):
            project = Project.from_dict(data)
        else:
            project = Project.from_json(data)
        logger.info("Loaded project %s (%s)", project.name, project.id)
        return self._open(project)

    def load_file(self, path: Union[str, Path]) -> Project:
        path = Path(path)
        # Decoded by Project.from_json so bad encodings surface as ProjectLoadError
        with open(path, "rb") as f:
            raw = f.read()
        project = self.load(raw)
        self.project_path = path
        return project

    def _require_project(self) -> Project:
        if self.project is None:
            raise RuntimeError("No project is open")
        return self.project

    def save(self) -> str:
        """Serialize the project, stamping version and modified time."""
        project = self._require_project()
        project.version = PROJECT_VERSION
        project.touch()
        snapshot = project.to_dict()
        self._saved_snapshot = snapshot
        self._set_dirty(False)
        self._emit(ProjectEvent.SAVED, project_id=project.id)
        return json.dumps(snapshot, indent=2, ensure_ascii=False)

    def save_file(self, path: Optional[Union[str, Path]] = None) -> Path:
        target = Path(path) if path is not None else self.project_path
        if target is None:
            raise RuntimeError("No file path for project")
        text = self.save()
        with open(target, "w", encoding="utf-8") as f:
            f.write(text)
        self.project_path = target
        logger.info("Saved project to %s", target)
        return target

    def update_from_timeline(self, timeline: Timeline) -> None:
        project = self._require_project()
        project.timeline = timeline
        project.touch()
        self._set_dirty(True)

    def bind_editor(self, editor: TimelineEditor) -> Callable[[], None]:
        """Follow *editor*: every timeline change updates the project and marks it dirty."""

        def on_event(event: EditorEvent, payload: dict):
            if event is EditorEvent.TIMELINE_CHANGED and self.project is not None:
                self.update_from_timeline(editor.timeline)

        return editor.add_listener(on_event)

    def create_editor(self) -> TimelineEditor:
        """An editor over the open project's timeline, sized by this manager's config."""
        project = self._require_project()
        editor = TimelineEditor(timeline=project.timeline, config=self.config)
        self.bind_editor(editor)
        return editor

    def mark_dirty(self) -> None:
        self._require_project()
        self._set_dirty(True)

    def revert(self) -> bool:
        """Discard unsaved changes, returning to the last saved or loaded state."""
        if self.project is None or self._saved_snapshot is None:
            return False
        project = Project.from_dict(self._saved_snapshot)
        path = self.project_path
        self._open(project, path)
        return True

    # -- Autosave ----------------------------------------------------------

    def perform_autosave(self, busy: bool = False) -> bool:
        """Write an autosave if there is something new and enough time has passed.

        *busy* is set by the host while a multi-step edit is in flight, so a
        snapshot is never taken mid-operation.
        """
        if not self.config.autosave_enabled or self.store is None:
            return False
        if self.project is None or not self.is_dirty or busy:
            return False
        if self._autosaved_revision == self._revision:
            return False

        now = self.clock()
        if self.last_autosave_time is not None and now - self.last_autosave_time < self.config.autosave_min_interval:
            return False

        project = self.project
        try:
            self.store.write(project.id, project.name, now_iso(), project.to_dict())
        except OSError as e:
            logger.warning("Autosave failed for %s: %s", project.id, e)
            return False

        self.last_autosave_time = now
        self._autosaved_revision = self._revision
        self.cleanup_autosaves()
        self._emit(ProjectEvent.AUTOSAVED, project_id=project.id)
        return True

    def get_autosaves(self) -> List[dict]:
        if self.store is None:
            return []
        return self.store.list_entries()

    def load_autosave(self, project_id: str) -> Optional[Project]:
        """Open an autosave; it counts as unsaved work until saved."""
        if self.store is None:
            return None
        entry = self.store.read(project_id)
        if entry is None:
            return None
        project = self.load(entry["data"])
        self._set_dirty(True)
        return project

    def cleanup_autosaves(self) -> int:
        """Keep only the newest ``max_autosaves`` entries; returns how many were removed."""
        if self.store is None:
            return 0
        removed = 0
        for entry in self.store.list_entries()[self.config.max_autosaves:]:
            if self.store.delete(entry["projectId"]):
                removed += 1
        return removed

    def summary(self) -> dict:
        project = self.project
        return {
            "project_id": project.id if project else None,
            "name": project.name if project else None,
            "path": str(self.project_path) if self.project_path else None,
            "dirty": self.is_dirty,
            "track_count": len(project.timeline.tracks) if project else 0,
            "clip_count": len(project.timeline.all_clips()) if project else 0,
            "duration": project.timeline.duration if project else 0.0,
        }
