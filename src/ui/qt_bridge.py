"""
Qt Bridge - Expose the engine's listener callbacks as Qt signals.

The core services only know plain callables; this module is the one place
they meet the Qt event loop.
"""
from typing import Callable, List, Optional

from PyQt6.QtCore import QObject, QTimer, Qt, pyqtSignal

from core.dispatcher import SerialDispatcher
from core.editor import EditorEvent, TimelineEditor
from core.project_manager import ProjectEvent, ProjectManager
from runtime_config import RuntimeConfig


class EditorSignals(QObject):
    """
    Re-emits editor, history and project events as Qt signals.

    Signals:
        history_changed: History summary dict (counts, labels)
        timeline_changed: Action type value, '' for non-undoable updates
        selection_changed: Selected clip id, '' when cleared
        dirty_changed: Project dirty flag
    """

    history_changed = pyqtSignal(dict)
    timeline_changed = pyqtSignal(str)
    selection_changed = pyqtSignal(str)
    dirty_changed = pyqtSignal(bool)

    def __init__(self, parent=None):
        super().__init__(parent)
        self._unsubscribers: List[Callable[[], None]] = []

    def attach(self, editor: TimelineEditor, project_manager: Optional[ProjectManager] = None):
        self._unsubscribers.append(editor.add_listener(self._on_editor_event))
        self._unsubscribers.append(editor.history.add_listener(self.history_changed.emit))
        if project_manager is not None:
            self._unsubscribers.append(project_manager.add_listener(self._on_project_event))

    def detach(self):
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

    def _on_editor_event(self, event: EditorEvent, payload: dict):
        if event is EditorEvent.SELECTION_CHANGED:
            self.selection_changed.emit(payload.get("clip_id") or "")
        else:
            action = payload.get("action")
            self.timeline_changed.emit(action.value if action is not None else "")

    def _on_project_event(self, event: ProjectEvent, payload: dict):
        if event is ProjectEvent.DIRTY_CHANGED:
            self.dirty_changed.emit(bool(payload.get("dirty")))


class AutosaveTimer(QObject):
    """Periodic autosave tick.

    The tick interval comes from ``autosave_interval``; the project manager
    applies its own minimum spacing between writes.
    """

    autosaved = pyqtSignal(str)  # project id

    def __init__(
        self,
        manager: ProjectManager,
        editor: Optional[TimelineEditor] = None,
        config: Optional[RuntimeConfig] = None,
        parent=None,
    ):
        super().__init__(parent)
        self.manager = manager
        self.editor = editor
        self.config = config or manager.config

        self._timer = QTimer(self)
        self._timer.setInterval(int(self.config.autosave_interval * 1000))
        self._timer.timeout.connect(self.tick)

    @property
    def interval_ms(self) -> int:
        return self._timer.interval()

    def is_active(self) -> bool:
        return self._timer.isActive()

    def start(self):
        if self.config.autosave_enabled:
            self._timer.start()

    def stop(self):
        self._timer.stop()

    def tick(self) -> bool:
        busy = self.editor.is_busy if self.editor is not None else False
        saved = self.manager.perform_autosave(busy=busy)
        if saved:
            self.autosaved.emit(self.manager.project.id)
        return saved


class QtDispatcher(QObject):
    """SerialDispatcher drained on the Qt thread that owns this object."""

    _wake = pyqtSignal()

    def __init__(self, parent=None):
        super().__init__(parent)
        self.dispatcher = SerialDispatcher(on_post=self._wake.emit)
        # Queued so a post from a worker thread drains on the owner's event loop
        self._wake.connect(self._drain, Qt.ConnectionType.QueuedConnection)

    def post(self, fn, *args, **kwargs):
        self.dispatcher.post(fn, *args, **kwargs)

    def call(self, fn, *args, **kwargs):
        return self.dispatcher.call(fn, *args, **kwargs)

    def _drain(self):
        self.dispatcher.drain()
