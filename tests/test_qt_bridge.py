import sys
import os
import threading

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

import pytest

from core.autosave import AutosaveStore
from core.editor import TimelineEditor
from core.project_manager import ProjectManager
from runtime_config import RuntimeConfig
from ui.qt_bridge import AutosaveTimer, EditorSignals, QtDispatcher


@pytest.fixture
def editor():
    return TimelineEditor()


@pytest.fixture
def manager(tmp_path):
    config = RuntimeConfig(autosave_interval=30.0, autosave_min_interval=0.0)
    manager = ProjectManager(config, AutosaveStore(tmp_path / "autosave"))
    manager.create_new("Qt")
    return manager


def test_editor_signals(qtbot, editor):
    signals = EditorSignals()
    signals.attach(editor)

    with qtbot.waitSignal(signals.timeline_changed, timeout=1000) as blocker:
        clip_id = editor.add_clip("video-track", {"duration": 2.0})
    assert blocker.args == ["add_item"]

    with qtbot.waitSignal(signals.history_changed, timeout=1000) as blocker:
        editor.undo()
    assert blocker.args[0]["redo_count"] == 1

    editor.redo()
    with qtbot.waitSignal(signals.selection_changed, timeout=1000) as blocker:
        editor.select_clip(clip_id)
    assert blocker.args == [clip_id]

    # Thumbnail updates are not undoable
    with qtbot.waitSignal(signals.timeline_changed, timeout=1000) as blocker:
        editor.update_clip_thumbnail("video-track", clip_id, "thumb.png")
    assert blocker.args == [""]


def test_detach_stops_forwarding(qtbot, editor):
    signals = EditorSignals()
    signals.attach(editor)
    signals.detach()
    with qtbot.assertNotEmitted(signals.timeline_changed):
        editor.add_clip("video-track", {"duration": 1.0})


def test_dirty_changed(qtbot, editor, manager):
    signals = EditorSignals()
    signals.attach(editor, manager)
    with qtbot.waitSignal(signals.dirty_changed, timeout=1000) as blocker:
        manager.mark_dirty()
    assert blocker.args == [True]


def test_autosave_timer(qtbot, editor, manager):
    timer = AutosaveTimer(manager, editor)
    assert timer.interval_ms == 30000
    timer.start()
    assert timer.is_active()
    timer.stop()
    assert not timer.is_active()

    assert timer.tick() is False  # clean project

    manager.mark_dirty()
    with editor.batch("Drag"):
        assert timer.tick() is False  # busy
    with qtbot.waitSignal(timer.autosaved, timeout=1000) as blocker:
        assert timer.tick() is True
    assert blocker.args == [manager.project.id]


def test_autosave_timer_disabled(manager):
    manager.config.autosave_enabled = False
    timer = AutosaveTimer(manager)
    timer.start()
    assert not timer.is_active()


def test_dispatcher_drains_worker_posts(qtbot, editor):
    dispatcher = QtDispatcher()
    owner = threading.get_ident()
    ran_on = []

    def add():
        ran_on.append(threading.get_ident())
        editor.add_clip("video-track", {"duration": 1.0})

    workers = [threading.Thread(target=dispatcher.post, args=(add,)) for _ in range(4)]
    for worker in workers:
        worker.start()
    for worker in workers:
        worker.join()

    qtbot.waitUntil(lambda: len(ran_on) == 4, timeout=2000)
    assert set(ran_on) == {owner}
    assert editor.timeline.duration == 4.0
    assert dispatcher.dispatcher.pending == 0
