"""
History - Generic undo/redo stack with batching.

The stack knows nothing about what an action changes. Every action is either
applied (on the undo stack) or available for redo (on the redo stack).
"""
import logging
import time
import uuid
from enum import Enum
from typing import Any, Callable, List, Optional, Protocol

from config import MAX_HISTORY_SIZE, BATCH_LABEL

logger = logging.getLogger(__name__)


class ActionType(str, Enum):
    # Track items
    ADD_ITEM = "add_item"
    REMOVE_ITEM = "remove_item"
    MOVE_ITEM = "move_item"
    REORDER_ITEMS = "reorder_items"
    UPDATE_ITEM = "update_item"
    SPLIT_ITEM = "split_item"

    # Audio
    UPDATE_AUDIO_SETTINGS = "update_audio_settings"
    ADD_AUDIO_KEYFRAME = "add_audio_keyframe"
    REMOVE_AUDIO_KEYFRAME = "remove_audio_keyframe"
    UPDATE_AUDIO_KEYFRAME = "update_audio_keyframe"

    # Transitions
    ADD_TRANSITION = "add_transition"
    REMOVE_TRANSITION = "remove_transition"
    UPDATE_TRANSITION = "update_transition"

    # Filters
    UPDATE_FILTERS = "update_filters"
    RESET_FILTERS = "reset_filters"

    # Project
    CLEAR_ALL = "clear_all"
    LOAD_PROJECT = "load_project"

    BATCH = "batch"
    GENERIC = "generic"


DEFAULT_LABELS = {
    ActionType.ADD_ITEM: "Add Item",
    ActionType.REMOVE_ITEM: "Remove Item",
    ActionType.MOVE_ITEM: "Move Item",
    ActionType.REORDER_ITEMS: "Reorder Items",
    ActionType.UPDATE_ITEM: "Update Item",
    ActionType.SPLIT_ITEM: "Split Item",
    ActionType.UPDATE_AUDIO_SETTINGS: "Update Audio",
    ActionType.ADD_AUDIO_KEYFRAME: "Add Keyframe",
    ActionType.REMOVE_AUDIO_KEYFRAME: "Remove Keyframe",
    ActionType.UPDATE_AUDIO_KEYFRAME: "Update Keyframe",
    ActionType.ADD_TRANSITION: "Add Transition",
    ActionType.REMOVE_TRANSITION: "Remove Transition",
    ActionType.UPDATE_TRANSITION: "Update Transition",
    ActionType.UPDATE_FILTERS: "Update Filters",
    ActionType.RESET_FILTERS: "Reset Filters",
    ActionType.CLEAR_ALL: "Clear All",
    ActionType.LOAD_PROJECT: "Load Project",
    ActionType.BATCH: BATCH_LABEL,
    ActionType.GENERIC: "Action",
}


def default_label(action_type: ActionType) -> str:
    return DEFAULT_LABELS.get(action_type, "Action")


def _new_action_id() -> str:
    return f"action-{uuid.uuid4()}"


class Command:
    def undo(self):
        raise NotImplementedError

    def redo(self):
        raise NotImplementedError

    def text(self) -> str:
        return ""


class HistoryAction(Command):
    """A labelled, timestamped history entry."""

    def __init__(self, action_type: ActionType = ActionType.GENERIC, label: Optional[str] = None):
        self.id = _new_action_id()
        self.action_type = ActionType(action_type)
        self.label = label
        self.timestamp = time.time()

    def text(self) -> str:
        return self.label or default_label(self.action_type)


class StateApplier(Protocol):
    def apply_state(self, action_type: ActionType, state: Any) -> None: ...


class StateAction(HistoryAction):
    """Command holding plain-data before/after snapshots.

    Undo and redo hand the matching snapshot to the applier, which restores
    it according to *action_type*. The snapshots are plain dicts/lists so the
    action can be serialized.
    """

    def __init__(
        self,
        applier: StateApplier,
        action_type: ActionType,
        before: Any,
        after: Any,
        label: Optional[str] = None,
    ):
        super().__init__(action_type, label)
        self.applier = applier
        self.before = before
        self.after = after

    def undo(self):
        self.applier.apply_state(self.action_type, self.before)

    def redo(self):
        self.applier.apply_state(self.action_type, self.after)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "type": self.action_type.value,
            "label": self.text(),
            "timestamp": self.timestamp,
            "before": self.before,
            "after": self.after,
        }


class CallbackAction(HistoryAction):
    """Action built from an undo/redo callable pair."""

    def __init__(
        self,
        undo: Callable[[], None],
        redo: Callable[[], None],
        action_type: ActionType = ActionType.GENERIC,
        label: Optional[str] = None,
    ):
        super().__init__(action_type, label)
        self._undo = undo
        self._redo = redo

    def undo(self):
        self._undo()

    def redo(self):
        self._redo()


class BatchAction(HistoryAction):
    """Several actions committed, undone and redone as one step."""

    def __init__(self, actions: List[Command], label: Optional[str] = None):
        super().__init__(ActionType.BATCH, label)
        self.actions = actions

    def undo(self):
        # Undo in reverse order
        for action in reversed(self.actions):
            action.undo()

    def redo(self):
        for action in self.actions:
            action.redo()


class HistoryManager:
    """Undo/redo stacks with batching, bounded size and change listeners."""

    def __init__(self, max_size: int = MAX_HISTORY_SIZE):
        self.max_size = max_size
        self.undo_stack: List[Command] = []
        self.redo_stack: List[Command] = []
        self.clean_command: Optional[Command] = None
        self._listeners: List[Callable[[dict], None]] = []
        self._executing = False
        self._batch_mode = False
        self._batch_actions: List[Command] = []

    # -- Listeners ---------------------------------------------------------

    def add_listener(self, listener: Callable[[dict], None]) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self):
        summary = self.summary()
        for listener in list(self._listeners):
            listener(summary)

    # -- State -------------------------------------------------------------

    @property
    def is_executing(self) -> bool:
        return self._executing

    @property
    def is_batching(self) -> bool:
        return self._batch_mode

    def can_undo(self) -> bool:
        return len(self.undo_stack) > 0

    def can_redo(self) -> bool:
        return len(self.redo_stack) > 0

    def undo_label(self) -> str:
        return self.undo_stack[-1].text() if self.undo_stack else ""

    def redo_label(self) -> str:
        return self.redo_stack[-1].text() if self.redo_stack else ""

    # -- Recording ---------------------------------------------------------

    def push_action(self, action: Command) -> None:
        # Effects of an undo/redo must not re-enter the history
        if self._executing:
            return

        if self._batch_mode:
            self._batch_actions.append(action)
            return

        self.undo_stack.append(action)
        self.redo_stack.clear()
        while len(self.undo_stack) > self.max_size:
            evicted = self.undo_stack.pop(0)
            if evicted is self.clean_command:
                self.clean_command = None
        self._notify()

    def start_batch(self) -> None:
        self._batch_mode = True
        self._batch_actions = []

    def end_batch(self, label: str = BATCH_LABEL) -> Optional[BatchAction]:
        """Commit the collected actions as one step; an empty batch commits nothing."""
        actions = self._batch_actions
        was_batching = self._batch_mode
        self._batch_mode = False
        self._batch_actions = []
        if not was_batching or not actions:
            return None

        batch = BatchAction(actions, label)
        self.push_action(batch)
        return batch

    def cancel_batch(self) -> None:
        self._batch_mode = False
        self._batch_actions = []

    # -- Undo / redo -------------------------------------------------------

    def undo(self) -> bool:
        if not self.undo_stack:
            return False

        action = self.undo_stack[-1]
        self._executing = True
        try:
            action.undo()
        finally:
            self._executing = False
        self.undo_stack.pop()
        self.redo_stack.append(action)
        logger.debug("Undo: %s", action.text())
        self._notify()
        return True

    def redo(self) -> bool:
        if not self.redo_stack:
            return False

        action = self.redo_stack[-1]
        self._executing = True
        try:
            action.redo()
        finally:
            self._executing = False
        self.redo_stack.pop()
        self.undo_stack.append(action)
        logger.debug("Redo: %s", action.text())
        self._notify()
        return True

    # -- Housekeeping ------------------------------------------------------

    def set_clean(self):
        """Mark the current state as clean"""
        self.clean_command = self.undo_stack[-1] if self.undo_stack else None

    def is_clean(self) -> bool:
        """Check if the current state is clean"""
        current_command = self.undo_stack[-1] if self.undo_stack else None
        return current_command is self.clean_command

    def clear(self):
        self.undo_stack.clear()
        self.redo_stack.clear()
        self.clean_command = None
        self.cancel_batch()
        self._notify()

    def summary(self) -> dict:
        return {
            "undo_count": len(self.undo_stack),
            "redo_count": len(self.redo_stack),
            "can_undo": self.can_undo(),
            "can_redo": self.can_redo(),
            "undo_label": self.undo_label(),
            "redo_label": self.redo_label(),
        }
