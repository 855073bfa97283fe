"""Editor state machine: pure operations, undo history and the live session.

Operations take an EditorState and return a new one. Structural operations
(photo set, paper size, layout, border mode, reset) refit every layer through
the geometry engine; continuous ones (drag, sliders, text) only touch the
fields they name and are committed to history at the end of the gesture.
"""

import logging
from dataclasses import replace

from PySide6.QtGui import QUndoCommand, QUndoStack

from errors import CapacityExceededError, PersistenceError
from geometry import fit_all, fit_layer
from intake import IntakeResult, intake, state_advisories
from models import (
    EditorState, ColorAdjustments,
    HISTORY_LIMIT, LAYOUT_MODES, MAX_IMAGES, MAX_SCALE, MIN_SCALE, is_paper_size,
)
from persistence import submit_design
import pricing

logger = logging.getLogger(__name__)


# === Operations ===

def add_images(state: EditorState, layers) -> EditorState:
    layers = tuple(layers)
    if not layers:
        return state
    if len(state.images) + len(layers) > MAX_IMAGES:
        raise CapacityExceededError(0, len(layers), MAX_IMAGES)
    return fit_all(replace(state, images=state.images + layers))


def remove_image(state: EditorState, image_id: str) -> EditorState:
    index = state.index_of(image_id)
    images = state.images[:index] + state.images[index + 1:]
    return fit_all(replace(state, images=images))


def set_transform(state: EditorState, image_id: str, **changes) -> EditorState:
    """Update one layer's transform; a manual scale is clamped to the zoom range."""
    index = state.index_of(image_id)
    if 'scale' in changes:
        changes['scale'] = max(MIN_SCALE, min(float(changes['scale']), MAX_SCALE))
    layer = state.images[index]
    layer = replace(layer, transform=replace(layer.transform, **changes))
    images = state.images[:index] + (layer,) + state.images[index + 1:]
    return replace(state, images=images)


def set_paper_size(state: EditorState, size_id: str) -> EditorState:
    if not is_paper_size(size_id):
        raise ValueError(f"unknown paper size: {size_id!r}")
    if size_id == state.paper_size_id:
        return state
    return fit_all(replace(state, paper_size_id=size_id))


def set_layout_mode(state: EditorState, mode: str) -> EditorState:
    if mode not in LAYOUT_MODES:
        raise ValueError(f"unknown layout mode: {mode!r}")
    if mode == state.layout_mode:
        return state
    return fit_all(replace(state, layout_mode=mode))


def set_borderless(state: EditorState, borderless: bool) -> EditorState:
    borderless = bool(borderless)
    if borderless == state.borderless:
        return state
    return fit_all(replace(state, borderless=borderless))


def set_adjustments(state: EditorState, **changes) -> EditorState:
    return replace(state, adjustments=replace(state.adjustments, **changes))


def set_overlay_text(state: EditorState, **changes) -> EditorState:
    return replace(state, overlay_text=replace(state.overlay_text, **changes))


def auto_fit_image(state: EditorState, image_id: str) -> EditorState:
    """Refit a single layer, resetting its position and rotation."""
    index = state.index_of(image_id)
    layer = fit_layer(state.images[index], state.paper_size.aspect_ratio, len(state.images),
                      index, state.layout_mode, state.borderless)
    images = state.images[:index] + (layer,) + state.images[index + 1:]
    return replace(state, images=images)


def reset_all(state: EditorState) -> EditorState:
    """Start over: refit every photo, neutral tones, no caption."""
    state = replace(
        state,
        adjustments=ColorAdjustments(),
        overlay_text=replace(state.overlay_text, content=""),
    )
    return fit_all(state)


# === History ===

class SnapshotCommand(QUndoCommand):
    """Undoable step: swap between the states before and after one edit."""

    def __init__(self, session: "EditorSession", before: EditorState, after: EditorState,
                 text: str = "Edit Design"):
        super().__init__(text)
        self._session = session
        self.before = before
        self.after = after

    def redo(self):
        self._session._restore(self.after)

    def undo(self):
        self._session._restore(self.before)


class HistoryLog(QUndoStack):
    """Bounded linear undo history of full-state snapshots.

    The state the log starts from counts as one snapshot, so ``limit``
    snapshots allow ``limit - 1`` undo steps. Pushing after an undo drops
    the redo tail.
    """

    def __init__(self, limit: int = HISTORY_LIMIT, parent=None):
        super().__init__(parent)
        self.limit = limit
        self.setUndoLimit(limit - 1)

    def __len__(self):
        return self.count() + 1

    @property
    def cursor(self) -> int:
        """Index of the current snapshot; 0 is the state the log started from."""
        return self.index()

    def push(self, command: QUndoCommand):
        if self.canRedo():
            logger.debug("Discarding %d redo step(s)", self.count() - self.index())
        super().push(command)


# === Session ===

class EditorSession:
    """Owns the live EditorState and its history.

    The initial state is the base of the history, so the very first edit can
    be undone. Listeners registered with ``subscribe`` are called with no
    arguments whenever the live state changes.
    """

    def __init__(self, state: EditorState | None = None, history_limit: int = HISTORY_LIMIT):
        self._state = state if state is not None else EditorState()
        self._committed = self._state
        self.history = HistoryLog(history_limit)
        self.submitting = False
        self._listeners = []

    @property
    def state(self) -> EditorState:
        return self._state

    @property
    def has_pending_edit(self) -> bool:
        """True while a gesture has changed the live state but not been committed."""
        return self._state != self._committed

    def subscribe(self, callback):
        self._listeners.append(callback)

    def _notify(self):
        for callback in self._listeners:
            callback()

    def _restore(self, state: EditorState):
        changed = state is not self._state
        self._state = state
        self._committed = state
        if changed:
            self._notify()

    def _apply(self, new_state: EditorState, commit: bool, text: str = "Edit Design"):
        changed = new_state is not self._state
        self._state = new_state
        if commit:
            self.commit(text)
        if changed:
            self._notify()

    def commit(self, text: str = "Edit Design") -> bool:
        """Close the current gesture: record the live state if it changed."""
        if not self.has_pending_edit:
            return False
        self.history.push(SnapshotCommand(self, self._committed, self._state, text))
        return True

    # --- Structural operations (always snapshot) ---

    def add_images(self, layers):
        self._apply(add_images(self._state, layers), True, "Add Photos")

    def add_files(self, files) -> IntakeResult:
        """Decode and add a batch of ``(name, bytes)`` files.

        Errors are reported in the result rather than raised.
        """
        try:
            result = intake(self._state, files)
        except CapacityExceededError as e:
            return IntakeResult(errors=[e])
        if result.layers:
            self.add_images(result.layers)
        return result

    def remove_image(self, image_id: str):
        self._apply(remove_image(self._state, image_id), True, "Remove Photo")

    def set_paper_size(self, size_id: str):
        self._apply(set_paper_size(self._state, size_id), True, "Change Paper Size")

    def set_layout_mode(self, mode: str):
        self._apply(set_layout_mode(self._state, mode), True, "Change Layout")

    def set_borderless(self, borderless: bool):
        self._apply(set_borderless(self._state, borderless), True, "Toggle Borderless")

    def auto_fit_image(self, image_id: str):
        self._apply(auto_fit_image(self._state, image_id), True, "Auto-Fit Photo")

    def reset_all(self):
        self._apply(reset_all(self._state), True, "Reset Design")

    # --- Continuous operations (snapshot on commit) ---

    def set_transform(self, image_id: str, commit: bool = False, **changes):
        self._apply(set_transform(self._state, image_id, **changes), commit, "Move Photo")

    def set_adjustments(self, commit: bool = False, **changes):
        self._apply(set_adjustments(self._state, **changes), commit, "Adjust Tones")

    def set_overlay_text(self, commit: bool = False, **changes):
        self._apply(set_overlay_text(self._state, **changes), commit, "Edit Text")

    # --- Undo / redo ---

    @property
    def can_undo(self) -> bool:
        return self.history.canUndo() or self.has_pending_edit

    @property
    def can_redo(self) -> bool:
        # A live edit after an undo replaces the redo tail once committed.
        return self.history.canRedo() and not self.has_pending_edit

    def undo(self) -> bool:
        # An unfinished gesture is committed first so undo reverts it as a unit.
        self.commit()
        if not self.history.canUndo():
            return False
        self.history.undo()
        return True

    def redo(self) -> bool:
        self.commit()
        if not self.history.canRedo():
            return False
        self.history.redo()
        return True

    # --- Derived values ---

    @property
    def price(self) -> int:
        return pricing.price(self._state)

    @property
    def advisories(self):
        return state_advisories(self._state)

    # --- Submission ---

    def submit(self, storage, records, cart):
        """Persist the design and hand a line item to *cart*.

        Never changes the editor state, so a failed submission can simply be
        retried.
        """
        if self.submitting:
            raise PersistenceError("A submission is already in progress")
        self.commit()
        self.submitting = True
        try:
            return submit_design(self._state, storage, records, cart)
        finally:
            self.submitting = False
