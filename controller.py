"""Controller layer: MainWindow and PosterStudioApp.

Orchestrates the editor session, the persistence collaborators and the views.
"""

from PySide6.QtCore import Qt, QEvent, Signal
from PySide6.QtGui import QAction, QActionGroup, QKeySequence
from PySide6.QtWidgets import (
    QApplication, QMainWindow, QStatusBar, QFileDialog, QMessageBox, QSplitter,
)

from cart import Cart, LineItem
import config
from editor import EditorSession
from errors import EmptyDesignError, PersistenceError
from intake import IMAGE_FILTER, ResolutionAdvisory, read_files
from models import MAX_IMAGES
from persistence import JsonRecordStore, LocalObjectStorage
import pricing
from views import SheetCanvas, StudioPanel, VIEW_LAB, VIEW_ROOM


# === MainWindow ===

class MainWindow(QMainWindow):
    """Top-level window: menu bar, preview canvas, control panel, status bar."""

    design_submitted = Signal(object)  # LineItem

    def __init__(self, session: EditorSession | None = None, storage=None, records=None,
                 cart=None):
        super().__init__()
        self.session = session or EditorSession()
        self.storage = storage or LocalObjectStorage(config.STORAGE_DIR, config.PUBLIC_URL)
        self.records = records or JsonRecordStore(config.RECORDS_DIR)
        self.cart = cart if cart is not None else Cart()
        self._advisory_box: QMessageBox | None = None
        self._error_box: QMessageBox | None = None

        self.setWindowTitle("Wallified Poster Studio")
        self.resize(1200, 860)

        self.canvas = SheetCanvas(self.session)
        self.panel = StudioPanel(self.session)
        splitter = QSplitter(Qt.Orientation.Horizontal)
        splitter.addWidget(self.canvas)
        splitter.addWidget(self.panel)
        splitter.setStretchFactor(0, 3)
        splitter.setStretchFactor(1, 1)
        self.setCentralWidget(splitter)

        self.canvas.files_dropped.connect(self.add_files)
        self.canvas.selection_changed.connect(self._on_selection_changed)
        self.panel.photo_selected.connect(self.canvas.select)
        self.panel.add_requested.connect(self._add_photos)
        self.panel.confirm_requested.connect(self._confirm_design)
        self.session.subscribe(self._on_state_changed)

        self._build_menus()
        self._status = QStatusBar()
        self.setStatusBar(self._status)
        self._on_state_changed()

    def _build_menus(self):
        mb = self.menuBar()

        # --- File menu ---
        file_menu = mb.addMenu("&File")

        act = QAction("&Add Photos...", self)
        act.setShortcut(QKeySequence.StandardKey.Open)
        act.triggered.connect(self._add_photos)
        file_menu.addAction(act)
        self._add_action = act

        act = QAction("&Confirm Design", self)
        act.setShortcut(QKeySequence("Ctrl+Return"))
        act.triggered.connect(self._confirm_design)
        file_menu.addAction(act)
        self._confirm_action = act

        file_menu.addSeparator()

        act = QAction("&Quit", self)
        act.setShortcut(QKeySequence.StandardKey.Quit)
        act.triggered.connect(self.close)
        file_menu.addAction(act)

        # --- Edit menu ---
        edit_menu = mb.addMenu("&Edit")

        self._undo_action = self.session.history.createUndoAction(self, "&Undo")
        self._undo_action.setShortcut(QKeySequence.StandardKey.Undo)
        # Go through the session so an unfinished gesture is committed first.
        self._undo_action.triggered.disconnect()
        self._undo_action.triggered.connect(self.session.undo)
        edit_menu.addAction(self._undo_action)

        self._redo_action = self.session.history.createRedoAction(self, "&Redo")
        self._redo_action.setShortcut(QKeySequence.StandardKey.Redo)
        self._redo_action.triggered.disconnect()
        self._redo_action.triggered.connect(self.session.redo)
        edit_menu.addAction(self._redo_action)

        edit_menu.addSeparator()

        self._delete_action = QAction("&Delete Selected", self)
        # On macOS, the key labeled "delete" sends Backspace, not forward-delete.
        self._delete_action.setShortcuts([
            QKeySequence.StandardKey.Delete,
            QKeySequence(Qt.Key.Key_Backspace),
        ])
        self._delete_action.triggered.connect(self._delete_selected)
        edit_menu.addAction(self._delete_action)

        self._autofit_action = QAction("Auto-&Fit Photo", self)
        self._autofit_action.setShortcut(QKeySequence("Ctrl+F"))
        self._autofit_action.triggered.connect(self._auto_fit_selected)
        edit_menu.addAction(self._autofit_action)

        edit_menu.addSeparator()

        act = QAction("&Reset Design", self)
        act.triggered.connect(self.session.reset_all)
        edit_menu.addAction(act)

        # --- View menu ---
        view_menu = mb.addMenu("&View")
        group = QActionGroup(self)
        self._view_actions = {}
        for mode, label, shortcut in ((VIEW_LAB, "The &Lab", "Ctrl+1"),
                                      (VIEW_ROOM, "The &Room", "Ctrl+2")):
            act = QAction(label, self, checkable=True)
            act.setShortcut(QKeySequence(shortcut))
            act.triggered.connect(lambda checked, m=mode: self.set_view_mode(m))
            group.addAction(act)
            view_menu.addAction(act)
            self._view_actions[mode] = act
        self._view_actions[VIEW_LAB].setChecked(True)

    # --- Selection ---

    @property
    def selected_id(self) -> str | None:
        return self.canvas.selected_id

    def _on_selection_changed(self):
        self.panel.set_selected(self.canvas.selected_id)
        self._update_actions()
        self._update_status()

    def _sync_selection(self):
        """Keep the selection pointing at a photo that still exists."""
        images = self.session.state.images
        selected = self.canvas.selected_id
        if selected is None or any(layer.id == selected for layer in images):
            return
        self.canvas.select(images[-1].id if images else None)

    # --- State changes ---

    def _on_state_changed(self):
        self._sync_selection()
        self.panel.set_selected(self.canvas.selected_id)
        self.canvas.update()
        self._update_actions()
        self._update_status()

    def _update_actions(self):
        has_sel = self.canvas.selected_id is not None
        self._delete_action.setEnabled(has_sel)
        self._autofit_action.setEnabled(has_sel)
        self._add_action.setEnabled(self.session.state.remaining_capacity > 0)

    def _update_status(self):
        state = self.session.state
        health = "Low resolution" if self.session.advisories else "Good"
        if not state.images:
            health = "No photos"
        self._status.showMessage(
            f"{state.image_count}/{MAX_IMAGES} photos | {state.paper_size.display_name} | "
            f"{pricing.format_price(pricing.price(state))} | Print health: {health}")

    def set_view_mode(self, mode: str):
        self.canvas.set_view_mode(mode)
        self._view_actions[mode].setChecked(True)

    # --- Actions ---

    def _add_photos(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Add Photos", "", IMAGE_FILTER)
        if paths:
            self.open_paths(paths)

    def open_paths(self, paths):
        """Add photos by path. Used by Add Photos, argv, and macOS QFileOpenEvent."""
        self.add_files(read_files(paths))

    def add_files(self, files):
        """Add ``(name, bytes)`` photos and report anything that went wrong."""
        result = self.session.add_files(files)
        if result.layers:
            self.canvas.select(result.layers[-1].id)
        if result.errors:
            self._status.showMessage("; ".join(str(e) for e in result.errors), 8000)
        if result.advisories:
            self._show_advisory(result.advisories[0])
        return result

    def _show_advisory(self, advisory: ResolutionAdvisory):
        """Offer a one-click switch to the suggested format; never blocks editing."""
        box = QMessageBox(self)
        box.setIcon(QMessageBox.Icon.Information)
        box.setWindowTitle("Print Resolution")
        box.setText(advisory.message)
        optimize = None
        if advisory.suggested_size_id != advisory.paper_size_id:
            optimize = box.addButton(f"Optimize to {advisory.suggested_size_id}",
                                     QMessageBox.ButtonRole.AcceptRole)
        box.addButton("Keep Current", QMessageBox.ButtonRole.RejectRole)

        def on_clicked(button):
            if button is optimize:
                self.session.set_paper_size(advisory.suggested_size_id)

        box.buttonClicked.connect(on_clicked)
        self._advisory_box = box
        box.open()

    def _show_error(self, title: str, message: str):
        box = QMessageBox(QMessageBox.Icon.Warning, title, message,
                          QMessageBox.StandardButton.Ok, self)
        self._error_box = box
        box.open()

    def _delete_selected(self):
        if self.canvas.selected_id is not None:
            self.session.remove_image(self.canvas.selected_id)

    def _auto_fit_selected(self):
        if self.canvas.selected_id is not None:
            self.session.auto_fit_image(self.canvas.selected_id)

    def _set_submitting(self, busy: bool):
        self._confirm_action.setEnabled(not busy)
        self.panel.confirm_button.setEnabled(not busy)
        if busy:
            self._status.showMessage("Saving design...")

    def _confirm_design(self) -> LineItem | None:
        self._set_submitting(True)
        try:
            item = self.session.submit(self.storage, self.records, self.cart)
        except EmptyDesignError as e:
            self._status.showMessage(str(e), 5000)
            self.panel.tabs.setCurrentIndex(0)
            return None
        except PersistenceError as e:
            self._show_error("Could Not Save Design", str(e))
            return None
        finally:
            self._set_submitting(False)
        self._status.showMessage(
            f"Added {item.name} to cart ({pricing.format_price(item.price)}). "
            f"Cart total: {pricing.format_price(self.cart.total)}", 8000)
        self.design_submitted.emit(item)
        return item


# === PosterStudioApp: custom QApplication for macOS file open events ===

class PosterStudioApp(QApplication):
    """QApplication subclass that handles macOS QFileOpenEvent."""

    file_open_requested = Signal(str)

    def event(self, event):
        if event.type() == QEvent.Type.FileOpen:
            self.file_open_requested.emit(event.file())
            return True
        return super().event(event)
