"""Integration tests for the poster studio window via pytest-qt."""
import pytest
from PySide6.QtCore import QEvent, QPointF, Qt
from PySide6.QtGui import QFileOpenEvent, QMouseEvent

from cart import Cart
from controller import MainWindow
from errors import CapacityExceededError
from models import LAYOUT_SEPARATE
from views import VIEW_LAB, VIEW_ROOM


class MemoryStorage:
    def __init__(self):
        self.objects = {}

    def put(self, data, suggested_name):
        self.objects[suggested_name] = data
        return f"mem://{suggested_name}"


class MemoryRecords:
    def __init__(self, fail=False):
        self.rows = []
        self.fail = fail

    def insert(self, collection, record):
        if self.fail:
            raise OSError("database unavailable")
        stored = {'id': str(len(self.rows) + 1), **record}
        self.rows.append(stored)
        return stored


@pytest.fixture
def main_window(qapp, qtbot):
    """Create a MainWindow with in-memory collaborators, managed by qtbot."""
    win = MainWindow(storage=MemoryStorage(), records=MemoryRecords(), cart=Cart())
    win.resize(1100, 800)
    qtbot.addWidget(win)
    win.show()
    qtbot.waitExposed(win)
    return win


def _mouse(kind, pos, buttons=Qt.MouseButton.LeftButton):
    return QMouseEvent(kind, QPointF(pos), QPointF(pos), Qt.MouseButton.LeftButton,
                       buttons, Qt.KeyboardModifier.NoModifier)


class TestAddPhotos:
    """Simulate adding photos and verify the window follows the session."""

    def test_starts_empty(self, main_window):
        assert "0/4 photos" in main_window._status.currentMessage()
        assert main_window.selected_id is None
        assert main_window.panel.photo_list.count() == 0

    def test_add_selects_newest_photo(self, main_window, sample_files):
        main_window.add_files(sample_files[:2])
        state = main_window.session.state
        assert len(state.images) == 2
        assert main_window.selected_id == state.images[-1].id
        assert main_window.panel.photo_list.count() == 2
        assert main_window.panel.layout_combo.isEnabled()

    def test_status_bar_updates(self, main_window, sample_files):
        main_window.add_files(sample_files[:1])
        message = main_window._status.currentMessage()
        assert "1/4 photos" in message
        assert "₹299" in message

    def test_overflow_is_reported(self, main_window, sample_files, make_png):
        main_window.add_files(sample_files)
        result = main_window.add_files([('fifth.png', make_png(50, 50))])
        assert isinstance(result.errors[0], CapacityExceededError)
        assert "Maximum 4 images" in main_window._status.currentMessage()
        assert len(main_window.session.state.images) == 4
        assert not main_window.panel.add_button.isEnabled()

    def test_open_paths(self, main_window, tmp_path, make_png):
        path = tmp_path / 'wall.png'
        path.write_bytes(make_png(1300, 900))
        main_window.open_paths([str(path)])
        assert main_window.session.state.images[0].source_name == 'wall.png'

    def test_advisory_offers_optimize(self, main_window, make_png):
        main_window.add_files([('small.png', make_png(1500, 1000))])
        box = main_window._advisory_box
        assert box is not None and box.isVisible()
        optimize = [b for b in box.buttons() if b.text().startswith("Optimize")]
        assert optimize and "A6" in optimize[0].text()
        optimize[0].click()
        assert main_window.session.state.paper_size_id == 'A6'


class TestEditing:

    def test_delete_selected_and_undo(self, main_window, sample_files):
        main_window.add_files(sample_files[:2])
        removed = main_window.selected_id
        main_window._delete_action.trigger()
        assert removed not in [l.id for l in main_window.session.state.images]
        assert main_window._undo_action.isEnabled()
        main_window._undo_action.trigger()
        assert removed in [l.id for l in main_window.session.state.images]
        assert main_window._redo_action.isEnabled()

    def test_redo_keeps_a_live_edit_made_after_undo(self, main_window, sample_files):
        main_window.add_files(sample_files[:1])
        session = main_window.session
        session.set_borderless(True)
        main_window._undo_action.trigger()
        assert main_window._redo_action.isEnabled()
        session.set_overlay_text(content="Goa")
        main_window._redo_action.trigger()
        assert session.state.overlay_text.content == "Goa"
        assert not session.state.borderless
        assert not main_window._redo_action.isEnabled()

    def test_click_selects_photo_under_cursor(self, main_window, sample_files):
        main_window.add_files(sample_files[:2])
        canvas = main_window.canvas
        first_id, first_rect, _ = canvas._cells_on_screen()[0]
        canvas.mousePressEvent(_mouse(QEvent.Type.MouseButtonPress, first_rect.center()))
        canvas.mouseReleaseEvent(_mouse(QEvent.Type.MouseButtonRelease, first_rect.center(),
                                        Qt.MouseButton.NoButton))
        assert main_window.selected_id == first_id
        assert main_window.panel.selected_id == first_id

    def test_drag_commits_once(self, main_window, sample_files):
        main_window.add_files(sample_files[:1])
        canvas = main_window.canvas
        image_id, rect, factor = canvas._cells_on_screen()[0]
        history_len = len(main_window.session.history)

        start = rect.center()
        canvas.mousePressEvent(_mouse(QEvent.Type.MouseButtonPress, start))
        for step in range(1, 6):
            canvas.mouseMoveEvent(_mouse(QEvent.Type.MouseMove, start + QPointF(6 * step, 0)))
        assert len(main_window.session.history) == history_len
        canvas.mouseReleaseEvent(_mouse(QEvent.Type.MouseButtonRelease, start + QPointF(30, 0),
                                        Qt.MouseButton.NoButton))

        assert len(main_window.session.history) == history_len + 1
        t = main_window.session.state.layer(image_id).transform
        assert t.offset_x == pytest.approx(30 / factor)
        assert t.offset_y == pytest.approx(0)

    def test_slider_step_commits(self, main_window, sample_files):
        main_window.add_files(sample_files[:1])
        history_len = len(main_window.session.history)
        main_window.panel.brightness_slider.setValue(150)
        assert main_window.session.state.adjustments.brightness == 150
        assert len(main_window.session.history) == history_len + 1

    def test_layout_choice(self, main_window, sample_files):
        main_window.add_files(sample_files[:3])
        panel = main_window.panel
        panel.layout_combo.setCurrentIndex(panel.layout_combo.findData(LAYOUT_SEPARATE))
        assert main_window.session.state.layout_mode == LAYOUT_SEPARATE
        assert "₹897" in main_window._status.currentMessage()

    def test_room_view_has_no_hit_targets(self, main_window, sample_files):
        main_window.add_files(sample_files[:1])
        main_window.set_view_mode(VIEW_ROOM)
        center = main_window.canvas.rect().center()
        assert main_window.canvas.hit_test(QPointF(center)) is None
        main_window.set_view_mode(VIEW_LAB)
        assert main_window._view_actions[VIEW_LAB].isChecked()


class TestConfirmDesign:

    def test_empty_design_is_blocked(self, main_window):
        assert main_window._confirm_design() is None
        assert "Please upload at least one image" in main_window._status.currentMessage()
        assert len(main_window.cart) == 0
        assert main_window.storage.objects == {}

    def test_confirm_adds_to_cart(self, main_window, qtbot, sample_files):
        main_window.add_files(sample_files[:1])
        with qtbot.waitSignal(main_window.design_submitted, timeout=5000) as blocker:
            item = main_window._confirm_design()
        assert blocker.args[0] is item
        assert main_window.cart.items == [item]
        assert item.name == "Wallified Custom A4"
        assert "Added Wallified Custom A4" in main_window._status.currentMessage()

    def test_failure_keeps_design_for_retry(self, main_window, sample_files):
        main_window.add_files(sample_files[:1])
        main_window.records = MemoryRecords(fail=True)
        state = main_window.session.state
        assert main_window._confirm_design() is None
        assert main_window._error_box is not None and main_window._error_box.isVisible()
        assert main_window.session.state is state
        assert not main_window.session.submitting
        assert main_window._confirm_action.isEnabled()
        assert main_window.panel.confirm_button.isEnabled()

        main_window.records = MemoryRecords()
        assert main_window._confirm_design() is not None


class TestApp:

    def test_file_open_event_is_forwarded(self, qapp, qtbot, tmp_path):
        path = str(tmp_path / 'photo.png')
        with qtbot.waitSignal(qapp.file_open_requested, timeout=1000) as blocker:
            qapp.event(QFileOpenEvent(path))
        assert blocker.args == [path]
