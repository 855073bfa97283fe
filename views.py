"""View layer: Qt widgets for display and interaction.

Contains SheetCanvas (the Lab / Room preview) and StudioPanel (the tabbed
control panel). Both read the EditorSession and call its operations; the
window wires them together.
"""

from PIL import Image
from PySide6.QtCore import Qt, QRectF, QPointF, QByteArray, QBuffer, QIODevice, Signal
from PySide6.QtGui import QImage, QPixmap, QPainter, QPen, QColor, QFont
from PySide6.QtWidgets import (
    QWidget, QTabWidget, QFormLayout, QComboBox, QVBoxLayout, QHBoxLayout, QPushButton,
    QListWidget, QSlider, QCheckBox, QLineEdit, QSpinBox, QLabel, QColorDialog,
)

from editor import EditorSession
from geometry import sheet_groups
from models import (
    EditorState, FONTS, PAPER_SIZES, LAYOUT_COMBINED, LAYOUT_SEPARATE,
    MIN_SCALE, MAX_SCALE, MIN_FONT_SIZE, MAX_FONT_SIZE, MAX_ADJUSTMENT, REFERENCE_SHEET_HEIGHT,
)
import preview
import pricing

VIEW_LAB = "lab"
VIEW_ROOM = "room"


def pil_to_qimage(img: Image.Image) -> QImage:
    img = img.convert("RGBA")
    data = img.tobytes("raw", "RGBA")
    return QImage(data, img.width, img.height, img.width * 4, QImage.Format.Format_RGBA8888).copy()


def qimage_to_png(qimage: QImage) -> bytes:
    ba = QByteArray()
    buf = QBuffer(ba)
    buf.open(QIODevice.OpenModeFlag.WriteOnly)
    qimage.save(buf, "PNG")
    buf.close()
    return bytes(ba.data())


# === SheetCanvas: Lab / Room preview ===

class SheetCanvas(QWidget):
    """Shows the rendered sheets and lets the user pick and drag photos."""

    files_dropped = Signal(list)  # list of (name, bytes)
    selection_changed = Signal()

    PADDING = 20
    SHEET_SPACING = 24

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.view_mode = VIEW_LAB
        self.selected_id: str | None = None
        self._cache_key = None
        self._state_ref: EditorState | None = None
        self._pixmaps: list[QPixmap] = []
        self._sheet_rects: list[QRectF] = []
        self._drag_start: QPointF | None = None
        self._drag_origin = (0.0, 0.0)
        self._dragged = False
        self.setMinimumSize(400, 500)
        self.setAcceptDrops(True)
        self.setFocusPolicy(Qt.FocusPolicy.StrongFocus)

    def set_view_mode(self, mode: str):
        if mode not in (VIEW_LAB, VIEW_ROOM):
            raise ValueError(f"unknown view mode: {mode!r}")
        self.view_mode = mode
        self.update()

    def select(self, image_id: str | None):
        if image_id != self.selected_id:
            self.selected_id = image_id
            self.selection_changed.emit()
            self.update()

    # --- Layout ---

    def _sheet_height(self, state: EditorState, count: int) -> int:
        """Largest sheet height that fits *count* sheets side by side."""
        ratio = state.paper_size.aspect_ratio
        avail_w = max(1, self.width() - 2 * self.PADDING - self.SHEET_SPACING * (count - 1))
        avail_h = max(1, self.height() - 2 * self.PADDING)
        return max(1, int(min(avail_h, avail_w / (count * ratio))))

    def _room_height(self) -> int:
        avail_w = max(1, self.width() - 2 * self.PADDING)
        avail_h = max(1, self.height() - 2 * self.PADDING)
        return max(1, int(min(avail_h, avail_w / preview.ROOM_ASPECT)))

    def _ensure_rendered(self):
        """Re-render only when the state object, view mode or widget size changed."""
        state = self.session.state
        key = (self.view_mode, self.width(), self.height())
        if self._state_ref is state and key == self._cache_key:
            return
        self._state_ref = state
        self._cache_key = key

        if self.view_mode == VIEW_ROOM:
            images = [preview.render_room(state, self._room_height())]
        else:
            groups = sheet_groups(state)
            height = self._sheet_height(state, len(groups))
            images = [preview.render_sheet(state, group, height) for group in groups]
        self._pixmaps = [QPixmap.fromImage(pil_to_qimage(img)) for img in images]

        total_w = sum(p.width() for p in self._pixmaps) + self.SHEET_SPACING * (len(images) - 1)
        x = (self.width() - total_w) / 2
        self._sheet_rects = []
        for pix in self._pixmaps:
            y = (self.height() - pix.height()) / 2
            self._sheet_rects.append(QRectF(x, y, pix.width(), pix.height()))
            x += pix.width() + self.SHEET_SPACING

    def _cells_on_screen(self) -> list[tuple[str, QRectF, float]]:
        """(layer id, screen rect, render factor) for every visible cell in lab mode."""
        if self.view_mode != VIEW_LAB:
            return []
        self._ensure_rendered()
        state = self.session.state
        cells = []
        for group, rect in zip(sheet_groups(state), self._sheet_rects):
            height = int(rect.height())
            factor = height / REFERENCE_SHEET_HEIGHT
            for index, (x, y, w, h) in preview.sheet_cells(state, group, height):
                cells.append((state.images[index].id,
                              QRectF(rect.x() + x, rect.y() + y, w, h), factor))
        return cells

    def hit_test(self, pos) -> str | None:
        """Return the id of the photo under the given widget position, or None."""
        point = QPointF(pos.x(), pos.y())
        for image_id, rect, _ in self._cells_on_screen():
            if rect.contains(point):
                return image_id
        return None

    # --- Painting ---

    def paintEvent(self, event):
        self._ensure_rendered()
        painter = QPainter(self)
        painter.setRenderHint(QPainter.RenderHint.SmoothPixmapTransform)
        painter.fillRect(self.rect(), QColor(24, 24, 27))

        for pix, rect in zip(self._pixmaps, self._sheet_rects):
            if self.view_mode == VIEW_LAB:
                painter.fillRect(rect.translated(4, 4), QColor(0, 0, 0, 90))
            painter.drawPixmap(rect.topLeft(), pix)

        if self.view_mode == VIEW_LAB:
            if not self.session.state.images and self._sheet_rects:
                self._paint_placeholder(painter, self._sheet_rects[0])
            self._paint_selection(painter)
        painter.end()

    def _paint_placeholder(self, painter, rect: QRectF):
        font = QFont()
        font.setBold(True)
        font.setPixelSize(max(8, int(rect.width() / 7)))
        painter.setFont(font)
        painter.setPen(QColor(0, 0, 0, 20))
        painter.drawText(rect, Qt.AlignmentFlag.AlignCenter, "WALLIFIED")

    def _paint_selection(self, painter):
        """Draw a highlight border around the selected photo's cell."""
        for image_id, rect, _ in self._cells_on_screen():
            if image_id == self.selected_id:
                painter.setPen(QPen(QColor(220, 38, 38), 2, Qt.PenStyle.DashLine))
                painter.setBrush(Qt.BrushStyle.NoBrush)
                painter.drawRect(rect)
                break

    def resizeEvent(self, event):
        self._cache_key = None
        super().resizeEvent(event)

    # --- Mouse: select and drag ---

    def mousePressEvent(self, event):
        if event.button() == Qt.MouseButton.LeftButton:
            hit = self.hit_test(event.position())
            self.select(hit)
            if hit is not None:
                t = self.session.state.layer(hit).transform
                self._drag_start = event.position()
                self._drag_origin = (t.offset_x, t.offset_y)
                self._dragged = False
                self.setCursor(Qt.CursorShape.ClosedHandCursor)
            event.accept()
            return
        super().mousePressEvent(event)

    def mouseMoveEvent(self, event):
        if self._drag_start is None or self.selected_id is None:
            super().mouseMoveEvent(event)
            return
        factor = next((f for image_id, _, f in self._cells_on_screen()
                       if image_id == self.selected_id), 1.0)
        delta = event.position() - self._drag_start
        # Offsets are stored in reference pixels, independent of the zoom on screen.
        self.session.set_transform(
            self.selected_id,
            offset_x=self._drag_origin[0] + delta.x() / factor,
            offset_y=self._drag_origin[1] + delta.y() / factor,
        )
        self._dragged = True
        event.accept()

    def mouseReleaseEvent(self, event):
        if self._drag_start is not None and event.button() == Qt.MouseButton.LeftButton:
            self._drag_start = None
            self.unsetCursor()
            if self._dragged:
                self.session.commit()
            event.accept()
            return
        super().mouseReleaseEvent(event)

    # --- Drag and drop ---

    def dragEnterEvent(self, event):
        mime = event.mimeData()
        if mime.hasImage() or mime.hasUrls():
            event.acceptProposedAction()

    def dragMoveEvent(self, event):
        event.acceptProposedAction()

    def dropEvent(self, event):
        mime = event.mimeData()
        files: list[tuple[str, bytes]] = []

        if mime.hasUrls():
            for url in mime.urls():
                path = url.toLocalFile()
                if path:
                    try:
                        with open(path, 'rb') as f:
                            files.append((url.fileName(), f.read()))
                    except OSError:
                        files.append((url.fileName(), b""))

        if not files and mime.hasImage():
            qimg = QImage(mime.imageData())
            if not qimg.isNull():
                files.append(("dropped-image.png", qimage_to_png(qimg)))

        if files:
            self.files_dropped.emit(files)
        event.acceptProposedAction()


# === StudioPanel: tabbed controls ===

class StudioPanel(QWidget):
    """Photos / Canvas / Position / Tones / Text tabs plus the price footer."""

    add_requested = Signal()
    confirm_requested = Signal()
    photo_selected = Signal(str)

    def __init__(self, session: EditorSession, parent=None):
        super().__init__(parent)
        self.session = session
        self.selected_id: str | None = None
        self.setMinimumWidth(320)

        layout = QVBoxLayout(self)
        self.tabs = QTabWidget()
        self.tabs.addTab(self._build_photos_tab(), "Photos")
        self.tabs.addTab(self._build_canvas_tab(), "Canvas")
        self.tabs.addTab(self._build_position_tab(), "Position")
        self.tabs.addTab(self._build_tones_tab(), "Tones")
        self.tabs.addTab(self._build_text_tab(), "Text")
        layout.addWidget(self.tabs)

        footer = QHBoxLayout()
        self.price_label = QLabel()
        self.price_label.setStyleSheet("font-size: 20px; font-weight: bold;")
        footer.addWidget(self.price_label)
        footer.addStretch()
        self.confirm_button = QPushButton("Confirm Design")
        self.confirm_button.clicked.connect(self.confirm_requested)
        footer.addWidget(self.confirm_button)
        layout.addLayout(footer)

        self.refresh()

    # --- Tab builders ---

    def _build_photos_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        self.photo_list = QListWidget()
        self.photo_list.currentRowChanged.connect(self._on_photo_row_changed)
        layout.addWidget(self.photo_list)

        buttons = QHBoxLayout()
        self.add_button = QPushButton("Add Photos…")
        self.add_button.clicked.connect(self.add_requested)
        buttons.addWidget(self.add_button)
        self.remove_button = QPushButton("Remove")
        self.remove_button.clicked.connect(self._remove_selected)
        buttons.addWidget(self.remove_button)
        layout.addLayout(buttons)

        form = QFormLayout()
        self.layout_combo = QComboBox()
        self.layout_combo.addItem("Combined Poster", LAYOUT_COMBINED)
        self.layout_combo.addItem("Separate Prints", LAYOUT_SEPARATE)
        self.layout_combo.currentIndexChanged.connect(
            lambda i: self.session.set_layout_mode(self.layout_combo.itemData(i)))
        form.addRow("Layout:", self.layout_combo)
        layout.addLayout(form)
        return page

    def _build_canvas_tab(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        self.size_combo = QComboBox()
        for size in PAPER_SIZES:
            self.size_combo.addItem(f"{size.display_name} ({size.dimensions})", size.id)
        self.size_combo.currentIndexChanged.connect(
            lambda i: self.session.set_paper_size(self.size_combo.itemData(i)))
        form.addRow("Format:", self.size_combo)

        self.borderless_check = QCheckBox(
            f"Borderless (+{pricing.format_price(pricing.unit_price(True) - pricing.unit_price(False))})")
        self.borderless_check.toggled.connect(self.session.set_borderless)
        form.addRow("Finish:", self.borderless_check)
        return page

    def _build_position_tab(self) -> QWidget:
        page = QWidget()
        layout = QVBoxLayout(page)
        form = QFormLayout()
        self.zoom_slider = self._slider(int(MIN_SCALE * 100), int(MAX_SCALE * 100),
                                        lambda v, c: self._set_transform(c, scale=v / 100))
        form.addRow("Zoom:", self.zoom_slider)
        self.rotate_slider = self._slider(-180, 180,
                                          lambda v, c: self._set_transform(c, rotate_degrees=v))
        form.addRow("Rotate:", self.rotate_slider)
        layout.addLayout(form)

        self.autofit_button = QPushButton("Auto-Fit Photo")
        self.autofit_button.clicked.connect(self._auto_fit_selected)
        layout.addWidget(self.autofit_button)
        self.reset_button = QPushButton("Reset Entire Design")
        self.reset_button.clicked.connect(self.session.reset_all)
        layout.addWidget(self.reset_button)
        layout.addStretch()
        return page

    def _build_tones_tab(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        self.brightness_slider = self._slider(
            0, MAX_ADJUSTMENT, lambda v, c: self.session.set_adjustments(commit=c, brightness=v))
        form.addRow("Brightness:", self.brightness_slider)
        self.contrast_slider = self._slider(
            0, MAX_ADJUSTMENT, lambda v, c: self.session.set_adjustments(commit=c, contrast=v))
        form.addRow("Contrast:", self.contrast_slider)
        self.saturation_slider = self._slider(
            0, MAX_ADJUSTMENT, lambda v, c: self.session.set_adjustments(commit=c, saturation=v))
        form.addRow("Saturation:", self.saturation_slider)
        return page

    def _build_text_tab(self) -> QWidget:
        page = QWidget()
        form = QFormLayout(page)
        self.text_edit = QLineEdit()
        self.text_edit.setPlaceholderText("Add a caption")
        self.text_edit.textEdited.connect(lambda s: self.session.set_overlay_text(content=s))
        self.text_edit.editingFinished.connect(self.session.commit)
        form.addRow("Text:", self.text_edit)

        self.font_combo = QComboBox()
        for font in FONTS:
            self.font_combo.addItem(font.name, font.id)
        self.font_combo.currentIndexChanged.connect(
            lambda i: self.session.set_overlay_text(commit=True, font_id=self.font_combo.itemData(i)))
        form.addRow("Font:", self.font_combo)

        self.font_size_spin = QSpinBox()
        self.font_size_spin.setRange(MIN_FONT_SIZE, MAX_FONT_SIZE)
        self.font_size_spin.setSuffix(" px")
        self.font_size_spin.valueChanged.connect(
            lambda v: self.session.set_overlay_text(commit=True, font_size_px=v))
        form.addRow("Size:", self.font_size_spin)

        self.color_button = QPushButton()
        self.color_button.clicked.connect(self._pick_color)
        form.addRow("Colour:", self.color_button)

        self.text_x_slider = self._slider(
            0, 100, lambda v, c: self.session.set_overlay_text(commit=c, x_percent=v))
        form.addRow("Across:", self.text_x_slider)
        self.text_y_slider = self._slider(
            0, 100, lambda v, c: self.session.set_overlay_text(commit=c, y_percent=v))
        form.addRow("Down:", self.text_y_slider)
        return page

    def _slider(self, low: int, high: int, apply) -> QSlider:
        """Horizontal slider calling ``apply(value, commit)``.

        Moves while the handle is held are live; the release commits once.
        Keyboard and wheel steps commit immediately.
        """
        slider = QSlider(Qt.Orientation.Horizontal)
        slider.setRange(low, high)
        slider.valueChanged.connect(lambda v: apply(v, not slider.isSliderDown()))
        slider.sliderReleased.connect(self.session.commit)
        return slider

    # --- Actions ---

    def set_selected(self, image_id: str | None):
        self.selected_id = image_id
        self.refresh()

    def _on_photo_row_changed(self, row: int):
        images = self.session.state.images
        if 0 <= row < len(images) and images[row].id != self.selected_id:
            self.photo_selected.emit(images[row].id)

    def _remove_selected(self):
        if self.selected_id is not None:
            self.session.remove_image(self.selected_id)

    def _auto_fit_selected(self):
        if self.selected_id is not None:
            self.session.auto_fit_image(self.selected_id)

    def _set_transform(self, commit: bool, **changes):
        if self.selected_id is not None:
            self.session.set_transform(self.selected_id, commit=commit, **changes)

    def _pick_color(self):
        current = QColor(self.session.state.overlay_text.color_hex)
        color = QColorDialog.getColor(current, self, "Text Colour")
        if color.isValid():
            self.session.set_overlay_text(commit=True, color_hex=color.name())

    # --- Sync from state ---

    def refresh(self):
        """Load every control from the live state without feeding changes back."""
        state = self.session.state
        controls = (
            self.photo_list, self.layout_combo, self.size_combo, self.borderless_check,
            self.zoom_slider, self.rotate_slider, self.brightness_slider, self.contrast_slider,
            self.saturation_slider, self.text_edit, self.font_combo, self.font_size_spin,
            self.text_x_slider, self.text_y_slider,
        )
        for w in controls:
            w.blockSignals(True)

        self.photo_list.clear()
        for i, layer in enumerate(state.images, 1):
            self.photo_list.addItem(
                f"{i}. {layer.source_name or 'Photo'} ({layer.natural_width}×{layer.natural_height})")
        selected = None
        if self.selected_id is not None:
            try:
                selected = state.layer(self.selected_id)
                self.photo_list.setCurrentRow(state.index_of(self.selected_id))
            except KeyError:
                selected = None

        self.layout_combo.setCurrentIndex(self.layout_combo.findData(state.layout_mode))
        self.layout_combo.setEnabled(state.image_count >= 2)
        self.size_combo.setCurrentIndex(self.size_combo.findData(state.paper_size_id))
        self.borderless_check.setChecked(state.borderless)

        has_sel = selected is not None
        for w in (self.remove_button, self.zoom_slider, self.rotate_slider, self.autofit_button):
            w.setEnabled(has_sel)
        if has_sel:
            if not self.zoom_slider.isSliderDown():
                self.zoom_slider.setValue(round(selected.transform.scale * 100))
            if not self.rotate_slider.isSliderDown():
                self.rotate_slider.setValue(round(selected.transform.rotate_degrees))

        adj = state.adjustments
        self.brightness_slider.setValue(adj.brightness)
        self.contrast_slider.setValue(adj.contrast)
        self.saturation_slider.setValue(adj.saturation)

        text = state.overlay_text
        if self.text_edit.text() != text.content:
            self.text_edit.setText(text.content)
        self.font_combo.setCurrentIndex(max(0, self.font_combo.findData(text.font_id)))
        self.font_size_spin.setValue(text.font_size_px)
        self.color_button.setText(text.color_hex)
        self.color_button.setStyleSheet(f"background-color: {text.color_hex};")
        self.text_x_slider.setValue(round(text.x_percent))
        self.text_y_slider.setValue(round(text.y_percent))

        self.add_button.setEnabled(state.remaining_capacity > 0)
        self.price_label.setText(pricing.format_price(pricing.price(state)))
        for w in controls:
            w.blockSignals(False)
