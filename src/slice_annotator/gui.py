"""PyQt5 GUI for placing channels on image slices."""
from __future__ import annotations

import logging
import math
from pathlib import Path
from typing import Dict, Optional

import numpy as np
import pyqtgraph as pg
from PyQt5 import QtCore
from PyQt5.QtCore import QRectF, Qt
from PyQt5.QtGui import QKeySequence
from PyQt5.QtWidgets import (
    QApplication,
    QFileDialog,
    QGridLayout,
    QLabel,
    QMainWindow,
    QPushButton,
    QShortcut,
    QSpinBox,
    QStatusBar,
    QWidget,
)

from slice_annotator.annotations import save_annotations
from slice_annotator.controller import (
    CTRL_KEY_BINDINGS,
    KEY_BINDINGS,
    ArcMode,
    KeyCommand,
    Transition,
)
from slice_annotator.display import arc_markers, channel_label
from slice_annotator.session import AnnotationSession

LOGGER = logging.getLogger(__name__)

ARROW_KEYS = {
    "up": Qt.Key_Up,
    "down": Qt.Key_Down,
    "left": Qt.Key_Left,
    "right": Qt.Key_Right,
}
LABEL_OFFSET = 20
ARC_MARKER_COLOR = "m"


def _qt_key(name: str) -> int:
    if name in ARROW_KEYS:
        return ARROW_KEYS[name]
    return getattr(Qt, f"Key_{name.upper()}")


class SliceViewBox(pg.ViewBox):
    """ViewBox that reports left clicks in image coordinates."""

    sigImageClicked = QtCore.pyqtSignal(float, float, bool)

    def __init__(self, parent=None):
        super().__init__(parent, enableMenu=False, lockAspect=True, invertY=True)

    def mouseClickEvent(self, ev):
        if ev.button() == Qt.LeftButton:
            pos = self.mapSceneToView(ev.scenePos())
            shift = bool(ev.modifiers() & Qt.ShiftModifier)
            self.sigImageClicked.emit(pos.x(), pos.y(), shift)
            ev.accept()
        else:
            super().mouseClickEvent(ev)


class ProgressViewBox(pg.ViewBox):
    """Strip of one cell per channel; clicking a cell selects that channel."""

    sigChannelClicked = QtCore.pyqtSignal(int)

    def __init__(self, num_channels: int, parent=None):
        super().__init__(parent, enableMenu=False, enableMouse=False)
        self.num_channels = num_channels

    def mouseClickEvent(self, ev):
        if ev.button() == Qt.LeftButton:
            pos = self.mapSceneToView(ev.scenePos())
            channel = max(1, min(math.ceil(pos.x()), self.num_channels))
            self.sigChannelClicked.emit(channel)
            ev.accept()
        else:
            super().mouseClickEvent(ev)


class SliceAnnotatorWindow(QMainWindow):
    """Main window: slice image, channel overlay, progress strip and controls."""

    def __init__(self, session: AnnotationSession) -> None:
        super().__init__()
        self.setWindowTitle("Annotate Slices")

        self.session = session
        self.controller = session.controller
        self.state = self.controller.initial_state()
        self.num_channels = self.controller.num_channels
        self._shown_slice_index: Optional[int] = None
        self._brushes = [
            pg.mkBrush(tuple(int(round(value * 255)) for value in row)) for row in session.colors
        ]

        pg.setConfigOptions(imageAxisOrder="row-major")
        self._setup_ui()
        self._setup_shortcuts()
        self._show_slice()
        self._refresh_overlay()
        self._sync_channel_spinner()
        self._set_status("Click to place the selected channel. Shift-click three times to place an arc.")

    # UI setup
    def _setup_ui(self) -> None:
        central = QWidget()
        self.setCentralWidget(central)
        grid = QGridLayout()
        central.setLayout(grid)

        grid.addWidget(self._build_progress_strip(), 0, 0, 1, 2)
        grid.addWidget(self._build_image_panel(), 1, 0, 5, 1)

        spinner_label = QLabel("Channel")
        spinner_label.setAlignment(Qt.AlignHCenter | Qt.AlignBottom)
        spinner_label.setStyleSheet("font-weight: bold; font-size: 16px;")
        grid.addWidget(spinner_label, 1, 1)

        self.channel_spinner = QSpinBox()
        self.channel_spinner.setRange(1, self.num_channels)
        self.channel_spinner.setAlignment(Qt.AlignHCenter)
        self.channel_spinner.setFocusPolicy(Qt.ClickFocus)
        self.channel_spinner.valueChanged.connect(self._on_channel_spinner_changed)
        grid.addWidget(self.channel_spinner, 2, 1)

        instructions = QLabel(
            "Up/W, Down/S: change slice.\n"
            "Right/D, Left/A: change channel.\n"
            "Shift-click start, end, then control point to place an arc.\n"
            "Ctrl+Z undoes the last placement."
        )
        instructions.setWordWrap(True)
        grid.addWidget(instructions, 3, 1)

        save_button = QPushButton("Save")
        save_button.clicked.connect(self._save_annotations)
        grid.addWidget(save_button, 5, 1)

        grid.setColumnStretch(0, 1)
        grid.setRowStretch(4, 1)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

    def _build_progress_strip(self) -> pg.PlotWidget:
        self.progress_box = ProgressViewBox(self.num_channels)
        self.progress_box.sigChannelClicked.connect(self._on_progress_clicked)
        plot_item = pg.PlotItem(viewBox=self.progress_box)
        plot_item.hideAxis("left")
        plot_item.hideAxis("bottom")
        self.progress_widget = pg.PlotWidget(plotItem=plot_item, background="w")
        self.progress_widget.setFixedHeight(50)

        self.progress_image = pg.ImageItem()
        self.progress_widget.addItem(self.progress_image)
        for channel in range(1, self.num_channels + 1):
            label = pg.TextItem(str(channel), color="k", anchor=(0, 0.5))
            label.setPos(channel - 1, 0.5)
            self.progress_widget.addItem(label)
        self.progress_box.setRange(xRange=(0, self.num_channels), yRange=(0, 1), padding=0)
        return self.progress_widget

    def _build_image_panel(self) -> pg.PlotWidget:
        self.view_box = SliceViewBox()
        self.view_box.sigImageClicked.connect(self._on_image_clicked)
        plot_item = pg.PlotItem(viewBox=self.view_box)
        plot_item.hideAxis("left")
        plot_item.hideAxis("bottom")
        self.image_widget = pg.PlotWidget(plotItem=plot_item, background="w")

        self.image_item = pg.ImageItem()
        self.image_widget.addItem(self.image_item)

        self.marker_item = pg.ScatterPlotItem(pxMode=True)
        self.marker_item.setZValue(10)
        self.image_widget.addItem(self.marker_item)

        self.arc_item = pg.ScatterPlotItem(
            symbol="+", size=16, pen=pg.mkPen(ARC_MARKER_COLOR, width=1), brush=pg.mkBrush(ARC_MARKER_COLOR)
        )
        self.arc_item.setZValue(12)
        self.image_widget.addItem(self.arc_item)

        self.label_items: Dict[int, pg.TextItem] = {}
        for record in self.session.store.records():
            color = self._brushes[record.original_channel - 1].color()
            label = pg.TextItem(channel_label(record), color=color, anchor=(0, 0.5))
            label.setZValue(11)
            label.setVisible(False)
            self.image_widget.addItem(label)
            self.label_items[record.original_channel] = label
        return self.image_widget

    def _setup_shortcuts(self) -> None:
        self._shortcuts = []
        for key, command in KEY_BINDINGS.items():
            self._add_shortcut(QKeySequence(_qt_key(key)), command)
        for key, command in CTRL_KEY_BINDINGS.items():
            self._add_shortcut(QKeySequence(Qt.CTRL | _qt_key(key)), command)

        save_shortcut = QShortcut(QKeySequence(Qt.CTRL | Qt.Key_S), self)
        save_shortcut.setContext(Qt.WidgetWithChildrenShortcut)
        save_shortcut.activated.connect(self._save_annotations)
        self._shortcuts.append(save_shortcut)

    def _add_shortcut(self, sequence: QKeySequence, command: KeyCommand) -> None:
        shortcut = QShortcut(sequence, self)
        shortcut.setContext(Qt.WidgetWithChildrenShortcut)
        shortcut.activated.connect(lambda command=command: self._handle_command(command))
        self._shortcuts.append(shortcut)

    def _shortcut_allowed(self) -> bool:
        return not isinstance(QApplication.focusWidget(), QSpinBox)

    # Event handling
    def _on_image_clicked(self, x: float, y: float, shift: bool) -> None:
        transition = self.controller.handle_click(self.state, x, y, shift)
        self._apply(transition)
        if transition.state.arc_mode is ArcMode.AWAIT_END:
            self._set_status("Shift-click to set the arc endpoint.")
        elif transition.state.arc_mode is ArcMode.AWAIT_CONTROL:
            self._set_status("Shift-click to set the control point.")
        elif transition.channels:
            self._set_status(self._placement_text(transition))

    def _handle_command(self, command: KeyCommand) -> None:
        if not self._shortcut_allowed():
            return
        transition = self.controller.handle_key(self.state, command)
        self._apply(transition)
        if command is KeyCommand.UNDO:
            if transition.channels:
                self._set_status(f"Undid channel(s) {', '.join(map(str, transition.channels))}.")
            else:
                self._set_status("Nothing to undo.")

    def _on_progress_clicked(self, channel: int) -> None:
        self.state = self.controller.select_channel(self.state, channel)
        self._sync_channel_spinner()

    def _on_channel_spinner_changed(self, value: int) -> None:
        if value != self.state.selected_channel:
            self.state = self.controller.select_channel(self.state, value)
        self.image_widget.setFocus()

    def _apply(self, transition: Transition) -> None:
        self.state = transition.state
        if transition.refresh:
            self._show_slice()
            self._refresh_overlay()
        self._update_arc_markers()
        self._sync_channel_spinner()

    def keyPressEvent(self, event) -> None:  # type: ignore[override]
        if event.key() == Qt.Key_Shift:
            self.setCursor(Qt.CrossCursor)
            return
        super().keyPressEvent(event)

    def keyReleaseEvent(self, event) -> None:  # type: ignore[override]
        if event.key() == Qt.Key_Shift:
            self.unsetCursor()
            return
        super().keyReleaseEvent(event)

    # Display helpers
    def _show_slice(self) -> None:
        index = self.state.slice_index
        if index == self._shown_slice_index:
            return
        image = self.session.stack.read(index)
        if image is None:
            self._set_status(f"Failed to read {self.session.stack.path(index).name}.")
        else:
            self.image_item.setImage(image)
            self.view_box.autoRange(padding=0)
        self._shown_slice_index = index
        self.image_widget.getPlotItem().setTitle(f"Slice {self.controller.slice_id(self.state)}")

    def _refresh_overlay(self) -> None:
        overlay = self.session.display.refresh(self.controller.slice_id(self.state))
        size = self.session.config.marker_size
        spots = [
            {
                "pos": (marker.x, marker.y),
                "size": size,
                "symbol": "o",
                "pen": None,
                "brush": self._brushes[channel - 1],
            }
            for channel, marker in overlay.visible.items()
        ]
        self.marker_item.setData(spots=spots)

        for channel, label in self.label_items.items():
            marker = overlay.visible.get(channel)
            if marker is None:
                label.setVisible(False)
            else:
                label.setPos(marker.x + LABEL_OFFSET, marker.y)
                label.setVisible(True)
        self._update_progress(overlay.placed)

    def _update_progress(self, placed) -> None:
        strip = np.zeros((1, self.num_channels, 3), dtype=np.uint8)
        if placed:
            indices = np.asarray(placed) - 1
            strip[0, indices] = (self.session.colors[indices] * 255).astype(np.uint8)
        self.progress_image.setImage(strip, levels=(0, 255))
        self.progress_image.setRect(QRectF(0, 0, self.num_channels, 1))

    def _update_arc_markers(self) -> None:
        points = arc_markers(self.state)
        if points:
            self.arc_item.setData(pos=list(points))
        else:
            self.arc_item.clear()
        if self.state.arc_active:
            self.setCursor(Qt.CrossCursor)
        else:
            self.unsetCursor()

    def _sync_channel_spinner(self) -> None:
        self.channel_spinner.blockSignals(True)
        self.channel_spinner.setValue(self.state.selected_channel)
        self.channel_spinner.blockSignals(False)

    def _placement_text(self, transition: Transition) -> str:
        channels = transition.channels
        slice_id = self.controller.slice_id(self.state)
        if len(channels) == 1:
            return f"Placed channel {channels[0]} on slice {slice_id}."
        return f"Placed channels {channels[0]}-{channels[-1]} on slice {slice_id}."

    def _save_annotations(self) -> None:
        selected, _ = QFileDialog.getSaveFileName(
            self,
            "Save Annotations As",
            str(self.session.default_output_path),
            "CSV files (*.csv)",
        )
        if not selected:
            return
        path = Path(selected)
        try:
            save_annotations(path, self.session.store.records())
        except OSError as exc:
            LOGGER.error("Failed to save annotations to %s: %s", path, exc)
            self._set_status(f"Failed to save annotations: {exc}")
            return
        self._set_status(f"Saved {len(self.session.store.placed_channels())} placed channel(s) to {path.name}")

    def _set_status(self, message: str) -> None:
        self.status_bar.showMessage(message)
