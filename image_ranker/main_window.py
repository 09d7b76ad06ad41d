import asyncio
import logging
import os

from PySide6.QtCore import Qt
from PySide6.QtGui import QColor, QDragEnterEvent, QDropEvent
from PySide6.QtWidgets import (QButtonGroup, QFileDialog, QGroupBox, QHBoxLayout, QLabel,
                               QListWidget, QListWidgetItem, QMainWindow, QPushButton,
                               QRadioButton, QStatusBar, QVBoxLayout, QWidget)

from .comparison_view import ComparisonCanvas, HoldButton
from .constants import (DARK_STYLE, DEFAULT_WINDOW_HEIGHT, DEFAULT_WINDOW_WIDTH,
                        HIGHLIGHT_SWATCHES, IMAGE_FILE_FILTER)
from .interaction import PRIMARY_BUTTON
from .models import HighlightColor, SensitivityMode, ViewMode
from .session import ComparisonSession

logger = logging.getLogger(__name__)


class CandidateRow(QWidget):
    """List row: delete button, name and score"""

    def __init__(self, entry, on_delete, parent=None):
        super().__init__(parent)
        layout = QHBoxLayout(self)
        layout.setContentsMargins(4, 2, 4, 2)

        btn_del = QPushButton("×")
        btn_del.setFixedWidth(24)
        btn_del.setToolTip("Remove")
        btn_del.clicked.connect(lambda: on_delete(entry.candidate_id))
        layout.addWidget(btn_del)

        self.lbl_name = QLabel(entry.name)
        self.lbl_name.setToolTip(entry.name)
        layout.addWidget(self.lbl_name, stretch=1)

        self.lbl_score = QLabel(entry.score_text)
        if entry.degraded:
            self.lbl_score.setStyleSheet("color: #ff8844;")
            self.lbl_score.setToolTip("Comparison failed for one or more modes")
        layout.addWidget(self.lbl_score)


class MainWindow(QMainWindow):
    """Reference/candidate ranking window"""

    def __init__(self, session: ComparisonSession = None):
        super().__init__()
        self.session = session or ComparisonSession()
        self._tasks = set()
        self._rendering_list = False
        self._syncing = False
        self._last_rows = None

        self.setWindowTitle("Image Ranker")
        self.resize(DEFAULT_WINDOW_WIDTH, DEFAULT_WINDOW_HEIGHT)
        self.setStyleSheet(DARK_STYLE)
        self.setAcceptDrops(True)

        self._setup_ui()
        self.session.subscribe(self._render)
        self._render(self.session.snapshot())

    # ── UI construction ──
    def _setup_ui(self):
        central = QWidget()
        self.setCentralWidget(central)
        layout = QHBoxLayout(central)

        sidebar = QVBoxLayout()
        layout.addLayout(sidebar)

        # Reference
        self.grp_reference = QGroupBox("Reference")
        ref_layout = QVBoxLayout(self.grp_reference)
        btn_ref = QPushButton("Load Reference...")
        btn_ref.clicked.connect(self.load_reference)
        ref_layout.addWidget(btn_ref)
        self.lbl_reference = QLabel("(none)")
        ref_layout.addWidget(self.lbl_reference)
        sidebar.addWidget(self.grp_reference)

        # Candidates
        self.grp_candidates = QGroupBox("Candidates")
        cand_layout = QVBoxLayout(self.grp_candidates)
        btn_add = QPushButton("Add Candidates...")
        btn_add.clicked.connect(self.add_candidates)
        cand_layout.addWidget(btn_add)
        self.lbl_count = QLabel("0 items")
        cand_layout.addWidget(self.lbl_count)
        self.list_candidates = QListWidget()
        self.list_candidates.setMinimumWidth(260)
        self.list_candidates.currentItemChanged.connect(self._on_item_changed)
        cand_layout.addWidget(self.list_candidates, stretch=1)
        sidebar.addWidget(self.grp_candidates, stretch=1)

        # Sensitivity
        grp_sens = QGroupBox("Sensitivity")
        sens_layout = QVBoxLayout(grp_sens)
        self.sensitivity_group = QButtonGroup(self)
        self.sensitivity_buttons = {}
        for mode in SensitivityMode:
            rb = QRadioButton(mode.label)
            self.sensitivity_group.addButton(rb)
            self.sensitivity_buttons[mode] = rb
            rb.toggled.connect(lambda checked, m=mode: self._on_sensitivity(m, checked))
            sens_layout.addWidget(rb)
        sidebar.addWidget(grp_sens)

        # Highlight color
        grp_color = QGroupBox("Diff color")
        color_layout = QHBoxLayout(grp_color)
        self.swatch_buttons = []
        for rgb in HIGHLIGHT_SWATCHES:
            btn = QPushButton()
            btn.setFixedSize(22, 22)
            btn.setCheckable(True)
            btn.setStyleSheet(f"background-color: {QColor(*rgb).name()}; border-radius: 11px;")
            btn.clicked.connect(lambda checked, c=rgb: self._on_swatch(c))
            color_layout.addWidget(btn)
            self.swatch_buttons.append((rgb, btn))
        sidebar.addWidget(grp_color)

        # Comparison area
        right = QVBoxLayout()
        layout.addLayout(right, stretch=1)

        toolbar = QHBoxLayout()
        self.btn_slider = QPushButton("Slider")
        self.btn_diff = QPushButton("Diff")
        self.view_mode_group = QButtonGroup(self)
        for btn, mode in ((self.btn_slider, ViewMode.SLIDER), (self.btn_diff, ViewMode.DIFF)):
            btn.setCheckable(True)
            self.view_mode_group.addButton(btn)
            btn.clicked.connect(lambda checked, m=mode: self.session.set_view_mode(m))
            toolbar.addWidget(btn)
        toolbar.addStretch()
        self.btn_hold = HoldButton()
        self.btn_hold.entered.connect(self.session.pointer_enter_control)
        self.btn_hold.exited.connect(self.session.pointer_leave_control)
        self.btn_hold.pressed_primary.connect(lambda: self.session.pointer_down(PRIMARY_BUTTON))
        self.btn_hold.released_primary.connect(self._on_hold_released)
        toolbar.addWidget(self.btn_hold)
        self.lbl_metrics = QLabel("")
        toolbar.addWidget(self.lbl_metrics)
        right.addLayout(toolbar)

        self.canvas = ComparisonCanvas()
        self.canvas.pointer_moved.connect(self.session.pointer_move)
        right.addWidget(self.canvas, stretch=1)

        self.status_bar = QStatusBar()
        self.setStatusBar(self.status_bar)

    # ── Rendering ──
    def _render(self, snap):
        """Apply a session snapshot to the widgets"""
        if snap.reference_name:
            w, h = snap.reference_size
            self.lbl_reference.setText(f"{snap.reference_name} ({w}x{h})")
        else:
            self.lbl_reference.setText("(none)")
        self.lbl_count.setText(snap.count_text)

        self._syncing = True
        try:
            self.sensitivity_buttons[snap.sensitivity].setChecked(True)
        finally:
            self._syncing = False
        self.btn_slider.setChecked(snap.view_mode == ViewMode.SLIDER)
        self.btn_diff.setChecked(snap.view_mode == ViewMode.DIFF)
        for rgb, btn in self.swatch_buttons:
            btn.setChecked(tuple(rgb) == snap.highlight_color.as_tuple())

        self._render_list(snap)

        m = snap.current_metrics
        if m is not None and m.psnr is not None:
            self.lbl_metrics.setText(f"PSNR {m.psnr:.2f} dB  SSIM {m.ssim:.4f}")
        else:
            self.lbl_metrics.setText("")

        store = self.session.store
        reference = store.reference
        current = store.get(snap.current_id) if snap.current_id in store else None
        self.canvas.set_images(
            store.epoch, reference.pixels if reference is not None else None,
            current.id if current is not None else None,
            current.image.pixels if current is not None else None,
            snap.current_diff_image)
        self.canvas.set_snapshot(snap)

        self.status_bar.showMessage(snap.status)

    def _render_list(self, snap):
        ids = [self.list_candidates.item(i).data(Qt.ItemDataRole.UserRole)
               for i in range(self.list_candidates.count())]
        rows = [(e.candidate_id, e.score_text, e.degraded) for e in snap.entries]
        if self._last_rows == rows and ids == [r[0] for r in rows]:
            self._sync_list_selection(snap.current_id)
            return
        self._last_rows = rows

        self._rendering_list = True
        try:
            self.list_candidates.clear()
            for entry in snap.entries:
                item = QListWidgetItem()
                item.setData(Qt.ItemDataRole.UserRole, entry.candidate_id)
                row = CandidateRow(entry, self._on_delete)
                item.setSizeHint(row.sizeHint())
                self.list_candidates.addItem(item)
                self.list_candidates.setItemWidget(item, row)
        finally:
            self._rendering_list = False
        self._sync_list_selection(snap.current_id)

    def _sync_list_selection(self, current_id):
        self._rendering_list = True
        try:
            for i in range(self.list_candidates.count()):
                item = self.list_candidates.item(i)
                if item.data(Qt.ItemDataRole.UserRole) == current_id:
                    self.list_candidates.setCurrentItem(item)
                    break
            else:
                self.list_candidates.setCurrentItem(None)
        finally:
            self._rendering_list = False

    # ── Actions ──
    def load_reference(self):
        file_path, _ = QFileDialog.getOpenFileName(self, "Select Reference Image", "",
                                                   IMAGE_FILE_FILTER)
        if file_path:
            self._spawn(self.session.set_reference(file_path))

    def add_candidates(self):
        paths, _ = QFileDialog.getOpenFileNames(self, "Select Candidate Images", "",
                                                IMAGE_FILE_FILTER)
        if paths:
            self._spawn(self.session.add_candidates(paths))

    async def preload(self, reference=None, candidates=()):
        """Load files given on the command line"""
        if reference:
            await self.session.set_reference(reference)
        if candidates:
            await self.session.add_candidates(candidates)

    def _on_item_changed(self, current, previous):
        if self._rendering_list or current is None:
            return
        self.session.select(current.data(Qt.ItemDataRole.UserRole))

    def _on_sensitivity(self, mode, checked):
        if checked and not self._syncing:
            self.session.set_sensitivity(mode)

    def _on_delete(self, candidate_id):
        self.session.remove_candidate(candidate_id)

    def _on_swatch(self, rgb):
        self._spawn(self.session.set_highlight_color(HighlightColor.from_tuple(rgb)))

    def _on_hold_released(self, inside):
        if not inside:
            self.session.pointer_leave_control()
        self.session.pointer_up(PRIMARY_BUTTON)

    def _spawn(self, coro):
        """Run a session coroutine on the event loop, logging failures"""
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task):
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed: %s", exc, exc_info=exc)
            self.status_bar.showMessage(f"Error: {exc}")

    # ── Drag & drop ──
    def dragEnterEvent(self, event: QDragEnterEvent):
        if event.mimeData().hasUrls():
            event.acceptProposedAction()

    def dropEvent(self, event: QDropEvent):
        paths = [u.toLocalFile() for u in event.mimeData().urls()]
        paths = [p for p in paths if p and os.path.isfile(p)]
        if not paths:
            return
        pos = self.grp_reference.mapFrom(self, event.position().toPoint())
        if self.grp_reference.rect().contains(pos):
            self._spawn(self.session.set_reference(paths[0]))
        else:
            self._spawn(self.session.add_candidates(paths))
