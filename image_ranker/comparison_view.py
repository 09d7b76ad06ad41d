"""
Comparison canvas for the image ranker.
Renders the reference, the selected candidate and its diff overlay according
to the RenderPlan in a SessionSnapshot, plus the hold-to-compare button.
"""

import logging
from typing import Optional

import numpy as np
from PySide6.QtCore import Qt, QRect, QRectF, Signal
from PySide6.QtGui import QColor, QFont, QImage, QMouseEvent, QPainter, QPen
from PySide6.QtWidgets import QPushButton, QWidget

logger = logging.getLogger(__name__)

EMPTY_HINT = "Load a reference and candidate images to begin comparison"


def rgba_to_qimage(img: np.ndarray) -> Optional[QImage]:
    """Convert an RGBA numpy array to QImage"""
    if img is None:
        return None
    h, w = img.shape[:2]
    data = np.ascontiguousarray(img)
    # .copy() so QImage owns its data (prevents corruption when numpy is GC'd)
    return QImage(data.data, w, h, 4 * w, QImage.Format.Format_RGBA8888).copy()


def png_to_qimage(data: Optional[bytes]) -> Optional[QImage]:
    if not data:
        return None
    img = QImage.fromData(data)
    if img.isNull():
        logger.warning("Diff image could not be decoded (%d bytes)", len(data))
        return None
    return img


class ComparisonCanvas(QWidget):
    """Canvas that draws base / clipped candidate / diff overlay"""

    pointer_moved = Signal(float, float)  # (x relative to image, image width)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setMinimumSize(480, 360)

        self.base_image: Optional[QImage] = None
        self.candidate_image: Optional[QImage] = None
        self.diff_image: Optional[QImage] = None
        self._base_key = None
        self._candidate_key = None
        self._diff_png = None

        self.snapshot = None

        # Enable mouse tracking so the wipe follows the pointer without a button held
        self.setMouseTracking(True)

    def set_images(self, base_key, base_pixels, candidate_key, candidate_pixels, diff_png):
        """Update images; conversions are skipped when the keys are unchanged."""
        if base_key != self._base_key:
            self.base_image = rgba_to_qimage(base_pixels)
            self._base_key = base_key
        if candidate_key != self._candidate_key:
            self.candidate_image = rgba_to_qimage(candidate_pixels)
            self._candidate_key = candidate_key
        if diff_png is not self._diff_png:
            self.diff_image = png_to_qimage(diff_png)
            self._diff_png = diff_png

    def set_snapshot(self, snapshot):
        self.snapshot = snapshot
        self.update()

    def image_rect(self) -> QRect:
        """Rectangle the reference occupies, scaled to fit and centered"""
        if self.base_image is None:
            return QRect()
        iw, ih = self.base_image.width(), self.base_image.height()
        if iw == 0 or ih == 0:
            return QRect()
        scale = min(self.width() / iw, self.height() / ih, 1.0)
        w, h = int(iw * scale), int(ih * scale)
        return QRect((self.width() - w) // 2, (self.height() - h) // 2, w, h)

    def mouseMoveEvent(self, event: QMouseEvent):
        """Forward pointer position relative to the image for the wipe"""
        rect = self.image_rect()
        if rect.isEmpty():
            return
        x = event.position().x() - rect.left()
        self.pointer_moved.emit(float(x), float(rect.width()))

    def paintEvent(self, event):
        """Render the comparison view"""
        painter = QPainter(self)
        painter.fillRect(self.rect(), Qt.GlobalColor.black)

        snap = self.snapshot
        if snap is None or snap.render.empty or self.base_image is None:
            painter.setPen(Qt.GlobalColor.white)
            painter.drawText(self.rect(), Qt.AlignmentFlag.AlignCenter, EMPTY_HINT)
            return

        plan = snap.render
        rect = self.image_rect()

        if plan.show_base:
            painter.drawImage(rect, self.base_image)

        if self.candidate_image is not None and plan.candidate_opacity > 0:
            clip_w = int(rect.width() * plan.candidate_clip_percent / 100.0)
            painter.save()
            painter.setClipRect(QRect(rect.left(), rect.top(), clip_w, rect.height()))
            painter.setOpacity(plan.candidate_opacity)
            painter.drawImage(rect, self.candidate_image)
            painter.restore()

        if self.diff_image is not None and plan.diff_opacity > 0:
            painter.setOpacity(plan.diff_opacity)
            painter.drawImage(rect, self.diff_image)
            painter.setOpacity(1.0)

        if plan.divider_visible:
            x = rect.left() + int(rect.width() * plan.divider_percent / 100.0)
            painter.setPen(QPen(QColor(255, 255, 255), 2))
            painter.drawLine(x, rect.top(), x, rect.bottom())

        if snap.labels.visible:
            self._paint_labels(painter, rect, snap.labels)

    def _paint_labels(self, painter: QPainter, rect: QRect, labels):
        font = QFont(self.font())
        font.setBold(True)
        painter.setFont(font)
        metrics = painter.fontMetrics()
        pad = 6
        for text, left_edge in ((labels.left, True), (labels.right, False)):
            if not text:
                continue
            tw = metrics.horizontalAdvance(text) + 2 * pad
            th = metrics.height() + pad
            x = rect.left() + pad if left_edge else rect.right() - tw - pad
            box = QRectF(x, rect.top() + pad, tw, th)
            painter.fillRect(box, QColor(0, 0, 0, 160))
            painter.setPen(Qt.GlobalColor.white)
            painter.drawText(box, Qt.AlignmentFlag.AlignCenter, text)


class HoldButton(QPushButton):
    """Hover shows the candidate, press-and-hold shows the reference"""

    entered = Signal()
    exited = Signal()
    pressed_primary = Signal()
    released_primary = Signal(bool)  # True if released over the button

    def __init__(self, text="Hold to compare", parent=None):
        super().__init__(text, parent)
        self.setMouseTracking(True)

    def enterEvent(self, event):
        super().enterEvent(event)
        self.entered.emit()

    def leaveEvent(self, event):
        super().leaveEvent(event)
        self.exited.emit()

    def mousePressEvent(self, event: QMouseEvent):
        super().mousePressEvent(event)
        if event.button() == Qt.MouseButton.LeftButton:
            self.pressed_primary.emit()

    def mouseReleaseEvent(self, event: QMouseEvent):
        super().mouseReleaseEvent(event)
        if event.button() == Qt.MouseButton.LeftButton:
            inside = self.rect().contains(event.position().toPoint())
            self.released_primary.emit(inside)
