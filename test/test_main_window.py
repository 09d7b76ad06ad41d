"""
Test MainWindow wiring to the comparison session.
"""
import asyncio
import pytest
import sys
from PySide6.QtCore import Qt
from PySide6.QtWidgets import QApplication

from image_ranker.models import Reveal, SensitivityMode, ViewMode
from image_ranker.session import ComparisonSession

from helpers import FakeEngine, FakeTimer, make_image


@pytest.fixture
def qapp():
    """Create QApplication instance for tests"""
    app = QApplication.instance()
    if app is None:
        app = QApplication(sys.argv)
    return app


@pytest.fixture
def window(qapp):
    from image_ranker.main_window import MainWindow
    engine = FakeEngine(scores={
        ("ref.png", "a.png"): {SensitivityMode.EXACT: 5.0, SensitivityMode.IGNORE_COLORS: 1.0},
        ("ref.png", "b.png"): {SensitivityMode.EXACT: 2.0, SensitivityMode.IGNORE_COLORS: 3.0},
    })
    session = ComparisonSession(engine=engine, timer=FakeTimer())
    return MainWindow(session)


def populate(window):
    async def load():
        await window.preload(make_image("ref.png", size=(48, 64)),
                             [make_image("a.png"), make_image("b.png")])
    asyncio.run(load())


def row_ids(window):
    lst = window.list_candidates
    return [lst.item(i).data(Qt.ItemDataRole.UserRole) for i in range(lst.count())]


def test_main_window_creation(qapp):
    """Test that MainWindow can be created without errors."""
    from image_ranker.main_window import MainWindow
    window = MainWindow(ComparisonSession(engine=FakeEngine(), timer=FakeTimer()))
    assert window.windowTitle() == "Image Ranker"
    assert hasattr(window, 'canvas')
    assert hasattr(window, 'btn_hold')
    assert hasattr(window, 'status_bar')
    assert window.lbl_count.text() == "0 items"
    assert window.lbl_reference.text() == "(none)"
    assert window.sensitivity_buttons[SensitivityMode.EXACT].isChecked()
    assert window.btn_slider.isChecked()


def test_list_follows_ranking(window):
    populate(window)
    snap = window.session.snapshot()
    assert window.lbl_count.text() == "2 items"
    assert window.lbl_reference.text() == "ref.png (64x48)"
    assert row_ids(window) == [e.candidate_id for e in snap.entries]
    assert window.list_candidates.currentItem().data(Qt.ItemDataRole.UserRole) == snap.current_id
    assert window.status_bar.currentMessage() == "Done."


def test_sensitivity_radio_resorts(window):
    populate(window)
    engine = window.session.engine
    calls = len(engine.calls)
    names = lambda: [e.name for e in window.session.entries]
    assert names() == ["b.png", "a.png"]

    window.sensitivity_buttons[SensitivityMode.IGNORE_COLORS].setChecked(True)
    assert window.session.sensitivity == SensitivityMode.IGNORE_COLORS
    assert names() == ["a.png", "b.png"]
    assert row_ids(window) == [e.candidate_id for e in window.session.entries]
    assert len(engine.calls) == calls


def test_selecting_row_selects_candidate(window):
    populate(window)
    other = row_ids(window)[1]
    window.list_candidates.setCurrentRow(1)
    assert window.session.current_id == other


def test_delete_button_removes_row(window):
    populate(window)
    first = row_ids(window)[0]
    window._on_delete(first)
    assert first not in row_ids(window)
    assert window.lbl_count.text() == "1 items"


def test_hold_button_drives_reveal(window):
    populate(window)
    window.btn_hold.entered.emit()
    assert window.session.snapshot().reveal == Reveal.CANDIDATE
    window.btn_hold.pressed_primary.emit()
    assert window.session.snapshot().reveal == Reveal.BASE
    window.btn_hold.released_primary.emit(False)
    assert window.session.snapshot().reveal == Reveal.NONE


def test_view_mode_buttons(window):
    populate(window)
    window.btn_diff.click()
    assert window.session.snapshot().view_mode == ViewMode.DIFF
    assert window.btn_diff.isChecked()
    window.btn_slider.click()
    assert window.session.snapshot().view_mode == ViewMode.SLIDER
