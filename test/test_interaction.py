"""
Hold-to-compare control, wipe slider and label auto-hide.
"""
import pytest

from image_ranker.interaction import (InteractionStateMachine, LabelState, RenderPlan,
                                      ViewContext)
from image_ranker.models import Reveal, ViewMode

from helpers import FakeTimer

CTX = ViewContext(candidate_name="cand.png", reference_name="ref.png", has_diff_image=True)


@pytest.fixture
def timer():
    return FakeTimer()


@pytest.fixture
def sm(timer):
    machine = InteractionStateMachine(timer, hide_delay_ms=2000)
    machine.refresh(CTX)
    return machine


def test_initial_state(timer):
    machine = InteractionStateMachine(timer)
    assert machine.mode == ViewMode.SLIDER
    assert machine.reveal == Reveal.NONE
    assert machine.wipe_percent == 50.0
    assert machine.labels == LabelState()
    assert machine.render_plan() == RenderPlan()


def test_hover_reveals_candidate(sm, timer):
    sm.pointer_enter_control()
    assert sm.reveal == Reveal.CANDIDATE
    assert sm.labels == LabelState("cand.png", "", True)
    # labels stay while a reveal is active
    assert not timer.active


def test_hold_reveals_base(sm):
    sm.pointer_enter_control()
    sm.pointer_down()
    assert sm.reveal == Reveal.BASE
    assert sm.labels == LabelState("", "ref.png", True)
    plan = sm.render_plan()
    assert plan.candidate_clip_percent == 0.0
    assert plan.candidate_opacity == 0.0


def test_release_while_hovering_returns_to_candidate(sm):
    sm.pointer_enter_control()
    sm.pointer_down()
    sm.pointer_up()
    assert sm.reveal == Reveal.CANDIDATE


def test_leave_restores_resting_view(sm, timer):
    sm.pointer_enter_control()
    sm.pointer_leave_control()
    assert sm.reveal == Reveal.NONE
    assert sm.labels == LabelState("cand.png", "ref.png", True)
    assert len(timer.active) == 1


def test_leave_while_holding_keeps_base(sm):
    sm.pointer_enter_control()
    sm.pointer_down()
    assert sm.pointer_leave_control() is False
    assert sm.reveal == Reveal.BASE


def test_release_outside_control_clears_reveal(sm):
    sm.pointer_enter_control()
    sm.pointer_down()
    sm.pointer_leave_control()
    sm.pointer_up()
    assert sm.reveal == Reveal.NONE


def test_non_primary_button_is_ignored(sm):
    sm.pointer_enter_control()
    assert sm.pointer_down(button=2) is False
    assert sm.reveal == Reveal.CANDIDATE
    assert sm.pointer_up(button=2) is False


def test_release_without_hold_is_ignored(sm):
    assert sm.pointer_up() is False
    assert sm.reveal == Reveal.NONE


def test_pointer_move_sets_wipe(sm):
    assert sm.pointer_move(30, 200)
    assert sm.wipe_percent == 15.0
    sm.pointer_move(-10, 200)
    assert sm.wipe_percent == 0.0
    sm.pointer_move(500, 200)
    assert sm.wipe_percent == 100.0

    plan = sm.render_plan()
    assert plan.candidate_clip_percent == 100.0
    assert plan.divider_visible


def test_pointer_move_ignored_in_diff_mode(sm):
    sm.set_view_mode(ViewMode.DIFF)
    assert sm.pointer_move(10, 100) is False
    assert sm.wipe_percent == 50.0


def test_pointer_move_ignored_during_reveal(sm):
    sm.pointer_enter_control()
    assert sm.pointer_move(10, 100) is False
    assert sm.wipe_percent == 50.0


def test_pointer_move_ignores_zero_width(sm):
    assert sm.pointer_move(10, 0) is False


def test_wipe_survives_selection_and_mode_changes(sm):
    sm.pointer_move(25, 100)
    sm.refresh(ViewContext("other.png", "ref.png", True))
    sm.set_view_mode(ViewMode.DIFF)
    sm.set_view_mode(ViewMode.SLIDER)
    assert sm.wipe_percent == 25.0


def test_refresh_resets_reveal(sm):
    sm.pointer_enter_control()
    sm.pointer_down()
    sm.refresh(CTX)
    assert sm.reveal == Reveal.NONE
    # hold ended by the refresh
    assert sm.pointer_up() is False


def test_diff_mode_render_and_labels(sm):
    sm.set_view_mode(ViewMode.DIFF)
    plan = sm.render_plan()
    assert plan.diff_opacity == 1.0
    assert not plan.divider_visible
    assert sm.labels == LabelState("cand.png", "", True)


def test_diff_mode_without_diff_image_falls_back_to_slider(sm):
    sm.refresh(ViewContext("cand.png", "ref.png", has_diff_image=False))
    sm.set_view_mode(ViewMode.DIFF)
    plan = sm.render_plan()
    assert plan.diff_opacity == 0.0
    assert plan.candidate_clip_percent == sm.wipe_percent


def test_reveal_candidate_hides_diff(sm):
    sm.set_view_mode(ViewMode.DIFF)
    sm.pointer_enter_control()
    plan = sm.render_plan()
    assert plan.diff_opacity == 0.0
    assert plan.candidate_clip_percent == 100.0


def test_labels_auto_hide(timer):
    hidden = []
    machine = InteractionStateMachine(timer, on_labels_hidden=lambda: hidden.append(True))
    machine.refresh(CTX)
    assert machine.labels.visible
    assert timer.active[0].delay_ms == 2000

    timer.fire()
    assert not machine.labels.visible
    assert machine.labels.left == "cand.png"
    assert hidden == [True]
    assert not machine.label_timer_pending


def test_new_event_restarts_label_timer(sm, timer):
    first = timer.active[0]
    sm.set_view_mode(ViewMode.DIFF)
    assert first.cancelled
    assert len(timer.active) == 1


def test_reveal_cancels_pending_hide(sm, timer):
    pending = timer.active[0]
    sm.pointer_enter_control()
    assert pending.cancelled
    assert not timer.active


def test_no_context_shows_nothing(sm, timer):
    sm.refresh(None)
    assert sm.labels == LabelState()
    assert sm.render_plan().empty
    assert not timer.active


def test_no_reveal_without_selection(timer):
    machine = InteractionStateMachine(timer)
    assert machine.pointer_enter_control() is False
    assert machine.reveal == Reveal.NONE
    assert machine.pointer_down() is False
    assert machine.reveal == Reveal.NONE
    assert machine.pointer_up() is False
    assert machine.pointer_leave_control() is False
    assert machine.render_plan().empty
