"""
Interaction state machine for the comparison view.

Tracks the persistent view mode (slider wipe or full diff), the remembered
wipe position and the momentary reveal override driven by the
hold-to-compare control, and derives what should be drawn and which edge
labels are shown. Independent of any widget toolkit: input arrives as
abstract pointer events and label auto-hide goes through a LabelTimer.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Optional

from .constants import DEFAULT_WIPE_PERCENT, LABEL_HIDE_DELAY_MS
from .models import Reveal, ViewMode

logger = logging.getLogger(__name__)

PRIMARY_BUTTON = 0


@dataclass(frozen=True)
class ViewContext:
    """What is currently being compared. None means nothing to show."""
    candidate_name: str
    reference_name: str
    has_diff_image: bool


@dataclass(frozen=True)
class LabelState:
    left: str = ""
    right: str = ""
    visible: bool = False


@dataclass(frozen=True)
class RenderPlan:
    """Visual layers for the comparison area. Percentages are of image width."""
    empty: bool = True
    show_base: bool = False
    candidate_clip_percent: float = 100.0
    candidate_opacity: float = 1.0
    diff_opacity: float = 0.0
    divider_visible: bool = False
    divider_percent: float = DEFAULT_WIPE_PERCENT


class LabelTimer:
    """Single-shot timer used to auto-hide labels."""

    def start(self, delay_ms, callback):
        """Schedule callback; return a handle with a cancel() method."""
        raise NotImplementedError


class AsyncioLabelTimer(LabelTimer):
    def start(self, delay_ms, callback):
        loop = asyncio.get_running_loop()
        return loop.call_later(delay_ms / 1000.0, callback)


class InteractionStateMachine:
    def __init__(self, timer: LabelTimer, hide_delay_ms=LABEL_HIDE_DELAY_MS,
                 wipe_percent=DEFAULT_WIPE_PERCENT, on_labels_hidden=None):
        self.timer = timer
        self.hide_delay_ms = hide_delay_ms
        self.on_labels_hidden = on_labels_hidden

        self.mode = ViewMode.SLIDER
        self.wipe_percent = _clamp(wipe_percent)
        self.reveal = Reveal.NONE
        self.labels = LabelState()

        self._hovering = False
        self._holding = False
        self._context: Optional[ViewContext] = None
        self._hide_handle = None

    @property
    def label_timer_pending(self):
        return self._hide_handle is not None

    # -- external state changes ---------------------------------------------

    def refresh(self, context: Optional[ViewContext]):
        """Selection, sensitivity or reference changed."""
        self._context = context
        self._reset_reveal()
        self._flash_labels()

    def set_view_mode(self, mode: ViewMode):
        if mode != self.mode:
            logger.debug("View mode switched to: %s", mode.value)
        self.mode = mode
        self._reset_reveal()
        self._flash_labels()

    # -- pointer events -----------------------------------------------------

    def pointer_enter_control(self):
        self._hovering = True
        if self._context is None:
            return False
        self.reveal = Reveal.CANDIDATE
        self._flash_labels()
        return True

    def pointer_leave_control(self):
        self._hovering = False
        if self._holding or self._context is None:
            return False
        self.reveal = Reveal.NONE
        self._flash_labels()
        return True

    def pointer_down(self, button=PRIMARY_BUTTON):
        """Press on the control."""
        if button != PRIMARY_BUTTON:
            return False
        self._hovering = True
        # no reveal without something to compare
        if self._context is None:
            return False
        self._holding = True
        self.reveal = Reveal.BASE
        self._flash_labels()
        return True

    def pointer_up(self, button=PRIMARY_BUTTON):
        """Release anywhere. Only ends a hold started on the control."""
        if button != PRIMARY_BUTTON or not self._holding:
            return False
        self._holding = False
        self.reveal = Reveal.CANDIDATE if self._hovering else Reveal.NONE
        self._flash_labels()
        return True

    def pointer_move(self, x, width):
        """Pointer moved over the comparison area; x is relative to its left edge."""
        if self.mode != ViewMode.SLIDER or self.reveal != Reveal.NONE:
            return False
        if self._hovering or self._holding or width <= 0:
            return False
        self.wipe_percent = _clamp(x / float(width) * 100.0)
        return True

    # -- derived state ------------------------------------------------------

    def render_plan(self) -> RenderPlan:
        ctx = self._context
        if ctx is None:
            return RenderPlan()

        if self.reveal == Reveal.CANDIDATE:
            return RenderPlan(empty=False, show_base=True, candidate_clip_percent=100.0,
                              divider_percent=self.wipe_percent)
        if self.reveal == Reveal.BASE:
            return RenderPlan(empty=False, show_base=True, candidate_clip_percent=0.0,
                              candidate_opacity=0.0, divider_percent=self.wipe_percent)

        if self.mode == ViewMode.DIFF and ctx.has_diff_image:
            return RenderPlan(empty=False, show_base=True, candidate_clip_percent=100.0,
                              diff_opacity=1.0, divider_percent=self.wipe_percent)

        # slider wipe, also used for diff mode when no diff image exists
        return RenderPlan(empty=False, show_base=True,
                          candidate_clip_percent=self.wipe_percent,
                          divider_visible=True, divider_percent=self.wipe_percent)

    def _label_texts(self):
        ctx = self._context
        if self.reveal == Reveal.CANDIDATE:
            return ctx.candidate_name, ""
        if self.reveal == Reveal.BASE:
            return "", ctx.reference_name
        if self.mode == ViewMode.SLIDER:
            return ctx.candidate_name, ctx.reference_name
        return ctx.candidate_name, ""

    # -- internals ----------------------------------------------------------

    def _reset_reveal(self):
        self._holding = False
        self.reveal = Reveal.NONE

    def _flash_labels(self):
        self._cancel_hide()
        if self._context is None:
            self.labels = LabelState()
            return

        left, right = self._label_texts()
        self.labels = LabelState(left=left, right=right, visible=True)
        if self.reveal == Reveal.NONE:
            self._hide_handle = self.timer.start(self.hide_delay_ms, self._hide_labels)

    def _cancel_hide(self):
        if self._hide_handle is not None:
            self._hide_handle.cancel()
            self._hide_handle = None

    def _hide_labels(self):
        self._hide_handle = None
        self.labels = replace(self.labels, visible=False)
        if self.on_labels_hidden is not None:
            self.on_labels_hidden()


def _clamp(pct):
    return max(0.0, min(100.0, float(pct)))
