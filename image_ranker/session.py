"""
Comparison session: the single state container behind the UI.

All mutation goes through ComparisonSession methods. After every change an
immutable SessionSnapshot is built and handed to subscribers; the
presentation layer renders snapshots and never writes session state.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

from .candidate_store import CandidateStore, RecomputeScope
from .config import SessionConfig
from .diff_engine import DiffEngine
from .errors import DecodeError, InvalidSelection
from .image_io import load_image
from .interaction import (PRIMARY_BUTTON, AsyncioLabelTimer, InteractionStateMachine,
                          LabelState, RenderPlan, ViewContext)
from .models import CandidateMetrics, HighlightColor, LoadedImage, Reveal, SensitivityMode, ViewMode
from .ranking import RankedEntry, rank_candidates

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionSnapshot:
    view_mode: ViewMode
    wipe_percent: float
    reveal: Reveal
    sensitivity: SensitivityMode
    highlight_color: HighlightColor
    entries: Tuple[RankedEntry, ...]
    current_id: Optional[str]
    current_diff_image: Optional[bytes]
    current_metrics: Optional[CandidateMetrics]
    labels: LabelState
    render: RenderPlan
    reference_name: Optional[str]
    reference_size: Optional[Tuple[int, int]]
    status: str
    busy: bool

    @property
    def count_text(self):
        return f"{len(self.entries)} items"

    def entry(self, candidate_id):
        for e in self.entries:
            if e.candidate_id == candidate_id:
                return e
        return None


class ComparisonSession:
    def __init__(self, config: Optional[SessionConfig] = None, engine=None, timer=None):
        self.config = config or SessionConfig()
        self.engine = engine or DiffEngine(max_workers=self.config.max_workers)
        self.store = CandidateStore(self.engine, self.config.highlight_color)
        self.interaction = InteractionStateMachine(
            timer or AsyncioLabelTimer(),
            hide_delay_ms=self.config.label_hide_delay_ms,
            wipe_percent=self.config.initial_wipe_percent,
            on_labels_hidden=self._publish)

        self.sensitivity = self.config.sensitivity
        self.current_id: Optional[str] = None
        self.status = ""
        self._batches = 0
        self._entries: List[RankedEntry] = []
        self._listeners: List[Callable[[SessionSnapshot], None]] = []
        self._snapshot = self._build_snapshot()

    # -- observation --------------------------------------------------------

    def subscribe(self, listener):
        """Call listener(snapshot) after every change. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def snapshot(self) -> SessionSnapshot:
        return self._snapshot

    @property
    def entries(self):
        return list(self._entries)

    # -- reference & candidates ---------------------------------------------

    async def set_reference(self, source, name=None):
        """
        Load and set the reference image, recomputing existing candidates.

        Returns False if the file could not be decoded; the previous reference
        stays in place.
        """
        try:
            image = await self._load(source, name)
        except DecodeError as e:
            logger.warning("Reference rejected: %s", e)
            self._set_status(f"Cannot load reference: {e}")
            return False

        if len(self.store):
            self._set_status("Recalculating...")
        await self.store.set_reference(image, progress=self._recalc_progress)

        self._resort()
        self._ensure_selection()
        self.interaction.refresh(self._view_context())
        self._finish("Done." if len(self.store) else f"Reference: {image.name} ({image.size_text})")
        return True

    async def add_candidates(self, sources):
        """Ingest a batch of files concurrently. Returns the candidates that were added."""
        sources = list(sources)
        if not sources:
            return []
        total = len(sources)
        processed = 0
        failures = []
        self._set_status(f"Processing {total} new files...")

        async def ingest(source):
            nonlocal processed
            try:
                image = await self._load(source)
            except DecodeError as e:
                logger.warning("Candidate rejected: %s", e)
                failures.append(e.name)
                return None
            candidate = await self.store.add_candidate(image)
            processed += 1
            self._set_status(f"Processed {processed}/{total}")
            return candidate

        # finished candidates stay out of the published list until the batch is complete
        self._batches += 1
        try:
            outcome = await asyncio.gather(*(ingest(s) for s in sources))
        finally:
            self._batches -= 1
        added = [c for c in outcome if c is not None]

        self._resort()
        if self._ensure_selection():
            self.interaction.refresh(self._view_context())
        if failures:
            self._set_status(f"Done. {len(failures)} file(s) could not be decoded: "
                             + ", ".join(failures))
        else:
            self._finish()
        return added

    async def add_candidate(self, source):
        added = await self.add_candidates([source])
        return added[0] if added else None

    def remove_candidate(self, candidate_id):
        """Delete a candidate. Unknown ids are ignored. Returns True if removed."""
        if candidate_id not in self.store:
            logger.warning("%s", InvalidSelection(candidate_id))
            return False

        previous = self.current_id
        if candidate_id == previous:
            self.current_id = self._neighbour_of(candidate_id)

        self.store.remove_candidate(candidate_id)
        self._resort()
        self._ensure_selection()
        if self.current_id != previous:
            self.interaction.refresh(self._view_context())
        self._publish()
        return True

    def select(self, candidate_id):
        """Make a candidate current. Unknown ids are a no-op. Returns True on success."""
        if candidate_id not in self.store:
            logger.warning("Ignoring selection: %s", InvalidSelection(candidate_id))
            return False
        self.current_id = candidate_id
        self.interaction.refresh(self._view_context())
        self._publish()
        return True

    # -- settings -----------------------------------------------------------

    def set_sensitivity(self, mode: SensitivityMode):
        """Switch the active mode; re-sorts cached results without recomputing."""
        logger.debug("Sensitivity switched to: %s", mode.key)
        self.sensitivity = mode
        self._resort()
        self.interaction.refresh(self._view_context())
        self._publish()

    async def set_highlight_color(self, color: HighlightColor):
        await self.store.set_highlight_color(color, self.config.recompute_scope, self.current_id)
        self._resort()
        self.interaction.refresh(self._view_context())
        if self.config.recompute_scope == RecomputeScope.ALL:
            self._finish()
        else:
            self._publish()

    async def recompute_all(self):
        self._set_status("Recalculating...")
        await self.store.recompute_all(progress=self._recalc_progress)
        self._resort()
        self.interaction.refresh(self._view_context())
        self._finish()

    def set_view_mode(self, mode: ViewMode):
        self.interaction.set_view_mode(mode)
        self._publish()

    # -- pointer input ------------------------------------------------------

    def pointer_enter_control(self):
        if self.interaction.pointer_enter_control():
            self._publish()

    def pointer_leave_control(self):
        if self.interaction.pointer_leave_control():
            self._publish()

    def pointer_down(self, button=PRIMARY_BUTTON):
        if self.interaction.pointer_down(button):
            self._publish()

    def pointer_up(self, button=PRIMARY_BUTTON):
        if self.interaction.pointer_up(button):
            self._publish()

    def pointer_move(self, x, width):
        if self.interaction.pointer_move(x, width):
            self._publish()

    # -- internals ----------------------------------------------------------

    async def _load(self, source, name=None):
        if isinstance(source, LoadedImage):
            return source
        return await asyncio.to_thread(load_image, source, name)

    def _recalc_progress(self, done, total):
        self._set_status(f"Recalculating {done}/{total}")

    @property
    def busy(self):
        """True while a bulk recompute or a candidate batch is running."""
        return not self.store.is_consistent or self._batches > 0

    def _resort(self):
        if self.busy:
            # keep the last consistent order, minus deleted candidates
            self._entries = [e for e in self._entries if e.candidate_id in self.store]
            return
        self._entries = rank_candidates(self.store.candidates, self.sensitivity)

    def _ensure_selection(self):
        """Select the top entry when nothing valid is selected. Returns True if the selection changed."""
        if self.current_id is not None and self.current_id in self.store:
            return False
        previous = self.current_id
        self.current_id = self._entries[0].candidate_id if self._entries else None
        return self.current_id != previous

    def _neighbour_of(self, candidate_id):
        ids = [e.candidate_id for e in self._entries]
        if candidate_id not in ids:
            ids = [c.id for c in self.store.candidates]
        idx = ids.index(candidate_id)
        if len(ids) < 2:
            return None
        return ids[idx - 1] if idx > 0 else ids[idx + 1]

    def _current(self):
        if self.current_id is None or self.current_id not in self.store:
            return None
        return self.store.get(self.current_id)

    def _view_context(self):
        reference = self.store.reference
        candidate = self._current()
        if reference is None or candidate is None:
            return None
        return ViewContext(candidate_name=candidate.name,
                           reference_name=reference.name,
                           has_diff_image=candidate.result(self.sensitivity).diff_image is not None)

    def _set_status(self, text):
        self.status = text
        self._publish()

    def _finish(self, text="Done."):
        # an overlapping recompute is still running
        if not self.store.is_consistent:
            text = "Recalculating..."
        self._set_status(text)

    def _build_snapshot(self):
        reference = self.store.reference
        candidate = self._current()
        sm = self.interaction
        return SessionSnapshot(
            view_mode=sm.mode,
            wipe_percent=sm.wipe_percent,
            reveal=sm.reveal,
            sensitivity=self.sensitivity,
            highlight_color=self.store.highlight_color,
            entries=tuple(self._entries),
            current_id=self.current_id,
            current_diff_image=(candidate.result(self.sensitivity).diff_image
                                if candidate is not None else None),
            current_metrics=candidate.metrics if candidate is not None else None,
            labels=sm.labels,
            render=sm.render_plan(),
            reference_name=reference.name if reference is not None else None,
            reference_size=(reference.width, reference.height) if reference is not None else None,
            status=self.status,
            busy=self.busy,
        )

    def _publish(self):
        self._snapshot = self._build_snapshot()
        for listener in list(self._listeners):
            listener(self._snapshot)
