"""
Candidate store: owns the reference image, the candidates and their per-mode
result caches, and decides when results are (re)computed.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from dataclasses import replace
from enum import Enum
from typing import Dict, Optional

from .constants import DEFAULT_HIGHLIGHT_COLOR
from .errors import InvalidSelection
from .models import Candidate, HighlightColor

logger = logging.getLogger(__name__)


class RecomputeScope(Enum):
    """Which candidates are recomputed when the highlight color changes"""
    CURRENT = "current"
    ALL = "all"


class _ReferenceGate:
    """
    Additions may run concurrently with each other; a reference swap waits for
    in-flight additions to drain and holds new ones until the swap is done.
    """

    def __init__(self):
        self._cond = asyncio.Condition()
        self._active = 0
        self._swapping = False

    @asynccontextmanager
    async def addition(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._swapping)
            self._active += 1
        try:
            yield
        finally:
            async with self._cond:
                self._active -= 1
                self._cond.notify_all()

    @asynccontextmanager
    async def swap(self):
        async with self._cond:
            await self._cond.wait_for(lambda: not self._swapping)
            self._swapping = True
            await self._cond.wait_for(lambda: self._active == 0)
        try:
            yield
        finally:
            async with self._cond:
                self._swapping = False
                self._cond.notify_all()


class CandidateStore:
    """
    Ordered set of candidates (insertion order) with cached DiffResults.

    Every computation snapshots the reference, the highlight color and the
    reference epoch when it is issued. Results whose epoch was superseded by a
    later set_reference() are dropped on arrival. Results rendered with an
    older highlight color than the candidate already shows keep their scores
    but not their diff images. A candidate's three mode
    results are committed together.
    """

    def __init__(self, engine, highlight_color: Optional[HighlightColor] = None):
        self._engine = engine
        self._candidates: Dict[str, Candidate] = {}
        self._reference = None
        self._color = highlight_color or HighlightColor.from_tuple(DEFAULT_HIGHLIGHT_COLOR)
        self._epoch = 0
        self._color_generation = 0
        self._gate = _ReferenceGate()
        self._bulk_running = 0

    # -- read access -------------------------------------------------------

    @property
    def reference(self):
        return self._reference

    @property
    def highlight_color(self):
        return self._color

    @property
    def epoch(self):
        return self._epoch

    @property
    def candidates(self):
        return list(self._candidates.values())

    @property
    def is_consistent(self):
        """False while a bulk recomputation is in progress."""
        return self._bulk_running == 0

    def get(self, candidate_id) -> Candidate:
        try:
            return self._candidates[candidate_id]
        except KeyError:
            raise InvalidSelection(candidate_id) from None

    def __contains__(self, candidate_id):
        return candidate_id in self._candidates

    def __len__(self):
        return len(self._candidates)

    # -- mutations ---------------------------------------------------------

    async def set_reference(self, image, progress=None):
        """Replace the reference and recompute every candidate against it."""
        async with self._gate.swap():
            self._reference = image
            self._epoch += 1
            logger.debug("Reference set to %s (%s), epoch %d",
                         image.name, image.size_text, self._epoch)
        if self._candidates:
            await self.recompute_all(progress)

    async def add_candidate(self, image) -> Candidate:
        """Create a candidate, compute all modes against the current reference, then append it."""
        candidate = Candidate(image)
        async with self._gate.addition():
            reference, color = self._reference, self._color
            candidate.color_generation = self._color_generation
            if reference is not None:
                results, metrics = await self._compute(candidate, reference, color)
                candidate.results_by_mode = results
                candidate.metrics = metrics
            self._candidates[candidate.id] = candidate
        logger.debug("Added candidate %s (%s)", candidate.name, candidate.id)
        return candidate

    def remove_candidate(self, candidate_id) -> Candidate:
        candidate = self._candidates.pop(candidate_id, None)
        if candidate is None:
            raise InvalidSelection(candidate_id)
        logger.debug("Removed candidate %s (%s)", candidate.name, candidate_id)
        return candidate

    async def set_highlight_color(self, color, scope=RecomputeScope.CURRENT, current_id=None):
        """
        Change the highlight color and recompute diff images.

        With RecomputeScope.CURRENT only ``current_id`` is recomputed; other
        candidates keep diff images rendered in the previous color until they
        are recomputed for another reason.
        """
        self._color = color
        self._color_generation += 1
        if self._reference is None:
            return
        if scope == RecomputeScope.ALL:
            await self.recompute_all(with_metrics=False)
        elif current_id is not None:
            await self.recompute(current_id, with_metrics=False)

    async def recompute(self, candidate_id, with_metrics=True):
        """Recompute one candidate. Returns False if its results were dropped."""
        candidate = self.get(candidate_id)
        if self._reference is None:
            return False
        epoch, generation = self._epoch, self._color_generation
        reference, color = self._reference, self._color
        results, metrics = await self._compute(candidate, reference, color, with_metrics)
        return self._commit(candidate, epoch, generation, results, metrics)

    async def recompute_all(self, progress=None, with_metrics=True):
        """
        Recompute every candidate. ``progress(done, total)`` is called as each
        candidate commits; is_consistent stays False until all have finished.
        """
        if self._reference is None or not self._candidates:
            return
        epoch, generation = self._epoch, self._color_generation
        reference, color = self._reference, self._color
        targets = list(self._candidates.values())
        total = len(targets)
        done = 0

        async def run(candidate):
            nonlocal done
            results, metrics = await self._compute(candidate, reference, color, with_metrics)
            self._commit(candidate, epoch, generation, results, metrics)
            done += 1
            if progress is not None:
                progress(done, total)

        logger.debug("Recomputing %d candidates (epoch %d)", total, epoch)
        self._bulk_running += 1
        try:
            await asyncio.gather(*(run(c) for c in targets))
        finally:
            self._bulk_running -= 1
        logger.debug("Recompute for epoch %d finished", epoch)

    # -- internals ---------------------------------------------------------

    async def _compute(self, candidate, reference, color, with_metrics=True):
        jobs = [self._engine.compare_all_modes(reference, candidate.image, color,
                                               candidate_id=candidate.id)]
        if with_metrics:
            jobs.append(self._engine.measure(reference, candidate.image))
        outcome = await asyncio.gather(*jobs)
        metrics = outcome[1] if with_metrics else candidate.metrics
        return outcome[0], metrics

    def _commit(self, candidate, epoch, generation, results, metrics):
        if epoch != self._epoch:
            logger.debug("Dropping stale results for %s (epoch %d, current %d)",
                         candidate.name, epoch, self._epoch)
            return False
        if candidate.id not in self._candidates:
            logger.debug("Dropping results for removed candidate %s", candidate.name)
            return False
        if generation < candidate.color_generation:
            logger.debug("Keeping newer diff images for %s (color generation %d < %d)",
                         candidate.name, generation, candidate.color_generation)
            results = _keep_diff_images(results, candidate.results_by_mode)
        else:
            candidate.color_generation = generation
        candidate.results_by_mode = results
        candidate.metrics = metrics
        return True


def _keep_diff_images(results, current):
    """Take scores from ``results`` and diff images from ``current``."""
    merged = {}
    for mode, result in results.items():
        previous = current.get(mode)
        if result.available and previous is not None and previous.diff_image is not None:
            result = replace(result, diff_image=previous.diff_image)
        merged[mode] = result
    return merged
