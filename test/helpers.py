"""
Shared test doubles for the comparison pipeline.
"""
import asyncio

import numpy as np

from image_ranker.diff_engine import DiffEngine
from image_ranker.errors import DiffComputationError
from image_ranker.interaction import LabelTimer
from image_ranker.models import CandidateMetrics, DiffResult, LoadedImage


def make_image(name, value=0, size=(4, 4)):
    """Solid opaque RGBA image"""
    h, w = size
    pixels = np.full((h, w, 4), value, dtype=np.uint8)
    pixels[..., 3] = 255
    return LoadedImage(name=name, data=b"", pixels=pixels)


class FakeEngine(DiffEngine):
    """
    Scripted diff engine.

    scores[(reference_name, candidate_name)][mode] -> mismatch percent (default 0.0)
    failures: set of (candidate_name, mode) pairs that raise DiffComputationError
    """

    def __init__(self, scores=None, failures=()):
        super().__init__(max_workers=1)
        self.scores = scores or {}
        self.failures = set(failures)
        self.gates = {}
        self.calls = []

    def hold(self, reference_name, candidate_name, color=None):
        """Block comparisons of this pair (optionally only in one color) until the returned event is set."""
        event = asyncio.Event()
        self.gates[(reference_name, candidate_name, color)] = event
        return event

    async def compare(self, reference, candidate, mode, color, candidate_id=None):
        self.calls.append((reference.name, candidate.name, mode, color))
        gate = (self.gates.get((reference.name, candidate.name, color))
                or self.gates.get((reference.name, candidate.name, None)))
        if gate is not None:
            await gate.wait()
        if (candidate.name, mode) in self.failures:
            raise DiffComputationError(candidate_id, mode, "scripted failure")
        percent = self.scores.get((reference.name, candidate.name), {}).get(mode, 0.0)
        tag = f"{reference.name}|{candidate.name}|{mode.key}|{color.as_tuple()}"
        return DiffResult(percent, tag.encode())

    async def measure(self, reference, candidate):
        return CandidateMetrics(psnr=30.0, ssim=0.9)


class FakeHandle:
    def __init__(self, delay_ms, callback):
        self.delay_ms = delay_ms
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self):
        self.cancelled = True


class FakeTimer(LabelTimer):
    """Records scheduled callbacks; fire() runs the pending ones."""

    def __init__(self):
        self.handles = []

    def start(self, delay_ms, callback):
        handle = FakeHandle(delay_ms, callback)
        self.handles.append(handle)
        return handle

    @property
    def active(self):
        return [h for h in self.handles if not h.cancelled and not h.fired]

    def fire(self):
        for h in self.active:
            h.fired = True
            h.callback()


async def settle(rounds=20):
    """Let pending tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)
