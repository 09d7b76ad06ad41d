"""
Data model for reference/candidate comparison.
"""

import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional

import numpy as np


class SensitivityMode(Enum):
    """Diff sensitivity modes. Values are the short keys used in settings and the CLI."""
    EXACT = "all"
    IGNORE_COLORS = "colors"
    IGNORE_ANTIALIASING = "aa"

    @property
    def key(self):
        return self.value

    @property
    def label(self):
        return _MODE_LABELS[self]

    @classmethod
    def from_key(cls, key):
        for mode in cls:
            if mode.value == key:
                return mode
        raise ValueError(f"Unknown sensitivity mode: {key!r}")


_MODE_LABELS = {
    SensitivityMode.EXACT: "Exact",
    SensitivityMode.IGNORE_COLORS: "Ignore colors",
    SensitivityMode.IGNORE_ANTIALIASING: "Ignore antialiasing",
}


class ViewMode(Enum):
    """Persistent comparison view modes"""
    SLIDER = "Slider"
    DIFF = "Diff"


class Reveal(Enum):
    """Momentary override driven by the hold-to-compare control"""
    NONE = "none"
    CANDIDATE = "candidate"
    BASE = "base"


@dataclass(frozen=True)
class HighlightColor:
    red: int
    green: int
    blue: int

    def __post_init__(self):
        for name in ("red", "green", "blue"):
            value = getattr(self, name)
            if not isinstance(value, int) or not 0 <= value <= 255:
                raise ValueError(f"{name} must be an integer in [0, 255], got {value!r}")

    @classmethod
    def from_tuple(cls, rgb):
        r, g, b = rgb
        return cls(int(r), int(g), int(b))

    @classmethod
    def from_string(cls, text):
        """Parse 'R,G,B' or '#RRGGBB'."""
        text = text.strip()
        if text.startswith("#") and len(text) == 7:
            return cls(int(text[1:3], 16), int(text[3:5], 16), int(text[5:7], 16))
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 3:
            raise ValueError(f"Expected 'R,G,B' or '#RRGGBB', got {text!r}")
        return cls(*(int(p) for p in parts))

    def as_tuple(self):
        return (self.red, self.green, self.blue)


@dataclass(frozen=True)
class DiffResult:
    """Outcome of one (candidate, mode) comparison.

    ``mismatch_percent`` is None when the comparison failed; such results sort
    after every available score.
    """
    mismatch_percent: Optional[float]
    diff_image: Optional[bytes] = None

    def __post_init__(self):
        if self.mismatch_percent is not None and not 0.0 <= self.mismatch_percent <= 100.0:
            raise ValueError(f"mismatch_percent out of range: {self.mismatch_percent}")

    @property
    def available(self):
        return self.mismatch_percent is not None

    @classmethod
    def placeholder(cls):
        return cls(0.0, None)

    @classmethod
    def unavailable(cls):
        return cls(None, None)


@dataclass(frozen=True)
class CandidateMetrics:
    """Mode-independent quality metrics against the reference"""
    psnr: Optional[float] = None
    ssim: Optional[float] = None


@dataclass(frozen=True, eq=False)
class LoadedImage:
    """A decoded image. ``pixels`` is an HxWx4 RGBA uint8 array."""
    name: str
    data: bytes
    pixels: np.ndarray = field(repr=False)

    @property
    def width(self):
        return int(self.pixels.shape[1])

    @property
    def height(self):
        return int(self.pixels.shape[0])

    @property
    def size_text(self):
        return f"{self.width}x{self.height}"


def new_candidate_id():
    return uuid.uuid4().hex


def placeholder_results():
    return {mode: DiffResult.placeholder() for mode in SensitivityMode}


class Candidate:
    """One candidate image and its per-mode result cache."""

    def __init__(self, image: LoadedImage, candidate_id: Optional[str] = None):
        self.id = candidate_id or new_candidate_id()
        self.image = image
        self.results_by_mode: Dict[SensitivityMode, DiffResult] = placeholder_results()
        self.metrics = CandidateMetrics()
        # highlight color generation the diff images were rendered with
        self.color_generation = 0

    @property
    def name(self):
        return self.image.name

    def result(self, mode: SensitivityMode) -> DiffResult:
        return self.results_by_mode[mode]

    @property
    def degraded(self):
        return any(not r.available for r in self.results_by_mode.values())

    def __repr__(self):
        return f"Candidate(id={self.id!r}, name={self.name!r})"
