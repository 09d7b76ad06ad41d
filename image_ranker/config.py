from dataclasses import dataclass, field

from .candidate_store import RecomputeScope
from .constants import (DEFAULT_HIGHLIGHT_COLOR, DEFAULT_MAX_WORKERS, DEFAULT_WIPE_PERCENT,
                        LABEL_HIDE_DELAY_MS)
from .models import HighlightColor, SensitivityMode


@dataclass
class SessionConfig:
    """Runtime settings for a comparison session. Not persisted."""
    highlight_color: HighlightColor = field(
        default_factory=lambda: HighlightColor.from_tuple(DEFAULT_HIGHLIGHT_COLOR))
    sensitivity: SensitivityMode = SensitivityMode.EXACT
    recompute_scope: RecomputeScope = RecomputeScope.CURRENT
    label_hide_delay_ms: int = LABEL_HIDE_DELAY_MS
    initial_wipe_percent: float = DEFAULT_WIPE_PERCENT
    max_workers: int = DEFAULT_MAX_WORKERS

    @classmethod
    def from_args(cls, args):
        """Build from parsed command line arguments (see main.py)."""
        config = cls()
        if getattr(args, "color", None):
            config.highlight_color = HighlightColor.from_string(args.color)
        if getattr(args, "sensitivity", None):
            config.sensitivity = SensitivityMode.from_key(args.sensitivity)
        if getattr(args, "recompute_all_on_color", False):
            config.recompute_scope = RecomputeScope.ALL
        if getattr(args, "workers", None):
            config.max_workers = args.workers
        return config
