"""
Exception types raised by the comparison pipeline.
"""


class ImageRankerError(Exception):
    """Base class for all image ranker errors"""


class DecodeError(ImageRankerError):
    """An input file could not be interpreted as an image"""

    def __init__(self, name, reason=""):
        self.name = name
        self.reason = reason
        msg = f"Cannot decode image '{name}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class DiffComputationError(ImageRankerError):
    """The pixel diff failed for one (candidate, mode) pair"""

    def __init__(self, candidate_id, mode, reason=""):
        self.candidate_id = candidate_id
        self.mode = mode
        self.reason = reason
        mode_key = getattr(mode, "key", mode)
        msg = f"Diff failed for candidate {candidate_id} in mode '{mode_key}'"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class InvalidSelection(ImageRankerError, KeyError):
    """An operation referenced a candidate id that is no longer present"""

    def __init__(self, candidate_id):
        self.candidate_id = candidate_id
        super().__init__(f"No candidate with id {candidate_id!r}")

    def __str__(self):
        return self.args[0]
