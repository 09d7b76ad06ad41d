"""
Asynchronous adapter around the pixel diff primitive.

Comparisons run in a thread pool so several can be in flight while the event
loop stays responsive; results are handed back to the loop thread, which is
the only place session state is touched.
"""

import asyncio
import logging
from concurrent.futures import ThreadPoolExecutor

from .analysis import ImageAnalyzer
from .constants import DEFAULT_MAX_WORKERS, DIFF_TRANSPARENCY
from .errors import DiffComputationError
from .image_io import encode_png
from .models import CandidateMetrics, DiffResult, SensitivityMode
from .pixel_diff import compare_images

logger = logging.getLogger(__name__)


def _compare_job(reference_pixels, candidate_pixels, mode, rgb, transparency, render):
    mismatch, diff = compare_images(reference_pixels, candidate_pixels, mode, rgb, transparency)
    return mismatch, (encode_png(diff) if render else None)


class DiffEngine:
    """Compares a reference and a candidate image under a sensitivity mode."""

    def __init__(self, max_workers=DEFAULT_MAX_WORKERS, transparency=DIFF_TRANSPARENCY,
                 render_diff=True, executor=None):
        self.transparency = transparency
        self.render_diff = render_diff
        self._executor = executor or ThreadPoolExecutor(max_workers=max_workers,
                                                        thread_name_prefix="pixel-diff")

    async def compare(self, reference, candidate, mode, color, candidate_id=None):
        """
        Compare two LoadedImages.

        Args:
            reference (LoadedImage): The reference image.
            candidate (LoadedImage): The candidate image.
            mode (SensitivityMode): Tolerance model.
            color (HighlightColor): Color for mismatched pixels in the diff image.
            candidate_id (str): Reported in DiffComputationError on failure.

        Returns:
            DiffResult
        """
        loop = asyncio.get_running_loop()
        try:
            mismatch, png = await loop.run_in_executor(
                self._executor, _compare_job, reference.pixels, candidate.pixels,
                mode, color.as_tuple(), self.transparency, self.render_diff)
        except Exception as e:
            raise DiffComputationError(candidate_id, mode, str(e)) from e
        return DiffResult(mismatch, png)

    async def compare_all_modes(self, reference, candidate, color, candidate_id=None):
        """
        Run every sensitivity mode concurrently and return the complete mapping.

        A mode that fails maps to DiffResult.unavailable(); the mapping is only
        returned once all modes have resolved.
        """
        modes = list(SensitivityMode)
        outcomes = await asyncio.gather(
            *(self.compare(reference, candidate, mode, color, candidate_id) for mode in modes),
            return_exceptions=True)

        results = {}
        for mode, outcome in zip(modes, outcomes):
            if isinstance(outcome, DiffComputationError):
                logger.error("%s", outcome, exc_info=outcome)
                results[mode] = DiffResult.unavailable()
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                results[mode] = outcome
        return results

    async def measure(self, reference, candidate):
        """PSNR/SSIM for a candidate; empty metrics on failure."""
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(
                self._executor, ImageAnalyzer.calculate_metrics,
                reference.pixels, candidate.pixels)
        except Exception as e:
            logger.warning("Metrics failed for %s: %s", candidate.name, e)
            return CandidateMetrics()

    def shutdown(self):
        self._executor.shutdown(wait=False)
