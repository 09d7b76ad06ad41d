import logging

import cv2
import numpy as np
from skimage.metrics import structural_similarity as ssim

from .models import CandidateMetrics
from .pixel_diff import match_size

logger = logging.getLogger(__name__)


class ImageAnalyzer:
    """
    Mode-independent quality metrics between a reference and a candidate.
    """

    @staticmethod
    def calculate_psnr(img1, img2):
        """
        Calculate PSNR (Peak Signal-to-Noise Ratio) on the RGB channels.
        """
        if img1 is None or img2 is None:
            return 0.0
        if img1.shape != img2.shape:
            return 0.0

        return float(cv2.PSNR(np.ascontiguousarray(img1[..., :3]),
                              np.ascontiguousarray(img2[..., :3])))

    @staticmethod
    def calculate_ssim(img1, img2):
        """
        Calculate SSIM (Structural Similarity Index) on the RGB channels.
        """
        if img1 is None or img2 is None:
            return 0.0
        if img1.shape != img2.shape:
            return 0.0

        # Allow small window size for small images
        win_size = min(7, min(img1.shape[0], img1.shape[1]))
        if win_size % 2 == 0:
            win_size -= 1

        if win_size < 3:
            return 1.0  # Too small

        return float(ssim(img1[..., :3], img2[..., :3], win_size=win_size,
                          channel_axis=2, data_range=255))

    @classmethod
    def calculate_metrics(cls, reference, candidate):
        """Return CandidateMetrics for two RGBA arrays; candidate is resized to the reference."""
        try:
            candidate = match_size(candidate, reference.shape[1], reference.shape[0])
            return CandidateMetrics(psnr=cls.calculate_psnr(reference, candidate),
                                    ssim=cls.calculate_ssim(reference, candidate))
        except (cv2.error, ValueError) as e:
            logger.warning("Metric calculation failed: %s", e)
            return CandidateMetrics()
