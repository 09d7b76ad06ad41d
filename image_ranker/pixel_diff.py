"""
Pixel-level perceptual diff between a reference and a candidate image.

Operates on HxWx4 RGBA uint8 arrays and mirrors the tolerance model of the
resemble.js comparison: per-channel tolerances for exact matching, a
brightness-only comparison when colors are ignored, and an anti-aliasing
heuristic that forgives edge pixels whose brightness is close enough.
"""

import cv2
import numpy as np

from .constants import AA_HUE_THRESHOLD, DIFF_TRANSPARENCY, LUMA_WEIGHTS, TOLERANCES
from .models import SensitivityMode

_NEIGHBOUR_OFFSETS = [(dy, dx) for dy in (-1, 0, 1) for dx in (-1, 0, 1) if (dy, dx) != (0, 0)]


def compare_images(reference, candidate, mode, color, transparency=DIFF_TRANSPARENCY):
    """
    Compare two RGBA images under a sensitivity mode.

    Args:
        reference (np.ndarray): HxWx4 RGBA uint8 reference image.
        candidate (np.ndarray): RGBA uint8 candidate, resized to the reference if needed.
        mode (SensitivityMode): Which tolerance model to apply.
        color (tuple): (R, G, B) used to paint mismatched pixels.
        transparency (float): Alpha multiplier for matching pixels in the diff image.

    Returns:
        tuple: (mismatch_percent, diff_rgba) where mismatch_percent is rounded
        to two decimals and diff_rgba is an HxWx4 uint8 array.
    """
    if reference is None or candidate is None:
        raise ValueError("Both images are required")
    if reference.ndim != 3 or reference.shape[2] != 4:
        raise ValueError(f"Reference must be HxWx4, got shape {reference.shape}")

    h, w = reference.shape[:2]
    if h == 0 or w == 0:
        raise ValueError("Reference image is empty")

    candidate = match_size(candidate, w, h)
    tol = TOLERANCES[mode.key]

    ref = reference.astype(np.int16)
    cand = candidate.astype(np.int16)
    ref_bright = brightness(reference)
    cand_bright = brightness(candidate)

    alpha_ok = _similar(ref[..., 3], cand[..., 3], tol["alpha"])
    bright_ok = _similar(ref_bright, cand_bright, tol["min_brightness"]) & alpha_ok
    grayscale = np.zeros((h, w), dtype=bool)

    if mode == SensitivityMode.IGNORE_COLORS:
        same = bright_ok
        grayscale[:] = True
    else:
        same = np.all(_similar(ref[..., :3], cand[..., :3], tol["channel"]), axis=2) & alpha_ok
        if mode == SensitivityMode.IGNORE_ANTIALIASING:
            aa = antialiased_mask(reference, ref_bright, tol["max_brightness"]) | \
                antialiased_mask(candidate, cand_bright, tol["max_brightness"])
            forgiven = ~same & aa & bright_ok
            same = same | forgiven
            grayscale = forgiven

    mismatched = int(np.count_nonzero(~same))
    mismatch = round(mismatched / float(h * w) * 100.0, 2)
    mismatch = min(100.0, max(0.0, mismatch))

    diff = render_diff(reference, ref_bright, ~same, grayscale, color, transparency)
    return mismatch, diff


def match_size(img, width, height):
    """Resize img to (width, height) if its size differs."""
    if img.shape[0] == height and img.shape[1] == width:
        return img
    interp = cv2.INTER_AREA if (height < img.shape[0] or width < img.shape[1]) else cv2.INTER_LINEAR
    return cv2.resize(img, (width, height), interpolation=interp)


def brightness(rgba):
    """Perceived brightness per pixel (float32, 0..255)."""
    rgb = rgba[..., :3].astype(np.float32)
    return rgb @ np.asarray(LUMA_WEIGHTS, dtype=np.float32)


def hue(rgba):
    """HSL hue per pixel in [0, 1)."""
    rgb = rgba[..., :3].astype(np.float32) / 255.0
    r, g, b = rgb[..., 0], rgb[..., 1], rgb[..., 2]
    mx = rgb.max(axis=2)
    mn = rgb.min(axis=2)
    d = mx - mn
    safe_d = np.where(d == 0, 1.0, d)

    h = np.zeros_like(mx)
    is_r = (mx == r) & (d > 0)
    is_g = (mx == g) & (d > 0) & ~is_r
    is_b = (d > 0) & ~is_r & ~is_g
    h[is_r] = ((g - b) / safe_d + np.where(g < b, 6.0, 0.0))[is_r]
    h[is_g] = ((b - r) / safe_d + 2.0)[is_g]
    h[is_b] = ((r - g) / safe_d + 4.0)[is_b]
    return h / 6.0


def antialiased_mask(rgba, bright, max_brightness):
    """
    Flag pixels that look like anti-aliasing artifacts.

    A pixel is anti-aliased when, within its 3x3 neighbourhood, it has fewer
    than two identical neighbours, more than one high-contrast neighbour, or
    more than one neighbour of a clearly different hue. Neighbours outside the
    image are ignored.
    """
    h, w = rgba.shape[:2]
    rgb = rgba[..., :3]
    hues = hue(rgba)

    rgb_p = np.pad(rgb, ((1, 1), (1, 1), (0, 0)))
    bright_p = np.pad(bright, 1)
    hue_p = np.pad(hues, 1)
    valid_p = np.pad(np.ones((h, w), dtype=bool), 1)

    contrast = np.zeros((h, w), dtype=np.int8)
    equivalent = np.zeros((h, w), dtype=np.int8)
    other_hue = np.zeros((h, w), dtype=np.int8)

    for dy, dx in _NEIGHBOUR_OFFSETS:
        ys = slice(1 + dy, 1 + dy + h)
        xs = slice(1 + dx, 1 + dx + w)
        valid = valid_p[ys, xs]
        contrast += valid & (np.abs(bright_p[ys, xs] - bright) > max_brightness)
        equivalent += valid & np.all(rgb_p[ys, xs] == rgb, axis=2)
        other_hue += valid & (np.abs(hue_p[ys, xs] - hues) > AA_HUE_THRESHOLD)

    return (contrast > 1) | (other_hue > 1) | (equivalent < 2)


def render_diff(reference, ref_bright, errors, grayscale, color, transparency):
    """Paint mismatched pixels in color; fade the rest of the reference."""
    out = reference.copy()
    gray = np.clip(np.rint(ref_bright), 0, 255).astype(np.uint8)
    out[grayscale, 0] = gray[grayscale]
    out[grayscale, 1] = gray[grayscale]
    out[grayscale, 2] = gray[grayscale]
    out[..., 3] = (reference[..., 3].astype(np.float32) * transparency).astype(np.uint8)

    r, g, b = color
    out[errors] = (r, g, b, 255)
    return out


def _similar(a, b, tolerance):
    # equal values always match, otherwise strictly inside the tolerance
    return (a == b) | (np.abs(a - b) < tolerance)
