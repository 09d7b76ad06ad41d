import logging
import os

import cv2
import numpy as np

from .errors import DecodeError
from .models import LoadedImage

logger = logging.getLogger(__name__)


def load_image(source, name=None):
    """Decode an image file (path or raw bytes) into a LoadedImage.

    Raises DecodeError if the file cannot be read or is not an image.
    """
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        name = name or "image"
    else:
        path = os.fspath(source)
        name = name or os.path.basename(path)
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise DecodeError(name, str(e)) from e

    pixels = decode_rgba(data, name)
    logger.debug("Decoded %s (%dx%d)", name, pixels.shape[1], pixels.shape[0])
    return LoadedImage(name=name, data=data, pixels=pixels)


def decode_rgba(data, name="image"):
    """Decode encoded image bytes to an HxWx4 RGBA uint8 array."""
    if not data:
        raise DecodeError(name, "empty file")

    buf = np.frombuffer(data, dtype=np.uint8)
    try:
        img = cv2.imdecode(buf, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise DecodeError(name, str(e)) from e
    if img is None:
        raise DecodeError(name, "unsupported or corrupt image data")

    return to_rgba8(img, name)


def to_rgba8(img, name="image"):
    """Normalize an OpenCV-decoded array (gray/BGR/BGRA, 8 or 16 bit) to RGBA uint8."""
    if img.dtype != np.uint8:
        if img.dtype == np.uint16:
            img = (img / 257).astype(np.uint8)
        elif np.issubdtype(img.dtype, np.floating):
            img = np.clip(img * 255.0, 0, 255).astype(np.uint8)
        else:
            raise DecodeError(name, f"unsupported sample type {img.dtype}")

    if img.ndim == 2:
        return cv2.cvtColor(img, cv2.COLOR_GRAY2RGBA)
    channels = img.shape[2]
    if channels == 1:
        return cv2.cvtColor(img[:, :, 0], cv2.COLOR_GRAY2RGBA)
    if channels == 3:
        return cv2.cvtColor(img, cv2.COLOR_BGR2RGBA)
    if channels == 4:
        return cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)
    raise DecodeError(name, f"unsupported channel count {channels}")


def encode_png(rgba):
    """Encode an RGBA uint8 array as PNG bytes."""
    ok, buf = cv2.imencode(".png", cv2.cvtColor(rgba, cv2.COLOR_RGBA2BGRA))
    if not ok:
        raise ValueError("PNG encoding failed")
    return buf.tobytes()
