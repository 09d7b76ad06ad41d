import pytest
import numpy as np
import cv2

from image_ranker.errors import DecodeError
from image_ranker.image_io import decode_rgba, encode_png, load_image, to_rgba8


def test_load_png_from_path(tmp_path):
    bgr = np.zeros((6, 8, 3), dtype=np.uint8)
    bgr[:, :, 2] = 255  # red in OpenCV's BGR order
    path = tmp_path / "red.png"
    cv2.imwrite(str(path), bgr)

    img = load_image(path)
    assert img.name == "red.png"
    assert img.size_text == "8x6"
    assert img.pixels.shape == (6, 8, 4)
    assert tuple(img.pixels[0, 0]) == (255, 0, 0, 255)
    assert img.data == path.read_bytes()


def test_load_from_bytes_keeps_alpha():
    rgba = np.zeros((2, 2, 4), dtype=np.uint8)
    rgba[..., 1] = 200
    rgba[..., 3] = 128
    data = encode_png(rgba)

    img = load_image(data, name="clip.png")
    assert img.name == "clip.png"
    assert np.array_equal(img.pixels, rgba)


def test_missing_file_raises_decode_error(tmp_path):
    with pytest.raises(DecodeError) as exc:
        load_image(tmp_path / "nope.png")
    assert exc.value.name == "nope.png"


def test_garbage_raises_decode_error():
    with pytest.raises(DecodeError):
        decode_rgba(b"definitely not an image", "notes.txt")


def test_empty_data_raises_decode_error():
    with pytest.raises(DecodeError, match="empty"):
        decode_rgba(b"", "empty.png")


def test_grayscale_and_16bit_are_normalized():
    gray = np.full((3, 3), 50, dtype=np.uint8)
    assert tuple(to_rgba8(gray)[0, 0]) == (50, 50, 50, 255)

    deep = np.full((3, 3, 3), 257 * 10, dtype=np.uint16)
    out = to_rgba8(deep)
    assert out.dtype == np.uint8
    assert tuple(out[0, 0]) == (10, 10, 10, 255)
