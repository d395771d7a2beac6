"""Tests for thumbnail encoding and snapshots."""

import pytest
from PIL import Image

from faceex.export.thumbnails import (
    blank_thumbnail, crop_fraction, crop_keyframe_thumbnail, decode_thumbnail,
    encode_thumbnail, is_encoded_thumbnail, save_snapshot,
)


def test_encode_decode():
    image = Image.new("RGB", (10, 20), (255, 0, 0))
    text = encode_thumbnail(image)
    assert text.startswith("data:image/png;base64,")
    decoded = decode_thumbnail(text)
    assert decoded.size == (10, 20)
    assert decoded.convert("RGB").getpixel((0, 0)) == (255, 0, 0)


def test_is_encoded_thumbnail():
    assert is_encoded_thumbnail(blank_thumbnail())
    assert is_encoded_thumbnail("AAAA")
    assert not is_encoded_thumbnail("")
    assert not is_encoded_thumbnail("not base64!")
    assert not is_encoded_thumbnail(None)


def test_decode_rejects_non_image():
    with pytest.raises(ValueError):
        decode_thumbnail("AAAA")
    with pytest.raises(ValueError):
        decode_thumbnail("###")


def test_blank_thumbnail_is_black():
    image = decode_thumbnail(blank_thumbnail((8, 8)))
    assert image.size == (8, 8)
    assert image.convert("RGB").getextrema() == ((0, 0), (0, 0), (0, 0))


def test_crop_fraction():
    image = Image.new("RGB", (100, 200))
    assert crop_fraction(image, (0.2, 0.2, 0.6, 0.6)).size == (60, 120)


def test_crop_keyframe_thumbnail():
    image = Image.new("RGB", (1000, 1000))
    assert decode_thumbnail(crop_keyframe_thumbnail(image)).size == (230, 500)


def test_save_snapshot(tmp_path):
    image = Image.new("RGB", (100, 100), (0, 255, 0))
    path = save_snapshot(image, tmp_path, "12A+4C")
    assert path.name == "12A+4C_cropped_image.png"
    with Image.open(path) as saved:
        assert saved.size == (60, 60)
