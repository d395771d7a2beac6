"""Keyframe thumbnails and cropped snapshots.

Thumbnails travel as base64 ``data:`` URLs so a keyframe record stays plain
JSON.  Frames come from the renderer as PIL images.
"""

from __future__ import annotations

import base64
import binascii
import io
import logging
import re
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from faceex.constants import BLANK_THUMBNAIL_SIZE, KEYFRAME_CROP, SNAPSHOT_CROP

logger = logging.getLogger(__name__)

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w/+.-]+)?(?:;[\w=-]+)*;base64,(?P<payload>.*)$", re.DOTALL)


def encode_thumbnail(image: Image.Image, fmt: str = "PNG") -> str:
    buf = io.BytesIO()
    image.save(buf, format=fmt)
    payload = base64.b64encode(buf.getvalue()).decode("ascii")
    return f"data:image/{fmt.lower()};base64,{payload}"


def _payload(text: str) -> str:
    m = _DATA_URL_RE.match(text)
    return m.group("payload") if m else text


def is_encoded_thumbnail(text) -> bool:
    """True for a base64 string or a base64 ``data:`` URL."""
    if not isinstance(text, str) or not text:
        return False
    try:
        base64.b64decode(_payload(text), validate=True)
    except (binascii.Error, ValueError):
        return False
    return True


def decode_thumbnail(text: str) -> Image.Image:
    try:
        raw = base64.b64decode(_payload(text), validate=True)
        image = Image.open(io.BytesIO(raw))
        image.load()
    except (binascii.Error, UnidentifiedImageError, OSError) as e:
        raise ValueError(f"Not a base64 encoded image: {e}") from e
    return image


def blank_thumbnail(size: tuple[int, int] = BLANK_THUMBNAIL_SIZE) -> str:
    """Black frame used for inter-stimulus (blank) keyframes."""
    return encode_thumbnail(Image.new("RGB", size, (0, 0, 0)))


def crop_fraction(image: Image.Image, region: tuple[float, float, float, float]) -> Image.Image:
    """Crop by fractions ``(x, y, width, height)`` of the image size."""
    w, h = image.size
    x, y, cw, ch = region
    left, top = int(w * x), int(h * y)
    return image.crop((left, top, left + int(w * cw), top + int(h * ch)))


def crop_keyframe_thumbnail(image: Image.Image) -> str:
    return encode_thumbnail(crop_fraction(image, KEYFRAME_CROP))


def save_snapshot(image: Image.Image, directory: Path, facs_code: str) -> Path:
    """Write the centred crop of a rendered frame, named after its FACS code."""
    path = Path(directory) / f"{facs_code}_cropped_image.png"
    crop_fraction(image, SNAPSHOT_CROP).save(path, format="PNG")
    logger.info("Saved snapshot %s", path)
    return path
