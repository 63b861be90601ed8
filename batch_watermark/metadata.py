"""Best-effort metadata extraction for source images."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import filetype
from PIL import Image, IptcImagePlugin

from .models import ImageMetadata

logger = logging.getLogger("batch_watermark.metadata")

EXIF_IMAGE_DESCRIPTION = 0x010E
IPTC_CAPTION = (2, 120)


def read_max_side(path: Path) -> int:
    """Return the larger of width and height without decoding pixel data."""
    with Image.open(path) as image:
        width, height = image.size
    return max(width, height)


def _decode_text(value: object) -> Optional[str]:
    if isinstance(value, list):
        value = value[0] if value else None
    if isinstance(value, bytes):
        value = value.decode("utf-8", errors="replace")
    if not isinstance(value, str):
        return None
    value = value.strip("\x00").strip()
    return value or None


def read_caption(path: Path) -> Optional[str]:
    """Return the embedded caption (EXIF ImageDescription, then IPTC), if any."""
    with Image.open(path) as image:
        caption = _decode_text(image.getexif().get(EXIF_IMAGE_DESCRIPTION))
        if caption:
            return caption
        iptc = IptcImagePlugin.getiptcinfo(image) or {}
        return _decode_text(iptc.get(IPTC_CAPTION))


def detect_format(path: Path) -> Optional[str]:
    """Sniff the image type from the file signature; returns a lowercase extension."""
    kind = filetype.guess(str(path))
    if kind and kind.mime.startswith("image/"):
        ext = kind.extension.lower()
        if ext == "jpeg":
            return "jpg"
        return ext
    return None


def read_metadata(path: Path) -> ImageMetadata:
    """Collect what can be read from ``path``; every failure is only a warning."""
    metadata = ImageMetadata()

    try:
        metadata.max_side = read_max_side(path)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not read dimensions of %s: %s", path, exc)

    try:
        metadata.caption = read_caption(path)
    except Exception as exc:  # noqa: BLE001
        logger.warning("Could not read caption of %s: %s", path, exc)
    else:
        if metadata.caption:
            logger.debug("Caption for %s: %s", path.name, metadata.caption)

    try:
        metadata.detected_format = detect_format(path)
    except OSError as exc:
        logger.warning("Could not sniff file type of %s: %s", path, exc)
    else:
        suffix = path.suffix.lower().lstrip(".")
        expected = "jpg" if suffix == "jpeg" else suffix
        if metadata.detected_format and metadata.detected_format != expected:
            logger.warning(
                "%s looks like %s despite its .%s extension",
                path,
                metadata.detected_format,
                suffix,
            )

    return metadata
