"""
Describe downloaded content: page <title>, image dimensions, or MIME type + size.
All functions are pure and safe on truncated input (they return None instead of raising).
"""
import io
import logging
import re
from html import unescape

from PIL import Image

import config

log = logging.getLogger(__name__)

_TITLE_RE = re.compile(r"<title[^>]*>([^<]+)</title\s*>", re.IGNORECASE | re.DOTALL)
_TITLE_MAX_LEN = 200

_SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def parse_title(text: str) -> str | None:
    """Return stripped <title> text, or None if there is no complete, non-empty title."""
    if not text:
        return None
    m = _TITLE_RE.search(text)
    if not m:
        return None
    title = " ".join(unescape(m.group(1)).split())
    return title[:_TITLE_MAX_LEN] or None


def human_size(n: int) -> str:
    """Base-1024 size, two decimals at most: 16B, 1.31KB, 2KB."""
    if n < 1024:
        return f"{n}B"
    value = float(n)
    unit = _SIZE_UNITS[0]
    for unit in _SIZE_UNITS[1:]:
        value /= 1024
        if value < 1024:
            break
    s = f"{value:.2f}".rstrip("0").rstrip(".")
    return f"{s}{unit}"


def get_mime(content_type: str, size: str) -> str | None:
    """'<content type> <size>' when MIME reporting is on."""
    if not config.REPORT_MIME:
        return None
    return f"{content_type} {size}"


def get_image_metadata(body: bytes) -> str | None:
    """'<image mime> <w>×<h>' read from the image header, when metadata reporting is on."""
    if not config.REPORT_METADATA or not body:
        return None
    try:
        with Image.open(io.BytesIO(body)) as img:
            fmt = img.format or ""
            width, height = img.size
    except Exception as e:
        log.debug("Image metadata unavailable (%d bytes): %s", len(body), e)
        return None
    mime = Image.MIME.get(fmt) or f"image/{fmt.lower()}"
    return f"{mime} {width}×{height}"
