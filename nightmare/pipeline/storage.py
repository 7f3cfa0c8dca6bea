"""
Local media storage for generated videos.

Videos are written under MEDIA_DIR and served by the app at MEDIA_URL_PREFIX.
Nothing is kept across sessions; the directory defaults to the system temp dir.
"""

import os
import uuid
import logging
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

MEDIA_DIR = os.getenv("MEDIA_DIR", os.path.join(tempfile.gettempdir(), "nightmare-media"))
MEDIA_URL_PREFIX = os.getenv("MEDIA_URL_PREFIX", "/media")

_EXTENSIONS = {
    "video/mp4": "mp4",
    "video/webm": "webm",
    "video/quicktime": "mov",
}


def media_dir() -> Path:
    path = Path(MEDIA_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def media_url(filename: str) -> str:
    """Public URL for a stored media file."""
    return f"{MEDIA_URL_PREFIX.rstrip('/')}/{filename}"


def save_video(data: bytes, content_type: str = "video/mp4") -> str:
    """Write video bytes to the media directory and return its playable URL."""
    ext = _EXTENSIONS.get(content_type.split(";")[0].strip(), "mp4")
    filename = f"nightmare_{uuid.uuid4().hex}.{ext}"
    (media_dir() / filename).write_bytes(data)

    url = media_url(filename)
    logger.info(f"Stored video ({len(data)} bytes): {url}")
    return url
