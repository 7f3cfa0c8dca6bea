"""
Media codec - raw upload bytes <-> self-describing data URLs.

The transform step consumes and produces bare base64 payloads, the video step
needs the binary and its media type back, and the browser wants data URLs.
Everything in here is a pure transformation apart from reading the upload.
"""

import re
import base64
import binascii
import inspect
import logging
from io import BytesIO
from typing import NamedTuple, Optional, Union

from PIL import Image, UnidentifiedImageError

from .errors import ReadError, DecodeError

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MEDIA_TYPE = "image/jpeg"

_DATA_URL_RE = re.compile(
    r"^data:(?P<media_type>[\w.+-]+/[\w.+-]+)(?:;[\w.+-]+=[\w.+-]+)*;base64,(?P<payload>.*)$",
    re.DOTALL,
)


class MediaHandle(NamedTuple):
    data: bytes
    media_type: str


async def _read_all(source) -> bytes:
    """Read bytes from raw bytes, a file object, or an async upload handle."""
    if isinstance(source, (bytes, bytearray, memoryview)):
        return bytes(source)

    try:
        data = source.read()
        if inspect.isawaitable(data):
            data = await data
    except (OSError, ValueError) as e:
        raise ReadError(f"Failed to read the image file: {e}") from e

    if not isinstance(data, (bytes, bytearray)):
        raise ReadError("Failed to read the image file: upload returned no binary data.")
    return bytes(data)


async def encode(source: Union[bytes, object], media_type: Optional[str] = None) -> str:
    """
    Read the upload fully and return it as a data URL.

    When the upload carries no media type it is sniffed from the bytes.

    Raises:
        ReadError: If the underlying handle fails mid-read.
    """
    data = await _read_all(source)
    media_type = (media_type or "").split(";")[0].strip() or guess_media_type(data)
    logger.info(f"Encoded upload: {len(data)} bytes ({media_type})")
    return wrap(base64.b64encode(data).decode("ascii"), media_type)


def wrap(payload: str, media_type: str = DEFAULT_IMAGE_MEDIA_TYPE) -> str:
    """Put a bare base64 payload into its display envelope."""
    return f"data:{media_type};base64,{payload}"


def wrap_image(payload: str) -> str:
    """Wrap a generated image payload, labelling it with its sniffed format."""
    try:
        data = base64.b64decode(payload)
    except (binascii.Error, ValueError):
        return wrap(payload)
    return wrap(payload, guess_media_type(data))


def _match(encoded: str) -> re.Match:
    match = _DATA_URL_RE.match(encoded or "") if isinstance(encoded, str) else None
    if not match:
        raise DecodeError("Image is not a base64 data URL.")
    return match


def strip_envelope(encoded: str) -> str:
    """Return the bare base64 payload of a data URL."""
    return _match(encoded).group("payload")


def decode_to_handle(encoded: str) -> MediaHandle:
    """
    Recover the binary payload and media type from a data URL.

    Raises:
        DecodeError: If the string is not a data URL or the payload is not base64.
    """
    match = _match(encoded)
    try:
        data = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Image payload could not be decoded: {e}") from e
    return MediaHandle(data, match.group("media_type"))


def guess_media_type(data: bytes, default: str = DEFAULT_IMAGE_MEDIA_TYPE) -> str:
    """Sniff the image format with PIL, falling back to ``default``."""
    try:
        with Image.open(BytesIO(data)) as img:
            return Image.MIME.get(img.format or "", default)
    except (UnidentifiedImageError, OSError):
        return default
