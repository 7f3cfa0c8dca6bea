import asyncio
import base64

import pytest

from nightmare.pipeline import codec
from nightmare.pipeline.errors import DecodeError, ReadError


class AsyncUpload:
    """Mimics FastAPI's UploadFile: read() is a coroutine."""

    def __init__(self, data):
        self.data = data

    async def read(self):
        return self.data


class BrokenUpload:
    def read(self):
        raise OSError("disk went away")


def test_round_trip_recovers_bytes_and_type():
    data = bytes(range(256)) * 3
    encoded = asyncio.run(codec.encode(data, "image/webp"))

    assert encoded.startswith("data:image/webp;base64,")
    assert codec.decode_to_handle(encoded) == (data, "image/webp")


def test_encode_reads_async_handles():
    encoded = asyncio.run(codec.encode(AsyncUpload(b"\xff\xd8\xffpixels"), "image/jpeg"))
    handle = codec.decode_to_handle(encoded)

    assert handle.data == b"\xff\xd8\xffpixels"
    assert handle.media_type == "image/jpeg"


def test_encode_sniffs_missing_media_type(png_bytes):
    encoded = asyncio.run(codec.encode(png_bytes, None))
    assert encoded.startswith("data:image/png;base64,")


def test_encode_drops_media_type_parameters():
    encoded = asyncio.run(codec.encode(b"abc", "image/png; charset=binary"))
    assert codec.decode_to_handle(encoded).media_type == "image/png"


def test_encode_failed_read_raises_read_error():
    with pytest.raises(ReadError):
        asyncio.run(codec.encode(BrokenUpload(), "image/png"))


@pytest.mark.parametrize("bad", [
    "not a data url",
    "data:image/png,plain-not-base64",
    "data:image/png;base64,@@@@",
    "",
])
def test_decode_rejects_malformed_input(bad):
    with pytest.raises(DecodeError):
        codec.decode_to_handle(bad)


def test_strip_envelope_returns_bare_payload():
    assert codec.strip_envelope("data:image/jpeg;base64,QUJD") == "QUJD"


def test_wrap_image_labels_by_sniffed_format(png_bytes):
    png_payload = base64.b64encode(png_bytes).decode()

    assert codec.wrap_image(png_payload).startswith("data:image/png;base64,")
    assert codec.wrap_image("img1") == "data:image/jpeg;base64,img1"
