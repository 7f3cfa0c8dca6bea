import asyncio
from io import BytesIO

import httpx
import pytest
from PIL import Image

from nightmare import gemini, metrics
from nightmare.pipeline import storage


@pytest.fixture(autouse=True)
def clean_metrics():
    metrics.reset()
    yield
    metrics.reset()


@pytest.fixture
def api_key(monkeypatch):
    monkeypatch.setattr(gemini, "GEMINI_API_KEY", "test-key")
    return "test-key"


@pytest.fixture
def media_dir(tmp_path, monkeypatch):
    path = tmp_path / "media"
    monkeypatch.setattr(storage, "MEDIA_DIR", str(path))
    return path


@pytest.fixture
def png_bytes():
    buf = BytesIO()
    Image.new("RGB", (4, 4), color=(120, 0, 0)).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def run_with_mock():
    """Run ``fn(client)`` against an AsyncClient whose transport is ``handler``."""
    def _run(handler, fn):
        async def _go():
            async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
                return await fn(client)
        return asyncio.run(_go())
    return _run
