"""
Gemini REST integration for the horror pipeline.

- Image transformation: Gemini image model via generateContent
- Video generation: Veo via predictLongRunning + operation polling

All helpers take an httpx.AsyncClient so callers own timeouts and transports.
"""

import os
import logging
from typing import Optional

import httpx

from .pipeline.errors import RemoteServiceError, PollTimeoutError

logger = logging.getLogger(__name__)

GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY", "")
API_BASE = os.environ.get("GEMINI_API_BASE", "https://generativelanguage.googleapis.com/v1beta")

GEMINI_IMAGE_MODEL = os.environ.get("GEMINI_IMAGE_MODEL", "gemini-2.5-flash-image")
VEO_MODEL = os.environ.get("VEO_MODEL", "veo-2.0-generate-001")


def _api_key() -> str:
    if not GEMINI_API_KEY:
        raise RemoteServiceError("GEMINI_API_KEY not set")
    return GEMINI_API_KEY


def _error_detail(resp: httpx.Response) -> str:
    """Pull the human-readable message out of a Google error body."""
    try:
        body = resp.json()
    except ValueError:
        return resp.text[:500]
    if isinstance(body, dict) and isinstance(body.get("error"), dict):
        return body["error"].get("message") or resp.text[:500]
    return resp.text[:500]


async def _send(client: httpx.AsyncClient, method: str, url: str, **kwargs) -> dict:
    try:
        resp = await client.request(method, url, **kwargs)
    except httpx.HTTPError as e:
        raise RemoteServiceError(f"Gemini request failed: {e}") from e

    if resp.status_code != 200:
        raise RemoteServiceError(f"Gemini API error {resp.status_code}: {_error_detail(resp)}")

    try:
        return resp.json()
    except ValueError as e:
        raise RemoteServiceError("Gemini returned a non-JSON response") from e


# =========================================================================
# 1. Image generation - generateContent
# =========================================================================

async def generate_content(
    client: httpx.AsyncClient,
    model: str,
    parts: list,
    config: Optional[dict] = None,
) -> dict:
    """Call the Gemini generateContent REST endpoint."""
    body: dict = {
        "contents": [{"parts": parts}],
    }
    if config:
        body["generationConfig"] = config

    return await _send(
        client, "POST",
        f"{API_BASE}/models/{model}:generateContent",
        params={"key": _api_key()},
        json=body,
    )


def extract_inline_images(result: dict) -> list[tuple[str, str]]:
    """
    Collect (base64 payload, mime type) pairs from every candidate, in order.

    Text parts are ignored; the model sometimes narrates alongside the image.
    """
    images = []
    for candidate in result.get("candidates") or []:
        for part in (candidate.get("content") or {}).get("parts") or []:
            inline = part.get("inlineData") or part.get("inline_data")
            if inline and inline.get("data"):
                images.append((inline["data"], inline.get("mimeType") or inline.get("mime_type") or ""))
    return images


def block_reason(result: dict) -> Optional[str]:
    feedback = result.get("promptFeedback") or {}
    return feedback.get("blockReason")


# =========================================================================
# 2. Video generation - Veo long-running operations
# =========================================================================

async def start_video_operation(
    client: httpx.AsyncClient,
    model: str,
    instance: dict,
    parameters: dict,
) -> str:
    """Submit a Veo job and return its operation name (the job handle)."""
    data = await _send(
        client, "POST",
        f"{API_BASE}/models/{model}:predictLongRunning",
        params={"key": _api_key()},
        json={"instances": [instance], "parameters": parameters},
    )
    name = data.get("name")
    if not name:
        raise RemoteServiceError(f"Veo submit failed, no operation name: {str(data)[:300]}")
    return name


async def get_operation(client: httpx.AsyncClient, name: str, timeout: float) -> dict:
    """
    Fetch the current state of a long-running operation.

    Raises:
        PollTimeoutError: If this single poll does not answer within ``timeout``.
    """
    try:
        return await _send(
            client, "GET",
            f"{API_BASE}/{name}",
            params={"key": _api_key()},
            timeout=timeout,
        )
    except RemoteServiceError as e:
        if isinstance(e.__cause__, httpx.TimeoutException):
            raise PollTimeoutError(f"Video status check timed out after {timeout}s") from e.__cause__
        raise


async def download_file(client: httpx.AsyncClient, uri: str) -> bytes:
    """Download a generated file; Veo URIs require the API key."""
    try:
        resp = await client.get(uri, params={"key": _api_key()}, follow_redirects=True)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        raise RemoteServiceError(f"Failed to download generated video: {e}") from e
    return resp.content
