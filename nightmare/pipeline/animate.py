"""
Step 2: The Motion - Veo image-to-video.

Animates the selected horror variant into a short clip:
  - submit a predictLongRunning job with the image and composed prompt
  - poll the operation until it reports done (no attempt cap)
  - download every generated sample into the local media store
"""

import os
import asyncio
import inspect
import logging
from typing import Callable, Optional, Sequence

import httpx

from .. import gemini
from ..presets import build_video_prompt
from .errors import RemoteServiceError
from .models import CameraMotion
from .storage import save_video

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

VIDEO_POLL_INTERVAL = float(os.getenv("VIDEO_POLL_INTERVAL", "10"))  # seconds
VIDEO_POLL_TIMEOUT = float(os.getenv("VIDEO_POLL_TIMEOUT", "30"))    # per poll call
VIDEO_REQUEST_TIMEOUT = 60
VIDEO_ASPECT_RATIO = os.getenv("VIDEO_ASPECT_RATIO", "16:9")

FALLBACK_STATUS = "Generating video..."

StatusCallback = Callable[[str], object]


def _resolve_video_uris(operation: dict) -> list[str]:
    """Pull the sample URIs out of a finished operation, or raise its failure."""
    error = operation.get("error")
    if error:
        message = error.get("message") if isinstance(error, dict) else str(error)
        raise RemoteServiceError(f"Video generation failed: {message or 'unknown error'}")

    response = operation.get("response") or {}
    video_response = response.get("generateVideoResponse") or response
    samples = video_response.get("generatedSamples") or video_response.get("generatedVideos") or []

    uris = []
    for sample in samples:
        video = sample.get("video") or {}
        if video.get("uri"):
            uris.append(video["uri"])

    if not uris:
        filtered = video_response.get("raiMediaFilteredReasons") or []
        if filtered:
            raise RemoteServiceError(f"Video was blocked by safety filters: {filtered[0]}")
        raise RemoteServiceError("Video generation completed, but no videos were returned.")
    return uris


async def animate_image(
    image_b64: str,
    mime_type: str,
    on_status: StatusCallback,
    status_messages: Sequence[str],
    video_prompt: str,
    video_negative_prompt: str,
    camera_motion: str,
    client: Optional[httpx.AsyncClient] = None,
    poll_interval: Optional[float] = None,
) -> list[str]:
    """
    Animate one image into video(s) via Veo.

    Args:
        image_b64:             Bare base64 payload of the selected variant.
        mime_type:             Media type of that payload.
        on_status:             Called with the next plan message at submit and
                               on every poll that finds the job still running.
        status_messages:       The status message plan, cycled in order.
        video_prompt:          Motion direction, may be empty.
        video_negative_prompt: Things to avoid, may be empty.
        camera_motion:         A CameraMotion label.
        client:                Optional shared HTTP client.
        poll_interval:         Overrides VIDEO_POLL_INTERVAL.

    Returns:
        Playable URLs of the stored videos.

    Raises:
        ValueError:          Unknown camera motion label (before any request).
        RemoteServiceError:  Submit/poll/download failed or the job failed.
        PollTimeoutError:    A single poll call timed out.
    """
    motion = CameraMotion(camera_motion)
    plan = list(status_messages) or [FALLBACK_STATUS]
    interval = VIDEO_POLL_INTERVAL if poll_interval is None else poll_interval
    step = 0

    async def _advance():
        nonlocal step
        result = on_status(plan[step % len(plan)])
        if inspect.isawaitable(result):
            await result
        step += 1

    instance = {
        "prompt": build_video_prompt(video_prompt, motion.value),
        "image": {"bytesBase64Encoded": image_b64, "mimeType": mime_type},
    }
    parameters = {
        "aspectRatio": VIDEO_ASPECT_RATIO,
        "sampleCount": 1,
        "personGeneration": "allow_adult",
    }
    if video_negative_prompt.strip():
        parameters["negativePrompt"] = video_negative_prompt.strip()

    async def _run(c: httpx.AsyncClient) -> list[str]:
        operation_name = await gemini.start_video_operation(
            c, gemini.VEO_MODEL, instance, parameters
        )
        logger.info(f"Veo animation submitted: operation={operation_name}, motion={motion.value}")
        await _advance()

        attempt = 0
        while True:
            await asyncio.sleep(interval)
            attempt += 1
            operation = await gemini.get_operation(c, operation_name, VIDEO_POLL_TIMEOUT)
            done = bool(operation.get("done"))
            logger.info(f"Veo poll #{attempt}: done={done}")
            if done:
                break
            await _advance()

        video_urls = []
        for uri in _resolve_video_uris(operation):
            video_bytes = await gemini.download_file(c, uri)
            video_urls.append(await asyncio.to_thread(save_video, video_bytes))

        logger.info(f"Horror video(s) created: {video_urls}")
        return video_urls

    if client is not None:
        return await _run(client)
    async with httpx.AsyncClient(timeout=VIDEO_REQUEST_TIMEOUT) as c:
        return await _run(c)
