"""
Step 1: Horror Transformation - Gemini image model.

Sends the uploaded photo plus the composed style prompt, once per variant,
and returns the generated images as bare base64 payloads in request order.
"""

import os
import asyncio
import logging
from typing import Optional

import httpx

from .. import gemini
from ..presets import build_transform_prompt
from .errors import RemoteServiceError

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

TRANSFORM_VARIANT_COUNT = int(os.getenv("TRANSFORM_VARIANT_COUNT", "4"))
TRANSFORM_TIMEOUT = float(os.getenv("TRANSFORM_TIMEOUT", "120"))


async def _generate_variant(
    client: httpx.AsyncClient,
    image_b64: str,
    mime_type: str,
    full_prompt: str,
) -> list[str]:
    result = await gemini.generate_content(
        client,
        gemini.GEMINI_IMAGE_MODEL,
        parts=[
            {"inlineData": {"mimeType": mime_type, "data": image_b64}},
            {"text": full_prompt},
        ],
        config={"responseModalities": ["TEXT", "IMAGE"]},
    )

    images = [payload for payload, _ in gemini.extract_inline_images(result)]
    if not images:
        reason = gemini.block_reason(result)
        logger.warning(f"Variant request returned no image (blockReason={reason})")
    return images


async def transform_image(
    image_b64: str,
    mime_type: str,
    prompt: str,
    negative_prompt: str,
    realistic: bool,
    client: Optional[httpx.AsyncClient] = None,
    variant_count: Optional[int] = None,
) -> list[str]:
    """
    Generate horror variants of one source image.

    Args:
        image_b64:       Bare base64 payload of the source (no data: prefix).
        mime_type:       Media type of the source image.
        prompt:          Extra user direction, may be empty.
        negative_prompt: Things to avoid, may be empty.
        realistic:       Photorealistic style instead of stylized.
        client:          Optional shared HTTP client (tests inject a mock transport).
        variant_count:   Overrides TRANSFORM_VARIANT_COUNT.

    Returns:
        Non-empty list of bare base64 image payloads, in generation order.

    Raises:
        RemoteServiceError: If any call fails or no images come back.
    """
    count = variant_count or TRANSFORM_VARIANT_COUNT
    full_prompt = build_transform_prompt(prompt, negative_prompt, realistic)

    logger.info(f"Requesting {count} horror variant(s) (realistic={realistic}, mime={mime_type})")

    async def _run(c: httpx.AsyncClient) -> list[list[str]]:
        tasks = [
            asyncio.ensure_future(_generate_variant(c, image_b64, mime_type, full_prompt))
            for _ in range(count)
        ]
        try:
            return await asyncio.gather(*tasks)
        except BaseException:
            # One variant failed: stop the rest before the client closes under them
            pending = [t for t in tasks if not t.done()]
            for task in pending:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            if pending:
                logger.warning(f"Cancelled {len(pending)} pending variant request(s)")
            raise

    if client is not None:
        batches = await _run(client)
    else:
        async with httpx.AsyncClient(timeout=TRANSFORM_TIMEOUT) as c:
            batches = await _run(c)

    images = [img for batch in batches for img in batch]
    if not images:
        raise RemoteServiceError(
            "The model did not return any images. Try a different photo or prompt."
        )

    logger.info(f"Horror transformation produced {len(images)} variant(s)")
    return images
