"""
WorkflowService - the horror studio state machine.

Owns the single session's pipeline state and sequences:
  Upload    → store the photo as a data URL, reset everything downstream
  Transform → Gemini horror variants (replaces the variant set)
  Select    → pick one variant
  Animate   → Veo video from the selected variant, with live status text

Every failure is caught here and becomes the one error message in the state.
Concurrent calls of the same operation are not serialized: whichever resolves
last wins.
"""

import time
import logging
from typing import Callable, NamedTuple, Optional

from .. import metrics
from ..presets import VIDEO_GENERATION_MESSAGES
from . import codec
from .errors import PipelineError, ValidationError
from .models import CameraMotion, DEFAULT_CAMERA_MOTION, WorkflowState
from .transform import transform_image
from .animate import animate_image

logger = logging.getLogger(__name__)

StateListener = Callable[[WorkflowState], None]

UNKNOWN_TRANSFORM_ERROR = "An unknown error occurred during image generation."
UNKNOWN_VIDEO_ERROR = "An unknown error occurred during video generation."


class AnimationJob(NamedTuple):
    """An accepted animation request, already counted as in flight."""
    image: str
    motion: CameraMotion
    started: float


class WorkflowService:
    """
    Single-session pipeline orchestrator.

    Usage:
        service = WorkflowService()
        unsubscribe = service.subscribe(render)

        await service.upload(file, "image/png")
        await service.request_transform(prompt="rotting bride", realistic=True)
        service.select_variant(1)
        await service.request_animation(camera_motion="Slow Zoom In")
    """

    def __init__(self, status_messages: Optional[list[str]] = None):
        self._state = WorkflowState()
        self._listeners: list[StateListener] = []
        self._status_messages = list(status_messages or VIDEO_GENERATION_MESSAGES)
        self._in_flight = {"transform": 0, "animate": 0}

    # ── Observation ──────────────────────────────────────────────────────

    def snapshot(self) -> WorkflowState:
        """A detached copy of the current state."""
        return self._state.model_copy(deep=True)

    def subscribe(self, listener: StateListener) -> Callable[[], None]:
        """Call ``listener`` with a snapshot after every state change."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self):
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception as e:
                logger.error(f"State listener {listener!r} failed: {e}", exc_info=True)

    def _fail(self, operation: str, error: Exception, fallback: str = ""):
        if isinstance(error, PipelineError):
            message = str(error)
        else:
            message = fallback or str(error)

        if isinstance(error, ValidationError):
            logger.warning(f"[{operation}] rejected: {message}")
        else:
            logger.error(f"[{operation}] failed: {error}", exc_info=error)

        self._state.error = message
        self._state.error_type = type(error).__name__
        metrics.inc_counter(f"errors.{operation}")
        metrics.record_error(operation, type(error).__name__, message)

    def _clear_error(self):
        self._state.error = None
        self._state.error_type = None

    # ── Upload ───────────────────────────────────────────────────────────

    async def upload(self, source, media_type: Optional[str] = None) -> WorkflowState:
        """
        Replace the source photo.

        A fresh source invalidates every downstream artifact. A failed read
        leaves the previous source in place.
        """
        metrics.inc_counter("requests.upload")
        try:
            encoded = await codec.encode(source, media_type)
            media_type = codec.decode_to_handle(encoded).media_type
        except Exception as e:
            self._fail("upload", e, "Failed to read the image file.")
            self._publish()
            return self.snapshot()

        state = self._state
        state.source_image = encoded
        state.source_media_type = media_type
        state.variants = []
        state.selected_index = None
        state.video_urls = []
        self._clear_error()

        logger.info(f"New source image uploaded ({media_type})")
        self._publish()
        return self.snapshot()

    # ── Transform ────────────────────────────────────────────────────────

    async def request_transform(
        self,
        prompt: str = "",
        negative_prompt: str = "",
        realistic: bool = False,
    ) -> WorkflowState:
        """Generate a new variant set from the current source photo."""
        metrics.inc_counter("requests.transform")

        if not self._state.source_image:
            self._fail("transform", ValidationError("Please upload an image first."))
            self._publish()
            return self.snapshot()

        source = self._state.source_image
        media_type = self._state.source_media_type

        state = self._state
        state.is_transforming = True
        self._clear_error()
        state.video_urls = []
        state.variants = []
        state.selected_index = None
        self._begin("transform")
        self._publish()

        started = time.monotonic()
        try:
            images = await transform_image(
                codec.strip_envelope(source),
                media_type,
                prompt,
                negative_prompt,
                realistic,
            )
            state.variants = [codec.wrap_image(img) for img in images]
            state.selected_index = None
            logger.info(f"Transform complete: {len(state.variants)} variant(s)")
        except Exception as e:
            self._fail("transform", e, UNKNOWN_TRANSFORM_ERROR)
        finally:
            state.is_transforming = self._end("transform", started)
            self._publish()

        return self.snapshot()

    # ── Select ───────────────────────────────────────────────────────────

    def select_variant(self, index: int) -> WorkflowState:
        """Pick one variant. Existing videos stay visible."""
        variants = self._state.variants
        if not variants:
            self._fail("select", ValidationError("Please transform an image first."))
        elif not 0 <= index < len(variants):
            self._fail("select", ValidationError(
                f"Variant {index} does not exist (have {len(variants)})."
            ))
        else:
            self._state.selected_index = index
            self._clear_error()
            logger.info(f"Variant {index} selected")

        self._publish()
        return self.snapshot()

    # ── Animate ──────────────────────────────────────────────────────────

    async def request_animation(
        self,
        video_prompt: str = "",
        video_negative_prompt: str = "",
        camera_motion: str = DEFAULT_CAMERA_MOTION.value,
    ) -> WorkflowState:
        """
        Animate the selected variant.

        An unknown camera motion raises ValueError straight to the caller.
        On failure the previous videos are kept; the last status message is
        left in place after completion.
        """
        job = self.start_animation(camera_motion)
        if job is None:
            return self.snapshot()
        return await self.run_animation(job, video_prompt, video_negative_prompt)

    def start_animation(self, camera_motion: str = DEFAULT_CAMERA_MOTION.value) -> Optional[AnimationJob]:
        """
        Validate and mark the pipeline busy without awaiting anything.

        Returns None (with the error recorded) when nothing is selected.
        The returned job must be handed to ``run_animation``.
        """
        motion = CameraMotion(camera_motion)
        metrics.inc_counter("requests.animate")

        selected = self._state.selected_variant
        if selected is None:
            self._fail("animate", ValidationError(
                "Please select one of the generated horror images first."
            ))
            self._publish()
            return None

        state = self._state
        state.is_animating = True
        self._clear_error()
        state.video_status = ""
        self._begin("animate")
        self._publish()
        return AnimationJob(selected, motion, time.monotonic())

    async def run_animation(
        self,
        job: AnimationJob,
        video_prompt: str = "",
        video_negative_prompt: str = "",
    ) -> WorkflowState:
        state = self._state
        try:
            handle = codec.decode_to_handle(job.image)
            video_urls = await animate_image(
                codec.strip_envelope(job.image),
                handle.media_type,
                self._on_video_status,
                self._status_messages,
                video_prompt,
                video_negative_prompt,
                job.motion.value,
            )
            state.video_urls = list(video_urls)
            logger.info(f"Animation complete: {state.video_urls}")
        except Exception as e:
            self._fail("animate", e, UNKNOWN_VIDEO_ERROR)
        finally:
            state.is_animating = self._end("animate", job.started)
            self._publish()

        return self.snapshot()

    def _on_video_status(self, text: str):
        self._state.video_status = text
        self._publish()

    # ── In-flight bookkeeping ────────────────────────────────────────────

    def _begin(self, operation: str):
        self._in_flight[operation] += 1
        metrics.adjust_gauge(f"{operation}s_in_flight", 1)

    def _end(self, operation: str, started: float) -> bool:
        """Close one call; returns whether others of the same kind are still running."""
        self._in_flight[operation] -= 1
        metrics.adjust_gauge(f"{operation}s_in_flight", -1)
        metrics.record_latency(operation, (time.monotonic() - started) * 1000)
        return self._in_flight[operation] > 0
