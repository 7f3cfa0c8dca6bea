"""
FastAPI routes for the horror studio workflow (single session).

Workflow Endpoints:
  GET  /workflow/state           - Current state snapshot
  GET  /workflow/events          - Server-sent events, one snapshot per change
  GET  /workflow/camera-motions  - Camera motion catalogue
  POST /workflow/upload          - Upload the source photo (multipart)
  POST /workflow/transform       - Generate horror variants (waits for them)
  POST /workflow/select          - Select a variant
  POST /workflow/animate         - Start animating the selected variant (background)
"""

import json
import asyncio
import logging

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, Request, UploadFile
from fastapi.responses import StreamingResponse

from .models import (
    CAMERA_MOTION_LABELS,
    AnimateRequest,
    SelectRequest,
    TransformRequest,
    WorkflowState,
)
from .orchestrator import WorkflowService

logger = logging.getLogger(__name__)

# Errors caused by the caller rather than the generative service
CLIENT_ERROR_TYPES = {"ValidationError", "ReadError", "DecodeError"}

EVENT_KEEPALIVE_SECONDS = 15


workflow_router = APIRouter(prefix="/workflow", tags=["workflow"])

# Singleton service instance
_service = WorkflowService()


def get_service() -> WorkflowService:
    return _service


def _raise_for_error(state: WorkflowState) -> WorkflowState:
    if state.error:
        code = 400 if state.error_type in CLIENT_ERROR_TYPES else 502
        raise HTTPException(status_code=code, detail=state.error)
    return state


def _sse(state: WorkflowState) -> str:
    return f"data: {json.dumps(state.model_dump())}\n\n"


@workflow_router.get("/state", response_model=WorkflowState)
async def get_state(service: WorkflowService = Depends(get_service)):
    return service.snapshot()


@workflow_router.get("/events")
async def stream_events(request: Request, service: WorkflowService = Depends(get_service)):
    """Push a snapshot on every state change (status messages included)."""
    queue: asyncio.Queue = asyncio.Queue()
    unsubscribe = service.subscribe(queue.put_nowait)

    async def event_stream():
        try:
            yield _sse(service.snapshot())
            while not await request.is_disconnected():
                try:
                    state = await asyncio.wait_for(queue.get(), timeout=EVENT_KEEPALIVE_SECONDS)
                except asyncio.TimeoutError:
                    yield ": keep-alive\n\n"
                    continue
                yield _sse(state)
        finally:
            unsubscribe()

    return StreamingResponse(event_stream(), media_type="text/event-stream")


@workflow_router.get("/camera-motions", response_model=list[str])
async def list_camera_motions():
    return CAMERA_MOTION_LABELS


@workflow_router.post("/upload", response_model=WorkflowState)
async def upload_image(
    file: UploadFile = File(...),
    service: WorkflowService = Depends(get_service),
):
    """Replace the source photo; clears variants, selection and videos."""
    state = await service.upload(file, file.content_type)
    return _raise_for_error(state)


@workflow_router.post("/transform", response_model=WorkflowState)
async def transform(request: TransformRequest, service: WorkflowService = Depends(get_service)):
    """
    Generate a fresh set of horror variants.

    Errors:
      - 400: No source photo uploaded
      - 502: The image model failed or returned nothing
    """
    state = await service.request_transform(
        prompt=request.prompt,
        negative_prompt=request.negative_prompt,
        realistic=request.realistic,
    )
    return _raise_for_error(state)


@workflow_router.post("/select", response_model=WorkflowState)
async def select_variant(request: SelectRequest, service: WorkflowService = Depends(get_service)):
    """
    Errors:
      - 400: Index out of range or nothing to select
    """
    state = service.select_variant(request.index)
    return _raise_for_error(state)


@workflow_router.post("/animate", response_model=WorkflowState)
async def animate(
    request: AnimateRequest,
    background_tasks: BackgroundTasks,
    service: WorkflowService = Depends(get_service),
):
    """
    Start animating the selected variant. Follow progress via /state or /events.

    Errors:
      - 400: No variant selected
    """
    # Busy flag is set before responding; only the Veo round trip runs in the background
    job = service.start_animation(request.camera_motion.value)
    if job is None:
        return _raise_for_error(service.snapshot())

    background_tasks.add_task(
        service.run_animation,
        job,
        request.video_prompt,
        request.video_negative_prompt,
    )
    logger.info(f"Animation queued (motion={request.camera_motion.value})")
    return service.snapshot()
