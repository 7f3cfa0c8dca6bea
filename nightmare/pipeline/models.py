"""
Pydantic models and enums for the horror generation pipeline.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# ── Camera Motion ────────────────────────────────────────────────────────────

class CameraMotion(str, Enum):
    CAMERA_SHAKE = "Camera Shake (Static)"
    SLOW_ZOOM_IN = "Slow Zoom In"
    SLOW_ZOOM_OUT = "Slow Zoom Out"
    PAN_LEFT = "Pan Left"
    PAN_RIGHT = "Pan Right"
    DOLLY_FORWARD = "Dolly Forward"
    HANDHELD_DRIFT = "Handheld Drift"
    ORBIT = "Orbit"


CAMERA_MOTION_LABELS = [m.value for m in CameraMotion]
DEFAULT_CAMERA_MOTION = CameraMotion.CAMERA_SHAKE


# ── Workflow State ───────────────────────────────────────────────────────────

class WorkflowState(BaseModel):
    """Everything the presentation layer needs to render one session."""
    source_image: Optional[str] = None        # data URL of the upload
    source_media_type: Optional[str] = None
    variants: list[str] = Field(default_factory=list)  # display-ready data URLs
    selected_index: Optional[int] = None
    video_urls: list[str] = Field(default_factory=list)
    is_transforming: bool = False
    is_animating: bool = False
    video_status: str = ""
    error: Optional[str] = None
    error_type: Optional[str] = None          # exception class name, e.g. "ValidationError"

    @property
    def selected_variant(self) -> Optional[str]:
        if self.selected_index is None:
            return None
        if 0 <= self.selected_index < len(self.variants):
            return self.variants[self.selected_index]
        return None


# ── API Request Models ───────────────────────────────────────────────────────

class TransformRequest(BaseModel):
    """Turn the uploaded photo into a set of horror variants."""
    prompt: str = Field("", description="Extra steering for the transformation")
    negative_prompt: str = Field("", description="Things the variants must avoid")
    realistic: bool = Field(False, description="Photorealistic instead of stylized horror")


class SelectRequest(BaseModel):
    index: int


class AnimateRequest(BaseModel):
    """Animate the selected variant into a short video."""
    video_prompt: str = ""
    video_negative_prompt: str = ""
    camera_motion: CameraMotion = DEFAULT_CAMERA_MOTION
