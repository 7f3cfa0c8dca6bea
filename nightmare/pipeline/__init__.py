"""
Horror Generation Pipeline

Single-session workflow for:
  Upload    - photo → data URL
  Transform - Gemini horror variants
  Select    - pick one variant
  Animate   - Veo video with live status messages
"""

from .orchestrator import WorkflowService
from .routes import workflow_router
from .models import CameraMotion, WorkflowState

__all__ = [
    "WorkflowService",
    "workflow_router",
    "CameraMotion",
    "WorkflowState",
]
