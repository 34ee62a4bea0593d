"""
Listing Video Pipeline

  Clips  — one image-to-video job per included scene (fal.ai or Kling)
  Music  — background track via fal.ai, polled by the client
  Render — ffmpeg concat of finished clips, playlist fallback
"""

from .orchestrator import RenderOrchestrator
from .routes import project_router
from .models import ProjectStatus, RenderStatus

__all__ = [
    "RenderOrchestrator",
    "project_router",
    "ProjectStatus",
    "RenderStatus",
]
