"""
Pydantic models and enums for the listing video pipeline.
"""

from enum import Enum
from typing import Optional
from pydantic import BaseModel, Field


# ── Project Status ───────────────────────────────────────────────────────────

class ProjectStatus(str, Enum):
    CREATED = "created"
    CLIPS_QUEUED = "clips_queued"
    CLIPS_GENERATING = "clips_generating"
    CLIPS_READY = "clips_ready"
    RENDER_QUEUED = "render_queued"
    RENDERING = "rendering"
    COMPLETE = "complete"
    FAILED = "failed"


# ── Render Rows ──────────────────────────────────────────────────────────────

class RenderType(str, Enum):
    SCENE_CLIP = "scene_clip"
    FINAL_VERTICAL = "final_vertical"
    FINAL_HORIZONTAL = "final_horizontal"


FINAL_RENDER_TYPES = [RenderType.FINAL_VERTICAL.value, RenderType.FINAL_HORIZONTAL.value]

# Output aspect ratio of each final render row
FINAL_ASPECT_RATIOS = {
    RenderType.FINAL_VERTICAL: "9:16",
    RenderType.FINAL_HORIZONTAL: "16:9",
}


class RenderStatus(str, Enum):
    QUEUED = "queued"
    RUNNING = "running"
    DONE = "done"
    FAILED = "failed"


class Provider(str, Enum):
    FAL = "fal"
    KLING = "kling"
    FFMPEG = "ffmpeg"
    PLAYLIST = "playlist"


# ── Constants ────────────────────────────────────────────────────────────────

MIN_MUSIC_DURATION = 15
MAX_MUSIC_DURATION = 120
DEFAULT_MUSIC_DURATION = 30

CLIP_DURATION_SEC = 5
SIGNED_URL_TTL = 3600  # seconds

PLAYLIST_PREFIX = "playlist:"

AspectRatio = str  # "16:9" | "9:16" | "1:1"
ASPECT_RATIOS = ("16:9", "9:16", "1:1")


# ── Clips ────────────────────────────────────────────────────────────────────

class ClipSubmitRequest(BaseModel):
    """Optional overrides for a clip generation batch."""
    aspect_ratio: Optional[AspectRatio] = Field(
        None, description="Defaults to the project's video_format"
    )
    provider: Optional[str] = Field(None, description="fal or kling")


class ClipSubmission(BaseModel):
    scene_id: str
    render_id: str
    task_id: str


class ClipSubmitResponse(BaseModel):
    success: bool
    submitted: int
    renders: list[ClipSubmission] = Field(default_factory=list)
    errors: Optional[list[str]] = None


class ClipPollResponse(BaseModel):
    completed: int = 0
    failed: int = 0
    allDone: bool = False


# ── Music ────────────────────────────────────────────────────────────────────

class MusicRequest(BaseModel):
    genre: str = "ambient"
    duration: Optional[float] = DEFAULT_MUSIC_DURATION


# ── Final Render ─────────────────────────────────────────────────────────────

class FinalRenderRef(BaseModel):
    id: str
    type: str


class QueuedRender(BaseModel):
    id: str
    type: str
    status: str


class QueueRendersResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
    renders: list[QueuedRender] = Field(default_factory=list)
    total_duration: Optional[float] = None


class RenderResponse(BaseModel):
    success: bool = True
    mode: str  # "ffmpeg" | "playlist"
    renders: list[FinalRenderRef] = Field(default_factory=list)


class Playback(BaseModel):
    mode: str  # "file" | "playlist"
    url: Optional[str] = None
    clips: list[str] = Field(default_factory=list)
    totalDuration: Optional[float] = None


class FinalRenderStatus(BaseModel):
    id: str
    type: str
    status: str
    provider: Optional[str] = None
    duration_sec: Optional[float] = None
    error: Optional[str] = None
    playback: Optional[Playback] = None
