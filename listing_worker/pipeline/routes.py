"""
FastAPI routes for listing video projects.

All endpoints sit behind SessionAuthMiddleware; the caller must own the project.

  POST /api/projects/{id}/clips        — Submit one clip job per included scene
  POST /api/projects/{id}/clips/poll   — Advance running clip jobs
  POST /api/projects/{id}/music        — Submit a background music track
  GET  /api/projects/{id}/music        — Poll a music request (?requestId=)
  POST /api/projects/{id}/render/queue — Queue the vertical and horizontal final renders
  POST /api/projects/{id}/render       — Assemble the final video
  GET  /api/projects/{id}/render       — Final renders with playback info
"""

import time
import logging
from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from .models import (
    ClipSubmitRequest,
    ClipSubmitResponse,
    MusicRequest,
    RenderResponse,
    QueueRendersResponse,
)
from .clips import submit_scene_clips, poll_scene_clips
from .music import submit_music, check_music_status, MusicProviderError
from .orchestrator import (
    RenderOrchestrator,
    RenderFailedError,
    get_final_renders,
    queue_final_renders,
)
from . import project_service
from .. import fal
from .. import metrics
from .. import render_guard

logger = logging.getLogger(__name__)


def current_user_id(request: Request) -> str:
    """The Supabase user id attached by SessionAuthMiddleware."""
    user_id = getattr(request.state, "user_id", None)
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return user_id


project_router = APIRouter(prefix="/api/projects", tags=["projects"])


# ── Clips ────────────────────────────────────────────────────────────────────

@project_router.post("/{project_id}/clips", response_model=ClipSubmitResponse)
async def submit_clips(project_id: str, request: Request, body: Optional[ClipSubmitRequest] = None):
    """Submit image-to-video jobs for every included scene."""
    user_id = current_user_id(request)
    body = body or ClipSubmitRequest()
    start = time.time()
    try:
        result = await submit_scene_clips(
            project_id,
            user_id,
            aspect_ratio=body.aspect_ratio,
            provider=body.provider,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Clip submission failed for {project_id}: {e}", exc_info=True)
        metrics.record_error("clips", type(e).__name__, str(e), project_id)
        raise HTTPException(status_code=500, detail=str(e))

    metrics.record_latency("clips.submit", (time.time() - start) * 1000)
    return result


@project_router.post("/{project_id}/clips/poll")
async def poll_clips(project_id: str, request: Request):
    user_id = current_user_id(request)
    try:
        return await poll_scene_clips(project_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        logger.error(f"Clip poll failed for {project_id}: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


# ── Music ────────────────────────────────────────────────────────────────────

@project_router.post("/{project_id}/music")
async def create_music(project_id: str, request: Request, body: Optional[MusicRequest] = None):
    """Submit a background track. Returns pending + requestId, or the audio URL."""
    user_id = current_user_id(request)
    body = body or MusicRequest()
    try:
        project_service.get_owned_project(project_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not fal.is_configured():
        raise HTTPException(status_code=500, detail="FAL_API_KEY not configured")

    try:
        result = await submit_music(body.genre, body.duration)
    except MusicProviderError as e:
        metrics.inc_counter("errors.music_submit")
        raise HTTPException(
            status_code=e.status_code,
            detail={"error": str(e), "details": e.details},
        )
    except Exception as e:
        logger.error(f"Music submission failed for {project_id}: {e}", exc_info=True)
        metrics.inc_counter("errors.music_submit")
        raise HTTPException(status_code=500, detail=str(e))

    metrics.inc_counter("music.submitted")
    return result


@project_router.get("/{project_id}/music")
async def get_music_status(project_id: str, request: Request, requestId: Optional[str] = Query(None)):
    user_id = current_user_id(request)
    if not requestId:
        raise HTTPException(status_code=400, detail="requestId is required")
    try:
        project_service.get_owned_project(project_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))

    if not fal.is_configured():
        raise HTTPException(status_code=500, detail="FAL_API_KEY not configured")

    return await check_music_status(requestId)


# ── Final Render ─────────────────────────────────────────────────────────────

@project_router.post("/{project_id}/render/queue", response_model=QueueRendersResponse)
def queue_renders(project_id: str, request: Request):
    """Create the queued final render rows (skipped if some are already pending)."""
    user_id = current_user_id(request)
    try:
        return queue_final_renders(project_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.error(f"Queueing final renders failed for {project_id}: {e}", exc_info=True)
        metrics.record_error("render_queue", type(e).__name__, str(e), project_id)
        raise HTTPException(status_code=500, detail=str(e))


# Plain def: assembly blocks on downloads and ffmpeg, so FastAPI runs it
# in the threadpool instead of on the event loop.
@project_router.post("/{project_id}/render")
def render_project(project_id: str, request: Request):
    """Concatenate finished scene clips into the final video (playlist fallback)."""
    user_id = current_user_id(request)

    if not render_guard.acquire_project(project_id):
        raise HTTPException(status_code=409, detail="A render is already in progress for this project")

    metrics.set_gauge("active_renders", render_guard.get_active_count())
    start = time.time()
    try:
        result = RenderOrchestrator().assemble(project_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except RenderFailedError as e:
        logger.error(f"Render failed for {project_id}: {e}", exc_info=True)
        metrics.inc_counter("errors.render")
        metrics.record_error("render", "RenderFailedError", str(e), project_id)
        raise HTTPException(status_code=500, detail=str(e))
    except Exception as e:
        logger.error(f"Render error for {project_id}: {e}", exc_info=True)
        metrics.inc_counter("errors.render")
        raise HTTPException(status_code=500, detail=str(e))
    finally:
        render_guard.release_project(project_id)
        metrics.set_gauge("active_renders", render_guard.get_active_count())

    if "mode" not in result:
        return result

    metrics.inc_counter(f"renders.{result['mode']}")
    metrics.record_latency("render", (time.time() - start) * 1000)
    return RenderResponse(**result)


@project_router.get("/{project_id}/render")
def list_final_renders(project_id: str, request: Request):
    user_id = current_user_id(request)
    try:
        renders = get_final_renders(project_id, user_id)
    except PermissionError as e:
        raise HTTPException(status_code=404, detail=str(e))
    return {"renders": renders}
