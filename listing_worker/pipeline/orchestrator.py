"""
Final video assembly.

Two-tier strategy per invocation:
  Primary:  download finished scene clips → ffmpeg concat (stream copy) → upload
  Fallback: store the ordered clip URLs as a "playlist:" JSON marker that the
            results page plays back-to-back

Once the final rows are claimed the project always ends complete or failed.
"""

import os
import json
import time
import shutil
import logging
import tempfile
import threading
from typing import Optional

import requests

from .models import (
    ProjectStatus,
    RenderStatus,
    RenderType,
    Provider,
    FINAL_RENDER_TYPES,
    CLIP_DURATION_SEC,
    PLAYLIST_PREFIX,
    FINAL_ASPECT_RATIOS,
    Playback,
    FinalRenderStatus,
    QueuedRender,
    QueueRendersResponse,
)
from . import project_service
from . import storage
from . import encoder

logger = logging.getLogger(__name__)

RENDER_BUDGET_SECONDS = float(os.getenv("RENDER_BUDGET_SECONDS", "60"))
DOWNLOAD_TIMEOUT = 30  # seconds, per clip


class RenderFailedError(RuntimeError):
    """Both assembly strategies failed; rows were marked failed."""


# ── Pure helpers ─────────────────────────────────────────────────────────────

def order_clips(clips: list, scenes: list) -> list:
    """
    Sort completed clip renders by their scene's scene_order.

    Clips join to scenes via input_refs.scene_id. Clips whose scene cannot be
    resolved go after every resolvable clip, keeping their incoming order.
    """
    scene_order = {s["id"]: s.get("scene_order") for s in scenes}

    def sort_key(clip):
        refs = clip.get("input_refs") or {}
        order = scene_order.get(refs.get("scene_id")) if isinstance(refs, dict) else None
        if order is None:
            return (1, 0)
        return (0, order)

    return sorted(clips, key=sort_key)


def total_duration(clips: list) -> float:
    return sum(
        c.get("duration_sec") if c.get("duration_sec") is not None else CLIP_DURATION_SEC
        for c in clips
    )


def build_clip_urls(ordered_clips: list) -> list:
    return [storage.clip_public_url(c["output_path"]) for c in ordered_clips if c.get("output_path")]


def encode_playlist(clip_urls: list, duration: float) -> str:
    payload = json.dumps({
        "type": "playlist",
        "clips": clip_urls,
        "totalDuration": duration,
    })
    return f"{PLAYLIST_PREFIX}{payload}"


def describe_playback(render: dict) -> Optional[Playback]:
    """Decode a final render's output_path into something a player can use."""
    output_path = render.get("output_path")
    if not output_path:
        return None
    if output_path.startswith(PLAYLIST_PREFIX):
        try:
            data = json.loads(output_path[len(PLAYLIST_PREFIX):])
        except ValueError as e:
            logger.warning(f"[Render] Unreadable playlist on render {render.get('id')}: {e}")
            return None
        if not isinstance(data, dict):
            logger.warning(f"[Render] Unexpected playlist payload on render {render.get('id')}")
            return None
        return Playback(
            mode="playlist",
            clips=data.get("clips", []),
            totalDuration=data.get("totalDuration"),
        )
    if render.get("status") == RenderStatus.DONE.value:
        return Playback(mode="file", url=storage.export_public_url(output_path))
    return None


def download_clip(url: str, dest: str, timeout: float = DOWNLOAD_TIMEOUT, deadline: float = None) -> int:
    """
    Stream a clip to disk. Returns bytes written.

    `timeout` only bounds each socket read. `deadline` (a time.monotonic()
    value) bounds the whole transfer: a timer closes the response when it
    passes, and the download raises TimeoutError.
    """
    written = 0
    with requests.get(url, stream=True, timeout=timeout) as r:
        r.raise_for_status()
        watchdog = None
        if deadline is not None:
            watchdog = threading.Timer(max(0.0, deadline - time.monotonic()), r.close)
            watchdog.daemon = True
            watchdog.start()
        try:
            with open(dest, "wb") as f:
                for chunk in r.iter_content(chunk_size=1024 * 64):
                    if deadline is not None and time.monotonic() >= deadline:
                        raise TimeoutError(f"Download of {url} exceeded the render budget")
                    f.write(chunk)
                    written += len(chunk)
        except TimeoutError:
            raise
        except Exception as e:
            if deadline is not None and time.monotonic() >= deadline:
                raise TimeoutError(f"Download of {url} exceeded the render budget") from e
            raise
        finally:
            if watchdog is not None:
                watchdog.cancel()

    # A response closed by the timer can also end as a short, silent read
    if deadline is not None and time.monotonic() >= deadline:
        raise TimeoutError(f"Download of {url} exceeded the render budget")
    return written


# ── Orchestrator ─────────────────────────────────────────────────────────────

class RenderOrchestrator:
    """
    Usage:
        result = RenderOrchestrator().assemble(project_id, user_id)
    """

    def __init__(self, budget_seconds: float = RENDER_BUDGET_SECONDS):
        self.budget_seconds = budget_seconds
        self._deadline = 0.0

    def _remaining(self) -> float:
        remaining = self._deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError(f"Render budget of {self.budget_seconds:.0f}s exceeded")
        return remaining

    def assemble(self, project_id: str, user_id: str) -> dict:
        """
        POST /api/projects/{id}/render

        Raises PermissionError (not yours / missing), ValueError (nothing to
        assemble) or RenderFailedError (both strategies failed).
        """
        self._deadline = time.monotonic() + self.budget_seconds
        project_service.get_owned_project(project_id, user_id)

        finals = project_service.list_renders(
            project_id, FINAL_RENDER_TYPES, [RenderStatus.QUEUED.value]
        )
        if not finals:
            return {"message": "No queued final renders found"}

        clips = project_service.list_renders(
            project_id,
            [RenderType.SCENE_CLIP.value],
            [RenderStatus.DONE.value],
            order_by="created_at",
        )
        if not clips:
            raise ValueError("No completed scene clips found")

        scenes = project_service.list_included_scenes(project_id)
        ordered = order_clips(clips, scenes)
        duration = total_duration(ordered)
        logger.info(f"[Render] Found {len(ordered)} scene clips to concatenate ({duration:.1f}s)")

        try:
            for render in finals:
                project_service.update_render(render["id"], status=RenderStatus.RUNNING.value)

            mode = self._assemble(project_id, finals, ordered, duration)
            project_service.set_project_status(project_id, ProjectStatus.COMPLETE)
        except Exception as e:
            self._mark_failed(project_id, finals, str(e))
            raise RenderFailedError(str(e)) from e

        logger.info(f"[Render] DONE ({mode} mode)")
        return {
            "success": True,
            "mode": mode,
            "renders": [{"id": r["id"], "type": r["type"]} for r in finals],
        }

    def _assemble(self, project_id: str, finals: list, ordered: list, duration: float) -> str:
        try:
            ffmpeg_path = encoder.resolve_encoder_path()
            if ffmpeg_path:
                self._run_primary(project_id, ffmpeg_path, finals, ordered, duration)
                return Provider.FFMPEG.value
            logger.warning("[Render] No ffmpeg binary available, using playlist mode")
        except Exception as e:
            logger.warning(f"[Render] ffmpeg pipeline failed: {e}")
            logger.warning("[Render] Falling back to playlist mode...")

        self._run_playlist(finals, ordered, duration)
        return Provider.PLAYLIST.value

    # ── Primary: ffmpeg concat ───────────────────────────────────────────

    def _run_primary(self, project_id, ffmpeg_path, finals, ordered, duration):
        work_dir = tempfile.mkdtemp(prefix=f"render-{project_id}-")
        try:
            clip_paths = []
            for i, clip in enumerate(ordered):
                if not clip.get("output_path"):
                    continue
                dest = os.path.join(work_dir, f"clip_{i:03d}.mp4")
                url = storage.clip_public_url(clip["output_path"])
                size = download_clip(
                    url, dest,
                    timeout=min(DOWNLOAD_TIMEOUT, self._remaining()),
                    deadline=self._deadline,
                )
                clip_paths.append(dest)
                logger.info(f"[Render] Downloaded clip {i + 1}/{len(ordered)} ({size / 1024:.0f}KB)")

            if not clip_paths:
                raise RuntimeError("No clips could be downloaded")

            output = encoder.concat_clips(
                ffmpeg_path, clip_paths, work_dir,
                timeout=min(encoder.ENCODER_TIMEOUT_SECONDS, self._remaining()),
            )
            with open(output, "rb") as f:
                data = f.read()

            sb = project_service._get_service_client()
            for render in finals:
                self._remaining()
                path = storage.upload_video(
                    sb, storage.EXPORTS_BUCKET,
                    storage.render_key(project_id, render["id"]), data,
                )
                project_service.update_render(
                    render["id"],
                    status=RenderStatus.DONE.value,
                    output_path=path,
                    duration_sec=duration,
                    provider=Provider.FFMPEG.value,
                )
                logger.info(f"[Render] {render['type']} complete (ffmpeg)")
        finally:
            shutil.rmtree(work_dir, ignore_errors=True)

    # ── Fallback: playlist ───────────────────────────────────────────────

    def _run_playlist(self, finals, ordered, duration):
        clip_urls = build_clip_urls(ordered)
        logger.info(f"[Render] Playlist mode: {len(clip_urls)} clip URLs")
        output_path = encode_playlist(clip_urls, duration)

        for render in finals:
            project_service.update_render(
                render["id"],
                status=RenderStatus.DONE.value,
                output_path=output_path,
                duration_sec=duration,
                provider=Provider.PLAYLIST.value,
            )
            logger.info(f"[Render] {render['type']} complete (playlist mode)")

    def _mark_failed(self, project_id: str, finals: list, error: str):
        logger.error(f"[Render] Assembly failed for project {project_id}: {error}")
        for render in finals:
            try:
                project_service.update_render(
                    render["id"], status=RenderStatus.FAILED.value, error=error,
                )
            except Exception as e:
                logger.error(f"[Render] Could not mark render {render['id']} failed: {e}")
        try:
            project_service.set_project_status(project_id, ProjectStatus.FAILED)
        except Exception as e:
            logger.error(f"[Render] Could not mark project {project_id} failed: {e}")


def get_final_renders(project_id: str, user_id: str) -> list:
    """GET /api/projects/{id}/render: final rows with decoded playback."""
    project_service.get_owned_project(project_id, user_id)
    renders = project_service.list_renders(project_id, FINAL_RENDER_TYPES, order_by="created_at")
    return [
        FinalRenderStatus(
            id=r["id"],
            type=r["type"],
            status=r.get("status"),
            provider=r.get("provider"),
            duration_sec=r.get("duration_sec"),
            error=r.get("error"),
            playback=describe_playback(r),
        )
        for r in renders
    ]


def queue_final_renders(project_id: str, user_id: str) -> QueueRendersResponse:
    """
    POST /api/projects/{id}/render/queue

    Create the queued final_vertical / final_horizontal rows that
    RenderOrchestrator.assemble picks up. If finals are already queued or
    running they are returned as-is and nothing is inserted.
    """
    project_service.get_owned_project(project_id, user_id)

    existing = project_service.list_renders(
        project_id,
        FINAL_RENDER_TYPES,
        [RenderStatus.QUEUED.value, RenderStatus.RUNNING.value],
    )
    if existing:
        logger.info(
            f"[Render] Found {len(existing)} queued/running final renders, skipping duplicate creation"
        )
        return QueueRendersResponse(
            message="Existing renders found, skipping duplicate creation",
            renders=[QueuedRender(id=r["id"], type=r["type"], status=r["status"]) for r in existing],
        )

    clips = project_service.list_renders(
        project_id,
        [RenderType.SCENE_CLIP.value],
        [RenderStatus.DONE.value],
        order_by="created_at",
    )
    if not clips:
        raise ValueError("No completed clips found")

    scenes = project_service.list_included_scenes(project_id)
    ordered = order_clips(clips, scenes)
    duration = total_duration(ordered)

    try:
        project_service.set_project_status(project_id, ProjectStatus.RENDER_QUEUED)
        created = project_service.create_renders([
            {
                "project_id": project_id,
                "type": render_type.value,
                "status": RenderStatus.QUEUED.value,
                "provider": Provider.FFMPEG.value,
                "input_refs": {
                    "aspect_ratio": aspect_ratio,
                    "clip_ids": [c["id"] for c in ordered],
                    "total_duration_sec": duration,
                },
            }
            for render_type, aspect_ratio in FINAL_ASPECT_RATIOS.items()
        ])
        if not created:
            raise RuntimeError("Failed to create final render rows")
        project_service.set_project_status(project_id, ProjectStatus.RENDERING)
    except Exception:
        project_service.set_project_status(project_id, ProjectStatus.FAILED)
        raise

    logger.info(f"[Render] Queued {len(created)} final renders for project {project_id} ({duration:.1f}s)")
    return QueueRendersResponse(
        renders=[QueuedRender(id=r["id"], type=r["type"], status=r["status"]) for r in created],
        total_duration=duration,
    )
