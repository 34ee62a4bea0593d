"""
Scene clip generation.

  submit_scene_clips — one image-to-video job per included scene
  poll_scene_clips   — advance running clip renders and store finished videos

Both run sequentially per scene inside a single request. A scene that
fails is recorded and skipped; nothing is retried here.
"""

import logging

from .models import (
    ProjectStatus,
    RenderStatus,
    RenderType,
    ClipSubmission,
    ClipSubmitResponse,
    ClipPollResponse,
    ASPECT_RATIOS,
    CLIP_DURATION_SEC,
    SIGNED_URL_TTL,
)
from . import project_service
from . import storage
from ..presets import get_motion_prompt
from ..provider_factory import ProviderFactory
from .. import metrics

logger = logging.getLogger(__name__)


def resolve_aspect_ratio(requested: str, project: dict) -> str:
    aspect_ratio = requested or project.get("video_format") or "16:9"
    if aspect_ratio not in ASPECT_RATIOS:
        raise ValueError(f"Unsupported aspect ratio '{aspect_ratio}'. Expected one of: {', '.join(ASPECT_RATIOS)}")
    return aspect_ratio


async def submit_scene_clips(
    project_id: str,
    user_id: str,
    aspect_ratio: str = None,
    provider: str = None,
) -> ClipSubmitResponse:
    """
    POST /api/projects/{id}/clips

    1. Verify ownership
    2. Load included scenes (ValueError if none; nothing is written)
    3. Load assets, mark project clips_queued
    4. Per scene: sign photo URL → motion prompt → submit → insert running render row
    5. Project → clips_generating (≥1 submitted) or failed
    """
    project = project_service.get_owned_project(project_id, user_id)
    aspect_ratio = resolve_aspect_ratio(aspect_ratio, project)
    provider_name = ProviderFactory.provider_name(provider)
    client = ProviderFactory.get_provider(provider_name)

    scenes = project_service.list_included_scenes(project_id)
    if not scenes:
        raise ValueError("No included scenes found. Please generate a storyboard first.")
    logger.info(f"[Clips] Found {len(scenes)} included scenes for project {project_id}")

    asset_map = project_service.get_assets([s.get("asset_id") for s in scenes])
    logger.info(f"[Clips] Loaded {len(asset_map)} assets for {len(scenes)} scenes")

    sb = project_service._get_service_client()
    project_service.set_project_status(project_id, ProjectStatus.CLIPS_QUEUED)

    try:
        submissions: list[ClipSubmission] = []
        errors: list[str] = []

        for scene in scenes:
            scene_id = scene["id"]
            asset_id = scene.get("asset_id")
            asset = asset_map.get(asset_id)

            if not asset or not asset.get("storage_path_original"):
                logger.warning(f"[Clips] Scene {scene_id} has no asset or storage path, skipping")
                errors.append(f"Scene {scene_id}: No source photo")
                continue

            try:
                image_url = storage.create_signed_photo_url(
                    sb, asset["storage_path_original"], SIGNED_URL_TTL
                )
            except Exception as e:
                logger.error(f"[Clips] Failed to create signed URL for scene {scene_id}: {e}")
                errors.append(f"Scene {scene_id}: Could not get accessible image URL")
                continue

            prompt = get_motion_prompt(scene.get("motion_template"))

            try:
                task_id = await client.submit_clip(image_url, prompt, aspect_ratio)
            except Exception as e:
                logger.error(f"[Clips] {provider_name} error for scene {scene_id}: {e}")
                metrics.inc_counter("errors.clip_submit")
                errors.append(f"Scene {scene_id}: {e}")
                continue

            try:
                render = project_service.create_render(
                    project_id,
                    RenderType.SCENE_CLIP,
                    RenderStatus.RUNNING.value,
                    provider_name,
                    task_id,
                    {
                        "scene_id": scene_id,
                        "asset_id": asset_id,
                        "image_url": image_url,
                        "aspect_ratio": aspect_ratio,
                    },
                )
            except Exception as e:
                logger.error(f"[Clips] Failed to create render row for scene {scene_id}: {e}")
                render = None

            if not render:
                errors.append(f"Scene {scene_id}: Failed to save render record")
                continue

            logger.info(f"[Clips] Scene {scene_id} → render {render['id']} (task {task_id})")
            metrics.inc_counter("clips.submitted")
            submissions.append(ClipSubmission(
                scene_id=scene_id,
                render_id=render["id"],
                task_id=task_id,
            ))

        final_status = ProjectStatus.CLIPS_GENERATING if submissions else ProjectStatus.FAILED
        project_service.set_project_status(project_id, final_status)

    except Exception:
        project_service.set_project_status(project_id, ProjectStatus.FAILED)
        raise

    logger.info(f"[Clips] DONE: Submitted {len(submissions)} scenes, {len(errors)} errors")
    return ClipSubmitResponse(
        success=bool(submissions),
        submitted=len(submissions),
        renders=submissions,
        errors=errors or None,
    )


async def poll_scene_clips(project_id: str, user_id: str) -> dict:
    """
    POST /api/projects/{id}/clips/poll

    Ask each provider about running clips. Finished videos are copied into the
    scene-clips bucket so the final render never depends on provider CDNs.
    """
    project_service.get_owned_project(project_id, user_id)
    sb = project_service._get_service_client()

    renders = project_service.list_renders(
        project_id,
        [RenderType.SCENE_CLIP.value],
        [RenderStatus.RUNNING.value, RenderStatus.QUEUED.value],
    )
    if not renders:
        return {"message": "No running renders", "updated": 0}

    completed = 0
    failed = 0

    for render in renders:
        task_id = render.get("provider_job_id")
        if not task_id:
            continue

        try:
            client = ProviderFactory.get_provider(render.get("provider"))
            result = await client.get_clip_status(task_id)

            if result["status"] == "completed":
                video_bytes = await storage.download_bytes(result["video_url"])
                path = storage.upload_video(
                    sb, storage.CLIPS_BUCKET,
                    storage.render_key(project_id, render["id"]),
                    video_bytes,
                )
                project_service.update_render(
                    render["id"],
                    status=RenderStatus.DONE.value,
                    output_path=path,
                    duration_sec=result.get("duration") or CLIP_DURATION_SEC,
                )
                completed += 1

            elif result["status"] == "failed":
                project_service.update_render(
                    render["id"],
                    status=RenderStatus.FAILED.value,
                    error=result.get("error") or "Unknown error",
                )
                failed += 1
        except Exception as e:
            logger.error(f"[Clips] Error polling render {render['id']}: {e}")

    all_clips = project_service.list_renders(project_id, [RenderType.SCENE_CLIP.value])
    terminal = (RenderStatus.DONE.value, RenderStatus.FAILED.value)
    all_done = all(r.get("status") in terminal for r in all_clips)

    if all_done:
        has_failures = any(r.get("status") == RenderStatus.FAILED.value for r in all_clips)
        project_service.set_project_status(
            project_id,
            ProjectStatus.FAILED if has_failures else ProjectStatus.CLIPS_READY,
        )

    return ClipPollResponse(completed=completed, failed=failed, allDone=all_done).dict()
