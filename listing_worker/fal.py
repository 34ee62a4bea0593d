"""
fal.ai queue REST client

Two queue-backed models are used:
  Clips — fal-ai/kling-video (image → 5s camera-motion clip)
  Music — beatoven/music-generation (genre prompt → background track)

fal.ai queue protocol:
  POST /{endpoint}                               → { request_id, ... }
  GET  /{base}/requests/{request_id}/status      → { status: IN_QUEUE|IN_PROGRESS|COMPLETED|FAILED }
  GET  /{base}/requests/{request_id}             → result payload

Nothing here retries. Callers record the failure and the client re-invokes.
"""
import os
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

FAL_API_KEY = os.environ.get("FAL_API_KEY", "")
FAL_QUEUE_BASE = "https://queue.fal.run"

# ── fal.ai endpoints ─────────────────────────────────────────────────────────
# Submission uses the full model path, status/result are routed to the root model
VIDEO_SUBMIT_ENDPOINT = "fal-ai/kling-video/o3/standard/image-to-video"
VIDEO_BASE_ENDPOINT = "fal-ai/kling-video"
MUSIC_ENDPOINT = "beatoven/music-generation"

REQUEST_TIMEOUT = 30  # seconds


def _get_headers() -> dict:
    """Return auth headers for fal.ai."""
    if not FAL_API_KEY:
        raise RuntimeError("FAL_API_KEY not set")
    return {
        "Authorization": f"Key {FAL_API_KEY}",
        "Content-Type": "application/json",
    }


def is_configured() -> bool:
    return bool(FAL_API_KEY)


async def _get_json(url: str) -> dict:
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        resp = await client.get(url, headers=_get_headers())
    if resp.status_code >= 400:
        raise RuntimeError(f"fal.ai error {resp.status_code}: {resp.text}")
    return resp.json()


# ── Image → Video ────────────────────────────────────────────────────────────

async def submit_image_to_video(
    image_url: str,
    prompt: str,
    duration: str = "5",
    aspect_ratio: str = "16:9",
) -> dict:
    """Submit an image-to-video job. Returns the queue receipt with request_id."""
    url = f"{FAL_QUEUE_BASE}/{VIDEO_SUBMIT_ENDPOINT}"
    payload = {
        "image_url": image_url,
        "prompt": prompt,
        "duration": duration,
        "aspect_ratio": aspect_ratio,
    }
    logger.info(f"[Fal] POST {url} image={image_url[:80]}... aspect={aspect_ratio}")

    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        resp = await client.post(url, headers=_get_headers(), json=payload)

    if resp.status_code >= 400:
        logger.error(f"[Fal] Submit error {resp.status_code}: {resp.text}")
        raise RuntimeError(f"fal.ai API error {resp.status_code}: {resp.text}")

    data = resp.json()
    logger.info(f"[Fal] Job submitted: request_id={data.get('request_id')}, status={data.get('status')}")
    return data


async def get_video_status(request_id: str) -> dict:
    return await _get_json(f"{FAL_QUEUE_BASE}/{VIDEO_BASE_ENDPOINT}/requests/{request_id}/status")


async def get_video_result(request_id: str) -> dict:
    return await _get_json(f"{FAL_QUEUE_BASE}/{VIDEO_BASE_ENDPOINT}/requests/{request_id}")


# ── Music ────────────────────────────────────────────────────────────────────

async def submit_music(prompt: str, duration: float) -> httpx.Response:
    """
    Submit a music generation request.

    Returns the raw response: the music route forwards the provider's status
    code on failure instead of raising.
    """
    url = f"{FAL_QUEUE_BASE}/{MUSIC_ENDPOINT}"
    logger.info(f"[Fal] POST {url} duration={duration}s")
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        return await client.post(
            url,
            headers=_get_headers(),
            json={"prompt": prompt, "duration": duration},
        )


async def get_music_status(request_id: str) -> httpx.Response:
    url = f"{FAL_QUEUE_BASE}/{MUSIC_ENDPOINT}/requests/{request_id}/status"
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        return await client.get(url, headers=_get_headers())


async def get_music_result(request_id: str) -> httpx.Response:
    url = f"{FAL_QUEUE_BASE}/{MUSIC_ENDPOINT}/requests/{request_id}"
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        return await client.get(url, headers=_get_headers())


# ── Response unwrapping ──────────────────────────────────────────────────────

def extract_audio_url(data: dict) -> Optional[str]:
    """Find the audio URL in any of the payload shapes the music model returns."""
    if not isinstance(data, dict):
        return None
    for key in ("audio", "audio_file", "output"):
        nested = data.get(key)
        if isinstance(nested, dict) and nested.get("url"):
            return nested["url"]
    url = data.get("url")
    return url if isinstance(url, str) and url else None


def extract_video(data: dict) -> tuple[Optional[str], Optional[float]]:
    """Return (video_url, duration_sec) from an image-to-video result payload."""
    video = data.get("video") if isinstance(data, dict) else None
    if not isinstance(video, dict):
        return None, None
    duration = video.get("duration")
    try:
        duration = float(duration) if duration is not None else None
    except (TypeError, ValueError):
        duration = None
    return video.get("url"), duration


# ── Clip provider interface (see provider_factory) ───────────────────────────

async def submit_clip(image_url: str, prompt: str, aspect_ratio: str) -> str:
    """Submit one scene clip and return the provider job id."""
    data = await submit_image_to_video(image_url, prompt, aspect_ratio=aspect_ratio)
    request_id = data.get("request_id")
    if not request_id:
        raise RuntimeError(f"fal.ai returned no request_id: {data}")
    return request_id


async def get_clip_status(request_id: str) -> dict:
    """
    Normalize a queued clip into {status, video_url, duration, error}
    where status is one of processing / completed / failed.
    """
    status_data = await get_video_status(request_id)
    raw_status = status_data.get("status", "")

    if raw_status == "COMPLETED":
        result = await get_video_result(request_id)
        video_url, duration = extract_video(result)
        if not video_url:
            return {"status": "failed", "error": "Completed but no video URL in result"}
        return {"status": "completed", "video_url": video_url, "duration": duration}

    if raw_status == "FAILED":
        return {"status": "failed", "error": status_data.get("error") or "fal.ai job failed"}

    return {"status": "processing"}
