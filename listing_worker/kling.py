import os
import time
import logging

import httpx
import jwt

from .presets import NEGATIVE_PROMPT

logger = logging.getLogger(__name__)

KLING_ACCESS_KEY = os.environ.get("KLING_ACCESS_KEY", "")
KLING_SECRET_KEY = os.environ.get("KLING_SECRET_KEY", "")
KLING_API_BASE = "https://api-singapore.klingai.com"

DEFAULT_MODEL = "kling-v2-6"
TOKEN_TTL = 1800  # 30 minutes
REQUEST_TIMEOUT = 30

# Kling task_status values
STATUS_SUCCEED = "succeed"
STATUS_FAILED = "failed"


def is_configured() -> bool:
    return bool(KLING_ACCESS_KEY and KLING_SECRET_KEY)


def generate_token(now: int = None) -> str:
    """
    Sign a short-lived HS256 JWT from the access/secret key pair.
    Kling accepts it as a Bearer token for 30 minutes.
    """
    if not is_configured():
        raise RuntimeError(
            f"Kling API credentials missing: ACCESS_KEY={bool(KLING_ACCESS_KEY)}, "
            f"SECRET_KEY={bool(KLING_SECRET_KEY)}"
        )

    now = int(time.time()) if now is None else now
    payload = {
        "iss": KLING_ACCESS_KEY,
        "exp": now + TOKEN_TTL,
        "nbf": now - 5,
        "iat": now,
    }
    return jwt.encode(payload, KLING_SECRET_KEY, algorithm="HS256", headers={"typ": "JWT"})


def _headers() -> dict:
    return {
        "Authorization": f"Bearer {generate_token()}",
        "Content-Type": "application/json",
    }


async def create_image_to_video_task(
    image: str,
    prompt: str = "",
    negative_prompt: str = "",
    duration: str = "5",
    mode: str = "std",
    aspect_ratio: str = None,
    model_name: str = DEFAULT_MODEL,
) -> dict:
    """
    Starts an image-to-video task on Kling.
    Returns the task envelope: { code, message, data: { task_id, task_status } }.
    """
    body = {
        "model_name": model_name,
        "image": image,
        "prompt": prompt,
        "negative_prompt": negative_prompt,
        "duration": duration,
        "mode": mode,
    }
    if aspect_ratio:
        body["aspect_ratio"] = aspect_ratio

    url = f"{KLING_API_BASE}/v1/videos/image2video"
    logger.info(f"[Kling] POST {url}, model={model_name}, image URL length={len(image)}")

    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        resp = await client.post(url, headers=_headers(), json=body)

    if resp.status_code >= 400:
        logger.error(f"[Kling] API error response: {resp.text}")
        raise RuntimeError(f"Kling API error {resp.status_code}: {resp.text}")

    result = resp.json()
    task_id = (result.get("data") or {}).get("task_id")
    logger.info(f"[Kling] Task created: code={result.get('code')}, task_id={task_id or 'N/A'}")
    return result


async def query_image_to_video_task(task_id: str) -> dict:
    """Checks the status of an image-to-video task."""
    url = f"{KLING_API_BASE}/v1/videos/image2video/{task_id}"
    async with httpx.AsyncClient(timeout=REQUEST_TIMEOUT) as client:
        resp = await client.get(url, headers=_headers())

    if resp.status_code >= 400:
        raise RuntimeError(f"Kling API error {resp.status_code}: {resp.text}")
    return resp.json()


# ── Clip provider interface (see provider_factory) ───────────────────────────

async def submit_clip(image_url: str, prompt: str, aspect_ratio: str) -> str:
    """Submit one scene clip and return the provider job id."""
    result = await create_image_to_video_task(
        image=image_url,
        prompt=prompt,
        negative_prompt=NEGATIVE_PROMPT,
        duration="5",
        mode="std",
        aspect_ratio=aspect_ratio,
    )
    task_id = (result.get("data") or {}).get("task_id")
    if not task_id:
        raise RuntimeError(f"Kling API returned no task_id: {result}")
    return task_id


async def get_clip_status(task_id: str) -> dict:
    """Normalize a Kling task into {status, video_url, duration, error}."""
    result = await query_image_to_video_task(task_id)
    data = result.get("data") or {}
    task_status = data.get("task_status")

    if task_status == STATUS_SUCCEED:
        videos = (data.get("task_result") or {}).get("videos") or []
        first = videos[0] if videos and isinstance(videos[0], dict) else {}
        video_url = first.get("url")
        if not video_url:
            return {"status": "failed", "error": "Completed but no video URL in result"}
        try:
            duration = float(first.get("duration"))
        except (TypeError, ValueError):
            duration = None
        return {"status": "completed", "video_url": video_url, "duration": duration}

    if task_status == STATUS_FAILED:
        return {"status": "failed", "error": data.get("task_status_msg") or "Unknown error"}

    return {"status": "processing"}
