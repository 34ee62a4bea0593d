"""
Background music via fal.ai (Beatoven).

The client drives the cadence: POST once to submit, then GET with the
requestId until the status is terminal. No background polling here.
"""

import logging

import httpx

from .models import MIN_MUSIC_DURATION, MAX_MUSIC_DURATION, DEFAULT_MUSIC_DURATION
from ..presets import get_music_prompt
from .. import fal

logger = logging.getLogger(__name__)


class MusicProviderError(Exception):
    """Submission rejected by the provider; carries its HTTP status."""

    def __init__(self, status_code: int, message: str, details: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.details = details


def clamp_duration(duration) -> float:
    """Clamp a requested track length into [15, 120] seconds."""
    if duration is None:
        duration = DEFAULT_MUSIC_DURATION
    return max(MIN_MUSIC_DURATION, min(MAX_MUSIC_DURATION, duration))


async def submit_music(genre: str = None, duration=None) -> dict:
    """
    Returns {status: "pending", requestId} or, if the provider answered
    synchronously, {status: "completed", audioUrl}.
    """
    if not fal.is_configured():
        raise RuntimeError("FAL_API_KEY not configured")

    genre = genre or "ambient"
    duration = clamp_duration(duration)
    prompt = get_music_prompt(genre)

    resp = await fal.submit_music(prompt, duration)
    if resp.status_code >= 400:
        logger.error(f"[Music] Fal.ai submit error: {resp.status_code} {resp.text}")
        raise MusicProviderError(
            resp.status_code,
            f"Music generation failed: {resp.status_code}",
            resp.text,
        )

    data = resp.json()
    request_id = data.get("request_id")
    if request_id:
        logger.info(f"[Music] Submitted genre={genre!r} duration={duration}s → {request_id}")
        return {"status": "pending", "requestId": request_id}

    audio_url = fal.extract_audio_url(data)
    if audio_url:
        return {"status": "completed", "audioUrl": audio_url}

    raise RuntimeError(f"No request_id or audio URL in response: {data}")


async def check_music_status(request_id: str) -> dict:
    """
    Resolve one poll into pending / completed / failed.
    Provider and network errors become a failed status, never an exception.
    """
    try:
        status_resp = await fal.get_music_status(request_id)
        if status_resp.status_code >= 400:
            logger.error(f"[Music] Status check error: {status_resp.status_code} {status_resp.text}")
            return {"status": "failed", "error": f"Status check failed: {status_resp.status_code}"}

        status_data = status_resp.json()
        queue_status = status_data.get("status")

        if queue_status == "COMPLETED":
            result_resp = await fal.get_music_result(request_id)
            if result_resp.status_code >= 400:
                return {"status": "failed", "error": "Failed to fetch result"}

            result_data = result_resp.json()
            audio_url = fal.extract_audio_url(result_data)
            if audio_url:
                return {"status": "completed", "audioUrl": audio_url}
            return {"status": "completed", "error": "No audio URL in result", "raw": result_data}

        if queue_status == "FAILED":
            return {"status": "failed", "error": status_data.get("error") or "Music generation failed"}

        return {
            "status": "pending",
            "queueStatus": queue_status,
            "position": status_data.get("queue_position"),
        }

    except (httpx.HTTPError, ValueError, RuntimeError) as e:
        logger.error(f"[Music] Status check error for {request_id}: {e}")
        return {"status": "failed", "error": str(e) or type(e).__name__}
