"""
Supabase Storage helpers for the pipeline.

Buckets:
  photos-original/{path}                 — uploaded listing photos (private, signed URLs)
  scene-clips/{project_id}/{render}.mp4  — per-scene generated clips (public)
  final-exports/{project_id}/{render}.mp4 — assembled final videos (public)
"""

import os
import logging

import httpx

logger = logging.getLogger(__name__)

# ── Config ───────────────────────────────────────────────────────────────────

SUPABASE_URL = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL", "")

PHOTOS_BUCKET = "photos-original"
CLIPS_BUCKET = "scene-clips"
EXPORTS_BUCKET = "final-exports"


# ── Helpers ──────────────────────────────────────────────────────────────────

def render_key(project_id: str, render_id: str) -> str:
    """Storage key shared by scene clips and final exports."""
    return f"{project_id}/{render_id}.mp4"


def public_url(bucket: str, path: str) -> str:
    base = SUPABASE_URL.rstrip("/")
    return f"{base}/storage/v1/object/public/{bucket}/{path}"


def clip_public_url(output_path: str) -> str:
    """Public URL for a finished scene clip."""
    return public_url(CLIPS_BUCKET, output_path)


def export_public_url(output_path: str) -> str:
    """Public URL for an exported final video."""
    return public_url(EXPORTS_BUCKET, output_path)


def create_signed_photo_url(sb, storage_path: str, expires_in: int = 3600) -> str:
    """
    Create a time-limited URL for an original photo.

    Signed URLs are what the providers fetch, since the photos bucket is private.
    """
    result = sb.storage.from_(PHOTOS_BUCKET).create_signed_url(storage_path, expires_in)
    signed = None
    if isinstance(result, dict):
        signed = result.get("signedURL") or result.get("signedUrl") or result.get("signed_url")
    if not signed:
        raise RuntimeError(f"Could not sign URL for {storage_path}: {result}")
    return signed


def upload_video(sb, bucket: str, path: str, data: bytes) -> str:
    """Upload an mp4 (overwriting any previous attempt) and return its storage path."""
    sb.storage.from_(bucket).upload(
        path, data,
        file_options={"content-type": "video/mp4", "upsert": "true"},
    )
    logger.info(f"Uploaded {len(data) / 1024:.0f}KB to {bucket}/{path}")
    return path


async def download_bytes(url: str, timeout: float = 60) -> bytes:
    """Download a provider CDN file and return raw bytes."""
    async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.content
