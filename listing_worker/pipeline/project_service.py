"""
Project & Render Row Service.

Thin data-access layer over the hosted Supabase tables:
  - projects           (ownership + lifecycle status)
  - storyboard_scenes  (ordered scenes, include flag, motion template)
  - assets             (original photo storage paths)
  - renders            (per-scene clips and final exports)

All reads and writes go through the Supabase service role, so ownership is
checked here explicitly instead of relying on RLS.
"""

import os
import logging
from datetime import datetime, timezone
from typing import Optional

from supabase import create_client, Client

from .models import ProjectStatus, RenderType

logger = logging.getLogger(__name__)

# ── Supabase Service Client (bypasses RLS) ───────────────────────────────────

_service_client: Optional[Client] = None


def _get_service_client() -> Client:
    """Lazy-init Supabase client using service role key."""
    global _service_client
    if _service_client is None:
        url = os.getenv("SUPABASE_URL") or os.getenv("NEXT_PUBLIC_SUPABASE_URL", "")
        key = os.getenv("SUPABASE_SERVICE_ROLE_KEY", "")
        if not url or not key:
            raise RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set")
        _service_client = create_client(url, key)
    return _service_client


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


# ═════════════════════════════════════════════════════════════════════════════
# Projects
# ═════════════════════════════════════════════════════════════════════════════

def get_owned_project(project_id: str, user_id: str) -> dict:
    """
    Fetch a project row owned by user_id.

    Raises PermissionError for both a missing project and someone else's
    project, so callers answer 404 either way.
    """
    sb = _get_service_client()
    result = (
        sb.table("projects")
        .select("*")
        .eq("id", project_id)
        .eq("user_id", user_id)
        .limit(1)
        .execute()
    )
    if not result.data:
        raise PermissionError("Project not found")
    return result.data[0]


def set_project_status(project_id: str, status: ProjectStatus):
    sb = _get_service_client()
    sb.table("projects").update({
        "status": status.value,
        "updated_at": _now_iso(),
    }).eq("id", project_id).execute()
    logger.info(f"Project {project_id} → {status.value}")


# ═════════════════════════════════════════════════════════════════════════════
# Storyboard & Assets
# ═════════════════════════════════════════════════════════════════════════════

def list_included_scenes(project_id: str) -> list:
    """Included storyboard scenes in ascending scene_order."""
    sb = _get_service_client()
    result = (
        sb.table("storyboard_scenes")
        .select("*")
        .eq("project_id", project_id)
        .eq("include", True)
        .order("scene_order")
        .execute()
    )
    return result.data or []


def get_assets(asset_ids: list) -> dict:
    """Map asset id → asset row for the given ids."""
    ids = [a for a in asset_ids if a]
    if not ids:
        return {}
    sb = _get_service_client()
    result = sb.table("assets").select("*").in_("id", ids).execute()
    return {row["id"]: row for row in (result.data or [])}


# ═════════════════════════════════════════════════════════════════════════════
# Renders
# ═════════════════════════════════════════════════════════════════════════════

def create_render(
    project_id: str,
    render_type: RenderType,
    status: str,
    provider: str,
    provider_job_id: str,
    input_refs: dict,
) -> Optional[dict]:
    """Insert a render row and return it (None if the insert returned nothing)."""
    sb = _get_service_client()
    result = sb.table("renders").insert({
        "project_id": project_id,
        "type": render_type.value,
        "status": status,
        "provider": provider,
        "provider_job_id": provider_job_id,
        "input_refs": input_refs,
    }).execute()
    return result.data[0] if result.data else None


def create_renders(rows: list) -> list:
    """Insert several render rows in one request and return them."""
    sb = _get_service_client()
    result = sb.table("renders").insert(rows).execute()
    return result.data or []


def update_render(render_id: str, **fields):
    sb = _get_service_client()
    fields["updated_at"] = _now_iso()
    sb.table("renders").update(fields).eq("id", render_id).execute()


def list_renders(
    project_id: str,
    types: list,
    statuses: Optional[list] = None,
    order_by: Optional[str] = None,
) -> list:
    sb = _get_service_client()
    query = (
        sb.table("renders")
        .select("*")
        .eq("project_id", project_id)
        .in_("type", types)
    )
    if statuses:
        query = query.in_("status", statuses)
    if order_by:
        query = query.order(order_by)
    result = query.execute()
    return result.data or []
