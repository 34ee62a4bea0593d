#!/usr/bin/env python3
"""
Reset a project's final renders so assembly can be re-run from scratch.

Lists the final_vertical / final_horizontal render rows of one project,
deletes them, and puts the project back to clips_ready. Scene clips are
left untouched.

Usage:
    export SUPABASE_URL="https://your-project.supabase.co"
    export SUPABASE_SERVICE_ROLE_KEY="eyJhbG..."
    python3 reset_renders.py <project_id> [--dry-run]
"""

import os
import sys
import time
import argparse

import httpx

FINAL_TYPES = "in.(final_vertical,final_horizontal)"


class SupabaseRest:
    """Minimal PostgREST client using the service role key."""

    def __init__(self, url: str, key: str, client: httpx.Client = None):
        self.url = url.rstrip("/")
        self.headers = {
            "apikey": key,
            "Authorization": f"Bearer {key}",
            "Content-Type": "application/json",
            "Prefer": "return=representation",
        }
        self.client = client or httpx.Client(timeout=60)

    def get(self, table: str, params: dict) -> list:
        resp = self.client.get(f"{self.url}/rest/v1/{table}", headers=self.headers, params=params)
        resp.raise_for_status()
        return resp.json()

    def delete(self, table: str, params: dict) -> list:
        resp = self.client.delete(f"{self.url}/rest/v1/{table}", headers=self.headers, params=params)
        resp.raise_for_status()
        return resp.json()

    def patch(self, table: str, params: dict, body: dict) -> list:
        resp = self.client.patch(
            f"{self.url}/rest/v1/{table}", headers=self.headers, params=params, json=body,
        )
        resp.raise_for_status()
        return resp.json()


def list_final_renders(rest: SupabaseRest, project_id: str) -> list:
    return rest.get("renders", {
        "project_id": f"eq.{project_id}",
        "type": FINAL_TYPES,
        "select": "id,type,status,created_at",
        "order": "created_at.asc",
    })


def reset_project(rest: SupabaseRest, project_id: str, dry_run: bool = False) -> dict:
    """Returns {"found", "deleted", "status"}; status is None on a dry run."""
    renders = list_final_renders(rest, project_id)
    print(f"Found {len(renders)} final render row(s) for project {project_id}:")
    for r in renders:
        print(f"  {r['id']} | {r['type']} | {r.get('status')} | {r.get('created_at')}")

    if dry_run:
        print("Dry run, nothing deleted.")
        return {"found": len(renders), "deleted": 0, "status": None}

    deleted = []
    if renders:
        deleted = rest.delete("renders", {"project_id": f"eq.{project_id}", "type": FINAL_TYPES})
        print(f"Deleted {len(deleted)} render row(s).")
    else:
        print("No renders to clean up.")

    updated = rest.patch("projects", {"id": f"eq.{project_id}"}, {
        "status": "clips_ready",
        "updated_at": time.strftime("%Y-%m-%dT%H:%M:%SZ", time.gmtime()),
    })
    status = updated[0].get("status") if updated else None
    print(f"Updated project status to: {status}")
    return {"found": len(renders), "deleted": len(deleted), "status": status}


def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Delete final renders and reset a project to clips_ready.")
    parser.add_argument("project_id")
    parser.add_argument("--dry-run", action="store_true", help="List final renders without deleting")
    args = parser.parse_args(argv)

    url = os.environ.get("SUPABASE_URL") or os.environ.get("NEXT_PUBLIC_SUPABASE_URL", "")
    key = os.environ.get("SUPABASE_SERVICE_ROLE_KEY", "")
    if not url or not key:
        print("ERROR: SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set.")
        return 1

    rest = SupabaseRest(url, key)
    try:
        reset_project(rest, args.project_id, dry_run=args.dry_run)
    except httpx.HTTPError as e:
        print(f"ERROR: {e}")
        return 1
    print("Done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
