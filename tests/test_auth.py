"""
Tests for session authentication on /api/* routes.
"""

from unittest.mock import patch

from fastapi.testclient import TestClient

from conftest import seed_project
from listing_worker.main import app


def test_missing_token_is_rejected(fake_sb):
    client = TestClient(app)
    response = client.post("/api/projects/abc/render")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_invalid_token_is_rejected(fake_sb):
    client = TestClient(app, headers={"Authorization": "Bearer not-a-session"})
    response = client.post("/api/projects/abc/clips")
    assert response.status_code == 401


def test_unconfigured_supabase_is_rejected(fake_sb):
    client = TestClient(app, headers={"Authorization": "Bearer token-user-1"})
    with patch(
        "listing_worker.pipeline.project_service._get_service_client",
        side_effect=RuntimeError("SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY must be set"),
    ):
        response = client.post("/api/projects/abc/clips")
    assert response.status_code == 401
    assert response.json() == {"detail": "Unauthorized"}


def test_session_cookie_is_accepted(fake_sb):
    project_id = seed_project(fake_sb, n_scenes=0)
    client = TestClient(app, cookies={"sb-access-token": "token-user-1"})
    response = client.get(f"/api/projects/{project_id}/render")
    assert response.status_code == 200
    assert response.json() == {"renders": []}


def test_project_of_another_user_is_not_found(fake_sb):
    project_id = seed_project(fake_sb, n_scenes=0, user_id="user-1")
    client = TestClient(app, headers={"Authorization": "Bearer token-user-2"})
    response = client.get(f"/api/projects/{project_id}/render")
    assert response.status_code == 404


def test_health_and_metrics_are_public(fake_sb):
    client = TestClient(app)
    health = client.get("/health")
    assert health.status_code == 200
    assert health.json()["status"] == "ok"

    snapshot = client.get("/metrics")
    assert snapshot.status_code == 200
    assert "counters" in snapshot.json()
