"""
Tests for background music submit / status.

Run with: pytest tests/test_music.py -v
"""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest

from conftest import seed_project
from listing_worker.pipeline import music


def _response(status_code, payload=None, text=""):
    resp = Mock()
    resp.status_code = status_code
    resp.json = Mock(return_value=payload or {})
    resp.text = text
    return resp


@pytest.fixture
def fal_configured():
    with patch("listing_worker.fal.FAL_API_KEY", "test-key"):
        yield


def test_clamp_duration():
    assert music.clamp_duration(5) == 15
    assert music.clamp_duration(999) == 120
    assert music.clamp_duration(45) == 45
    assert music.clamp_duration(None) == 30


@pytest.mark.asyncio
async def test_submit_music_pending(fal_configured):
    with patch("listing_worker.fal.submit_music", new_callable=AsyncMock) as submit:
        submit.return_value = _response(200, {"request_id": "req-1"})
        result = await music.submit_music("cinematic piano", 5)

    assert result == {"status": "pending", "requestId": "req-1"}
    prompt, duration = submit.call_args[0]
    assert "piano" in prompt
    assert duration == 15


@pytest.mark.asyncio
async def test_submit_music_synchronous_result(fal_configured):
    with patch("listing_worker.fal.submit_music", new_callable=AsyncMock) as submit:
        submit.return_value = _response(200, {"audio": {"url": "https://cdn.test/track.wav"}})
        result = await music.submit_music("upbeat electronic", 999)

    assert result == {"status": "completed", "audioUrl": "https://cdn.test/track.wav"}
    assert submit.call_args[0][1] == 120


@pytest.mark.asyncio
async def test_submit_music_provider_error(fal_configured):
    with patch("listing_worker.fal.submit_music", new_callable=AsyncMock) as submit:
        submit.return_value = _response(429, text="rate limited")
        with pytest.raises(music.MusicProviderError) as exc:
            await music.submit_music()

    assert exc.value.status_code == 429
    assert exc.value.details == "rate limited"


@pytest.mark.asyncio
async def test_submit_music_requires_key():
    with patch("listing_worker.fal.FAL_API_KEY", ""):
        with pytest.raises(RuntimeError):
            await music.submit_music()


@pytest.mark.asyncio
async def test_check_status_pending(fal_configured):
    with patch("listing_worker.fal.get_music_status", new_callable=AsyncMock) as status:
        status.return_value = _response(200, {"status": "IN_QUEUE", "queue_position": 2})
        result = await music.check_music_status("req-1")

    assert result == {"status": "pending", "queueStatus": "IN_QUEUE", "position": 2}


@pytest.mark.asyncio
async def test_check_status_completed(fal_configured):
    with patch("listing_worker.fal.get_music_status", new_callable=AsyncMock) as status, \
         patch("listing_worker.fal.get_music_result", new_callable=AsyncMock) as result_call:
        status.return_value = _response(200, {"status": "COMPLETED"})
        result_call.return_value = _response(200, {"audio_file": {"url": "https://cdn.test/a.mp3"}})
        result = await music.check_music_status("req-1")

    assert result == {"status": "completed", "audioUrl": "https://cdn.test/a.mp3"}


@pytest.mark.asyncio
async def test_check_status_completed_without_audio(fal_configured):
    with patch("listing_worker.fal.get_music_status", new_callable=AsyncMock) as status, \
         patch("listing_worker.fal.get_music_result", new_callable=AsyncMock) as result_call:
        status.return_value = _response(200, {"status": "COMPLETED"})
        result_call.return_value = _response(200, {"unexpected": True})
        result = await music.check_music_status("req-1")

    assert result["status"] == "completed"
    assert result["error"] == "No audio URL in result"
    assert result["raw"] == {"unexpected": True}


@pytest.mark.asyncio
async def test_check_status_provider_failure(fal_configured):
    with patch("listing_worker.fal.get_music_status", new_callable=AsyncMock) as status:
        status.return_value = _response(200, {"status": "FAILED", "error": "model crashed"})
        result = await music.check_music_status("req-1")

    assert result == {"status": "failed", "error": "model crashed"}


@pytest.mark.asyncio
async def test_check_status_network_error_is_failed(fal_configured):
    with patch("listing_worker.fal.get_music_status", new_callable=AsyncMock) as status:
        status.side_effect = httpx.ConnectError("connection refused")
        result = await music.check_music_status("req-1")

    assert result["status"] == "failed"
    assert "connection refused" in result["error"]


# ── Routes ───────────────────────────────────────────────────────────────────

def test_music_route_submit(client, fake_sb, fal_configured):
    project_id = seed_project(fake_sb, n_scenes=1)
    with patch("listing_worker.fal.submit_music", new_callable=AsyncMock) as submit:
        submit.return_value = _response(200, {"request_id": "req-9"})
        response = client.post(f"/api/projects/{project_id}/music", json={"genre": "acoustic", "duration": 60})

    assert response.status_code == 200
    assert response.json() == {"status": "pending", "requestId": "req-9"}


def test_music_route_provider_status_is_forwarded(client, fake_sb, fal_configured):
    project_id = seed_project(fake_sb, n_scenes=1)
    with patch("listing_worker.fal.submit_music", new_callable=AsyncMock) as submit:
        submit.return_value = _response(402, text="insufficient balance")
        response = client.post(f"/api/projects/{project_id}/music", json={})

    assert response.status_code == 402
    assert response.json()["detail"]["details"] == "insufficient balance"


def test_music_route_not_configured(client, fake_sb):
    project_id = seed_project(fake_sb, n_scenes=1)
    with patch("listing_worker.fal.FAL_API_KEY", ""):
        response = client.post(f"/api/projects/{project_id}/music", json={})
    assert response.status_code == 500


def test_music_status_requires_request_id(client, fake_sb, fal_configured):
    project_id = seed_project(fake_sb, n_scenes=1)
    response = client.get(f"/api/projects/{project_id}/music")
    assert response.status_code == 400


def test_music_status_route(client, fake_sb, fal_configured):
    project_id = seed_project(fake_sb, n_scenes=1)
    with patch("listing_worker.fal.get_music_status", new_callable=AsyncMock) as status:
        status.return_value = _response(200, {"status": "IN_PROGRESS"})
        response = client.get(f"/api/projects/{project_id}/music", params={"requestId": "req-1"})

    assert response.status_code == 200
    assert response.json()["status"] == "pending"
