"""Tests for the clone-voice and cleanup-voices endpoints."""

from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import ErrorKind, GenerationError
from app.models.project import ProjectStatus

CLONE_URL = "/api/v1/functions/clone-voice"
CLEANUP_URL = "/api/v1/functions/cleanup-voices"


class TestCloneVoice:
    def test_success(self, client: TestClient, test_user: dict, db_session: Session, provider, make_project):
        project = make_project()

        resp = client.post(CLONE_URL, json={"projectId": project.id}, headers=test_user["headers"])

        assert resp.status_code == 200
        data = resp.json()
        assert data == {
            "success": True,
            "audioUrl": f"/api/v1/storage/{project.user_id}/{project.id}/generated.mp3",
        }
        assert resp.headers["access-control-allow-origin"] == "*"

        db_session.refresh(project)
        assert project.status == ProjectStatus.COMPLETED

        audio = client.get(data["audioUrl"], headers=test_user["headers"])
        assert audio.status_code == 200
        assert audio.content == provider.audio

    def test_missing_project_id(self, client: TestClient, test_user: dict):
        resp = client.post(CLONE_URL, json={}, headers=test_user["headers"])
        assert resp.status_code == 422
        assert resp.json()["error"] == "Invalid project ID"
        assert "details" in resp.json()

    @pytest.mark.parametrize("project_id", [123, ["a"], {"id": "a"}, "x" * 101])
    def test_malformed_project_id_uses_error_envelope(self, client: TestClient, test_user: dict, project_id):
        resp = client.post(CLONE_URL, json={"projectId": project_id}, headers=test_user["headers"])
        assert resp.status_code == 422
        assert resp.json()["error"] == "Invalid project ID"
        assert resp.headers["access-control-allow-origin"] == "*"

    def test_unknown_project(self, client: TestClient, test_user: dict):
        resp = client.post(CLONE_URL, json={"projectId": "does-not-exist"}, headers=test_user["headers"])
        assert resp.status_code == 404
        assert resp.json()["error"] == "Project not found"

    def test_cooldown_returns_429_with_retry_after(self, client: TestClient, test_user: dict, provider, make_project):
        project = make_project(last_generation_at=datetime.utcnow() - timedelta(seconds=30))

        resp = client.post(CLONE_URL, json={"projectId": project.id}, headers=test_user["headers"])

        assert resp.status_code == 429
        assert resp.json()["error"].startswith("Rate limit: Please wait")
        assert 0 < int(resp.headers["retry-after"]) <= 270
        assert provider.call_count == 0

    def test_invalid_settings_return_422(self, client: TestClient, test_user: dict, make_project):
        project = make_project(script_text=None)
        resp = client.post(CLONE_URL, json={"projectId": project.id}, headers=test_user["headers"])
        assert resp.status_code == 422
        assert resp.json()["error"] == "Script text is required"

    @pytest.mark.parametrize(
        "kind,status",
        [
            (ErrorKind.QUOTA_EXCEEDED, 402),
            (ErrorKind.AUTH_ERROR, 401),
            (ErrorKind.INVALID_INPUT, 422),
            (ErrorKind.PROVIDER_UNAVAILABLE, 500),
        ],
    )
    def test_provider_errors_map_to_status(
        self, client: TestClient, test_user: dict, db_session: Session, provider, make_project, kind, status
    ):
        project = make_project()
        provider.create_errors = [GenerationError(kind, "provider said no")] * 3

        resp = client.post(CLONE_URL, json={"projectId": project.id}, headers=test_user["headers"])

        assert resp.status_code == status
        assert resp.json()["error"] == "provider said no"
        db_session.refresh(project)
        assert project.status == ProjectStatus.FAILED

    def test_preflight(self, client: TestClient):
        resp = client.options(CLONE_URL)
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
        assert "POST" in resp.headers["access-control-allow-methods"]


class TestCleanupVoices:
    def test_sweep_report(self, client: TestClient, provider, make_project):
        project = make_project(status=ProjectStatus.FAILED, remote_voice_id="v1")
        provider.voices["v1"] = f"Voice_{project.id}"
        provider.voices["o1"] = "Voice_orphan"

        resp = client.post(CLEANUP_URL)

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["cleaned"] == 2
        assert data["failed"] == 0
        assert data["orphans_cleaned"] == 1
        assert "timestamp" in data

    def test_listing_failure_with_nothing_released_returns_500(self, client: TestClient, provider):
        provider.list_error = GenerationError(ErrorKind.PROVIDER_UNAVAILABLE, "ElevenLabs is down")

        resp = client.post(CLEANUP_URL)

        assert resp.status_code == 500
        assert resp.json()["error"] == "ElevenLabs is down"
        assert "timestamp" in resp.json()

    def test_listing_failure_after_release_returns_report(self, client: TestClient, provider, make_project):
        project = make_project(status=ProjectStatus.COMPLETED, remote_voice_id="v1")
        provider.voices["v1"] = f"Voice_{project.id}"
        provider.list_error = GenerationError(ErrorKind.PROVIDER_UNAVAILABLE, "ElevenLabs is down")

        resp = client.post(CLEANUP_URL)

        assert resp.status_code == 200
        data = resp.json()
        assert data["success"] is True
        assert data["cleaned"] == 1
        assert data["orphans_cleaned"] == 0

    def test_secret_required_when_configured(self, client: TestClient, monkeypatch):
        monkeypatch.setattr(get_settings(), "CLEANUP_SECRET", "s3cret")

        assert client.post(CLEANUP_URL).status_code == 401
        assert client.post(CLEANUP_URL, headers={"Authorization": "Bearer wrong"}).status_code == 401
        assert client.post(CLEANUP_URL, headers={"Authorization": "Bearer s3cret"}).status_code == 200

    def test_preflight(self, client: TestClient):
        resp = client.options(CLEANUP_URL)
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == "*"
