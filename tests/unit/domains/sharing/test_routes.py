"""
Tests for the sharing routes and the entity access dependency.
"""

from typing import Dict

import pytest
from fastapi.testclient import TestClient

from sharedminds.domains.auth.models import Profile
from tests.fixtures.auth_fixtures import auth_headers_for
from tests.fixtures.storage_fixtures import FakeStorage


@pytest.fixture
def event_storage(storage: FakeStorage, owner_profile: Profile) -> FakeStorage:
    storage.seed(
        "context_events",
        {"id": "event-1", "title": "Board meeting", "created_by": owner_profile.id, "archived_at": None},
    )
    return storage


class TestSharingRoutes:
    def test_overview_for_owner(
        self, client: TestClient, event_storage: FakeStorage, auth_headers: Dict[str, str]
    ) -> None:
        response = client.get("/api/v1/sharing/calendar_event/event-1", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["title"] == "Board meeting"
        assert body["can_manage"] is True
        assert body["grants"] == []

    def test_upsert_and_revoke(
        self,
        client: TestClient,
        event_storage: FakeStorage,
        auth_headers: Dict[str, str],
        member_profile: Profile,
    ) -> None:
        response = client.put(
            "/api/v1/sharing/calendar_event/event-1/grants",
            json={"subject_type": "user", "subject_id": member_profile.id, "role": "viewer"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["status"] == "pending"
        assert response.json()["flags"]["can_view"] is False

        revoke_url = f"/api/v1/sharing/calendar_event/event-1/grants/user/{member_profile.id}"
        assert client.delete(revoke_url, headers=auth_headers).json()["revoked"] is True
        assert client.delete(revoke_url, headers=auth_headers).json()["revoked"] is False

    def test_invisible_entity_is_not_found(
        self, client: TestClient, event_storage: FakeStorage, outsider_profile: Profile
    ) -> None:
        response = client.get(
            "/api/v1/sharing/calendar_event/event-1",
            headers=auth_headers_for(outsider_profile.user_id),
        )
        assert response.status_code == 404

    def test_viewer_cannot_manage(
        self,
        client: TestClient,
        event_storage: FakeStorage,
        auth_headers: Dict[str, str],
        member_profile: Profile,
    ) -> None:
        event_storage.seed(
            "calendar_projections",
            {
                "event_id": "event-1",
                "target_user_id": member_profile.id,
                "status": "accepted",
                "can_edit": False,
            },
        )

        response = client.put(
            "/api/v1/sharing/calendar_event/event-1/grants",
            json={"subject_type": "user", "subject_id": "profile-x", "role": "viewer"},
            headers=auth_headers_for(member_profile.user_id),
        )

        assert response.status_code == 403
        assert response.json()["detail"] == "Insufficient permissions: manage required"

    def test_scope_preview(
        self, client: TestClient, event_storage: FakeStorage, auth_headers: Dict[str, str]
    ) -> None:
        response = client.get(
            "/api/v1/sharing/calendar_event/event-1/preview",
            params={"scope": "include_children"},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["affected_count"] == 0

    def test_unknown_entity_type(
        self, client: TestClient, owner_profile: Profile, auth_headers: Dict[str, str]
    ) -> None:
        response = client.get("/api/v1/sharing/spreadsheet/abc", headers=auth_headers)
        assert response.status_code == 400

    def test_missing_token(self, client: TestClient) -> None:
        response = client.get("/api/v1/sharing/calendar_event/event-1")
        assert response.status_code == 401

    def test_effective_track_access_is_capped_by_project(
        self,
        client: TestClient,
        storage: FakeStorage,
        owner_profile: Profile,
        auth_headers: Dict[str, str],
    ) -> None:
        storage.seed("guardrails_tracks", {"id": "track-1", "master_project_id": "proj-1"})
        storage.seed(
            "project_users",
            {"master_project_id": "proj-1", "user_id": owner_profile.id, "role": "viewer", "archived_at": None},
        )
        storage.seed(
            "entity_permission_grants",
            {
                "entity_type": "track",
                "entity_id": "track-1",
                "subject_type": "user",
                "subject_id": owner_profile.id,
                "permission_role": "editor",
                "flags": None,
                "revoked_at": None,
            },
        )

        response = client.get("/api/v1/sharing/track/track-1/effective-access", headers=auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["role"] == "viewer"
        assert body["flags"]["can_view"] is True
        assert body["flags"]["can_edit"] is False
        assert body["source"]["grant_role"] == "editor"

    def test_effective_access_rejects_other_entity_types(
        self, client: TestClient, owner_profile: Profile, auth_headers: Dict[str, str]
    ) -> None:
        response = client.get(
            "/api/v1/sharing/calendar_event/event-1/effective-access", headers=auth_headers
        )
        assert response.status_code == 422
