"""
Tests for the AI registry admin endpoints in domains/ai_registry/routes.py
"""

from typing import Dict

from fastapi.testclient import TestClient

from sharedminds.domains.ai_registry.seeds import DEFAULT_MODELS, DEFAULT_PROVIDERS
from sharedminds.domains.ai_registry.service import PROVIDERS_TABLE
from sharedminds.domains.auth.models import Profile
from tests.fixtures.ai_fixtures import Catalog
from tests.fixtures.storage_fixtures import FakeStorage

BASE = "/api/v1/admin/ai"


class TestAdminAccess:
    def test_non_admin_is_forbidden(
        self, client: TestClient, owner_profile: Profile, auth_headers: Dict[str, str]
    ) -> None:
        response = client.get(f"{BASE}/providers", headers=auth_headers)
        assert response.status_code == 403

    def test_admin_lists_features(
        self, client: TestClient, admin_profile: Profile, admin_headers: Dict[str, str]
    ) -> None:
        response = client.get(f"{BASE}/features", headers=admin_headers)

        assert response.status_code == 200
        assert "ai_chat" in {f["key"] for f in response.json()}


class TestProviderEndpoints:
    def test_create_normalizes_slug(
        self, client: TestClient, admin_profile: Profile, admin_headers: Dict[str, str]
    ) -> None:
        response = client.post(
            f"{BASE}/providers",
            json={"name": "  OpenAI ", "display_name": "OpenAI"},
            headers=admin_headers,
        )

        assert response.status_code == 201
        assert response.json()["name"] == "openai"

    def test_duplicate_provider_rejected(
        self,
        client: TestClient,
        catalog: Catalog,
        admin_profile: Profile,
        admin_headers: Dict[str, str],
    ) -> None:
        catalog.provider("openai")

        response = client.post(
            f"{BASE}/providers",
            json={"name": "openai", "display_name": "OpenAI"},
            headers=admin_headers,
        )

        assert response.status_code == 400

    def test_delete_blocked_while_models_exist(
        self,
        client: TestClient,
        catalog: Catalog,
        admin_profile: Profile,
        admin_headers: Dict[str, str],
    ) -> None:
        provider_id = catalog.provider("openai")
        catalog.model(provider_id, "gpt-4o")

        response = client.delete(
            f"{BASE}/providers/{provider_id}", params={"confirm": True}, headers=admin_headers
        )

        assert response.status_code == 409
        assert response.json()["detail"]["blocking_count"] == 1

    def test_delete_requires_confirmation(
        self,
        client: TestClient,
        storage: FakeStorage,
        catalog: Catalog,
        admin_profile: Profile,
        admin_headers: Dict[str, str],
    ) -> None:
        provider_id = catalog.provider("openai")

        unconfirmed = client.delete(f"{BASE}/providers/{provider_id}", headers=admin_headers)
        assert unconfirmed.status_code == 409
        assert unconfirmed.json()["detail"]["requires_confirmation"] is True

        confirmed = client.delete(
            f"{BASE}/providers/{provider_id}", params={"confirm": True}, headers=admin_headers
        )
        assert confirmed.status_code == 200
        assert storage.rows(PROVIDERS_TABLE) == []

    def test_disable_needs_confirmation(
        self,
        client: TestClient,
        catalog: Catalog,
        admin_profile: Profile,
        admin_headers: Dict[str, str],
    ) -> None:
        provider_id = catalog.provider("openai")
        catalog.route(catalog.model(provider_id, "gpt-4o"))

        response = client.put(
            f"{BASE}/providers/{provider_id}/enabled",
            json={"is_enabled": False},
            headers=admin_headers,
        )

        assert response.status_code == 409
        assert response.json()["detail"]["impact"]["route_count"] == 1

    def test_missing_provider_is_404(
        self, client: TestClient, admin_profile: Profile, admin_headers: Dict[str, str]
    ) -> None:
        response = client.get(f"{BASE}/providers/nope/disable-impact", headers=admin_headers)
        assert response.status_code == 404


class TestSeedEndpoint:
    def test_seed_is_idempotent(
        self, client: TestClient, admin_profile: Profile, admin_headers: Dict[str, str]
    ) -> None:
        first = client.post(f"{BASE}/seed", headers=admin_headers)
        second = client.post(f"{BASE}/seed", headers=admin_headers)

        assert first.json() == {
            "providers": len(DEFAULT_PROVIDERS),
            "models": len(DEFAULT_MODELS),
        }
        assert second.json() == {"providers": 0, "models": 0}
