"""
Tests for the AI routing endpoints in domains/ai_routing/routes.py
"""

from typing import Dict, Generator
from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient

from sharedminds.domains.auth.models import Profile
from sharedminds.main import app
from sharedminds.shared.ai.client import OpenAIAdapter
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.dependencies import get_credentials
from sharedminds.shared.ai.exceptions import ProviderAPIError
from sharedminds.shared.ai.types import NormalizedAIResponse
from tests.fixtures.ai_fixtures import Catalog

GENERATE_BODY = {"messages": [{"role": "user", "content": "Summarise my tasks"}]}


@pytest.fixture
def openai_key() -> Generator[None, None, None]:
    app.dependency_overrides[get_credentials] = lambda: CredentialProvider(
        {"OPENAI_API_KEY": "sk-test"}
    )
    yield
    app.dependency_overrides.pop(get_credentials, None)


@pytest.fixture
def no_keys() -> Generator[None, None, None]:
    app.dependency_overrides[get_credentials] = lambda: CredentialProvider({})
    yield
    app.dependency_overrides.pop(get_credentials, None)


class TestResolveEndpoint:
    def test_requires_auth(self, client: TestClient) -> None:
        response = client.get("/api/v1/ai/routes/resolve", params={"feature_key": "ai_chat"})
        assert response.status_code == 401

    def test_resolves_most_specific_route(
        self,
        client: TestClient,
        catalog: Catalog,
        owner_profile: Profile,
        auth_headers: Dict[str, str],
    ) -> None:
        model_id = catalog.model(catalog.provider("openai"), "gpt-4o")
        catalog.route(model_id, priority=500)
        surface_route = catalog.route(model_id, surface_type="personal", priority=1)

        response = client.get(
            "/api/v1/ai/routes/resolve",
            params={"feature_key": "ai_chat", "surface_type": "personal"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()
        assert data["route_id"] == surface_route
        assert data["specificity"] == 2
        assert data["provider"] == "openai"
        assert data["budgets"]["max_output_tokens"] == 4096

    def test_no_route_is_404(
        self, client: TestClient, owner_profile: Profile, auth_headers: Dict[str, str]
    ) -> None:
        response = client.get(
            "/api/v1/ai/routes/resolve",
            params={"feature_key": "ai_chat"},
            headers=auth_headers,
        )
        assert response.status_code == 404


class TestGenerateEndpoint:
    def test_success(
        self,
        client: TestClient,
        catalog: Catalog,
        owner_profile: Profile,
        auth_headers: Dict[str, str],
        openai_key: None,
    ) -> None:
        catalog.route(catalog.model(catalog.provider("openai"), "gpt-4o"))
        reply = NormalizedAIResponse(text="Three tasks due", provider="openai", model_key="gpt-4o")

        with patch.object(OpenAIAdapter, "generate", AsyncMock(return_value=reply)) as generate:
            response = client.post(
                "/api/v1/ai/features/ai_chat/generate", json=GENERATE_BODY, headers=auth_headers
            )

        assert response.status_code == 200
        assert response.json()["text"] == "Three tasks due"
        assert generate.await_args.args[0].intent == "generate"

    def test_missing_key_is_503(
        self,
        client: TestClient,
        catalog: Catalog,
        owner_profile: Profile,
        auth_headers: Dict[str, str],
        no_keys: None,
    ) -> None:
        catalog.route(catalog.model(catalog.provider("openai"), "gpt-4o"))

        response = client.post(
            "/api/v1/ai/features/ai_chat/generate", json=GENERATE_BODY, headers=auth_headers
        )

        assert response.status_code == 503
        assert response.json()["detail"]["env_var"] == "OPENAI_API_KEY"

    def test_unknown_provider_is_422(
        self,
        client: TestClient,
        catalog: Catalog,
        owner_profile: Profile,
        auth_headers: Dict[str, str],
    ) -> None:
        catalog.route(catalog.model(catalog.provider("mistral"), "mistral-large"))
        app.dependency_overrides[get_credentials] = lambda: CredentialProvider(
            {"MISTRAL_API_KEY": "mk"}
        )

        response = client.post(
            "/api/v1/ai/features/ai_chat/generate", json=GENERATE_BODY, headers=auth_headers
        )

        assert response.status_code == 422

    def test_provider_failure_is_502_with_retryable(
        self,
        client: TestClient,
        catalog: Catalog,
        owner_profile: Profile,
        auth_headers: Dict[str, str],
        openai_key: None,
    ) -> None:
        catalog.route(catalog.model(catalog.provider("openai"), "gpt-4o"))
        error = ProviderAPIError("openai", 503, "upstream down", True)

        with patch.object(OpenAIAdapter, "generate", AsyncMock(side_effect=error)):
            response = client.post(
                "/api/v1/ai/features/ai_chat/generate", json=GENERATE_BODY, headers=auth_headers
            )

        assert response.status_code == 502
        detail = response.json()["detail"]
        assert detail["retryable"] is True
        assert detail["status_code"] == 503

    def test_empty_messages_rejected(
        self, client: TestClient, owner_profile: Profile, auth_headers: Dict[str, str]
    ) -> None:
        response = client.post(
            "/api/v1/ai/features/ai_chat/generate", json={"messages": []}, headers=auth_headers
        )
        assert response.status_code == 422
