"""
Tests for request dispatch in domains/ai_routing/dispatch.py
"""

from unittest.mock import AsyncMock, Mock

import pytest

from sharedminds.domains.ai_registry.models import SurfaceType
from sharedminds.domains.ai_routing.dispatch import AIRequestDispatcher
from sharedminds.domains.ai_routing.resolver import RouteResolver
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.exceptions import ProviderAPIError
from sharedminds.shared.ai.types import ChatMessage, NormalizedAIResponse
from sharedminds.shared.exceptions import FeatureUnavailableError
from tests.fixtures.ai_fixtures import Catalog
from tests.fixtures.storage_fixtures import FakeStorage

MESSAGES = [ChatMessage(role="user", content="Plan my week")]


@pytest.fixture
def adapter() -> Mock:
    adapter = Mock()
    adapter.generate = AsyncMock(
        return_value=NormalizedAIResponse(text="Done", provider="anthropic", model_key="claude")
    )
    return adapter


@pytest.fixture
def adapter_factory(adapter: Mock) -> Mock:
    return Mock(return_value=adapter)


@pytest.fixture
def dispatcher(storage: FakeStorage, adapter_factory: Mock) -> AIRequestDispatcher:
    return AIRequestDispatcher(
        RouteResolver(storage),
        CredentialProvider({"ANTHROPIC_API_KEY": "sk-ant"}),
        adapter_factory=adapter_factory,
    )


class TestAIRequestDispatcher:
    @pytest.mark.asyncio
    async def test_dispatches_to_resolved_model(
        self, catalog: Catalog, dispatcher: AIRequestDispatcher, adapter: Mock, adapter_factory: Mock
    ) -> None:
        model_id = catalog.model(
            catalog.provider("anthropic"), " claude ", reasoning_level="deep"
        )
        catalog.route(model_id, constraints={"max_output_tokens": 1000})

        response = await dispatcher.dispatch(
            "ai_chat", MESSAGES, surface_type=SurfaceType.PERSONAL, max_tokens=5000
        )

        assert response.text == "Done"
        assert adapter_factory.call_args.args[0] == "anthropic"
        request = adapter.generate.call_args.args[0]
        assert request.model_key == "claude"
        assert request.feature_key == "ai_chat"
        assert request.intent == "generate"
        assert request.budgets.max_output_tokens == 1000
        assert request.max_tokens == 1000
        assert request.reasoning_level.value == "deep"

    @pytest.mark.asyncio
    async def test_no_route_raises_without_calling_provider(
        self, dispatcher: AIRequestDispatcher, adapter_factory: Mock
    ) -> None:
        with pytest.raises(FeatureUnavailableError):
            await dispatcher.dispatch("ai_chat", MESSAGES)
        adapter_factory.assert_not_called()

    @pytest.mark.asyncio
    async def test_retryable_errors_propagate_without_retry(
        self, catalog: Catalog, dispatcher: AIRequestDispatcher, adapter: Mock
    ) -> None:
        catalog.route(catalog.model(catalog.provider("anthropic"), "claude"))
        adapter.generate.side_effect = ProviderAPIError("anthropic", 529, "overloaded", True)

        with pytest.raises(ProviderAPIError) as exc_info:
            await dispatcher.dispatch("ai_chat", MESSAGES)

        assert exc_info.value.retryable is True
        assert adapter.generate.await_count == 1

    @pytest.mark.asyncio
    async def test_intent_is_passed_to_resolution(
        self, catalog: Catalog, dispatcher: AIRequestDispatcher
    ) -> None:
        catalog.route(
            catalog.model(catalog.provider("anthropic"), "claude"),
            constraints={"allowed_intents": ["draft"]},
        )

        with pytest.raises(FeatureUnavailableError):
            await dispatcher.dispatch("ai_chat", MESSAGES, intent="summarize")
        assert (await dispatcher.dispatch("ai_chat", MESSAGES, intent="draft")).text == "Done"
