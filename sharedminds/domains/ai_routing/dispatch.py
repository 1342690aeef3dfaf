import logging
from typing import Callable, Optional, Sequence

from sharedminds.shared.ai.client import ProviderAdapter, get_provider_adapter
from sharedminds.shared.ai.config import AIConfig
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.exceptions import ProviderAPIError
from sharedminds.shared.ai.types import (
    ChatMessage,
    NormalizedAIRequest,
    NormalizedAIResponse,
)
from sharedminds.domains.ai_registry.models import SurfaceType

from .resolver import ResolvedRoute, RouteResolver

logger = logging.getLogger(__name__)

AdapterFactory = Callable[[str, CredentialProvider, Optional[AIConfig]], ProviderAdapter]

DEFAULT_INTENT = "generate"


class AIRequestDispatcher:
    """
    Sends a feature request to whichever model its route resolves to.

    Failures are raised to the caller as-is; retryable provider errors are
    tagged but never retried here.
    """

    def __init__(
        self,
        resolver: RouteResolver,
        credentials: CredentialProvider,
        config: Optional[AIConfig] = None,
        adapter_factory: AdapterFactory = get_provider_adapter,
    ):
        self.resolver = resolver
        self.credentials = credentials
        self.config = config
        self.adapter_factory = adapter_factory

    def build_request(
        self,
        resolved: ResolvedRoute,
        messages: Sequence[ChatMessage],
        intent: str,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> NormalizedAIRequest:
        limit = resolved.budgets.max_output_tokens
        if max_tokens is not None and limit is not None:
            max_tokens = min(max_tokens, limit)
        return NormalizedAIRequest(
            provider=resolved.provider.name,
            model_key=resolved.model.model_key,
            intent=intent,
            feature_key=resolved.route.feature_key,
            messages=list(messages),
            system_prompt=system_prompt,
            budgets=resolved.budgets,
            max_tokens=max_tokens if max_tokens is not None else limit,
            temperature=temperature,
            reasoning_level=resolved.model.reasoning_level,
        )

    async def dispatch(
        self,
        feature_key: str,
        messages: Sequence[ChatMessage],
        *,
        intent: Optional[str] = None,
        surface_type: Optional[SurfaceType] = None,
        master_project_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> NormalizedAIResponse:
        """
        Resolve the route for a feature and execute the request on it.

        Raises:
            FeatureUnavailableError: If no route can serve the request
            ProviderNotConfiguredError: If the routed provider has no API key
            ModelNotSupportedError: If no adapter can serve the routed model
            ProviderAPIError: If the provider call fails
        """
        intent = intent or DEFAULT_INTENT
        resolved = await self.resolver.require_route(
            feature_key, surface_type, master_project_id, intent
        )
        request = self.build_request(
            resolved, messages, intent, system_prompt, temperature, max_tokens
        )
        adapter = self.adapter_factory(resolved.provider.name, self.credentials, self.config)

        try:
            response = await adapter.generate(request)
        except ProviderAPIError as e:
            logger.warning(
                f"{request.feature_key} via {request.provider}/{request.model_key} "
                f"failed (retryable={e.retryable})"
            )
            raise

        logger.info(
            f"{request.feature_key} served by {request.provider}/{request.model_key} "
            f"in {response.latency_ms}ms ({response.token_usage.total_tokens} tokens)"
        )
        return response
