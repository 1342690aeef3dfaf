"""
Feature route resolution.

Given a feature and the caller's surface context, pick the single route to
serve it. Project-scoped routes beat surface-scoped routes, which beat global
defaults; priority only orders routes within the same specificity tier.
"""

import asyncio
import logging
from datetime import datetime, timezone
from typing import Mapping, Optional

from pydantic import BaseModel

from sharedminds.core.database import StorageClient
from sharedminds.domains.ai_registry.features import (
    FEATURE_REGISTRY,
    FeatureDefinition,
    get_feature,
    missing_capabilities,
)
from sharedminds.domains.ai_registry.models import (
    AIFeatureRoute,
    AIProvider,
    AIProviderModel,
    SurfaceType,
)
from sharedminds.domains.ai_registry.service import (
    MODELS_TABLE,
    PROVIDERS_TABLE,
    ROUTES_TABLE,
)
from sharedminds.shared.ai.types import TokenBudgets
from sharedminds.shared.exceptions import FeatureUnavailableError

logger = logging.getLogger(__name__)

SPECIFICITY_PROJECT = 3
SPECIFICITY_SURFACE = 2
SPECIFICITY_GLOBAL = 1

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


class ResolvedRoute(BaseModel):
    route: AIFeatureRoute
    model: AIProviderModel
    provider: AIProvider
    specificity: int
    budgets: TokenBudgets


def effective_budgets(route: AIFeatureRoute, model: AIProviderModel) -> TokenBudgets:
    """Route constraints override the model's own token limits when set."""
    constraints = route.constraints
    return TokenBudgets(
        max_input_tokens=constraints.max_context_tokens or model.context_window_tokens,
        max_output_tokens=constraints.max_output_tokens or model.max_output_tokens,
    )


def route_specificity(
    route: AIFeatureRoute,
    surface_type: Optional[SurfaceType],
    master_project_id: Optional[str],
) -> Optional[int]:
    """
    Specificity of a route for a request, or None when it does not apply.

    A route scoped to a project or surface only applies to requests from that
    project or surface.
    """
    if route.master_project_id is not None:
        if route.master_project_id != master_project_id:
            return None
        if route.surface_type is not None and route.surface_type != surface_type:
            return None
        return SPECIFICITY_PROJECT
    if route.surface_type is not None:
        if route.surface_type != surface_type:
            return None
        return SPECIFICITY_SURFACE
    return SPECIFICITY_GLOBAL


def _ranking_key(candidate: ResolvedRoute) -> tuple:
    route = candidate.route
    created_at = route.created_at or _EPOCH
    if created_at.tzinfo is None:
        created_at = created_at.replace(tzinfo=timezone.utc)
    return (candidate.specificity, route.priority, created_at, route.id)


class RouteResolver:
    def __init__(
        self,
        db: StorageClient,
        feature_registry: Mapping[str, FeatureDefinition] = FEATURE_REGISTRY,
    ):
        self.db = db
        self.feature_registry = feature_registry

    async def _load(
        self, feature_key: str
    ) -> tuple[list[AIFeatureRoute], dict[str, AIProviderModel], dict[str, AIProvider]]:
        route_rows, model_rows, provider_rows = await asyncio.gather(
            self.db.select(
                ROUTES_TABLE, filters={"feature_key": feature_key, "is_enabled": True}
            ),
            self.db.select(MODELS_TABLE, filters={"is_enabled": True}),
            self.db.select(PROVIDERS_TABLE, filters={"is_enabled": True}),
        )
        routes = [AIFeatureRoute.model_validate(row) for row in route_rows]
        models = {row["id"]: AIProviderModel.model_validate(row) for row in model_rows}
        providers = {row["id"]: AIProvider.model_validate(row) for row in provider_rows}
        return routes, models, providers

    async def resolve_route(
        self,
        feature_key: str,
        surface_type: Optional[SurfaceType] = None,
        master_project_id: Optional[str] = None,
        intent: Optional[str] = None,
    ) -> Optional[ResolvedRoute]:
        """
        Resolve the route serving a feature in a request context.

        Args:
            feature_key: Registered feature key
            surface_type: Surface the request comes from, None for global
            master_project_id: Project the request comes from, if any
            intent: Request intent checked against route constraints

        Returns:
            The winning route with its model, provider and budgets, or None
            when no route can serve the request
        """
        feature_key = str(getattr(feature_key, "value", feature_key))
        feature = get_feature(feature_key, self.feature_registry)
        if feature is None:
            logger.warning(f"Route requested for unknown feature {feature_key}")
            return None
        surface = SurfaceType(surface_type) if surface_type else None

        routes, models, providers = await self._load(feature_key)

        candidates: list[ResolvedRoute] = []
        fallbacks: list[ResolvedRoute] = []
        for route in routes:
            if not route.is_enabled:
                continue
            model = models.get(route.provider_model_id)
            if model is None or not model.is_enabled:
                continue
            provider = providers.get(model.provider_id)
            if provider is None or not provider.is_enabled:
                continue

            specificity = route_specificity(route, surface, master_project_id)
            if specificity is None:
                continue

            missing = missing_capabilities(model.capabilities, feature)
            if missing:
                logger.warning(
                    f"Skipping route {route.id} for {feature_key}: model "
                    f"{model.model_key} lacks {', '.join(c.value for c in missing)}"
                )
                continue

            if not route.constraints.permits_intent(intent):
                continue

            resolved = ResolvedRoute(
                route=route,
                model=model,
                provider=provider,
                specificity=specificity,
                budgets=effective_budgets(route, model),
            )
            (fallbacks if route.is_fallback else candidates).append(resolved)

        pool = candidates or fallbacks
        if not pool:
            logger.info(
                f"No route for {feature_key} (surface={surface}, "
                f"project={master_project_id}, intent={intent})"
            )
            return None

        winner = max(pool, key=_ranking_key)
        logger.debug(
            f"Resolved {feature_key} to {winner.provider.name}/{winner.model.model_key} "
            f"via route {winner.route.id} (specificity={winner.specificity}, "
            f"priority={winner.route.priority})"
        )
        return winner

    async def require_route(
        self,
        feature_key: str,
        surface_type: Optional[SurfaceType] = None,
        master_project_id: Optional[str] = None,
        intent: Optional[str] = None,
    ) -> ResolvedRoute:
        """Resolve a route or raise; callers must not substitute a default model."""
        resolved = await self.resolve_route(
            feature_key, surface_type, master_project_id, intent
        )
        if resolved is None:
            raise FeatureUnavailableError(str(getattr(feature_key, "value", feature_key)))
        return resolved
