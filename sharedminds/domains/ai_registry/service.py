import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Mapping, Optional

from sharedminds.core.database import StorageClient
from sharedminds.shared.exceptions import (
    ConfirmationRequiredError,
    EntityNotFoundError,
    InvalidDataError,
    ReferentialIntegrityError,
)

from .features import (
    FEATURE_REGISTRY,
    FeatureDefinition,
    get_feature,
    is_model_compatible,
    missing_capabilities,
)
from .models import (
    AIFeatureRoute,
    AIProvider,
    AIProviderModel,
    CompatibleModel,
    DisableImpact,
    ModelCreate,
    ModelUpdate,
    ProviderCreate,
    ProviderUpdate,
    RouteConstraints,
    RouteCreate,
    RouteUpdate,
)
from .seeds import DEFAULT_MODELS, DEFAULT_PROVIDERS

logger = logging.getLogger(__name__)

PROVIDERS_TABLE = "ai_providers"
MODELS_TABLE = "ai_provider_models"
ROUTES_TABLE = "ai_feature_routes"


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class ProviderRegistryService:
    """
    Admin CRUD over AI providers, their models and feature routes.

    Every write is validated before it reaches storage. Destructive actions
    either require confirmation of their blast radius or are rejected while
    dependents exist.
    """

    def __init__(
        self,
        db: StorageClient,
        feature_registry: Mapping[str, FeatureDefinition] = FEATURE_REGISTRY,
    ):
        self.db = db
        self.feature_registry = feature_registry

    # Providers

    async def list_providers(self) -> list[AIProvider]:
        rows = await self.db.select(PROVIDERS_TABLE, order_by="name")
        return [AIProvider.model_validate(row) for row in rows]

    async def get_provider(self, provider_id: str) -> AIProvider:
        row = await self.db.select_one(PROVIDERS_TABLE, filters={"id": provider_id})
        if not row:
            raise EntityNotFoundError("Provider", provider_id)
        return AIProvider.model_validate(row)

    async def create_provider(self, data: ProviderCreate) -> AIProvider:
        existing = await self.db.select_one(PROVIDERS_TABLE, filters={"name": data.name})
        if existing:
            raise InvalidDataError(f"A provider named '{data.name}' already exists")

        row = await self.db.insert(
            PROVIDERS_TABLE, {**data.model_dump(mode="json"), "created_at": _now()}
        )
        logger.info(f"Created AI provider {data.name}")
        return AIProvider.model_validate(row)

    async def update_provider(self, provider_id: str, data: ProviderUpdate) -> AIProvider:
        provider = await self.get_provider(provider_id)
        values = data.model_dump(exclude_unset=True, exclude_none=True)
        if not values:
            return provider

        rows = await self.db.update(PROVIDERS_TABLE, values, filters={"id": provider_id})
        logger.info(f"Updated AI provider {provider.name}: {sorted(values)}")
        return AIProvider.model_validate(rows[0] if rows else {**provider.model_dump(), **values})

    async def preview_provider_disable(self, provider_id: str) -> DisableImpact:
        provider = await self.get_provider(provider_id)
        models = await self.db.select(MODELS_TABLE, filters={"provider_id": provider_id})
        route_count = 0
        if models:
            route_count = await self.db.count(
                ROUTES_TABLE,
                filters={
                    "provider_model_id": [m["id"] for m in models],
                    "is_enabled": True,
                },
            )
        return DisableImpact(
            model_count=len(models),
            route_count=route_count,
            message=(
                f"Disabling {provider.display_name} will stop {len(models)} model(s) "
                f"and {route_count} enabled route(s) from being used"
            ),
        )

    async def set_provider_enabled(
        self, provider_id: str, is_enabled: bool, confirmed: bool = False
    ) -> AIProvider:
        """
        Enable or disable a provider.

        Raises:
            ConfirmationRequiredError: If disabling without confirmation
        """
        provider = await self.get_provider(provider_id)
        if not is_enabled and provider.is_enabled and not confirmed:
            impact = await self.preview_provider_disable(provider_id)
            raise ConfirmationRequiredError(impact.message, impact.model_dump())

        rows = await self.db.update(
            PROVIDERS_TABLE, {"is_enabled": is_enabled}, filters={"id": provider_id}
        )
        logger.info(
            f"{'Enabled' if is_enabled else 'Disabled'} AI provider {provider.name}"
        )
        return AIProvider.model_validate(
            rows[0] if rows else {**provider.model_dump(), "is_enabled": is_enabled}
        )

    async def delete_provider(self, provider_id: str, confirmed: bool = False) -> None:
        """
        Delete a provider with no models.

        Raises:
            ReferentialIntegrityError: If the provider still has models
            ConfirmationRequiredError: If not confirmed
        """
        provider = await self.get_provider(provider_id)
        model_count = await self.db.count(MODELS_TABLE, filters={"provider_id": provider_id})
        if model_count > 0:
            raise ReferentialIntegrityError(
                f"Cannot delete: This provider has {model_count} model(s). "
                "Delete all models first.",
                model_count,
            )
        if not confirmed:
            raise ConfirmationRequiredError(
                f"Delete provider {provider.display_name}? This cannot be undone.",
                {"model_count": 0, "route_count": 0},
            )

        await self.db.delete(PROVIDERS_TABLE, filters={"id": provider_id})
        logger.info(f"Deleted AI provider {provider.name}")

    # Models

    async def list_models(self, provider_id: Optional[str] = None) -> list[AIProviderModel]:
        filters = {"provider_id": provider_id} if provider_id else None
        rows = await self.db.select(MODELS_TABLE, filters=filters, order_by="display_name")
        return [AIProviderModel.model_validate(row) for row in rows]

    async def get_model(self, model_id: str) -> AIProviderModel:
        row = await self.db.select_one(MODELS_TABLE, filters={"id": model_id})
        if not row:
            raise EntityNotFoundError("Model", model_id)
        return AIProviderModel.model_validate(row)

    async def _ensure_unique_model_key(
        self, provider_id: str, model_key: str, exclude_id: Optional[str] = None
    ) -> None:
        existing = await self.db.select_one(
            MODELS_TABLE, filters={"provider_id": provider_id, "model_key": model_key}
        )
        if existing and existing["id"] != exclude_id:
            raise InvalidDataError(
                f"Model '{model_key}' already exists for this provider"
            )

    async def create_model(self, data: ModelCreate) -> AIProviderModel:
        await self.get_provider(data.provider_id)
        await self._ensure_unique_model_key(data.provider_id, data.model_key)

        row = await self.db.insert(
            MODELS_TABLE, {**data.model_dump(mode="json"), "created_at": _now()}
        )
        logger.info(f"Created AI model {data.model_key}")
        return AIProviderModel.model_validate(row)

    async def update_model(self, model_id: str, data: ModelUpdate) -> AIProviderModel:
        model = await self.get_model(model_id)
        values = data.model_dump(mode="json", exclude_unset=True, exclude_none=True)
        if not values:
            return model
        if "model_key" in values and values["model_key"] != model.model_key:
            await self._ensure_unique_model_key(
                model.provider_id, values["model_key"], exclude_id=model_id
            )

        rows = await self.db.update(MODELS_TABLE, values, filters={"id": model_id})
        updated = AIProviderModel.model_validate(
            rows[0] if rows else {**model.model_dump(mode="json"), **values}
        )
        logger.info(f"Updated AI model {updated.model_key}: {sorted(values)}")

        if "capabilities" in values:
            await self._warn_on_incompatible_routes(updated)
        return updated

    async def _warn_on_incompatible_routes(self, model: AIProviderModel) -> None:
        routes = await self.list_routes(provider_model_id=model.id)
        for route in routes:
            feature = get_feature(route.feature_key, self.feature_registry)
            if feature and not is_model_compatible(model, feature):
                logger.warning(
                    f"Route {route.id} ({route.feature_key}) no longer matches "
                    f"model {model.model_key} and will be skipped at resolution"
                )

    async def preview_model_disable(self, model_id: str) -> DisableImpact:
        model = await self.get_model(model_id)
        route_count = await self.db.count(
            ROUTES_TABLE, filters={"provider_model_id": model_id, "is_enabled": True}
        )
        return DisableImpact(
            model_count=1,
            route_count=route_count,
            message=(
                f"{route_count} enabled route(s) depend on {model.display_name}"
            ),
        )

    async def set_model_enabled(
        self, model_id: str, is_enabled: bool, confirmed: bool = False
    ) -> AIProviderModel:
        model = await self.get_model(model_id)
        if not is_enabled and model.is_enabled and not confirmed:
            impact = await self.preview_model_disable(model_id)
            raise ConfirmationRequiredError(impact.message, impact.model_dump())

        rows = await self.db.update(
            MODELS_TABLE, {"is_enabled": is_enabled}, filters={"id": model_id}
        )
        logger.info(
            f"{'Enabled' if is_enabled else 'Disabled'} AI model {model.model_key}"
        )
        return AIProviderModel.model_validate(
            rows[0] if rows else {**model.model_dump(mode="json"), "is_enabled": is_enabled}
        )

    async def delete_model(self, model_id: str, confirmed: bool = False) -> int:
        """Delete a model and, once confirmed, the routes bound to it."""
        model = await self.get_model(model_id)
        route_count = await self.db.count(
            ROUTES_TABLE, filters={"provider_model_id": model_id}
        )
        if not confirmed:
            raise ConfirmationRequiredError(
                f"Deleting {model.display_name} also deletes {route_count} route(s)",
                {"model_count": 1, "route_count": route_count},
            )

        if route_count:
            await self.db.delete(ROUTES_TABLE, filters={"provider_model_id": model_id})
        await self.db.delete(MODELS_TABLE, filters={"id": model_id})
        logger.info(f"Deleted AI model {model.model_key} and {route_count} route(s)")
        return route_count

    # Routes

    async def list_routes(
        self,
        feature_key: Optional[str] = None,
        provider_model_id: Optional[str] = None,
    ) -> list[AIFeatureRoute]:
        """Routes ordered by feature key, then highest priority first."""
        filters: dict[str, Any] = {}
        if feature_key:
            filters["feature_key"] = str(getattr(feature_key, "value", feature_key))
        if provider_model_id:
            filters["provider_model_id"] = provider_model_id
        rows = await self.db.select(ROUTES_TABLE, filters=filters or None)
        routes = [AIFeatureRoute.model_validate(row) for row in rows]
        return sorted(routes, key=lambda r: (r.feature_key, -r.priority))

    async def get_route(self, route_id: str) -> AIFeatureRoute:
        row = await self.db.select_one(ROUTES_TABLE, filters={"id": route_id})
        if not row:
            raise EntityNotFoundError("Route", route_id)
        return AIFeatureRoute.model_validate(row)

    async def _validate_route_target(
        self, feature_key: str, provider_model_id: str
    ) -> tuple[FeatureDefinition, AIProviderModel]:
        feature = get_feature(feature_key, self.feature_registry)
        if feature is None:
            raise InvalidDataError(f"Unknown feature key: {feature_key}")

        row = await self.db.select_one(MODELS_TABLE, filters={"id": provider_model_id})
        if not row:
            raise InvalidDataError(f"Model {provider_model_id} does not exist")
        model = AIProviderModel.model_validate(row)

        missing = missing_capabilities(model.capabilities, feature)
        if missing:
            raise InvalidDataError(
                f"Model {model.model_key} lacks capabilities required by "
                f"{feature.label}: {', '.join(cap.value for cap in missing)}"
            )
        return feature, model

    async def create_route(self, data: RouteCreate) -> AIFeatureRoute:
        feature, model = await self._validate_route_target(
            data.feature_key.value, data.provider_model_id
        )
        if not model.is_enabled:
            raise InvalidDataError(f"Model {model.model_key} is disabled")

        constraints = data.constraints or RouteConstraints()
        if constraints.allowed_intents is None and feature.allowed_intents:
            constraints = constraints.model_copy(
                update={"allowed_intents": list(feature.allowed_intents)}
            )

        row = await self.db.insert(
            ROUTES_TABLE,
            {
                **data.model_dump(mode="json", exclude={"constraints"}),
                "constraints": constraints.to_row(),
                "created_at": _now(),
            },
        )
        logger.info(
            f"Created route {feature.key} -> {model.model_key} "
            f"(surface={data.surface_type}, priority={data.priority})"
        )
        return AIFeatureRoute.model_validate(row)

    async def update_route(self, route_id: str, data: RouteUpdate) -> AIFeatureRoute:
        route = await self.get_route(route_id)
        values = data.model_dump(mode="json", exclude_unset=True)
        if "constraints" in values:
            values["constraints"] = (
                data.constraints.to_row() if data.constraints else {}
            )
        if not values:
            return route
        if values.get("provider_model_id"):
            _, model = await self._validate_route_target(
                route.feature_key, values["provider_model_id"]
            )
            if not model.is_enabled:
                raise InvalidDataError(f"Model {model.model_key} is disabled")

        rows = await self.db.update(ROUTES_TABLE, values, filters={"id": route_id})
        logger.info(f"Updated route {route_id}: {sorted(values)}")
        return AIFeatureRoute.model_validate(
            rows[0] if rows else {**route.model_dump(mode="json"), **values}
        )

    async def set_route_enabled(self, route_id: str, is_enabled: bool) -> AIFeatureRoute:
        route = await self.get_route(route_id)
        if is_enabled:
            await self._validate_route_target(route.feature_key, route.provider_model_id)
        rows = await self.db.update(
            ROUTES_TABLE, {"is_enabled": is_enabled}, filters={"id": route_id}
        )
        logger.info(f"{'Enabled' if is_enabled else 'Disabled'} route {route_id}")
        return AIFeatureRoute.model_validate(
            rows[0] if rows else {**route.model_dump(mode="json"), "is_enabled": is_enabled}
        )

    async def delete_route(self, route_id: str, confirmed: bool = False) -> None:
        route = await self.get_route(route_id)
        if not confirmed:
            raise ConfirmationRequiredError(
                f"Delete the {route.feature_key} route? Requests may fall back "
                "to a less specific route or become unavailable.",
                {"route_count": 1},
            )
        await self.db.delete(ROUTES_TABLE, filters={"id": route_id})
        logger.info(f"Deleted route {route_id} ({route.feature_key})")

    # Catalog helpers

    async def list_compatible_models(self, feature_key: str) -> list[CompatibleModel]:
        """Enabled models of enabled providers that can serve the feature."""
        feature = get_feature(feature_key, self.feature_registry)
        if feature is None:
            raise InvalidDataError(f"Unknown feature key: {feature_key}")

        providers, models = await asyncio.gather(
            self.list_providers(), self.list_models()
        )
        enabled_providers = {p.id: p for p in providers if p.is_enabled}
        return [
            CompatibleModel(model=m, provider=enabled_providers[m.provider_id])
            for m in models
            if m.is_enabled
            and m.provider_id in enabled_providers
            and is_model_compatible(m, feature)
        ]

    async def seed_default_catalog(self) -> dict[str, int]:
        """Insert the default providers and models that are not present yet."""
        created = {"providers": 0, "models": 0}
        provider_ids: dict[str, str] = {}

        for provider in DEFAULT_PROVIDERS:
            row = await self.db.select_one(
                PROVIDERS_TABLE, filters={"name": provider["name"]}
            )
            if row is None:
                row = await self.db.insert(
                    PROVIDERS_TABLE, {**provider, "created_at": _now()}
                )
                created["providers"] += 1
            provider_ids[provider["name"]] = row["id"]

        for provider_name, model in DEFAULT_MODELS:
            provider_id = provider_ids[provider_name]
            exists = await self.db.select_one(
                MODELS_TABLE,
                filters={"provider_id": provider_id, "model_key": model["model_key"]},
            )
            if exists is None:
                await self.db.insert(
                    MODELS_TABLE,
                    {**model, "provider_id": provider_id, "created_at": _now()},
                )
                created["models"] += 1

        logger.info(
            f"Seeded {created['providers']} provider(s) and {created['models']} model(s)"
        )
        return created
