from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel

from sharedminds.core.database import StorageClient, get_db
from sharedminds.domains.auth.dependencies import require_platform_admin
from sharedminds.shared.ai.config import AIConfig
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.dependencies import get_ai_config, get_credentials

from .diagnostics import ModelTestResult, ModelTestService
from .features import FEATURE_REGISTRY, FeatureDefinition
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
    RouteCreate,
    RouteUpdate,
    SetEnabledRequest,
)
from .service import ProviderRegistryService

router = APIRouter(
    prefix="/admin/ai",
    tags=["AI Registry"],
    dependencies=[Depends(require_platform_admin)],
)


class DeleteResult(BaseModel):
    deleted: bool = True
    routes_deleted: int = 0


class SeedResult(BaseModel):
    providers: int
    models: int


class ModelTestRequest(BaseModel):
    prompt: Optional[str] = None


@router.get("/features", response_model=list[FeatureDefinition], operation_id="listAIFeatures")
async def list_features() -> list[FeatureDefinition]:
    return list(FEATURE_REGISTRY.values())


# Providers


@router.get("/providers", response_model=list[AIProvider], operation_id="listAIProviders")
async def list_providers(db: StorageClient = Depends(get_db)) -> list[AIProvider]:
    return await ProviderRegistryService(db).list_providers()


@router.post(
    "/providers",
    response_model=AIProvider,
    status_code=status.HTTP_201_CREATED,
    operation_id="createAIProvider",
)
async def create_provider(
    data: ProviderCreate, db: StorageClient = Depends(get_db)
) -> AIProvider:
    return await ProviderRegistryService(db).create_provider(data)


@router.patch(
    "/providers/{provider_id}", response_model=AIProvider, operation_id="updateAIProvider"
)
async def update_provider(
    provider_id: str, data: ProviderUpdate, db: StorageClient = Depends(get_db)
) -> AIProvider:
    return await ProviderRegistryService(db).update_provider(provider_id, data)


@router.get(
    "/providers/{provider_id}/disable-impact",
    response_model=DisableImpact,
    operation_id="previewAIProviderDisable",
)
async def preview_provider_disable(
    provider_id: str, db: StorageClient = Depends(get_db)
) -> DisableImpact:
    return await ProviderRegistryService(db).preview_provider_disable(provider_id)


@router.put(
    "/providers/{provider_id}/enabled",
    response_model=AIProvider,
    operation_id="setAIProviderEnabled",
)
async def set_provider_enabled(
    provider_id: str, data: SetEnabledRequest, db: StorageClient = Depends(get_db)
) -> AIProvider:
    """Disabling requires confirmed=true; otherwise a 409 describes the impact."""
    return await ProviderRegistryService(db).set_provider_enabled(
        provider_id, data.is_enabled, data.confirmed
    )


@router.delete(
    "/providers/{provider_id}", response_model=DeleteResult, operation_id="deleteAIProvider"
)
async def delete_provider(
    provider_id: str,
    confirm: bool = Query(False),
    db: StorageClient = Depends(get_db),
) -> DeleteResult:
    await ProviderRegistryService(db).delete_provider(provider_id, confirm)
    return DeleteResult()


# Models


@router.get("/models", response_model=list[AIProviderModel], operation_id="listAIModels")
async def list_models(
    provider_id: Optional[str] = Query(None), db: StorageClient = Depends(get_db)
) -> list[AIProviderModel]:
    return await ProviderRegistryService(db).list_models(provider_id)


@router.get("/models/{model_id}", response_model=AIProviderModel, operation_id="getAIModel")
async def get_model(model_id: str, db: StorageClient = Depends(get_db)) -> AIProviderModel:
    return await ProviderRegistryService(db).get_model(model_id)


@router.post(
    "/models",
    response_model=AIProviderModel,
    status_code=status.HTTP_201_CREATED,
    operation_id="createAIModel",
)
async def create_model(
    data: ModelCreate, db: StorageClient = Depends(get_db)
) -> AIProviderModel:
    return await ProviderRegistryService(db).create_model(data)


@router.patch("/models/{model_id}", response_model=AIProviderModel, operation_id="updateAIModel")
async def update_model(
    model_id: str, data: ModelUpdate, db: StorageClient = Depends(get_db)
) -> AIProviderModel:
    return await ProviderRegistryService(db).update_model(model_id, data)


@router.get(
    "/models/{model_id}/disable-impact",
    response_model=DisableImpact,
    operation_id="previewAIModelDisable",
)
async def preview_model_disable(
    model_id: str, db: StorageClient = Depends(get_db)
) -> DisableImpact:
    return await ProviderRegistryService(db).preview_model_disable(model_id)


@router.put(
    "/models/{model_id}/enabled",
    response_model=AIProviderModel,
    operation_id="setAIModelEnabled",
)
async def set_model_enabled(
    model_id: str, data: SetEnabledRequest, db: StorageClient = Depends(get_db)
) -> AIProviderModel:
    return await ProviderRegistryService(db).set_model_enabled(
        model_id, data.is_enabled, data.confirmed
    )


@router.delete("/models/{model_id}", response_model=DeleteResult, operation_id="deleteAIModel")
async def delete_model(
    model_id: str,
    confirm: bool = Query(False),
    db: StorageClient = Depends(get_db),
) -> DeleteResult:
    routes_deleted = await ProviderRegistryService(db).delete_model(model_id, confirm)
    return DeleteResult(routes_deleted=routes_deleted)


@router.post(
    "/models/{model_id}/test", response_model=ModelTestResult, operation_id="testAIModel"
)
async def run_model_test(
    model_id: str,
    data: ModelTestRequest,
    db: StorageClient = Depends(get_db),
    credentials: CredentialProvider = Depends(get_credentials),
    config: AIConfig = Depends(get_ai_config),
) -> ModelTestResult:
    """
    Send one diagnostic request to a model, enabled or not.

    Provider failures are reported in the result body rather than as errors.
    """
    service = ModelTestService(db, credentials, config)
    return await service.test_model(model_id, data.prompt)


# Routes


@router.get("/routes", response_model=list[AIFeatureRoute], operation_id="listAIRoutes")
async def list_routes(
    feature_key: Optional[str] = Query(None),
    provider_model_id: Optional[str] = Query(None),
    db: StorageClient = Depends(get_db),
) -> list[AIFeatureRoute]:
    return await ProviderRegistryService(db).list_routes(feature_key, provider_model_id)


@router.post(
    "/routes",
    response_model=AIFeatureRoute,
    status_code=status.HTTP_201_CREATED,
    operation_id="createAIRoute",
)
async def create_route(
    data: RouteCreate, db: StorageClient = Depends(get_db)
) -> AIFeatureRoute:
    return await ProviderRegistryService(db).create_route(data)


@router.patch("/routes/{route_id}", response_model=AIFeatureRoute, operation_id="updateAIRoute")
async def update_route(
    route_id: str, data: RouteUpdate, db: StorageClient = Depends(get_db)
) -> AIFeatureRoute:
    return await ProviderRegistryService(db).update_route(route_id, data)


@router.put(
    "/routes/{route_id}/enabled",
    response_model=AIFeatureRoute,
    operation_id="setAIRouteEnabled",
)
async def set_route_enabled(
    route_id: str, data: SetEnabledRequest, db: StorageClient = Depends(get_db)
) -> AIFeatureRoute:
    return await ProviderRegistryService(db).set_route_enabled(route_id, data.is_enabled)


@router.delete("/routes/{route_id}", response_model=DeleteResult, operation_id="deleteAIRoute")
async def delete_route(
    route_id: str,
    confirm: bool = Query(False),
    db: StorageClient = Depends(get_db),
) -> DeleteResult:
    await ProviderRegistryService(db).delete_route(route_id, confirm)
    return DeleteResult()


# Catalog


@router.get(
    "/features/{feature_key}/compatible-models",
    response_model=list[CompatibleModel],
    operation_id="listCompatibleAIModels",
)
async def list_compatible_models(
    feature_key: str, db: StorageClient = Depends(get_db)
) -> list[CompatibleModel]:
    return await ProviderRegistryService(db).list_compatible_models(feature_key)


@router.post("/seed", response_model=SeedResult, operation_id="seedAICatalog")
async def seed_catalog(db: StorageClient = Depends(get_db)) -> SeedResult:
    """Insert the default providers and models that are missing."""
    created = await ProviderRegistryService(db).seed_default_catalog()
    return SeedResult(**created)
