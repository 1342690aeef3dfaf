import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from sharedminds.core.database import StorageClient, get_db
from sharedminds.domains.ai_registry.models import SurfaceType
from sharedminds.domains.auth.dependencies import get_current_profile
from sharedminds.domains.auth.models import Profile
from sharedminds.shared.ai.config import AIConfig
from sharedminds.shared.ai.credentials import CredentialProvider
from sharedminds.shared.ai.dependencies import get_ai_config, get_credentials
from sharedminds.shared.ai.exceptions import (
    AIValidationException,
    ModelNotSupportedError,
    ProviderAPIError,
    ProviderNotConfiguredError,
)
from sharedminds.shared.ai.types import NormalizedAIResponse

from .dispatch import AIRequestDispatcher
from .models import GenerateRequest, RouteResolution
from .resolver import RouteResolver

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ai", tags=["AI"])


@router.get(
    "/routes/resolve",
    response_model=RouteResolution,
    operation_id="resolveFeatureRoute",
)
async def resolve_feature_route(
    feature_key: str,
    surface_type: Optional[SurfaceType] = Query(None),
    master_project_id: Optional[str] = Query(None),
    intent: Optional[str] = Query(None),
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
) -> RouteResolution:
    """Show which provider and model would serve a feature in this context."""
    resolver = RouteResolver(db)
    resolved = await resolver.require_route(
        feature_key, surface_type, master_project_id, intent
    )
    return RouteResolution(
        feature_key=resolved.route.feature_key,
        route_id=resolved.route.id,
        provider=resolved.provider.name,
        model_key=resolved.model.model_key,
        specificity=resolved.specificity,
        priority=resolved.route.priority,
        is_fallback=resolved.route.is_fallback,
        budgets=resolved.budgets,
    )


@router.post(
    "/features/{feature_key}/generate",
    response_model=NormalizedAIResponse,
    operation_id="generateForFeature",
)
async def generate_for_feature(
    feature_key: str,
    request: GenerateRequest,
    profile: Profile = Depends(get_current_profile),
    db: StorageClient = Depends(get_db),
    credentials: CredentialProvider = Depends(get_credentials),
    config: AIConfig = Depends(get_ai_config),
) -> NormalizedAIResponse:
    """
    Run a feature request on its resolved model.

    Provider failures are reported with a retryable flag; the client decides
    whether to try again.
    """
    dispatcher = AIRequestDispatcher(RouteResolver(db), credentials, config)
    try:
        return await dispatcher.dispatch(
            feature_key,
            request.messages,
            intent=request.intent,
            surface_type=request.surface_type,
            master_project_id=request.master_project_id,
            system_prompt=request.system_prompt,
            temperature=request.temperature,
            max_tokens=request.max_tokens,
        )
    except ProviderNotConfiguredError as e:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"message": str(e), "env_var": e.env_var},
        )
    except ModelNotSupportedError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail={"message": str(e)},
        )
    except AIValidationException as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except ProviderAPIError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={
                "message": str(e),
                "provider": e.provider,
                "status_code": e.status_code,
                "retryable": e.retryable,
            },
        )
