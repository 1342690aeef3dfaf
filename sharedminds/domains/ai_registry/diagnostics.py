import logging
from typing import Callable, Literal, Optional

from pydantic import BaseModel, Field, ValidationError

from sharedminds.core.database import StorageClient
from sharedminds.shared.ai.client import ProviderAdapter, get_provider_adapter
from sharedminds.shared.ai.config import AIConfig
from sharedminds.shared.ai.credentials import CredentialProvider, credential_env_var
from sharedminds.shared.ai.exceptions import (
    AIException,
    ModelNotSupportedError,
    ProviderAPIError,
)
from sharedminds.shared.ai.types import (
    ChatMessage,
    NormalizedAIRequest,
    TokenBudgets,
    TokenUsage,
)

from .features import FeatureKey
from .service import ProviderRegistryService

logger = logging.getLogger(__name__)

RETRY_SUGGESTION = "This error may be temporary. Try again in a moment."
CHECK_ACCOUNT_SUGGESTION = (
    "Check your API key, model name, and account status with the provider"
)
DEFAULT_TEST_PROMPT = "Reply with a short greeting to confirm you are working."

AdapterFactory = Callable[[str, CredentialProvider, Optional[AIConfig]], ProviderAdapter]
StepStatus = Literal["passed", "failed", "skipped", "warning"]
ErrorCategory = Literal["not_configured", "model_not_supported", "api_error", "invalid_request"]

STEP_NAMES = (
    "API Key Check",
    "Adapter Initialization",
    "Model Validation",
    "Request Preparation",
    "API Call",
)


class DiagnosticStep(BaseModel):
    name: str
    status: StepStatus
    detail: Optional[str] = None


class ModelTestError(BaseModel):
    category: ErrorCategory
    message: str
    retryable: bool = False
    status_code: Optional[int] = None
    suggestion: str


class ModelTestResult(BaseModel):
    success: bool
    provider: str
    model_key: str
    response_text: Optional[str] = None
    latency_ms: Optional[int] = None
    token_usage: Optional[TokenUsage] = None
    warnings: list[str] = Field(default_factory=list)
    diagnostics: list[DiagnosticStep] = Field(default_factory=list)
    error: Optional[ModelTestError] = None


class ModelTestService:
    """Runs a single diagnostic request against a configured model."""

    def __init__(
        self,
        db: StorageClient,
        credentials: CredentialProvider,
        config: Optional[AIConfig] = None,
        adapter_factory: AdapterFactory = get_provider_adapter,
    ):
        self.registry = ProviderRegistryService(db)
        self.credentials = credentials
        self.config = config or AIConfig.from_settings()
        self.adapter_factory = adapter_factory

    async def test_model(
        self, model_id: str, prompt: Optional[str] = None
    ) -> ModelTestResult:
        model = await self.registry.get_model(model_id)
        provider = await self.registry.get_provider(model.provider_id)
        result = ModelTestResult(
            success=False, provider=provider.name, model_key=model.model_key
        )

        def fail(step: str, error: ModelTestError) -> ModelTestResult:
            result.diagnostics.append(
                DiagnosticStep(name=step, status="failed", detail=error.message)
            )
            done = {d.name for d in result.diagnostics}
            result.diagnostics.extend(
                DiagnosticStep(name=name, status="skipped")
                for name in STEP_NAMES
                if name not in done
            )
            result.error = error
            logger.warning(
                f"Model test for {provider.name}/{model.model_key} failed at "
                f"{step}: {error.message}"
            )
            return result

        env_var = credential_env_var(provider.name)
        if not self.credentials.is_configured(provider.name):
            return fail(
                "API Key Check",
                ModelTestError(
                    category="not_configured",
                    message=f"{env_var} is not set",
                    suggestion=f"Set {env_var} in the API environment and restart",
                ),
            )
        result.diagnostics.append(
            DiagnosticStep(name="API Key Check", status="passed", detail=f"{env_var} is set")
        )

        try:
            adapter = self.adapter_factory(provider.name, self.credentials, self.config)
        except ModelNotSupportedError as e:
            return fail(
                "Adapter Initialization",
                ModelTestError(
                    category="model_not_supported",
                    message=str(e),
                    suggestion="Check that the provider slug matches an available adapter",
                ),
            )
        result.diagnostics.append(
            DiagnosticStep(name="Adapter Initialization", status="passed")
        )

        if not model.is_enabled or not provider.is_enabled:
            result.warnings.append("This model or its provider is disabled for routing")
            result.diagnostics.append(
                DiagnosticStep(
                    name="Model Validation",
                    status="warning",
                    detail="Testing a disabled model",
                )
            )
        else:
            result.diagnostics.append(
                DiagnosticStep(name="Model Validation", status="passed", detail=model.model_key)
            )

        try:
            request = NormalizedAIRequest(
                provider=provider.name,
                model_key=model.model_key,
                intent="test",
                feature_key=FeatureKey.AI_CHAT.value,
                messages=[ChatMessage(role="user", content=prompt or DEFAULT_TEST_PROMPT)],
                budgets=TokenBudgets(
                    max_input_tokens=model.context_window_tokens,
                    max_output_tokens=model.max_output_tokens,
                ),
                max_tokens=model.max_output_tokens,
                temperature=self.config.default_temperature,
                reasoning_level=model.reasoning_level,
            )
        except ValidationError as e:
            return fail(
                "Request Preparation",
                ModelTestError(
                    category="invalid_request",
                    message=str(e),
                    suggestion="Check the model key and token limits for this model",
                ),
            )
        result.diagnostics.append(
            DiagnosticStep(name="Request Preparation", status="passed")
        )

        try:
            response = await adapter.generate(request)
        except ProviderAPIError as e:
            return fail(
                "API Call",
                ModelTestError(
                    category="api_error",
                    message=str(e),
                    retryable=e.retryable,
                    status_code=e.status_code,
                    suggestion=RETRY_SUGGESTION if e.retryable else CHECK_ACCOUNT_SUGGESTION,
                ),
            )
        except ModelNotSupportedError as e:
            return fail(
                "API Call",
                ModelTestError(
                    category="model_not_supported",
                    message=str(e),
                    suggestion=CHECK_ACCOUNT_SUGGESTION,
                ),
            )
        except AIException as e:
            return fail(
                "API Call",
                ModelTestError(
                    category="api_error", message=str(e), suggestion=CHECK_ACCOUNT_SUGGESTION
                ),
            )

        if not response.text.strip():
            result.warnings.append("The model returned an empty response")
        result.diagnostics.append(
            DiagnosticStep(
                name="API Call",
                status="passed",
                detail=f"finish_reason={response.finish_reason}",
            )
        )
        result.success = True
        result.response_text = response.text
        result.latency_ms = response.latency_ms
        result.token_usage = response.token_usage
        return result
