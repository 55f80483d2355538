"""LLM provider router - selects provider based on task and availability."""

from enum import Enum

from recollect.core.config import Settings, get_settings
from recollect.core.logging import get_logger
from recollect.llm.base import (
    LLMConfig,
    LLMError,
    LLMProvider,
    LLMResponse,
    LLMUnavailableError,
    ProviderType,
)

logger = get_logger("llm.router")


class TaskType(Enum):
    """Task categories for model selection."""
    KEYWORD_EXTRACTION = "keyword_extraction"
    CONTEXT_EVALUATION = "context_evaluation"
    PROFILE_CONSOLIDATION = "profile_consolidation"
    SUMMARIZATION = "summarization"
    CHAT = "chat"
    SIMPLE = "simple"


class LLMRouter:
    """Routes LLM requests to registered providers with fallback."""

    def __init__(self):
        self._providers: dict[ProviderType, LLMProvider] = {}

    def register(self, provider: LLMProvider) -> None:
        """Register a provider. Registration order is fallback order."""
        self._providers[provider.provider_type] = provider
        logger.info(f"Registered provider: {provider.provider_type.value}")

    def get(self, provider_type: ProviderType) -> LLMProvider | None:
        """Get specific provider."""
        return self._providers.get(provider_type)

    @property
    def available_providers(self) -> list[ProviderType]:
        """List registered providers."""
        return list(self._providers.keys())

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig,
        preferred: ProviderType | None = None,
        task: TaskType | None = None,
    ) -> LLMResponse:
        """Route completion to the first provider that answers.

        Args:
            messages: List of message dicts with role/content
            config: LLM configuration (model, tokens, temperature)
            preferred: Provider to try first (optional)
            task: Task type, forwarded for model selection (optional)

        Returns:
            LLMResponse with content and metadata
        """
        if not self._providers:
            raise LLMUnavailableError("No providers registered")

        order = list(self._providers.values())
        if preferred and preferred in self._providers:
            order = [self._providers[preferred]] + [
                p for p in order if p.provider_type != preferred
            ]

        last_error: Exception | None = None
        for provider in order:
            try:
                response = await provider.complete(messages, config, task=task)
                logger.info(
                    f"Task {task.value if task else 'default'}: used {response.model} "
                    f"({provider.provider_type.value})"
                )
                return response
            except Exception as e:
                logger.warning(f"Provider {provider.provider_type.value} failed: {e}")
                last_error = e

        raise LLMError(f"All providers failed. Last error: {last_error}")

    async def health_check_all(self) -> dict[ProviderType, bool]:
        """Check health of all registered providers."""
        results = {}
        for ptype, provider in self._providers.items():
            results[ptype] = await provider.health_check()
        return results

    async def close_all(self) -> None:
        """Close all provider connections."""
        for provider in self._providers.values():
            if hasattr(provider, "close"):
                await provider.close()


def create_default_router(settings: Settings | None = None) -> LLMRouter:
    """Create router with providers from settings."""
    from recollect.llm.claude import ClaudeProvider
    from recollect.llm.litellm_adapter import LiteLLMProvider, create_adapter

    settings = settings or get_settings()
    router = LLMRouter()

    # Claude (primary)
    if settings.anthropic_api_key:
        try:
            router.register(ClaudeProvider(settings=settings))
        except Exception as e:
            logger.warning(f"Failed to init Claude: {e}")

    # LiteLLM registry (fallback)
    if settings.use_litellm:
        try:
            adapter = create_adapter()
            if adapter.registry.available:
                router.register(LiteLLMProvider(adapter))
            else:
                logger.info("No LiteLLM models have credentials, skipping")
        except Exception as e:
            logger.warning(f"Failed to init LiteLLM: {e}")

    return router
