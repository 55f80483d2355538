"""LiteLLM adapter - unified interface for registry-defined models."""

import os
from pathlib import Path
from typing import TYPE_CHECKING, Any

import litellm
import yaml
from litellm import acompletion

from recollect.core.logging import get_logger
from recollect.llm.base import LLMConfig, LLMError, LLMProvider, LLMResponse, ProviderType

if TYPE_CHECKING:
    from recollect.llm.router import TaskType

logger = get_logger("llm.litellm_adapter")

# Disable LiteLLM's verbose logging
litellm.suppress_debug_info = True

DEFAULT_REGISTRY_PATH = Path(__file__).parent.parent / "configs" / "models.yaml"


class ModelConfig:
    """Model configuration from YAML."""

    def __init__(self, data: dict[str, Any]):
        self.model_id = data["model_id"]
        self.litellm_name = data["litellm_name"]
        self.difficulty = data["difficulty"]
        self.cost_per_1m_input = data.get("cost_per_1m_input", 0.0)
        self.cost_per_1m_output = data.get("cost_per_1m_output", 0.0)
        self.max_context = data.get("max_context", 0)
        self.notes = data.get("notes", "")
        self.auth_env = data.get("auth_env")
        self.base_url_env = data.get("base_url_env")

    @property
    def api_key(self) -> str | None:
        """Get API key from environment."""
        if not self.auth_env:
            return None
        return os.getenv(self.auth_env)

    @property
    def base_url(self) -> str | None:
        """Get base URL from environment."""
        if not self.base_url_env:
            return None
        return os.getenv(self.base_url_env)

    @property
    def is_available(self) -> bool:
        """Check if model is available (has required credentials)."""
        if self.auth_env and not self.api_key:
            return False
        if self.base_url_env and not self.base_url:
            return False
        return True


class ModelRegistry:
    """Load and manage model configurations from YAML."""

    def __init__(self, config_path: Path | str):
        with open(config_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)

        self.models = {m["model_id"]: ModelConfig(m) for m in data["models"]}
        routing = data.get("routing", {})
        self.task_difficulty: dict[str, int] = routing.get("task_difficulty", {})

        logger.info(f"Loaded {len(self.models)} models from registry")
        available = [m.model_id for m in self.models.values() if m.is_available]
        logger.debug(f"Available models: {', '.join(available) or '(none)'}")

    def get(self, model_id: str) -> ModelConfig | None:
        """Get model config by ID."""
        return self.models.get(model_id)

    @property
    def available(self) -> list[ModelConfig]:
        return [m for m in self.models.values() if m.is_available]

    def get_by_difficulty(self, difficulty: int) -> list[ModelConfig]:
        """Get all available models matching difficulty level."""
        return [m for m in self.available if m.difficulty == difficulty]

    def rank_by_cost(self, models: list[ModelConfig]) -> list[ModelConfig]:
        """Sort models by total cost (input + output), cheapest first."""
        return sorted(models, key=lambda m: m.cost_per_1m_input + m.cost_per_1m_output)

    def candidates_for(self, task: "TaskType | None") -> list[ModelConfig]:
        """Models to try for a task: matching difficulty first, then the rest."""
        difficulty = self.task_difficulty.get(task.value, 2) if task else 2
        preferred = self.rank_by_cost(self.get_by_difficulty(difficulty))
        rest = self.rank_by_cost([m for m in self.available if m not in preferred])
        return preferred + rest


class LiteLLMAdapter:
    """Adapter for LiteLLM with unified interface."""

    def __init__(self, registry: ModelRegistry):
        self.registry = registry

    async def complete(
        self,
        model_id: str,
        messages: list[dict],
        config: LLMConfig,
    ) -> LLMResponse:
        """Call LiteLLM completion with model from registry.

        Args:
            model_id: Model ID from registry (e.g., 'gpt-4o-mini')
            messages: OpenAI-format messages
            config: LLM configuration

        Returns:
            LLMResponse with standardized format
        """
        model_config = self.registry.get(model_id)
        if not model_config:
            raise ValueError(f"Model {model_id} not in registry")

        if not model_config.is_available:
            raise ValueError(f"Model {model_id} not available (missing credentials/config)")

        if config.system_prompt:
            messages = [{"role": "system", "content": config.system_prompt}, *messages]

        params: dict[str, Any] = {
            "model": model_config.litellm_name,
            "messages": messages,
            "max_tokens": config.max_tokens,
            "temperature": config.temperature,
        }
        if model_config.api_key:
            params["api_key"] = model_config.api_key
        if model_config.base_url:
            params["api_base"] = model_config.base_url

        logger.debug(
            f"LiteLLM request: model={model_config.litellm_name}, messages={len(messages)}"
        )

        try:
            response = await acompletion(**params)
            content = response.choices[0].message.content or ""
            usage = response.usage
            input_tokens = usage.prompt_tokens if usage else 0
            output_tokens = usage.completion_tokens if usage else 0

            logger.debug(
                f"LiteLLM response: model={response.model}, "
                f"tokens={input_tokens}+{output_tokens}"
            )

            return LLMResponse(
                content=content,
                model=response.model or model_id,
                provider=ProviderType.LITELLM,
                input_tokens=input_tokens,
                output_tokens=output_tokens,
            )

        except Exception as e:
            logger.error(f"LiteLLM error for {model_id}: {e}")
            raise


class LiteLLMProvider(LLMProvider):
    """Provider that picks a registry model by task difficulty and cost."""

    provider_type = ProviderType.LITELLM

    def __init__(self, adapter: LiteLLMAdapter):
        self.adapter = adapter

    async def complete(
        self,
        messages: list[dict],
        config: LLMConfig,
        task: "TaskType | None" = None,
    ) -> LLMResponse:
        registry = self.adapter.registry
        if config.model and registry.get(config.model):
            candidates = [registry.get(config.model)]
        else:
            candidates = registry.candidates_for(task)

        if not candidates:
            raise LLMError("No LiteLLM models available")

        last_error: Exception | None = None
        for model_config in candidates:
            try:
                return await self.adapter.complete(model_config.model_id, messages, config)
            except Exception as e:
                logger.warning(f"Model {model_config.model_id} failed: {e}")
                last_error = e

        raise LLMError(f"All LiteLLM models failed. Last error: {last_error}")

    async def health_check(self) -> bool:
        return bool(self.adapter.registry.available)


def create_adapter(config_path: Path | str | None = None) -> LiteLLMAdapter:
    """Create LiteLLM adapter with model registry."""
    path = Path(config_path) if config_path else DEFAULT_REGISTRY_PATH

    if not path.exists():
        raise FileNotFoundError(f"Model registry not found at {path}")

    return LiteLLMAdapter(ModelRegistry(path))
