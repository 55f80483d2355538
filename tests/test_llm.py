"""Tests for LLM module."""

from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from recollect.core.config import Settings
from recollect.llm.base import (
    LLMConfig,
    LLMError,
    LLMProvider,
    LLMResponse,
    LLMUnavailableError,
    ProviderType,
)
from recollect.llm.litellm_adapter import LiteLLMProvider, ModelRegistry, create_adapter
from recollect.llm.router import LLMRouter, TaskType, create_default_router

REGISTRY = """
models:
  - model_id: cheap
    litellm_name: openai/cheap
    difficulty: 1
    cost_per_1m_input: 0.1
    cost_per_1m_output: 0.1
  - model_id: cheaper
    litellm_name: openai/cheaper
    difficulty: 1
    cost_per_1m_input: 0.05
    cost_per_1m_output: 0.05
  - model_id: smart
    litellm_name: anthropic/smart
    difficulty: 3
    cost_per_1m_input: 3.0
    cost_per_1m_output: 15.0
  - model_id: locked
    litellm_name: openai/locked
    difficulty: 1
    auth_env: RECOLLECT_TEST_MISSING_KEY
routing:
  task_difficulty:
    keyword_extraction: 1
    profile_consolidation: 3
"""


class FakeProvider(LLMProvider):
    def __init__(self, provider_type: ProviderType, content: str = "ok", error: Exception | None = None):
        self.provider_type = provider_type
        self.content = content
        self.error = error
        self.calls = 0

    async def complete(self, messages, config, task=None) -> LLMResponse:
        self.calls += 1
        if self.error:
            raise self.error
        return LLMResponse(content=self.content, model="fake", provider=self.provider_type)

    async def health_check(self) -> bool:
        return self.error is None


@pytest.fixture
def registry(tmp_path: Path, monkeypatch) -> ModelRegistry:
    monkeypatch.delenv("RECOLLECT_TEST_MISSING_KEY", raising=False)
    path = tmp_path / "models.yaml"
    path.write_text(REGISTRY)
    return ModelRegistry(path)


def test_llm_config_defaults():
    """LLMConfig has sensible defaults."""
    config = LLMConfig(model="test-model")
    assert config.max_tokens == 4096
    assert config.temperature == 0.7
    assert config.system_prompt is None


def test_task_type_values():
    assert TaskType.KEYWORD_EXTRACTION.value == "keyword_extraction"
    assert TaskType.CONTEXT_EVALUATION.value == "context_evaluation"
    assert TaskType.PROFILE_CONSOLIDATION.value == "profile_consolidation"
    assert TaskType.SUMMARIZATION.value == "summarization"


def test_bundled_registry_loads():
    adapter = create_adapter()
    registry = adapter.registry
    assert len(registry.models) > 0
    assert registry.task_difficulty["keyword_extraction"] == 1
    assert registry.task_difficulty["profile_consolidation"] == 3


def test_create_adapter_missing_file(tmp_path: Path):
    with pytest.raises(FileNotFoundError):
        create_adapter(tmp_path / "nope.yaml")


def test_registry_availability(registry: ModelRegistry):
    assert registry.get("locked").is_available is False
    assert {m.model_id for m in registry.available} == {"cheap", "cheaper", "smart"}


def test_candidates_for_task(registry: ModelRegistry):
    """Matching difficulty first (cheapest first), then the rest."""
    easy = [m.model_id for m in registry.candidates_for(TaskType.KEYWORD_EXTRACTION)]
    assert easy == ["cheaper", "cheap", "smart"]

    hard = [m.model_id for m in registry.candidates_for(TaskType.PROFILE_CONSOLIDATION)]
    assert hard[0] == "smart"


@pytest.mark.asyncio
async def test_litellm_provider_falls_back_between_models(registry: ModelRegistry):
    adapter = AsyncMock()
    adapter.registry = registry
    adapter.complete.side_effect = [
        RuntimeError("rate limited"),
        LLMResponse(content="hi", model="cheap", provider=ProviderType.LITELLM),
    ]
    provider = LiteLLMProvider(adapter)

    response = await provider.complete(
        [{"role": "user", "content": "x"}], LLMConfig(model=None), task=TaskType.KEYWORD_EXTRACTION
    )

    assert response.content == "hi"
    tried = [call.args[0] for call in adapter.complete.call_args_list]
    assert tried == ["cheaper", "cheap"]


@pytest.mark.asyncio
async def test_litellm_provider_explicit_model(registry: ModelRegistry):
    adapter = AsyncMock()
    adapter.registry = registry
    adapter.complete.return_value = LLMResponse(content="hi", model="smart", provider=ProviderType.LITELLM)

    await LiteLLMProvider(adapter).complete([], LLMConfig(model="smart"))

    assert adapter.complete.call_args.args[0] == "smart"


@pytest.mark.asyncio
async def test_router_without_providers_is_unavailable():
    router = LLMRouter()
    with pytest.raises(LLMUnavailableError):
        await router.complete([], LLMConfig(model=None))


@pytest.mark.asyncio
async def test_router_falls_back_in_registration_order():
    failing = FakeProvider(ProviderType.CLAUDE, error=RuntimeError("down"))
    working = FakeProvider(ProviderType.LITELLM, content="fallback")
    router = LLMRouter()
    router.register(failing)
    router.register(working)

    response = await router.complete([], LLMConfig(model=None), task=TaskType.SIMPLE)

    assert response.content == "fallback"
    assert failing.calls == 1
    assert router.available_providers == [ProviderType.CLAUDE, ProviderType.LITELLM]


@pytest.mark.asyncio
async def test_router_preferred_provider_first():
    claude = FakeProvider(ProviderType.CLAUDE, content="claude")
    litellm = FakeProvider(ProviderType.LITELLM, content="litellm")
    router = LLMRouter()
    router.register(claude)
    router.register(litellm)

    response = await router.complete([], LLMConfig(model=None), preferred=ProviderType.LITELLM)

    assert response.content == "litellm"
    assert claude.calls == 0


@pytest.mark.asyncio
async def test_router_all_failing():
    router = LLMRouter()
    router.register(FakeProvider(ProviderType.CLAUDE, error=RuntimeError("a")))
    with pytest.raises(LLMError):
        await router.complete([], LLMConfig(model=None))


@pytest.mark.asyncio
async def test_router_health_check_all():
    router = LLMRouter()
    router.register(FakeProvider(ProviderType.CLAUDE))
    router.register(FakeProvider(ProviderType.LITELLM, error=RuntimeError("x")))
    assert await router.health_check_all() == {
        ProviderType.CLAUDE: True,
        ProviderType.LITELLM: False,
    }


def test_default_router_without_credentials(monkeypatch):
    for var in ("ANTHROPIC_API_KEY", "OPENAI_API_KEY", "GEMINI_API_KEY", "RECOLLECT_LOCAL_LLM_URL"):
        monkeypatch.delenv(var, raising=False)
    settings = Settings(_env_file=None, anthropic_api_key="", use_litellm=True)

    router = create_default_router(settings)

    assert router.available_providers == []


def test_default_router_with_claude_key():
    settings = Settings(_env_file=None, anthropic_api_key="sk-test", use_litellm=False)
    router = create_default_router(settings)
    assert router.available_providers == [ProviderType.CLAUDE]


@pytest.mark.asyncio
async def test_claude_provider_joins_text_blocks():
    from recollect.llm.claude import ClaudeProvider

    provider = ClaudeProvider(settings=Settings(_env_file=None, anthropic_api_key="sk-test"))
    provider._client = Mock()
    provider._client.messages.create = AsyncMock(
        return_value=Mock(
            content=[Mock(type="text", text="Hello "), Mock(type="tool_use"), Mock(type="text", text="there")],
            usage=Mock(input_tokens=3, output_tokens=2),
        )
    )

    response = await provider.complete(
        [{"role": "system", "content": "Be brief."}, {"role": "user", "content": "hi"}],
        LLMConfig(model=None),
    )

    assert response.content == "Hello there"
    assert response.provider == ProviderType.CLAUDE
    kwargs = provider._client.messages.create.call_args.kwargs
    assert kwargs["system"] == "Be brief."
    assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
    assert kwargs["model"] == "claude-sonnet-4-20250514"
