"""
Claude API provider.

Anthropic SDK errors are re-raised as the package's typed LLM errors so
agents can degrade on them without knowing which provider answered.
"""

import anthropic
from anthropic import APIConnectionError, APIError, APITimeoutError, RateLimitError

from recollect.core.config import Settings, get_settings
from recollect.core.logging import get_logger
from recollect.llm.base import (
    LLMConfig,
    LLMError,
    LLMProvider,
    LLMResponse,
    LLMTimeoutError,
    ProviderType,
)

logger = get_logger("llm.claude")


def _split_system(messages: list[dict[str, str]], system_prompt: str | None) -> tuple[str, list[dict[str, str]]]:
    """Anthropic takes the system prompt separately; the last system message wins."""
    turns = []
    for msg in messages:
        if msg["role"] == "system":
            system_prompt = msg["content"]
        else:
            turns.append(msg)
    return system_prompt or "", turns


class ClaudeProvider(LLMProvider):
    """Anthropic Claude API provider."""

    provider_type = ProviderType.CLAUDE

    def __init__(self, api_key: str | None = None, settings: Settings | None = None):
        settings = settings or get_settings()
        self.api_key = api_key or settings.anthropic_api_key
        self.default_model = settings.default_model
        self._client: anthropic.AsyncAnthropic | None = None

    @property
    def client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            self._client = anthropic.AsyncAnthropic(api_key=self.api_key)
        return self._client

    async def complete(
        self,
        messages: list[dict[str, str]],
        config: LLMConfig,
        task=None,
    ) -> LLMResponse:
        model = config.model or self.default_model
        system, turns = _split_system(messages, config.system_prompt)
        logger.debug(
            f"Claude request: model={model}, turns={len(turns)}, "
            f"prompt={sum(len(t['content']) for t in turns)} chars"
        )

        try:
            response = await self.client.messages.create(
                model=model,
                max_tokens=config.max_tokens,
                temperature=config.temperature,
                system=system,
                messages=turns,
            )
        except APITimeoutError as e:
            raise LLMTimeoutError(f"Claude timed out: {e}") from e
        except RateLimitError as e:
            logger.warning(f"Rate limited: {e}")
            raise LLMError(f"Claude rate limited: {e}") from e
        except APIConnectionError as e:
            logger.error(f"Connection error: {e}")
            raise LLMError(f"Claude unreachable: {e}") from e
        except APIError as e:
            logger.error(f"API error: {e}")
            raise LLMError(f"Claude API error: {e}") from e

        text = "".join(
            block.text for block in response.content if getattr(block, "type", "") == "text"
        )
        logger.debug(
            f"Claude usage: {response.usage.input_tokens} in, {response.usage.output_tokens} out"
        )
        return LLMResponse(
            content=text,
            model=model,
            provider=self.provider_type,
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
        )

    async def health_check(self) -> bool:
        """Check if Claude API is accessible."""
        try:
            response = await self.client.messages.create(
                model=self.default_model,
                max_tokens=10,
                messages=[{"role": "user", "content": "hi"}],
            )
            return bool(response.content)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return False

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
