"""
LLM provider interface.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from recollect.llm.router import TaskType


class ProviderType(Enum):
    CLAUDE = "claude"
    LITELLM = "litellm"


class LLMError(RuntimeError):
    """Model call failed."""


class LLMTimeoutError(LLMError):
    """Model call exceeded its deadline."""


class LLMUnavailableError(LLMError):
    """No model provider is configured or reachable."""


@dataclass
class LLMResponse:
    """Response from LLM provider."""

    content: str
    model: str
    provider: ProviderType
    input_tokens: int = 0
    output_tokens: int = 0
    metadata: dict | None = None


@dataclass
class LLMConfig:
    """Configuration for LLM call."""

    model: str | None
    max_tokens: int = 4096
    temperature: float = 0.7
    system_prompt: str | None = None


class LLMProvider(ABC):
    """Abstract LLM provider."""

    provider_type: ProviderType

    @abstractmethod
    async def complete(
        self,
        messages: list[dict],
        config: LLMConfig,
        task: "TaskType | None" = None,
    ) -> LLMResponse:
        """
        Generate completion from messages.

        Args:
            messages: Conversation messages
            config: LLM configuration
            task: Task type for model selection

        Returns:
            LLMResponse with content
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if provider is available."""
        ...
