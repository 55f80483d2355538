"""
Base agent interface.

Agents are the memory engine's model-facing workers: each owns a prompt,
one model call per step, and a degraded default for when that call fails.
"""

import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from recollect.core.logging import get_logger
from recollect.core.typing import MessageDict
from recollect.llm.base import LLMConfig, LLMTimeoutError, LLMUnavailableError

if TYPE_CHECKING:
    from recollect.llm.base import LLMResponse
    from recollect.llm.router import TaskType

logger = get_logger("agents.base")


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for LLM providers (router or direct provider)."""

    async def complete(
        self,
        messages: list[MessageDict],
        config: LLMConfig,
        task: "TaskType | None" = None,
    ) -> "LLMResponse":
        """Generate completion from messages."""
        ...


class AgentState(Enum):
    INIT = "init"
    READY = "ready"
    ACTIVE = "active"


@dataclass
class AgentConfig:
    """Agent-specific configuration."""

    name: str
    model: str | None = None
    timeout_seconds: float = 8.0
    max_tokens: int = 4096
    temperature: float = 0.7
    metadata: dict[str, Any] = field(default_factory=dict)


class BaseAgent:
    """Common plumbing for model-backed agents."""

    def __init__(self, config: AgentConfig, llm: "LLMProvider | None"):
        self.config = config
        self.llm = llm
        self.state = AgentState.READY if llm is not None else AgentState.INIT

    @property
    def available(self) -> bool:
        return self.llm is not None

    async def _ask(self, prompt: str, task: "TaskType | None" = None) -> str:
        """Send a single-turn prompt and return the text reply.

        Raises:
            LLMUnavailableError: no provider configured
            LLMTimeoutError: the call exceeded config.timeout_seconds
        """
        if self.llm is None:
            raise LLMUnavailableError(f"No model configured for {self.config.name}")

        messages: list[MessageDict] = [{"role": "user", "content": prompt}]
        llm_config = LLMConfig(
            model=self.config.model or None,
            max_tokens=self.config.max_tokens,
            temperature=self.config.temperature,
        )
        try:
            response = await asyncio.wait_for(
                self.llm.complete(messages, llm_config, task=task),
                timeout=self.config.timeout_seconds,
            )
        except asyncio.TimeoutError as e:
            raise LLMTimeoutError(
                f"{self.config.name}: no reply within {self.config.timeout_seconds}s"
            ) from e

        logger.debug(f"{self.config.name}: {len(response.content)} chars from {response.model}")
        return response.content
