"""
Shared type definitions.

Core data structures passed between retrieval and consolidation stages.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

NO_MEMORY_SENTINEL = "No relevant information was found in memory."


class SourceTier(Enum):
    PROFILE = "Profile"
    SUMMARY = "Summary"
    FULL_TRANSCRIPT = "FullTranscript"


@dataclass
class ChatTurn:
    """Single conversation turn, as seen by the memory engine."""

    role: str  # "user" | "assistant" | "system"
    content: str
    timestamp: datetime = field(default_factory=datetime.now)

    @property
    def speaker(self) -> str:
        return "User" if self.role == "user" else "Assistant"

    def to_llm_format(self) -> dict[str, Any]:
        """Convert to LLM API message format."""
        return {"role": self.role, "content": self.content}


@dataclass
class ScoredKeyword:
    """Keyword or topic candidate with its importance inside the utterance (0-100)."""

    keyword: str
    in_prompt_score: float


@dataclass
class RankedTopic:
    """Known topic with its combined retrieval score."""

    name: str
    score: float
    keyword: str


@dataclass
class RetrievedContextItem:
    """One piece of recalled context. Never persisted."""

    tier: SourceTier
    source: str
    snippet: str
    title: str | None = None
    date: str | None = None
    relevance: float | None = None


@dataclass
class RetrievalResult:
    """Outcome of a single recall request."""

    query: str
    keywords: list[ScoredKeyword] = field(default_factory=list)
    new_topics: list[str] = field(default_factory=list)
    items: list[RetrievedContextItem] = field(default_factory=list)
    context: str = NO_MEMORY_SENTINEL
    summary_requests: list[str] = field(default_factory=list)
    transcript_request: str | None = None
    evaluator_response: str | None = None
    evaluation_rounds: int = 0
