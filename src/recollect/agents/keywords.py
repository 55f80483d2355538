"""Keyword extractor - turns an utterance into scored topic candidates."""

from pydantic import BaseModel, Field, field_validator

from recollect.agents.base import AgentConfig, BaseAgent, LLMProvider
from recollect.core.logging import get_logger
from recollect.core.parsing import ResponseParseError, decode_as
from recollect.core.types import ScoredKeyword
from recollect.llm.base import LLMError
from recollect.llm.router import TaskType

logger = get_logger("agents.keywords")

KEYWORD_PROMPT = """The user's current message is: "{utterance}"
The message is addressed to the character "{persona}".
The knowledge base already has these topics:
{known_topics}

Task:
1. Select up to 3 existing topics from the list above that are most relevant to the message.
2. If the existing topics are not enough, or an important concept in the message is not covered, propose up to 2 new keywords. New keywords must not duplicate existing topics.
3. Score each selected topic or keyword from 0 to 100 by its relative importance within this message.

Respond with a JSON array of objects with "keyword" and "score", for example:
[
  {{"keyword": "existing topic A", "score": 90}},
  {{"keyword": "new keyword X", "score": 75}}
]

If nothing fits, return an empty array []. Return only the JSON, no other text."""


class KeywordCandidate(BaseModel):
    keyword: str = Field(min_length=1)
    score: float = 0.0

    @field_validator("keyword")
    @classmethod
    def strip_keyword(cls, value: str) -> str:
        return value.strip()

    @field_validator("score", mode="before")
    @classmethod
    def none_score_is_zero(cls, value: object) -> float:
        if value is None:
            return 0.0
        return value  # type: ignore[return-value]


class KeywordExtractor(BaseAgent):
    """Asks the model which known topics an utterance touches."""

    def __init__(self, llm: LLMProvider | None, timeout_seconds: float = 8.0, model: str | None = None):
        config = AgentConfig(
            name="keyword_extractor",
            model=model,
            timeout_seconds=timeout_seconds,
            max_tokens=512,
            temperature=0.2,
        )
        super().__init__(config, llm)

    def build_prompt(self, utterance: str, persona: str, known_topics: list[str]) -> str:
        return KEYWORD_PROMPT.format(
            utterance=utterance,
            persona=persona,
            known_topics=", ".join(known_topics) if known_topics else "(none)",
        )

    async def extract(
        self,
        utterance: str,
        persona: str,
        known_topics: list[str],
    ) -> list[ScoredKeyword]:
        """Scored keyword candidates for an utterance. Any failure yields []."""
        prompt = self.build_prompt(utterance, persona, known_topics)
        try:
            reply = await self._ask(prompt, task=TaskType.KEYWORD_EXTRACTION)
            candidates = decode_as(reply, list[KeywordCandidate])
        except ResponseParseError as e:
            logger.warning(f"Keyword extraction reply unparsable, assuming no keywords: {e}")
            return []
        except LLMError as e:
            logger.warning(f"Keyword extraction failed: {e}")
            return []
        except Exception as e:
            logger.error(f"Keyword extraction error: {e}")
            return []

        keywords = []
        seen = set()
        for candidate in candidates:
            if not candidate.keyword or candidate.keyword in seen:
                continue
            seen.add(candidate.keyword)
            score = min(100.0, max(0.0, candidate.score))
            keywords.append(ScoredKeyword(keyword=candidate.keyword, in_prompt_score=score))

        logger.info(f"Extracted {len(keywords)} keywords: {[k.keyword for k in keywords]}")
        return keywords
