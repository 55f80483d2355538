"""Tag score store - persisted importance and frequency per topic."""

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from recollect.core.logging import get_logger
from recollect.memory.base import DocumentStore
from recollect.memory.frontmatter import clean_reference

logger = get_logger("memory.scores")

DEFAULT_IMPORTANCE = 50


def clamp_importance(value: Any) -> int | None:
    """Coerce a model-supplied importance into 0..100, or None if unusable."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    if number != number:  # NaN
        return None
    return int(round(min(100.0, max(0.0, number))))


@dataclass
class TopicScore:
    """Importance record for one topic."""

    base_importance: int = DEFAULT_IMPORTANCE
    last_mentioned_in: str = ""
    mention_frequency: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_importance": self.base_importance,
            "last_mentioned_in": self.last_mentioned_in,
            "mention_frequency": self.mention_frequency,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TopicScore":
        importance = clamp_importance(data.get("base_importance"))
        try:
            frequency = int(data.get("mention_frequency") or 0)
        except (TypeError, ValueError):
            frequency = 0
        return cls(
            base_importance=DEFAULT_IMPORTANCE if importance is None else importance,
            last_mentioned_in=clean_reference(str(data.get("last_mentioned_in") or "")),
            mention_frequency=max(0, frequency),
        )


class TagScoreStore:
    """JSON document of `{topic: TopicScore}` kept in the document store.

    Reads never raise and writes report failure as False. Concurrent
    consolidation workers must go through record_mention, which holds a
    lock across the reload, the single-topic mutation and the save.
    """

    def __init__(self, store: DocumentStore, path: str = "tag_scores.json"):
        self.store = store
        self.path = path
        self._lock = asyncio.Lock()

    async def load(self) -> dict[str, TopicScore]:
        """Load all scores. Missing or unreadable document yields {}."""
        try:
            if not await self.store.exists(self.path):
                return {}
            raw = json.loads(await self.store.read(self.path))
        except Exception as e:
            logger.warning(f"Failed to read tag scores from {self.path}: {e}")
            return {}

        if not isinstance(raw, dict):
            logger.warning(f"Tag scores in {self.path} are not an object, ignoring")
            return {}

        scores = {}
        for topic, data in raw.items():
            if isinstance(data, dict):
                scores[str(topic)] = TopicScore.from_dict(data)
        return scores

    async def save(self, scores: dict[str, TopicScore]) -> bool:
        """Overwrite the score document. Returns False on failure."""
        payload = {topic: score.to_dict() for topic, score in scores.items()}
        try:
            await self.store.write(self.path, json.dumps(payload, ensure_ascii=False, indent=2))
            return True
        except Exception as e:
            logger.error(f"Failed to write tag scores to {self.path}: {e}")
            return False

    async def topic_names(self) -> list[str]:
        return list((await self.load()).keys())

    async def record_mention(
        self,
        topic: str,
        reference: str,
        importance: Any = None,
        persist: Callable[[TopicScore], Awaitable[None]] | None = None,
    ) -> TopicScore:
        """Count one more mention of a topic and return its updated record.

        Args:
            topic: Topic name
            reference: Summary record the topic was mentioned in
            importance: Optional new base importance (clamped to 0..100)
            persist: Awaited with the updated record before it is saved.
                If it raises, nothing is saved and the error propagates.
        """
        async with self._lock:
            scores = await self.load()
            score = scores.get(topic) or TopicScore()
            score.mention_frequency += 1
            score.last_mentioned_in = clean_reference(reference)

            new_importance = clamp_importance(importance)
            if new_importance is not None:
                score.base_importance = new_importance
            elif importance is not None:
                logger.warning(f"Ignoring unusable importance for '{topic}': {importance!r}")

            if persist is not None:
                await persist(score)

            scores[topic] = score
            if await self.save(scores):
                logger.debug(
                    f"Score for '{topic}': importance={score.base_importance}, "
                    f"mentions={score.mention_frequency}"
                )
            return score
