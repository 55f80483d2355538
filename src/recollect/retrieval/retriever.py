"""Context retriever - the recall pipeline.

keywords -> ranking -> topic profiles -> evaluation loop (summaries,
transcript) -> formatted context. Strictly sequential per query; every
stage degrades to "less context" instead of failing the caller.
"""

from recollect.agents.evaluator import SufficiencyEvaluator
from recollect.agents.keywords import KeywordExtractor
from recollect.core.logging import get_logger
from recollect.core.types import ChatTurn, RetrievalResult
from recollect.core.typing import Notifier
from recollect.memory.scores import TagScoreStore
from recollect.retrieval.fetcher import TieredContextFetcher
from recollect.retrieval.formatter import ContextFormatter
from recollect.retrieval.ranker import discover_new_topics, rank_topics

logger = get_logger("retrieval.retriever")

UNAVAILABLE_MESSAGE = "Memory recall is unavailable: no language model is configured."


class ContextRetriever:
    """Assembles the memory context for one user utterance."""

    def __init__(
        self,
        scores: TagScoreStore,
        extractor: KeywordExtractor,
        fetcher: TieredContextFetcher,
        evaluator: SufficiencyEvaluator,
        formatter: ContextFormatter,
        persona: str = "Assistant",
        notifier: Notifier | None = None,
    ):
        self.scores = scores
        self.extractor = extractor
        self.fetcher = fetcher
        self.evaluator = evaluator
        self.formatter = formatter
        self.persona = persona
        self.notifier = notifier

    def _notify(self, message: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(message)
        except Exception as e:
            logger.warning(f"Notifier failed: {e}")

    async def retrieve(self, query: str, history: list[ChatTurn] | None = None) -> RetrievalResult:
        """Recall context relevant to `query`.

        Args:
            query: The user's current message
            history: Conversation so far, oldest first (optional)

        Returns:
            RetrievalResult whose `context` is ready for prompt injection
        """
        history = history or []
        result = RetrievalResult(query=query)

        if not self.extractor.available or not self.evaluator.available:
            logger.warning(UNAVAILABLE_MESSAGE)
            self._notify(UNAVAILABLE_MESSAGE)
            return result

        scores = await self.scores.load()
        result.keywords = await self.extractor.extract(query, self.persona, list(scores))
        result.new_topics = discover_new_topics(result.keywords, scores)

        ranked = rank_topics(result.keywords, scores)
        items = await self.fetcher.fetch_profiles(ranked) if ranked else []

        outcome = await self.evaluator.evaluate(query, history, items)
        result.items = outcome.items
        result.summary_requests = outcome.summary_requests
        result.transcript_request = outcome.transcript_request
        result.evaluator_response = outcome.raw_response
        result.evaluation_rounds = outcome.rounds

        result.context = self.formatter.format_final(result.items)
        logger.info(
            f"Recall: {len(result.keywords)} keywords, {len(ranked)} known topics, "
            f"{len(result.items)} items after {result.evaluation_rounds} evaluation rounds"
        )
        return result
