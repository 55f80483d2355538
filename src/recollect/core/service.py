"""
Memory service - wires the vault, the model router and the agents.

This is the surface a conversational host talks to:
- recall: context for the next answer
- consolidate: merge a finished summary into topic profiles
- conclude: summarize a transcript, then consolidate it
"""

from recollect.agents.base import LLMProvider
from recollect.agents.evaluator import SufficiencyEvaluator
from recollect.agents.keywords import KeywordExtractor
from recollect.agents.profiler import ConsolidationReport, TopicProfiler
from recollect.agents.summarizer import ConversationSummarizer
from recollect.core.config import Settings, get_settings
from recollect.core.logging import get_logger
from recollect.core.types import ChatTurn, RetrievalResult
from recollect.core.typing import Notifier
from recollect.llm.router import LLMRouter, create_default_router
from recollect.memory.base import DocumentStore
from recollect.memory.frontmatter import clean_reference
from recollect.memory.scores import TagScoreStore
from recollect.memory.store import FileDocumentStore, SQLiteDocumentStore
from recollect.memory.summary import SummaryRecord
from recollect.retrieval.fetcher import TieredContextFetcher
from recollect.retrieval.formatter import ContextFormatter
from recollect.retrieval.retriever import ContextRetriever

logger = get_logger("core.service")

UNAVAILABLE_MESSAGE = "Memory consolidation is unavailable: no language model is configured."


class MemoryService:
    """Long-term memory for one persona."""

    def __init__(
        self,
        settings: Settings,
        store: DocumentStore,
        llm: LLMProvider | None,
        notifier: Notifier | None = None,
    ):
        self.settings = settings
        self.store = store
        self.llm = llm
        self.notifier = notifier

        self.scores = TagScoreStore(store, settings.scores_file)
        self.formatter = ContextFormatter(
            max_context_length=settings.max_context_length,
            max_context_length_for_evaluation=settings.max_context_length_for_evaluation,
            history_turns=settings.evaluation_history_turns,
        )
        self.fetcher = TieredContextFetcher(
            store,
            profile_dir=settings.profile_dir,
            summary_dir=settings.summary_dir,
            transcript_dir=settings.transcript_dir,
            max_context_length=settings.max_context_length,
            max_topics=settings.max_topics_to_retrieve,
        )
        self.retriever = ContextRetriever(
            scores=self.scores,
            extractor=KeywordExtractor(
                llm,
                timeout_seconds=settings.llm_timeout_seconds,
                model=settings.keyword_model or None,
            ),
            fetcher=self.fetcher,
            evaluator=SufficiencyEvaluator(
                llm,
                self.fetcher,
                self.formatter,
                persona=settings.persona_name,
                timeout_seconds=settings.llm_timeout_seconds,
            ),
            formatter=self.formatter,
            persona=settings.persona_name,
            notifier=notifier,
        )
        self.profiler = TopicProfiler(
            llm,
            store,
            self.scores,
            profile_dir=settings.profile_dir,
            persona=settings.persona_name,
            character=settings.character_prompt,
            timeout_seconds=settings.consolidation_timeout_seconds,
        )
        self.summarizer = ConversationSummarizer(
            llm,
            store,
            summary_dir=settings.summary_dir,
            transcript_dir=settings.transcript_dir,
            persona=settings.persona_name,
            timeout_seconds=settings.consolidation_timeout_seconds,
        )

    @property
    def available(self) -> bool:
        return self.llm is not None

    def _notify(self, message: str) -> None:
        if self.notifier is None:
            return
        try:
            self.notifier(message)
        except Exception as e:
            logger.warning(f"Notifier failed: {e}")

    async def init_vault(self) -> None:
        """Create the vault folders and an empty score store."""
        for folder in (
            self.settings.profile_dir,
            self.settings.summary_dir,
            self.settings.transcript_dir,
        ):
            await self.store.create_folder(folder)
        if not await self.store.exists(self.settings.scores_file):
            await self.scores.save({})
        logger.info("Memory vault initialized")

    async def recall(self, query: str, history: list[ChatTurn] | None = None) -> RetrievalResult:
        """Context for answering `query`."""
        return await self.retriever.retrieve(query, history)

    async def load_summary(self, reference: str) -> tuple[SummaryRecord, str] | None:
        """Summary record and its raw text, or None when missing/unreadable."""
        ref = clean_reference(reference)
        path = f"{self.settings.summary_dir}/{ref}.md"
        try:
            text = await self.store.read_optional(path)
        except Exception as e:
            logger.error(f"Failed to read summary {path}: {e}")
            return None
        if text is None:
            logger.warning(f"Summary not found: {path}")
            return None
        return SummaryRecord.from_markdown(ref, text), text

    async def consolidate(self, reference: str) -> ConsolidationReport | None:
        """Merge a concluded summary into its topics' profiles."""
        if not self.available:
            logger.warning(UNAVAILABLE_MESSAGE)
            self._notify(UNAVAILABLE_MESSAGE)
            return None
        loaded = await self.load_summary(reference)
        if loaded is None:
            return None
        record, text = loaded
        report = await self.profiler.consolidate(record, source=text)
        if report.failed:
            self._notify(
                f"Some topics of {record.reference} could not be updated: "
                f"{', '.join(report.failed)}"
            )
        return report

    async def conclude(self, transcript: str) -> ConsolidationReport | None:
        """Summarize a finished transcript and consolidate the result."""
        if not self.available:
            logger.warning(UNAVAILABLE_MESSAGE)
            self._notify(UNAVAILABLE_MESSAGE)
            return None
        record = await self.summarizer.summarize(transcript)
        if record is None:
            self._notify(f"Could not summarize {clean_reference(transcript)}")
            return None
        return await self.consolidate(record.reference)

    async def close(self) -> None:
        if isinstance(self.llm, LLMRouter):
            await self.llm.close_all()
        await self.store.close()


async def create_store(settings: Settings) -> DocumentStore:
    """Document store for the configured backend."""
    if settings.store_backend == "sqlite":
        store = SQLiteDocumentStore(settings.db_path)
        await store.connect()
        return store
    return FileDocumentStore(settings.data_dir)


async def create_memory_service(
    settings: Settings | None = None,
    llm: LLMProvider | None = None,
    notifier: Notifier | None = None,
) -> MemoryService:
    """Build a MemoryService from settings.

    When no provider is passed, the default router is used; a router with
    no registered providers leaves the service without a model, so recall
    and consolidation short-circuit and notify.
    """
    settings = settings or get_settings()
    store = await create_store(settings)

    if llm is None:
        router = create_default_router(settings)
        if router.available_providers:
            llm = router
        else:
            logger.warning("No LLM providers configured")

    return MemoryService(settings, store, llm, notifier=notifier)
