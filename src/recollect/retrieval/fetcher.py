"""Tiered context fetcher.

Tier 1 reads topic profiles, tier 2 conversation summaries and tier 3 a
transcript excerpt. All reads are side-effect free; missing or unreadable
documents are logged and skipped.
"""

from recollect.core.logging import get_logger
from recollect.core.types import RankedTopic, RetrievedContextItem, SourceTier
from recollect.memory.base import DocumentStore
from recollect.memory.frontmatter import clean_reference, sanitize_topic_name, split_frontmatter
from recollect.memory.profile import TopicProfile
from recollect.memory.summary import SummaryRecord

logger = get_logger("retrieval.fetcher")

PROFILE_OVERHEAD = 200
MIN_PROFILE_SNIPPET = 100
SUMMARY_EXCERPT = 500
SUMMARY_SNIPPET = 1000
TRANSCRIPT_EXCERPT = 800
TRANSCRIPT_SNIPPET = 1000

PROFILE_TRUNCATED = "... (profile truncated)"
SUMMARY_TRUNCATED = "... (summary truncated)"
TRANSCRIPT_TRUNCATED = "... (transcript truncated)"
NO_DETAILS = "No details recorded."


def cap(text: str, limit: int, marker: str) -> str:
    """Cut text to `limit` characters, appending `marker` when cut."""
    if len(text) <= limit:
        return text
    return text[:limit] + marker


def normalize_references(identifiers: list[str]) -> list[str]:
    """Strip link brackets and extensions, drop blanks and duplicates, keep order."""
    seen: dict[str, None] = {}
    for identifier in identifiers:
        ref = clean_reference(identifier)
        if ref:
            seen.setdefault(ref, None)
    return list(seen)


class TieredContextFetcher:
    """Loads context items from the memory vault on demand."""

    def __init__(
        self,
        store: DocumentStore,
        profile_dir: str = "TopicProfiles",
        summary_dir: str = "Summaries",
        transcript_dir: str = "Transcripts",
        max_context_length: int = 3500,
        max_topics: int = 5,
    ):
        self.store = store
        self.profile_dir = profile_dir
        self.summary_dir = summary_dir
        self.transcript_dir = transcript_dir
        self.max_context_length = max_context_length
        self.max_topics = max_topics

    @property
    def profile_snippet_limit(self) -> int:
        """Per-profile share of the context budget."""
        share = self.max_context_length // max(1, self.max_topics) - PROFILE_OVERHEAD
        return max(share, MIN_PROFILE_SNIPPET)

    def profile_path(self, topic: str) -> str:
        return f"{self.profile_dir}/{sanitize_topic_name(topic)}.md"

    def summary_path(self, reference: str) -> str:
        return f"{self.summary_dir}/{clean_reference(reference)}.md"

    def transcript_path(self, reference: str) -> str:
        return f"{self.transcript_dir}/{clean_reference(reference)}.md"

    async def _read(self, path: str) -> str | None:
        try:
            text = await self.store.read_optional(path)
        except Exception as e:
            logger.warning(f"Failed to read {path}: {e}")
            return None
        if text is None:
            logger.debug(f"Not found: {path}")
        return text

    async def fetch_profiles(self, ranked: list[RankedTopic]) -> list[RetrievedContextItem]:
        """Tier 1: profiles for the top-ranked topics."""
        items = []
        for topic in ranked[: self.max_topics]:
            text = await self._read(self.profile_path(topic.name))
            if text is None:
                continue
            try:
                profile = TopicProfile.from_markdown(text, name=topic.name)
            except Exception as e:
                logger.warning(f"Skipping unreadable profile for '{topic.name}': {e}")
                continue

            snippet = cap(profile.to_snippet(), self.profile_snippet_limit, PROFILE_TRUNCATED)
            items.append(
                RetrievedContextItem(
                    tier=SourceTier.PROFILE,
                    source=sanitize_topic_name(topic.name),
                    title=f"Topic profile: {topic.name}",
                    date=profile.updated_at,
                    snippet=snippet or NO_DETAILS,
                    relevance=topic.score,
                )
            )
        logger.debug(f"Tier 1: {len(items)} profiles for {len(ranked)} ranked topics")
        return items

    async def _load_summary(self, reference: str) -> SummaryRecord | None:
        text = await self._read(self.summary_path(reference))
        if text is None:
            return None
        try:
            return SummaryRecord.from_markdown(reference, text)
        except Exception as e:
            logger.warning(f"Skipping unreadable summary {reference}: {e}")
            return None

    async def fetch_summaries(self, identifiers: list[str]) -> list[RetrievedContextItem]:
        """Tier 2: requested conversation summaries."""
        items = []
        for reference in normalize_references(identifiers):
            record = await self._load_summary(reference)
            if record is None:
                continue

            lines = []
            section = record.summary_section()
            if section:
                excerpt = section[:SUMMARY_EXCERPT]
                lines.append(excerpt + ("..." if len(section) > SUMMARY_EXCERPT else ""))
            if record.key_takeaways:
                lines.append(f"Key takeaways: {'; '.join(record.key_takeaways)}")

            items.append(
                RetrievedContextItem(
                    tier=SourceTier.SUMMARY,
                    source=reference,
                    title=record.title or None,
                    date=record.date,
                    snippet=cap("\n".join(lines), SUMMARY_SNIPPET, SUMMARY_TRUNCATED) or NO_DETAILS,
                )
            )
        logger.debug(f"Tier 2: {len(items)} of {len(identifiers)} requested summaries")
        return items

    async def fetch_transcript(self, identifier: str) -> RetrievedContextItem | None:
        """Tier 3: transcript excerpt linked from one summary."""
        reference = clean_reference(identifier)
        if not reference:
            return None
        record = await self._load_summary(reference)
        if record is None or not record.transcript:
            logger.info(f"No transcript linked from summary {reference}")
            return None

        text = await self._read(self.transcript_path(record.transcript))
        if text is None:
            return None

        _, body = split_frontmatter(text)
        body = body.strip()
        excerpt = body[:TRANSCRIPT_EXCERPT] if body else "Transcript excerpt unavailable"
        if len(body) > TRANSCRIPT_EXCERPT:
            excerpt += "..."
        return RetrievedContextItem(
            tier=SourceTier.FULL_TRANSCRIPT,
            source=record.transcript,
            title=f"Transcript: {record.title or record.transcript}",
            date=record.date,
            snippet=cap(f"Transcript excerpt:\n{excerpt}", TRANSCRIPT_SNIPPET, TRANSCRIPT_TRUNCATED),
        )
