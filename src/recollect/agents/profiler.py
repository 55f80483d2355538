"""Topic profiler - merges a concluded conversation into per-topic profiles.

Every topic of a summary is consolidated concurrently and independently:
a failed model call or unparsable reply for one topic leaves the others
untouched.
"""

import asyncio
import json
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, Field, field_validator

from recollect.agents.base import AgentConfig, BaseAgent, LLMProvider
from recollect.core.logging import get_logger
from recollect.core.parsing import decode_model
from recollect.llm.router import TaskType
from recollect.memory.base import DocumentStore
from recollect.memory.frontmatter import link, sanitize_topic_name
from recollect.memory.profile import HistoryEntry, TopicProfile, merge_history
from recollect.memory.scores import TagScoreStore, TopicScore
from recollect.memory.summary import SummaryRecord

logger = get_logger("agents.profiler")

_JAPANESE = re.compile(r"[\u3040-\u30ff\uff66-\uff9f\u4e00-\u9fff]")

FALLBACK_TEXT = {
    "Japanese": {"context": "この会話での文脈", "sentiment": "不明"},
    "English": {"context": "Context from this conversation", "sentiment": "Unknown"},
}

PROFILE_PROMPT = """You are {persona}, with the following character:
---
{character}
---

Your task is to analyse information about the topic "{topic}" and update its topic profile,
or create it if it does not exist yet. A topic profile records what this topic means to the
user in your conversations with them. Write from your character's point of view, including
your own interpretation. Write all text in {language}.

Current date: {today}

Input:

1. The concluded conversation ({reference}):
```markdown
{source}
```

2. The existing profile for "{topic}":
{existing}

3. History recovered from the existing profile:
Prior contexts:
```json
{contexts}
```
User opinions:
```json
{opinions}
```

Produce a single JSON object:
```json
{{
  "topic": "{topic}",
  "aliases": ["<other names for this topic, existing and new merged>"],
  "key_themes": ["<main themes around this topic, existing and new merged>"],
  "user_sentiment_overall": "<Positive, Negative, Neutral or Mixed>",
  "user_sentiment_details": ["<concrete examples of the user's feelings, citing {link}>"],
  "significance": "<what this topic means to this particular user, updated>",
  "related_topics": ["<names of related topics>"],
  "overview": "<how this topic is treated in your conversations, updated>",
  "contexts": [
    {{"reference": "{link}", "text": "<how '{topic}' came up in this conversation>"}},
    {{"reference": "[[older-summary]]", "text": "<kept unchanged from the recovered history>"}}
  ],
  "opinions": [
    {{"reference": "{link}", "text": "<the user's opinion or reaction in this conversation>"}},
    {{"reference": "[[older-summary]]", "text": "<kept unchanged from the recovered history>"}}
  ],
  "other_notes": "<other observations or open questions, updated>",
  "new_base_importance": <integer 0-100: how important this topic is to the user now>
}}
```

Rules:
- Put entries for this conversation at the head of "contexts" and "opinions", then keep every
  recovered entry. Never repeat a reference and never invent entries for other conversations.
- Do not put dates in "reference"; dates are added when the profile is rendered.
- Integrate new information into significance, key themes and overview rather than replacing them.
Return only the JSON object."""


def detect_language(title: str, text: str) -> str:
    """Japanese when the title or the opening of the text has Japanese script."""
    if _JAPANESE.search(title or "") or _JAPANESE.search((text or "")[:500]):
        return "Japanese"
    return "English"


def _coerce_str_list(value: Any) -> Any:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value.strip() else []
    if isinstance(value, list):
        return [str(v) for v in value if v is not None and str(v).strip()]
    return value


_REFERENCE_KEYS = {"reference", "summary_note_link", "link"}


class HistoryItem(BaseModel):
    reference: str = Field(validation_alias=AliasChoices(*sorted(_REFERENCE_KEYS)))
    text: str = Field(
        default="",
        validation_alias=AliasChoices("text", "context_summary", "user_opinion", "context", "opinion"),
    )

    def to_entry(self) -> HistoryEntry:
        return HistoryEntry(reference=self.reference, text=self.text)


class ProfileUpdate(BaseModel):
    """Consolidated profile fields as returned by the model."""

    aliases: list[str] = []
    key_themes: list[str] = []
    user_sentiment_overall: str | None = None
    user_sentiment_details: list[str] = []
    significance: str | None = Field(
        default=None, validation_alias=AliasChoices("significance", "master_significance")
    )
    related_topics: list[str] = Field(
        default=[], validation_alias=AliasChoices("related_topics", "related_tags")
    )
    overview: str | None = Field(
        default=None, validation_alias=AliasChoices("overview", "body_overview")
    )
    contexts: list[HistoryItem] = Field(
        default=[], validation_alias=AliasChoices("contexts", "body_contexts")
    )
    opinions: list[HistoryItem] = Field(
        default=[], validation_alias=AliasChoices("opinions", "body_user_opinions")
    )
    other_notes: str | None = Field(
        default=None, validation_alias=AliasChoices("other_notes", "body_other_notes")
    )
    new_base_importance: Any = None

    @field_validator(
        "aliases", "key_themes", "user_sentiment_details", "related_topics", mode="before"
    )
    @classmethod
    def coerce_lists(cls, value: Any) -> Any:
        return _coerce_str_list(value)

    @field_validator("contexts", "opinions", mode="before")
    @classmethod
    def drop_unreferenced(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, list):
            return [v for v in value if isinstance(v, dict) and _REFERENCE_KEYS & v.keys()]
        return value


@dataclass
class ConsolidationReport:
    """Per-topic outcome of consolidating one summary."""

    reference: str
    updated: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed


class TopicProfiler(BaseAgent):
    """Consolidates conversation outcomes into topic profiles."""

    def __init__(
        self,
        llm: LLMProvider | None,
        store: DocumentStore,
        scores: TagScoreStore,
        profile_dir: str = "TopicProfiles",
        persona: str = "Assistant",
        character: str = "",
        timeout_seconds: float = 60.0,
        model: str | None = None,
    ):
        config = AgentConfig(
            name="topic_profiler",
            model=model,
            timeout_seconds=timeout_seconds,
            max_tokens=4096,
            temperature=0.5,
        )
        super().__init__(config, llm)
        self.store = store
        self.scores = scores
        self.profile_dir = profile_dir
        self.persona = persona
        self.character = character

    def profile_path(self, topic: str) -> str:
        return f"{self.profile_dir}/{sanitize_topic_name(topic)}.md"

    async def load_profile(self, topic: str) -> tuple[TopicProfile, bool]:
        """Existing profile for a topic, or a fresh one. Returns (profile, existed)."""
        try:
            text = await self.store.read_optional(self.profile_path(topic))
        except Exception as e:
            logger.warning(f"Failed to read profile for '{topic}', starting fresh: {e}")
            text = None
        if not text:
            return TopicProfile.new(topic), False
        profile = TopicProfile.from_markdown(text, name=topic)
        profile.name = topic
        return profile, True

    def build_prompt(
        self,
        topic: str,
        summary: SummaryRecord,
        source: str,
        profile: TopicProfile,
        existed: bool,
        language: str,
    ) -> str:
        existing = (
            f"```markdown\n{profile.to_markdown()}\n```"
            if existed
            else "None - this is a new profile."
        )
        return PROFILE_PROMPT.format(
            persona=self.persona,
            character=self.character,
            topic=topic,
            language=language,
            today=datetime.now().strftime("%Y-%m-%d %H:%M"),
            reference=summary.reference,
            link=link(summary.reference),
            source=source,
            existing=existing,
            contexts=json.dumps([e.to_dict() for e in profile.contexts], ensure_ascii=False, indent=2),
            opinions=json.dumps([e.to_dict() for e in profile.opinions], ensure_ascii=False, indent=2),
        )

    def apply_update(
        self,
        profile: TopicProfile,
        update: ProfileUpdate,
        summary: SummaryRecord,
        language: str,
    ) -> None:
        """Merge a decoded model reply into a profile in place."""
        provided = update.model_fields_set
        fallback = FALLBACK_TEXT[language]

        if "aliases" in provided:
            profile.aliases = update.aliases
        if "key_themes" in provided:
            profile.key_themes = update.key_themes
        if "user_sentiment_details" in provided:
            profile.sentiment_details = update.user_sentiment_details
        if "related_topics" in provided:
            profile.related_topics = [sanitize_topic_name(t) for t in update.related_topics]
        if update.user_sentiment_overall:
            profile.sentiment_overall = update.user_sentiment_overall
        elif not profile.sentiment_overall:
            profile.sentiment_overall = fallback["sentiment"]
        if update.significance is not None:
            profile.significance = update.significance
        if update.overview is not None:
            profile.overview = update.overview
        if update.other_notes is not None:
            profile.notes = update.other_notes

        reference = summary.reference
        profile.contexts = merge_history(
            profile.contexts, [item.to_entry() for item in update.contexts], reference
        )
        if not any(e.reference == reference for e in profile.contexts):
            text = summary.title or fallback["context"]
            profile.contexts.insert(0, HistoryEntry(reference=reference, text=text))
        profile.opinions = merge_history(
            profile.opinions, [item.to_entry() for item in update.opinions], reference
        )

        profile.add_summary(reference)
        profile.touch()

    async def consolidate_topic(
        self,
        topic: str,
        summary: SummaryRecord,
        source: str,
        language: str,
    ) -> TopicProfile:
        """Consolidate one topic. Raises on model, parse or write failure."""
        profile, existed = await self.load_profile(topic)
        prompt = self.build_prompt(topic, summary, source, profile, existed, language)

        reply = await self._ask(prompt, task=TaskType.PROFILE_CONSOLIDATION)
        update = decode_model(reply, ProfileUpdate)
        self.apply_update(profile, update, summary, language)

        async def write_profile(score: TopicScore) -> None:
            profile.last_mentioned_in = score.last_mentioned_in
            profile.mention_frequency = score.mention_frequency
            await self.store.write(self.profile_path(topic), profile.to_markdown())

        # The score is only saved once the profile is on disk
        await self.scores.record_mention(
            topic, summary.reference, update.new_base_importance, persist=write_profile
        )
        logger.info(f"{'Updated' if existed else 'Created'} profile for '{topic}'")
        return profile

    async def consolidate(self, summary: SummaryRecord, source: str | None = None) -> ConsolidationReport:
        """Consolidate every topic of a summary concurrently.

        Args:
            summary: The concluded conversation's summary record
            source: Full text shown to the model (defaults to the rendered summary)

        Returns:
            ConsolidationReport listing updated and failed topics
        """
        report = ConsolidationReport(reference=summary.reference)
        topics = list(dict.fromkeys(t.strip() for t in summary.topics if t and t.strip()))
        if not topics:
            logger.info(f"No topics in {summary.reference}, nothing to consolidate")
            return report

        if not self.available:
            logger.warning("Topic consolidation skipped: no model configured")
            report.failed = {topic: "no model configured" for topic in topics}
            return report

        try:
            await self.store.create_folder(self.profile_dir)
        except Exception as e:
            logger.warning(f"Failed to create {self.profile_dir}: {e}")

        source = source or summary.to_markdown()
        language = detect_language(summary.title, source)
        logger.debug(f"Consolidating {len(topics)} topics from {summary.reference} ({language})")

        results = await asyncio.gather(
            *(self.consolidate_topic(topic, summary, source, language) for topic in topics),
            return_exceptions=True,
        )
        for topic, outcome in zip(topics, results):
            if isinstance(outcome, BaseException):
                logger.error(f"Consolidation failed for '{topic}': {outcome}")
                report.failed[topic] = str(outcome) or type(outcome).__name__
            else:
                report.updated.append(topic)

        logger.info(
            f"Consolidated {summary.reference}: {len(report.updated)} updated, "
            f"{len(report.failed)} failed"
        )
        return report
