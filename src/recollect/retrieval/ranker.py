"""Topic ranker - combines extraction scores with persisted importance."""

from recollect.core.types import RankedTopic, ScoredKeyword
from recollect.memory.scores import TopicScore

PROMPT_WEIGHT = 0.7
IMPORTANCE_WEIGHT = 0.3


def rank_topics(
    keywords: list[ScoredKeyword],
    scores: dict[str, TopicScore],
) -> list[RankedTopic]:
    """Known topics ordered by weighted score, highest first.

    Keywords without a score record are left out; sorting is stable so
    equal scores keep the extractor's order.
    """
    ranked = [
        RankedTopic(
            name=kw.keyword,
            score=PROMPT_WEIGHT * kw.in_prompt_score
            + IMPORTANCE_WEIGHT * scores[kw.keyword].base_importance,
            keyword=kw.keyword,
        )
        for kw in keywords
        if kw.keyword in scores
    ]
    return sorted(ranked, key=lambda topic: topic.score, reverse=True)


def discover_new_topics(keywords: list[ScoredKeyword], scores: dict[str, TopicScore]) -> list[str]:
    """Keywords that match no known topic."""
    return [kw.keyword for kw in keywords if kw.keyword not in scores]
