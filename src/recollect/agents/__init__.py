"""
Agents module - model-backed workers of the memory engine.

Agents:
- base: Shared config, state and deadline-bounded model calls
- keywords: Keyword extraction from the user's utterance
- evaluator: Bounded context sufficiency loop
- profiler: Per-topic profile consolidation
- summarizer: Transcript to conversation summary

Each agent degrades to a default result when its model call fails.
"""

from recollect.agents.base import AgentConfig, AgentState, BaseAgent
from recollect.agents.evaluator import SufficiencyEvaluator
from recollect.agents.keywords import KeywordExtractor
from recollect.agents.profiler import TopicProfiler
from recollect.agents.summarizer import ConversationSummarizer

__all__ = [
    "AgentConfig",
    "AgentState",
    "BaseAgent",
    "ConversationSummarizer",
    "KeywordExtractor",
    "SufficiencyEvaluator",
    "TopicProfiler",
]
