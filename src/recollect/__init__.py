"""
Recollect - hierarchical long-term memory for conversational agents.

Package structure:
- core: Config, logging, shared types, model response decoding, memory service
- llm: LLM provider abstraction and routing
- memory: Document stores, tag scores, topic profile and summary records
- retrieval: Topic ranking, tiered context fetching, context formatting
- agents: LLM-driven workers (keyword extraction, sufficiency evaluation,
  topic profile consolidation, conversation summarization)
"""

__version__ = "0.1.0"
