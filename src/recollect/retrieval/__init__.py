"""
Retrieval module - tiered, relevance-ranked recall.

Components:
- ranker: Weighted ranking of known topics
- fetcher: Tier 1/2/3 reads (profiles, summaries, transcripts)
- formatter: Length-bounded rendering for evaluation and final prompts
- retriever: The recall pipeline
"""
