"""
Memory module - the persistent memory vault.

Layers:
- scores: Tag score store (importance and frequency per topic)
- profile: Topic profiles, one evolving record per topic
- summary: Conversation summaries, one per concluded conversation
- transcripts: Full conversation logs, read-only here

Storage: plain files or SQLite behind the DocumentStore interface
"""
