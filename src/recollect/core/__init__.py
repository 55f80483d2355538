"""
Core module - configuration, shared types, response decoding.

Components:
- config: Settings management via pydantic-settings
- types: Shared data structures (ChatTurn, RetrievedContextItem, etc.)
- parsing: JSON extraction and schema validation of model output
- logging: Structured logging setup
- service: MemoryService facade wiring all components
"""

from recollect.core.config import Settings
from recollect.core.types import ChatTurn, RetrievalResult, RetrievedContextItem, SourceTier

__all__ = ["Settings", "ChatTurn", "RetrievalResult", "RetrievedContextItem", "SourceTier"]
