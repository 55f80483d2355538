"""
Configuration management.

Loads settings from environment variables and .env file.
Prefix: RECOLLECT_
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RECOLLECT_",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # LLM Providers
    anthropic_api_key: str = Field(default="", description="Claude API key")
    use_litellm: bool = Field(default=True, description="Register LiteLLM models from registry")

    # Model defaults
    default_model: str = Field(default="claude-sonnet-4-20250514", description="Default model")
    keyword_model: str = Field(
        default="",
        description="Model for keyword extraction (empty = routed by task)",
    )
    llm_timeout_seconds: float = Field(
        default=8.0, gt=0, description="Deadline for a single recall-time model call"
    )
    consolidation_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Deadline for summarization and profile consolidation calls"
    )

    # Storage
    data_dir: Path = Field(default=Path("data"), description="Memory vault directory")
    store_backend: Literal["files", "sqlite"] = Field(
        default="files", description="Document store backend"
    )
    db_name: str = Field(default="recollect.db", description="SQLite database name")
    scores_file: str = Field(default="tag_scores.json", description="Tag score store document")
    profile_dir: str = Field(default="TopicProfiles", description="Topic profile folder")
    summary_dir: str = Field(default="Summaries", description="Conversation summary folder")
    transcript_dir: str = Field(default="Transcripts", description="Full transcript folder")

    # Persona
    persona_name: str = Field(default="Assistant", description="Agent persona name")
    character_prompt: str = Field(
        default="You are a kind and attentive assistant.",
        description="Persona/character description used in consolidation prompts",
    )

    # Retrieval limits
    max_topics_to_retrieve: int = Field(default=5, ge=1, description="Top-K topic profiles")
    max_context_length: int = Field(default=3500, ge=200, description="Final context budget")
    max_context_length_for_evaluation: int = Field(
        default=3500, ge=200, description="Evaluation context budget"
    )
    evaluation_history_turns: int = Field(
        default=4, ge=0, description="Conversation turns shown to the evaluator"
    )

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


def get_settings() -> Settings:
    """Get settings instance."""
    return Settings()
