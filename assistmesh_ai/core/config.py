"""
Configuration Settings.

This module defines the orchestration core configuration using Pydantic's BaseSettings.
All values are loaded from environment variables (prefix ``ASSISTMESH_``) and the
``.env`` file. Nested groups use a double underscore as delimiter, for example
``ASSISTMESH_ORCHESTRATOR__STEP_TIMEOUT_SECONDS=30`` maps to
``settings.orchestrator.step_timeout_seconds``.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# =====================================================================
# Orchestration Configuration Models
# =====================================================================


class OrchestratorLimits(BaseModel):
    """Bounds and policy values applied to every orchestration run."""

    default_capability: str = Field(
        default="general-agent",
        description="Capability that receives the whole task when the planner output cannot be parsed",
    )
    default_capability_type: Literal["agent", "skill"] = Field(
        default="agent",
        description="Target type of the fallback capability",
    )
    step_timeout_seconds: float = Field(
        default=60.0, gt=0, description="Wall-clock budget for a single capability invocation"
    )
    max_replans: int = Field(default=3, ge=0, description="Maximum plan regenerations per run")
    max_total_steps: int = Field(
        default=10, ge=1, description="Maximum number of steps executed across all plan versions"
    )
    max_execution_seconds: float = Field(
        default=120.0, gt=0, description="Wall-clock budget for the whole step execution phase"
    )
    composer_max_output_chars: int = Field(
        default=500, ge=1, description="Per-step output characters shown to the composer"
    )

    model_config = {"populate_by_name": True}


class ConversationWindowConfig(BaseModel):
    """Sliding window applied to conversation history before prompting."""

    max_age_hours: float = Field(default=24, gt=0, description="Exclude messages older than this")
    max_messages: int = Field(default=20, ge=0, description="Keep at most this many recent messages")
    max_tokens: int = Field(default=4000, ge=0, description="Estimated token budget for history")

    model_config = {"populate_by_name": True}


class LLMConfig(BaseModel):
    """Model names handed to pydantic-ai (e.g. ``anthropic:claude-sonnet-4-20250514``)."""

    planner_model: Optional[str] = Field(
        default=None, description="Model used for planning; unset means deterministic fallback planning"
    )
    composer_model: Optional[str] = Field(
        default=None, description="Model used for reply synthesis; unset means deterministic fallback replies"
    )
    planner_temperature: float = Field(default=0.0, ge=0, description="Sampling temperature for planning")
    composer_max_tokens: int = Field(default=512, ge=1, description="Token limit for the composed reply")

    model_config = {"populate_by_name": True}


# =====================================================================
# Main Settings Class
# =====================================================================


class Settings(BaseSettings):
    """
    Application settings model.

    All properties are automatically bound from environment variables and .env file.
    """

    model_config = SettingsConfigDict(
        env_prefix="ASSISTMESH_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    orchestrator: OrchestratorLimits = Field(default_factory=OrchestratorLimits)
    conversation_window: ConversationWindowConfig = Field(default_factory=ConversationWindowConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)

    # =====================================================================
    # Logging Configuration
    # =====================================================================
    log_level: str = Field(default="INFO", description="Console logging level (DEBUG, INFO, WARNING, ERROR)")
    log_format: str = Field(default="detailed", description="Log format: simple, detailed or json")
    log_file_dir: str = Field(default="logs", description="Directory for the log file")
    enable_file_logging: bool = Field(default=False, description="Also write DEBUG logs to a file")

    def with_overrides(self, **orchestrator_overrides: Any) -> "Settings":
        """Return a copy whose orchestrator limits are updated with the given values."""
        limits = self.orchestrator.model_copy(update=orchestrator_overrides)
        return self.model_copy(update={"orchestrator": limits})


settings = Settings()
