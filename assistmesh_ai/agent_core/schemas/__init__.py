"""Schemas and DTOs for the orchestration core."""

from .domain import (
    CapabilityDescriptor,
    ConversationMessage,
    FailureReason,
    MediaSummary,
    OrchestrationEventType,
    StepError,
    StepFailureKind,
    StepResult,
    TargetType,
    ToolCallRecord,
    UserProfile,
)

__all__ = [
    "CapabilityDescriptor",
    "ConversationMessage",
    "FailureReason",
    "MediaSummary",
    "OrchestrationEventType",
    "StepError",
    "StepFailureKind",
    "StepResult",
    "TargetType",
    "ToolCallRecord",
    "UserProfile",
]
