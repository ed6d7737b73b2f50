from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Literal, Optional

from pydantic import AliasChoices, ConfigDict, Field

from .base import BaseSchema, UpstreamSchema


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class TargetType(str, Enum):
    agent = "agent"
    skill = "skill"


class StepFailureKind(str, Enum):
    """Why a step failed, as seen by the dispatcher."""

    unknown_capability = "unknown_capability"  # Target not registered; nothing was invoked.
    timeout = "timeout"  # Invocation outlived the step budget.
    capability_fault = "capability_fault"  # Invocation raised.
    capability_error = "capability_error"  # Capability reported success=False itself.


class FailureReason(str, Enum):
    """Run-level condition handed to the composer."""

    timeout = "timeout"
    step_failed = "step_failed"


class OrchestrationEventType(str, Enum):
    run_started = "run.started"
    run_completed = "run.completed"
    run_failed = "run.failed"
    run_timeout = "run.timeout"
    plan_created = "plan.created"
    plan_fallback = "plan.fallback"
    plan_replanned = "plan.replanned"
    replan_decided = "replan.decided"
    step_started = "step.started"
    step_completed = "step.completed"
    step_failed = "step.failed"
    reply_composed = "reply.composed"
    reply_fallback = "reply.fallback"


class ToolCallRecord(UpstreamSchema):
    name: str
    input: Dict[str, Any] = Field(default_factory=dict)
    result: Any = None


class StepResult(UpstreamSchema):
    """Uniform outcome of dispatching one plan step.

    ``output`` is whatever the capability produced. When it is a mapping it may
    carry the orchestration signals ``needsReplan`` and ``isEmpty``.
    """

    success: bool
    output: Any = None
    error: Optional[str] = None
    tool_calls: List[ToolCallRecord] = Field(
        default_factory=list,
        validation_alias=AliasChoices("tool_calls", "toolCalls"),
    )
    failure_kind: Optional[StepFailureKind] = None


class StepError(BaseSchema):
    step_id: str
    error: str


class CapabilityDescriptor(BaseSchema):
    """Static description of an agent or skill, shown to the planner."""

    name: str
    description: str
    tool_allow_list: tuple[str, ...] = ()
    examples: tuple[str, ...] = ()

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)


class ConversationMessage(BaseSchema):
    role: Literal["user", "assistant"]
    content: str
    created_at: datetime = Field(default_factory=_utc_now)
    id: Optional[str] = None


class MediaSummary(BaseSchema):
    attachment_index: int
    mime_type: str
    summary: str
    category: Optional[str] = None


class UserProfile(BaseSchema):
    name: Optional[str] = None
    timezone: Optional[str] = None
    facts: List[str] = Field(default_factory=list)
