from __future__ import annotations

"""Run-scoped context.

``PlanContext`` is created when ``orchestrate()`` starts and discarded when it
returns. Nothing else holds a reference to it: every run owns its own
instance, and the only mutation during execution is appending step results.
Capabilities see it through an immutable ``ExecutionContext`` snapshot.
"""

import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, List, Optional, Sequence

from ...core.logging_config import RunLogger
from ..capabilities.base import ExecutionContext
from ..schemas.domain import (
    ConversationMessage,
    MediaSummary,
    StepError,
    StepResult,
    UserProfile,
)


@dataclass
class PlanContext:
    caller_id: str
    channel: str
    user_message: str
    history: List[ConversationMessage] = field(default_factory=list)
    user_profile: Optional[UserProfile] = None
    step_results: Dict[str, StepResult] = field(default_factory=dict)
    errors: List[StepError] = field(default_factory=list)
    media_summaries: List[MediaSummary] = field(default_factory=list)
    media_context: Optional[str] = None
    message_id: Optional[str] = None
    logger: RunLogger = field(default_factory=lambda: logging.getLogger("assistmesh_ai.agent_core.run"))

    def record(self, step_id: str, result: StepResult) -> None:
        """Append a step result; failed results are also kept as errors."""
        if step_id in self.step_results:
            raise ValueError(f"step result already recorded: {step_id}")
        self.step_results[step_id] = result
        if not result.success:
            self.errors.append(StepError(step_id=step_id, error=result.error or "Unknown error"))

    @property
    def user_facts(self) -> List[str]:
        return list(self.user_profile.facts) if self.user_profile else []

    @property
    def timezone(self) -> str:
        return (self.user_profile.timezone if self.user_profile else None) or "UTC"

    def any_succeeded(self) -> bool:
        return any(r.success for r in self.step_results.values())


def build_execution_context(
    ctx: PlanContext,
    *,
    step_id: Optional[str] = None,
    tool_allow_list: Sequence[str] = (),
) -> ExecutionContext:
    """Snapshot ``ctx`` for one capability invocation.

    ``step_results`` is copied and wrapped in a read-only mapping, so neither a
    capability nor a late-settling invocation can alter recorded results.
    """
    return ExecutionContext(
        caller_id=ctx.caller_id,
        channel=ctx.channel,
        user_profile=ctx.user_profile,
        step_results=MappingProxyType(dict(ctx.step_results)),
        media_summaries=tuple(ctx.media_summaries),
        media_context=ctx.media_context,
        message_id=ctx.message_id,
        logger=ctx.logger,
        step_id=step_id,
        tool_allow_list=tuple(tool_allow_list),
    )
