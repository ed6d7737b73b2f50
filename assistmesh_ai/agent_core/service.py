from __future__ import annotations

"""Top-level orchestration boundary.

``OrchestratorService.orchestrate`` is the only entry point message handlers
call. It builds the run's ``PlanContext`` (windowing the conversation history
on the way), hands it to ``OrchestrationEngine`` and guarantees that callers
always get an ``OrchestratorResult`` back: an empty message short-circuits
before planning, and any unexpected exception becomes the generic failure
reply with ``success=False``.

``OrchestratorService`` is intentionally thin: it delegates execution
semantics to the engine and holds no per-run state itself.
"""

import asyncio
import logging
import time
import uuid
from typing import Optional, Sequence

from ..core.logging_config import RunLogger, bind_run_logger, log_event
from .composer import GENERIC_FAILURE_REPLY
from .runtime.context import PlanContext
from .runtime.engine import OrchestrationEngine
from .runtime.history import get_relevant_history, get_window_stats
from .runtime.models import OrchestratorDeps, OrchestratorResult
from .schemas.domain import (
    ConversationMessage,
    MediaSummary,
    OrchestrationEventType,
    UserProfile,
)

logger = logging.getLogger(__name__)

EMPTY_MESSAGE_ERROR = "Empty user message"


class OrchestratorService:
    """Run the plan → execute → compose pipeline for one user turn at a time."""

    def __init__(self, *, deps: OrchestratorDeps, engine: Optional[OrchestrationEngine] = None) -> None:
        self._deps = deps
        self._engine = engine or OrchestrationEngine(deps=deps)

    @property
    def engine(self) -> OrchestrationEngine:
        return self._engine

    async def orchestrate(
        self,
        task: str,
        *,
        history: Sequence[ConversationMessage] = (),
        media_summaries: Sequence[MediaSummary] = (),
        user_profile: Optional[UserProfile] = None,
        caller_id: str,
        channel: str,
        logger: Optional[RunLogger] = None,
        message_id: Optional[str] = None,
        media_context: Optional[str] = None,
    ) -> OrchestratorResult:
        """Process one user message and return the reply.

        Never raises for orchestration failures; ``asyncio.CancelledError`` of
        the calling task still propagates.
        """
        run_logger = bind_run_logger(logger, caller_id=caller_id, channel=channel, run_id=uuid.uuid4().hex[:12])

        if not task or not task.strip():
            log_event(run_logger, OrchestrationEventType.run_failed, level=logging.WARNING, error=EMPTY_MESSAGE_ERROR)
            return OrchestratorResult(success=False, response=GENERIC_FAILURE_REPLY, error=EMPTY_MESSAGE_ERROR)

        started = time.monotonic()
        ctx = PlanContext(
            caller_id=caller_id,
            channel=channel,
            user_message=task,
            history=get_relevant_history(history, self._deps.window),
            user_profile=user_profile,
            media_summaries=list(media_summaries),
            media_context=media_context,
            message_id=message_id,
            logger=run_logger,
        )
        window = get_window_stats(ctx.history)
        log_event(
            run_logger,
            OrchestrationEventType.run_started,
            message_length=len(task),
            history_total=len(history),
            history_window=window.message_count,
            history_tokens=window.total_tokens,
            facts=len(ctx.user_facts),
            media=len(ctx.media_summaries),
        )

        try:
            result = await self._engine.run(ctx)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            run_logger.exception(f"Orchestration failed with exception: {e}")
            log_event(
                run_logger,
                OrchestrationEventType.run_failed,
                level=logging.ERROR,
                error=str(e),
                duration_ms=int((time.monotonic() - started) * 1000),
            )
            return OrchestratorResult(
                success=False,
                response=GENERIC_FAILURE_REPLY,
                step_results=dict(ctx.step_results),
                error=str(e) or e.__class__.__name__,
            )

        log_event(
            run_logger,
            OrchestrationEventType.run_completed,
            success=result.success,
            steps=len(result.step_results),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return result
