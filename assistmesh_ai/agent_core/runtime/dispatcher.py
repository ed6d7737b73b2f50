from __future__ import annotations

"""Step dispatcher.

``StepDispatcher.execute_step`` turns one ``PlanStep`` into exactly one
``StepResult``. It resolves the step target through the injected registry,
invokes the capability under the step timeout and converts every failure
mode into a failed result:

- unregistered target: ``Unknown capability: <target>``, nothing invoked;
- timer fired first: ``Step execution timeout after <n>s``;
- invocation raised: the exception message.

The only exception that escapes is ``asyncio.CancelledError`` of the caller's
own task.
"""

import logging
import time
from typing import Any, Mapping

from pydantic import ValidationError

from ...core.logging_config import log_event
from ..capabilities.registry import CapabilityRegistry
from ..errors import CapabilityFaultError, StepTimeoutError, UnknownCapabilityError
from ..planning.steps import PlanStep
from ..schemas.domain import OrchestrationEventType, StepFailureKind, StepResult
from .context import PlanContext, build_execution_context
from .timeout import settle_within

logger = logging.getLogger(__name__)


def normalize_capability_output(value: Any) -> StepResult:
    """Coerce whatever a capability returned into a ``StepResult``.

    A mapping is validated as a result only when it carries ``success``;
    any other value is a successful output.
    """
    if isinstance(value, StepResult):
        result = value
    elif isinstance(value, Mapping) and "success" in value:
        result = StepResult.model_validate(dict(value))
    else:
        result = StepResult(success=True, output=value)
    if not result.success and result.failure_kind is None:
        result = result.model_copy(update={"failure_kind": StepFailureKind.capability_error})
    return result


def _failure(error: Exception, kind: StepFailureKind) -> StepResult:
    return StepResult(success=False, output=None, error=str(error), failure_kind=kind)


class StepDispatcher:
    """Resolve and invoke plan steps with a per-step time budget."""

    def __init__(self, registry: CapabilityRegistry, *, step_timeout_seconds: float = 60.0) -> None:
        self._registry = registry
        self._timeout = step_timeout_seconds

    @property
    def step_timeout_seconds(self) -> float:
        return self._timeout

    async def execute_step(self, step: PlanStep, ctx: PlanContext) -> StepResult:
        run_logger = ctx.logger
        started = time.monotonic()
        log_event(
            run_logger,
            OrchestrationEventType.step_started,
            step_id=step.id,
            target=step.target,
            target_type=step.target_type.value,
        )

        result = await self._invoke(step, ctx)

        duration_ms = int((time.monotonic() - started) * 1000)
        if result.success:
            log_event(
                run_logger,
                OrchestrationEventType.step_completed,
                step_id=step.id,
                target=step.target,
                duration_ms=duration_ms,
            )
        else:
            log_event(
                run_logger,
                OrchestrationEventType.step_failed,
                level=logging.WARNING,
                step_id=step.id,
                target=step.target,
                duration_ms=duration_ms,
                error=result.error,
                failure_kind=result.failure_kind.value if result.failure_kind else None,
                timeout=result.failure_kind == StepFailureKind.timeout,
            )
        return result

    async def _invoke(self, step: PlanStep, ctx: PlanContext) -> StepResult:
        capability = self._registry.find(step.target, step.target_type)
        if capability is None:
            return _failure(UnknownCapabilityError(step.target), StepFailureKind.unknown_capability)

        exec_ctx = build_execution_context(
            ctx, step_id=step.id, tool_allow_list=capability.descriptor.tool_allow_list
        )
        try:
            raw = await settle_within(capability.invoke(step.task, exec_ctx), self._timeout)
            return normalize_capability_output(raw)
        except StepTimeoutError as e:
            return _failure(e, StepFailureKind.timeout)
        except ValidationError as e:
            logger.warning(f"Capability {step.target} returned an invalid result: {e}")
            return _failure(CapabilityFaultError(step.target, e), StepFailureKind.capability_fault)
        except Exception as e:
            logger.debug(f"Capability {step.target} raised", exc_info=True)
            return _failure(CapabilityFaultError(step.target, e), StepFailureKind.capability_fault)


def format_step_result(step: PlanStep, result: StepResult, *, max_chars: int = 200) -> str:
    """One-line diagnostic summary of a dispatched step."""
    status = "ok" if result.success else f"failed ({result.failure_kind.value if result.failure_kind else 'error'})"
    detail = result.error if not result.success else _preview(result.output, max_chars)
    line = f"[{step.id}] {step.target_type.value}:{step.target} -> {status}"
    if detail:
        line += f": {detail}"
    if result.tool_calls:
        line += f" [tools: {', '.join(t.name for t in result.tool_calls)}]"
    return line


def _preview(value: Any, max_chars: int) -> str:
    if value is None:
        return ""
    text = " ".join(str(value).split())
    return text if len(text) <= max_chars else text[: max_chars - 3] + "..."
