from __future__ import annotations

"""Runtime dependency bundle, LangGraph state and run results.

The orchestration engine is designed to be dependency-injected.

- ``OrchestratorDeps`` collects the registry, planner, composer and limits.
- ``_GraphState`` is the mutable state passed between LangGraph nodes.
- ``OrchestratorResult`` is what ``orchestrate()`` hands back to the caller.
"""

from dataclasses import dataclass, field
from typing import Dict, List, NotRequired, Optional, Required, TypedDict

from pydantic import Field

from ...core.config import ConversationWindowConfig, OrchestratorLimits
from ..capabilities.registry import CapabilityRegistry
from ..composer import ResponseComposer
from ..planning.planner import StructuredPlanner
from ..planning.steps import Plan, PlanStep
from ..schemas.base import BaseSchema
from ..schemas.domain import FailureReason, StepResult
from .context import PlanContext
from .dispatcher import StepDispatcher


@dataclass(frozen=True)
class OrchestratorDeps:
    """Dependency bundle for ``OrchestrationEngine``.

    Typically constructed by ``factory.build_orchestrator`` and shared by all
    runs; none of its members keep per-run state.
    """

    registry: CapabilityRegistry
    planner: StructuredPlanner
    composer: ResponseComposer
    limits: OrchestratorLimits = field(default_factory=OrchestratorLimits)
    window: ConversationWindowConfig = field(default_factory=ConversationWindowConfig)
    dispatcher: Optional[StepDispatcher] = None


class _GraphState(TypedDict):
    """Mutable LangGraph state for a single orchestration run.

    Required keys:

    - ``ctx``: the run's ``PlanContext``.
    - ``plan``: current plan version (``None`` before the plan node).
    - ``idx``: index of the next step of ``plan`` to execute.
    - ``executed``: every step executed so far, across plan versions.
    - ``replans``: plan regenerations used.
    - ``started_at``: monotonic start time of the execution phase.

    Optional keys:

    - ``_replan``: set by the execute node when a replan should run next.
    - ``_finished``: set when the run should go straight to composition.
    - ``failure_reason`` / ``error``: run-level failure handed to the composer.
    - ``response``: composed reply.
    """

    ctx: Required[PlanContext]
    plan: Required[Optional[Plan]]
    idx: Required[int]
    executed: Required[List[PlanStep]]
    replans: Required[int]
    started_at: Required[float]
    _replan: NotRequired[bool]
    _finished: NotRequired[bool]
    failure_reason: NotRequired[Optional[FailureReason]]
    error: NotRequired[Optional[str]]
    response: NotRequired[str]


class OrchestratorResult(BaseSchema):
    success: bool
    response: str
    step_results: Dict[str, StepResult] = Field(default_factory=dict)
    error: Optional[str] = None
    plan: Optional[Plan] = None
