"""Orchestration core: planning, bounded execution and reply synthesis.

This package contains the "engine room" of the assistant.

Design overview
---------------

One user turn flows through four stages:

- **Plan**: ``planning.StructuredPlanner`` asks an LLM for plan JSON and
  ``planning.parse_plan`` validates it; unusable output is replaced by a
  single-step fallback plan targeting the configured default capability.
- **Execute**: ``runtime.engine.OrchestrationEngine`` (LangGraph) dispatches
  steps in order through ``runtime.StepDispatcher``; every invocation is
  bounded by the step timeout and every outcome becomes a ``StepResult``.
- **Replan**: after each step ``planning.should_replan`` decides whether the
  rest of the plan still holds; revisions are bounded by ``can_replan``.
- **Compose**: ``composer.ResponseComposer`` turns the accumulated results into
  one reply, falling back to a generated link or a generic apology.

Typical usage
-------------

Most applications should build an ``OrchestratorService`` with
``factory.build_orchestrator`` and call ``orchestrate()`` once per message.
"""

from .capabilities import Capability, CapabilityRegistry, ExecutionContext
from .composer import GENERIC_FAILURE_REPLY, ResponseComposer
from .errors import (
    CapabilityFaultError,
    ComposerEmptyError,
    OrchestrationError,
    PlanFormatError,
    StepTimeoutError,
    UnknownCapabilityError,
)
from .factory import build_deps, build_orchestrator, build_registry, make_capability
from .planning import Plan, PlanStep, StructuredPlanner, parse_plan, should_replan
from .runtime.engine import OrchestrationEngine
from .runtime.models import OrchestratorDeps, OrchestratorResult
from .schemas.domain import (
    CapabilityDescriptor,
    ConversationMessage,
    MediaSummary,
    StepResult,
    TargetType,
    UserProfile,
)
from .service import OrchestratorService

__all__ = [
    "GENERIC_FAILURE_REPLY",
    "Capability",
    "CapabilityDescriptor",
    "CapabilityFaultError",
    "CapabilityRegistry",
    "ComposerEmptyError",
    "ConversationMessage",
    "ExecutionContext",
    "MediaSummary",
    "OrchestrationEngine",
    "OrchestrationError",
    "OrchestratorDeps",
    "OrchestratorResult",
    "OrchestratorService",
    "Plan",
    "PlanFormatError",
    "PlanStep",
    "ResponseComposer",
    "StepResult",
    "StepTimeoutError",
    "StructuredPlanner",
    "TargetType",
    "UnknownCapabilityError",
    "UserProfile",
    "build_deps",
    "build_orchestrator",
    "build_registry",
    "make_capability",
    "parse_plan",
    "should_replan",
]
