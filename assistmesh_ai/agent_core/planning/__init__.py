"""Planning components.

 The planning subsystem produces a *plan* from a user task and run context:
 an ordered list of steps, each naming a target capability (agent or skill)
 and a task for it.

 Pipeline
 --------

 - ``StructuredPlanner`` asks an LLM for plan JSON and returns the raw text.
 - ``parse_plan`` validates that text against ``Plan`` and fails closed;
   ``build_fallback_plan`` is used in its place when validation fails.
 - ``should_replan`` / ``can_replan`` / ``revise_plan`` decide and bound
   mid-run plan regeneration.

 The planner itself does not execute anything; plans are consumed by
 ``assistmesh_ai.agent_core.runtime.engine.OrchestrationEngine``.
 """

from .planner import StructuredPlanner
from .replan import can_replan, revise_plan, should_replan
from .steps import Plan, PlanStep, build_fallback_plan, parse_plan, parse_plan_or_raise, parse_revision

__all__ = [
    "Plan",
    "PlanStep",
    "StructuredPlanner",
    "build_fallback_plan",
    "can_replan",
    "parse_plan",
    "parse_plan_or_raise",
    "parse_revision",
    "revise_plan",
    "should_replan",
]
