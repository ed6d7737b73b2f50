from __future__ import annotations

"""LangGraph orchestration engine.

``OrchestrationEngine`` drives one run from the user task to the composed
reply.

Execution model
---------------

- The engine runs a LangGraph state machine over a mutable ``_GraphState``:
  ``plan`` → ``execute`` (looping) → optional ``replan`` → ``compose``.
- Each visit to ``execute`` dispatches exactly one step, strictly in order,
  and records its result in the run's ``PlanContext``.

Bounds
------

- The plan-level time budget is checked before every step; once spent, the
  run composes with failure reason ``timeout``.
- At most ``max_total_steps`` steps run across all plan versions and at most
  ``max_replans`` revisions are requested.
- The graph recursion limit is derived from those caps, so the graph always
  terminates.

Failure handling
----------------

- Planner exceptions and unparsable planner text both yield the fallback plan.
- A failed step that asks for a replan which cannot be granted (or whose
  revision is empty) ends execution; remaining steps are abandoned and the
  composer is told some steps failed.
"""

import logging
import time
from typing import Optional

from langgraph.graph import END, StateGraph

from ...core.logging_config import log_event
from ..errors import PlanFormatError
from ..planning.replan import can_replan, revise_plan, should_replan
from ..planning.steps import Plan, build_fallback_plan, parse_plan_or_raise, parse_revision
from ..schemas.domain import FailureReason, OrchestrationEventType
from .context import PlanContext
from .dispatcher import StepDispatcher, format_step_result
from .models import OrchestratorDeps, OrchestratorResult, _GraphState

logger = logging.getLogger(__name__)


class OrchestrationEngine:
    """Plan, execute, optionally replan, and compose one orchestration run.

    The engine is stateless between runs; everything a run mutates lives in
    its ``PlanContext`` and graph state.
    """

    def __init__(self, *, deps: OrchestratorDeps) -> None:
        """
        Initialize the OrchestrationEngine.

        Args:
            deps: Registry, planner, composer and limits shared by all runs.
        """
        self._deps = deps
        self._limits = deps.limits
        self._dispatcher = deps.dispatcher or StepDispatcher(
            deps.registry, step_timeout_seconds=deps.limits.step_timeout_seconds
        )
        self._graph = self._build_graph()

    @property
    def dispatcher(self) -> StepDispatcher:
        return self._dispatcher

    @property
    def recursion_limit(self) -> int:
        # plan + compose, one execute visit per step, plus an execute and a
        # replan visit per revision
        return 2 + self._limits.max_total_steps + 2 * (self._limits.max_replans + 1) + 5

    def _build_graph(self):
        """Build and compile the LangGraph state machine."""
        g: StateGraph = StateGraph(_GraphState)
        g.add_node("plan", self._node_plan)
        g.add_node("execute", self._node_execute_next)
        g.add_node("replan", self._node_replan)
        g.add_node("compose", self._node_compose)

        g.set_entry_point("plan")
        g.add_edge("plan", "execute")
        g.add_conditional_edges(
            "execute",
            self._route_after_execute,
            {
                "replan": "replan",
                "compose": "compose",
                "continue": "execute",
            },
        )
        g.add_conditional_edges(
            "replan",
            self._route_after_replan,
            {
                "compose": "compose",
                "continue": "execute",
            },
        )
        g.add_edge("compose", END)
        return g.compile()

    async def run(self, ctx: PlanContext) -> OrchestratorResult:
        """Execute the whole pipeline for ``ctx.user_message``."""
        state: _GraphState = {
            "ctx": ctx,
            "plan": None,
            "idx": 0,
            "executed": [],
            "replans": 0,
            "started_at": time.monotonic(),
        }
        final = await self._graph.ainvoke(state, config={"recursion_limit": self.recursion_limit})

        reason = final.get("failure_reason")
        success = ctx.any_succeeded() and reason != FailureReason.timeout
        return OrchestratorResult(
            success=success,
            response=final.get("response") or "",
            step_results=dict(ctx.step_results),
            error=final.get("error") if not success or reason else None,
            plan=final.get("plan"),
        )

    def _elapsed(self, state: _GraphState) -> float:
        return time.monotonic() - float(state["started_at"])

    async def _node_plan(self, state: _GraphState) -> _GraphState:
        """Ask the planner for a plan; substitute the fallback plan on any failure."""
        ctx = state["ctx"]
        plan: Optional[Plan] = None
        reason = ""
        try:
            raw = await self._deps.planner.plan(
                task=ctx.user_message,
                context=ctx,
                catalogue=self._deps.registry.format_for_prompt(),
            )
            plan = parse_plan_or_raise(raw)
        except PlanFormatError as e:
            reason = e.reason
            logger.warning(f"Failed to parse plan response: {e.reason}")
        except Exception as e:
            reason = f"planner error: {e}"
            logger.error(f"Planner call failed: {e}")

        if plan is None:
            plan = build_fallback_plan(
                ctx.user_message,
                target=self._limits.default_capability,
                target_type=self._limits.default_capability_type,
            )
            log_event(
                ctx.logger,
                OrchestrationEventType.plan_fallback,
                level=logging.WARNING,
                reason=reason,
                target=self._limits.default_capability,
            )
        else:
            plan = plan.capped(self._limits.max_total_steps)
            log_event(
                ctx.logger,
                OrchestrationEventType.plan_created,
                goal=plan.goal,
                step_count=len(plan.steps),
                targets=[s.target for s in plan.steps],
            )

        state["plan"] = plan
        state["idx"] = 0
        state["started_at"] = time.monotonic()
        return state

    async def _node_execute_next(self, state: _GraphState) -> _GraphState:
        """Execute the next plan step.

        This node is responsible for:

        - detecting terminal conditions (plan exhausted, step cap, time budget),
        - dispatching exactly one step and recording its result,
        - asking the replan evaluator whether the rest of the plan still holds.
        """
        ctx = state["ctx"]
        plan = state["plan"]
        idx = int(state.get("idx") or 0)
        executed = state["executed"]
        state["_replan"] = False

        if plan is None or idx >= len(plan.steps) or len(executed) >= self._limits.max_total_steps:
            state["_finished"] = True
            return state

        elapsed = self._elapsed(state)
        if elapsed > self._limits.max_execution_seconds:
            log_event(
                ctx.logger,
                OrchestrationEventType.run_timeout,
                level=logging.WARNING,
                elapsed_s=round(elapsed, 3),
                executed=len(executed),
            )
            state["failure_reason"] = FailureReason.timeout
            state["error"] = f"Execution timeout after {round(elapsed)}s"
            state["_finished"] = True
            return state

        step = plan.steps[idx]
        result = await self._dispatcher.execute_step(step, ctx)
        ctx.record(step.id, result)
        executed.append(step)
        state["idx"] = idx + 1
        logger.debug(format_step_result(step, result))

        if not result.success:
            state["failure_reason"] = FailureReason.step_failed
            state["error"] = result.error

        wants_replan = should_replan(result, idx, len(plan.steps))
        if not wants_replan:
            return state

        allowed = can_replan(state["replans"], len(executed), self._elapsed(state), self._limits)
        log_event(
            ctx.logger,
            OrchestrationEventType.replan_decided,
            step_id=step.id,
            allowed=allowed,
            replans_used=state["replans"],
            success=result.success,
        )
        if allowed:
            state["_replan"] = True
        elif not result.success:
            state["_finished"] = True
        return state

    async def _node_replan(self, state: _GraphState) -> _GraphState:
        """Request a revised plan; an unusable revision ends execution."""
        ctx = state["ctx"]
        prior = state["plan"]
        state["_replan"] = False
        if prior is None:
            logger.warning("Replan requested without a current plan")
            state["_finished"] = True
            return state
        state["replans"] = int(state["replans"]) + 1
        version = state["replans"] + 1

        revised: Optional[Plan] = None
        try:
            raw = await self._deps.planner.replan(
                plan=prior,
                context=ctx,
                catalogue=self._deps.registry.format_for_prompt(),
                executed=list(state["executed"]),
            )
            parsed = parse_revision(raw)
            if parsed is not None:
                revised = revise_plan(
                    prior,
                    parsed,
                    state["executed"],
                    version=version,
                    max_total_steps=self._limits.max_total_steps,
                )
        except Exception as e:
            logger.error(f"Replanning failed: {e}")

        if revised is None:
            log_event(ctx.logger, OrchestrationEventType.plan_replanned, version=version, step_count=0)
            state["_finished"] = True
            return state

        log_event(
            ctx.logger,
            OrchestrationEventType.plan_replanned,
            version=version,
            step_count=len(revised.steps),
            step_ids=revised.step_ids,
        )
        state["plan"] = revised
        state["idx"] = 0
        return state

    async def _node_compose(self, state: _GraphState) -> _GraphState:
        ctx = state["ctx"]
        reason = state.get("failure_reason")
        state["response"] = await self._deps.composer.compose(ctx, state["plan"], reason)
        return state

    def _route_after_execute(self, state: _GraphState) -> str:
        """Route to replan/compose/continue after executing a step."""
        if state.get("_finished"):
            return "compose"
        if state.get("_replan"):
            return "replan"
        plan = state["plan"]
        if plan is None or state["idx"] >= len(plan.steps):
            return "compose"
        if len(state["executed"]) >= self._limits.max_total_steps:
            return "compose"
        return "continue"

    def _route_after_replan(self, state: _GraphState) -> str:
        return "compose" if state.get("_finished") else "continue"
