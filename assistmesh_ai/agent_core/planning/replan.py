from __future__ import annotations

"""Replan decisions and revision merging.

``should_replan`` is a pure function of one step result and the step's
position in the plan. ``can_replan`` bounds how often and how late a plan may
be regenerated. ``revise_plan`` turns a validated planner revision into the
next plan, keeping all executed work and never reusing an executed step id.
"""

import logging
from typing import Any, List, Mapping, Optional, Sequence

from ...core.config import OrchestratorLimits
from ..schemas.domain import StepResult
from .steps import Plan, PlanStep

logger = logging.getLogger(__name__)


def _signal(output: Any, camel: str, snake: str) -> bool:
    if not isinstance(output, Mapping):
        return False
    value = output.get(camel, output.get(snake))
    return value is True


def should_replan(result: StepResult, step_index: int, total_steps: int) -> bool:
    """Decide whether the remaining plan should be regenerated.

    Checked in priority order:

    1. the output explicitly asks for it (``needsReplan``);
    2. the output is marked empty (``isEmpty``) and more steps follow;
    3. the step failed and more steps follow.

    A failure or empty result on the last step never triggers a replan.
    """
    if _signal(result.output, "needsReplan", "needs_replan"):
        return True
    is_last = step_index >= total_steps - 1
    if _signal(result.output, "isEmpty", "is_empty") and not is_last:
        return True
    if not result.success and not is_last:
        return True
    return False


def can_replan(
    replans_used: int,
    executed_steps: int,
    elapsed_seconds: float,
    limits: OrchestratorLimits,
) -> bool:
    return (
        replans_used < limits.max_replans
        and executed_steps < limits.max_total_steps
        and elapsed_seconds < limits.max_execution_seconds
    )


def _unique_id(candidate: str, taken: set[str], version: int) -> str:
    if candidate not in taken:
        return candidate
    renamed = f"{candidate}_v{version}"
    n = 2
    while renamed in taken:
        renamed = f"{candidate}_v{version}_{n}"
        n += 1
    return renamed


def revise_plan(
    prior: Plan,
    parsed: Plan,
    executed: Sequence[PlanStep],
    *,
    version: int,
    max_total_steps: int,
) -> Optional[Plan]:
    """Build the next plan from a parsed revision.

    The result holds only steps still to run. Steps the planner echoes back as
    completed, or that repeat an executed ``(target, task)``, are dropped;
    ids colliding with executed ones are renamed ``<id>_v<version>``. The plan
    is capped to the remaining step budget. Returns ``None`` when nothing is
    left to run.
    """
    done = {(s.target_type, s.target, s.task) for s in executed}
    taken = {s.id for s in executed}
    budget = max_total_steps - len(executed)

    pending: List[PlanStep] = []
    for step in parsed.steps:
        if budget <= len(pending):
            break
        if (step.status or "").lower() == "completed":
            continue
        key = (step.target_type, step.target, step.task)
        if key in done:
            continue
        done.add(key)
        new_id = _unique_id(step.id, taken, version)
        taken.add(new_id)
        pending.append(step.model_copy(update={"id": new_id, "status": None}))

    dropped = len(parsed.steps) - len(pending)
    if dropped:
        logger.debug(f"Revision v{version}: dropped {dropped} repeated or over-budget step(s)")
    if not pending:
        return None
    return Plan(analysis=parsed.analysis, goal=parsed.goal or prior.goal, steps=pending)
