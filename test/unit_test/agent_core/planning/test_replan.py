from __future__ import annotations

import json

import pytest

from assistmesh_ai.agent_core.planning.replan import can_replan, revise_plan, should_replan
from assistmesh_ai.agent_core.planning.steps import Plan, PlanStep, parse_revision
from assistmesh_ai.agent_core.schemas.domain import StepResult
from assistmesh_ai.core.config import OrchestratorLimits


@pytest.mark.parametrize(
    "result,index,total,expected",
    [
        (StepResult(success=False), 0, 2, True),
        (StepResult(success=False), 1, 2, False),
        (StepResult(success=True, output={"needsReplan": True}), 1, 2, True),
        (StepResult(success=False, output={"needsReplan": True}), 0, 1, True),
        (StepResult(success=True, output={"needs_replan": True}), 0, 3, True),
        (StepResult(success=True, output={"isEmpty": True}), 0, 2, True),
        (StepResult(success=True, output={"is_empty": True}), 0, 2, True),
        (StepResult(success=True, output={"isEmpty": True}), 1, 2, False),
        (StepResult(success=True, output={"needsReplan": "yes"}), 0, 2, False),
        (StepResult(success=True, output={"needsReplan": False}), 0, 2, False),
        (StepResult(success=True, output="needsReplan"), 0, 2, False),
        (StepResult(success=True), 0, 2, False),
        (StepResult(success=True), 1, 2, False),
    ],
)
def test_should_replan(result: StepResult, index: int, total: int, expected: bool) -> None:
    assert should_replan(result, index, total) is expected


@pytest.mark.parametrize(
    "replans,executed,elapsed,expected",
    [
        (0, 1, 0.0, True),
        (2, 9, 119.0, True),
        (3, 1, 0.0, False),
        (0, 10, 0.0, False),
        (0, 1, 120.0, False),
    ],
)
def test_can_replan(replans: int, executed: int, elapsed: float, expected: bool) -> None:
    assert can_replan(replans, executed, elapsed, OrchestratorLimits()) is expected


def _step(id: str, target: str, task: str) -> PlanStep:
    return PlanStep(id=id, target=target, task=task)


def test_revise_plan_drops_repeated_work_and_renames_ids() -> None:
    prior = Plan(goal="Plan the trip", steps=[_step("step_1", "calendar-agent", "find free day"), _step("step_2", "ghost", "x")])
    executed = [prior.steps[0], prior.steps[1]]
    parsed = Plan(
        goal="",
        steps=[
            PlanStep(id="step_1", target="calendar-agent", task="find free day", status="completed"),
            _step("step_2", "general-agent", "explain the failure"),
            _step("step_3", "calendar-agent", "find free day"),
        ],
    )

    revised = revise_plan(prior, parsed, executed, version=2, max_total_steps=10)

    assert revised is not None
    assert revised.goal == "Plan the trip"
    assert revised.step_ids == ["step_2_v2"]
    assert revised.steps[0].target == "general-agent"


def test_revise_plan_caps_to_remaining_budget() -> None:
    prior = Plan(goal="g", steps=[_step("a", "x", "1")])
    parsed = Plan(goal="g2", steps=[_step(f"n{i}", "y", str(i)) for i in range(5)])

    revised = revise_plan(prior, parsed, [prior.steps[0]], version=2, max_total_steps=3)

    assert revised is not None
    assert revised.step_ids == ["n0", "n1"]
    assert revised.goal == "g2"


def test_revise_plan_returns_none_when_nothing_left() -> None:
    prior = Plan(goal="g", steps=[_step("a", "x", "1")])
    parsed = Plan(goal="g", steps=[_step("a", "x", "1")])

    assert revise_plan(prior, parsed, [prior.steps[0]], version=2, max_total_steps=10) is None
    assert revise_plan(prior, Plan(goal="g", steps=[_step("b", "y", "2")]), [prior.steps[0]], version=2, max_total_steps=1) is None


def test_revise_plan_renames_repeated_ids_from_parsed_revision() -> None:
    prior = Plan(goal="g", steps=[PlanStep(id="step_1", target="calendar-agent", task="List")])
    parsed = parse_revision(
        json.dumps(
            {
                "steps": [
                    {"id": "step_1", "target": "calendar-agent", "task": "List", "status": "completed"},
                    {"id": "step_1", "target": "general-agent", "task": "Apologize"},
                    {"id": "step_1", "target": "reminder-agent", "task": "Offer a reminder"},
                ]
            }
        )
    )
    assert parsed is not None

    revised = revise_plan(prior, parsed, prior.steps, version=2, max_total_steps=10)

    assert revised is not None
    assert revised.step_ids == ["step_1_v2", "step_1_v2_2"]
    assert [s.target for s in revised.steps] == ["general-agent", "reminder-agent"]
