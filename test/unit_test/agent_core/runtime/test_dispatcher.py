from __future__ import annotations

import asyncio
import logging
from typing import Any

import pytest

from assistmesh_ai.agent_core.capabilities.base import ExecutionContext
from assistmesh_ai.agent_core.factory import build_registry, make_capability
from assistmesh_ai.agent_core.planning.steps import PlanStep
from assistmesh_ai.agent_core.runtime.dispatcher import (
    StepDispatcher,
    format_step_result,
    normalize_capability_output,
)
from assistmesh_ai.agent_core.schemas.domain import (
    MediaSummary,
    StepFailureKind,
    StepResult,
    TargetType,
    ToolCallRecord,
    UserProfile,
)


def _step(target: str, task: str = "do it", *, id: str = "step_1", target_type: str = "agent") -> PlanStep:
    return PlanStep(id=id, target=target, task=task, target_type=TargetType(target_type))


@pytest.mark.asyncio
async def test_unknown_capability_is_not_invoked(plan_context, recording_capability) -> None:
    cap, recorder = recording_capability("calendar-agent")
    dispatcher = StepDispatcher(build_registry([cap]))

    result = await dispatcher.execute_step(_step("ghost-agent"), plan_context())

    assert result.success is False
    assert result.output is None
    assert result.error == "Unknown capability: ghost-agent"
    assert result.failure_kind == StepFailureKind.unknown_capability
    assert recorder.calls == []


@pytest.mark.asyncio
async def test_target_type_selects_namespace(plan_context, recording_capability) -> None:
    cap, recorder = recording_capability("summarize", target_type=TargetType.skill)
    dispatcher = StepDispatcher(build_registry([cap]))

    as_agent = await dispatcher.execute_step(_step("summarize"), plan_context())
    as_skill = await dispatcher.execute_step(_step("summarize", target_type="skill"), plan_context())

    assert as_agent.failure_kind == StepFailureKind.unknown_capability
    assert as_skill.success is True
    assert len(recorder.calls) == 1


@pytest.mark.asyncio
async def test_invocation_receives_task_and_context(plan_context, recording_capability) -> None:
    cap, recorder = recording_capability("calendar-agent", "Found 3 events")
    profile = UserProfile(name="Ada")
    media = [MediaSummary(attachment_index=0, mime_type="image/png", summary="a cat")]
    ctx = plan_context(user_profile=profile, media_summaries=media, message_id="m-1", media_context="<media_context/>")
    ctx.record("step_0", StepResult(success=True, output="earlier"))

    result = await StepDispatcher(build_registry([cap])).execute_step(_step("calendar-agent", "List events"), ctx)

    assert result == StepResult(success=True, output="Found 3 events")
    task, exec_ctx = recorder.calls[0]
    assert task == "List events"
    assert exec_ctx.caller_id == ctx.caller_id
    assert exec_ctx.channel == "sms"
    assert exec_ctx.user_profile is profile
    assert exec_ctx.step_id == "step_1"
    assert exec_ctx.message_id == "m-1"
    assert exec_ctx.media_context == "<media_context/>"
    assert list(exec_ctx.media_summaries) == media
    assert dict(exec_ctx.step_results) == {"step_0": StepResult(success=True, output="earlier")}
    assert exec_ctx.logger is ctx.logger


@pytest.mark.asyncio
async def test_prior_results_are_read_only(plan_context) -> None:
    async def tamper(task: str, ctx: ExecutionContext) -> Any:
        ctx.step_results["step_0"] = StepResult(success=False)  # type: ignore[index]
        return "unreachable"

    ctx = plan_context()
    ctx.record("step_0", StepResult(success=True, output="kept"))
    cap = make_capability(tamper, name="tamper", description="t")

    result = await StepDispatcher(build_registry([cap])).execute_step(_step("tamper"), ctx)

    assert result.success is False
    assert result.failure_kind == StepFailureKind.capability_fault
    assert ctx.step_results["step_0"].output == "kept"


@pytest.mark.asyncio
async def test_capability_exception_becomes_failed_result(plan_context) -> None:
    async def broken(task: str, ctx: ExecutionContext) -> Any:
        raise ConnectionError("calendar API unreachable")

    cap = make_capability(broken, name="calendar-agent", description="c")

    result = await StepDispatcher(build_registry([cap])).execute_step(_step("calendar-agent"), plan_context())

    assert result.success is False
    assert result.output is None
    assert result.error == "calendar API unreachable"
    assert result.failure_kind == StepFailureKind.capability_fault


@pytest.mark.asyncio
async def test_sync_invoker_is_a_fault_not_a_crash(plan_context) -> None:
    def not_async(task: str, ctx: ExecutionContext) -> str:
        return "sync"

    cap = make_capability(not_async, name="legacy", description="l")  # type: ignore[arg-type]

    result = await StepDispatcher(build_registry([cap])).execute_step(_step("legacy"), plan_context())

    assert result.success is False
    assert result.failure_kind == StepFailureKind.capability_fault


@pytest.mark.asyncio
async def test_timeout_becomes_failed_result(plan_context, caplog: pytest.LogCaptureFixture) -> None:
    async def hang(task: str, ctx: ExecutionContext) -> Any:
        await asyncio.Event().wait()

    cap = make_capability(hang, name="slow-agent", description="s")
    dispatcher = StepDispatcher(build_registry([cap]), step_timeout_seconds=0.05)

    with caplog.at_level(logging.INFO):
        result = await asyncio.wait_for(dispatcher.execute_step(_step("slow-agent"), plan_context()), timeout=2.0)

    assert result.success is False
    assert result.error == "Step execution timeout after 0.05s"
    assert result.failure_kind == StepFailureKind.timeout
    failed = [r for r in caplog.records if getattr(r, "event", None) == "step.failed"]
    assert failed and failed[-1].event_fields["timeout"] is True


@pytest.mark.asyncio
async def test_step_events_are_logged(plan_context, recording_capability, caplog: pytest.LogCaptureFixture) -> None:
    cap, _ = recording_capability("calendar-agent")

    with caplog.at_level(logging.INFO):
        await StepDispatcher(build_registry([cap])).execute_step(_step("calendar-agent"), plan_context())

    events = [getattr(r, "event", None) for r in caplog.records]
    assert "step.started" in events
    assert "step.completed" in events


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("text", StepResult(success=True, output="text")),
        ({"events": [1, 2]}, StepResult(success=True, output={"events": [1, 2]})),
        (None, StepResult(success=True, output=None)),
        (
            {"success": True, "output": {"shortUrl": "https://x.y/1"}, "toolCalls": [{"name": "shorten", "input": {}}]},
            StepResult(success=True, output={"shortUrl": "https://x.y/1"}, tool_calls=[ToolCallRecord(name="shorten")]),
        ),
        (
            {"success": False, "error": "no calendar access"},
            StepResult(success=False, error="no calendar access", failure_kind=StepFailureKind.capability_error),
        ),
        (
            StepResult(success=False, error="quota"),
            StepResult(success=False, error="quota", failure_kind=StepFailureKind.capability_error),
        ),
    ],
)
def test_normalize_capability_output(raw: Any, expected: StepResult) -> None:
    assert normalize_capability_output(raw) == expected


@pytest.mark.asyncio
async def test_invalid_result_mapping_is_a_fault(plan_context) -> None:
    async def bad(task: str, ctx: ExecutionContext) -> Any:
        return {"success": "maybe?"}

    cap = make_capability(bad, name="bad", description="b")

    result = await StepDispatcher(build_registry([cap])).execute_step(_step("bad"), plan_context())

    assert result.success is False
    assert result.failure_kind == StepFailureKind.capability_fault


def test_format_step_result() -> None:
    ok = format_step_result(
        _step("calendar-agent"),
        StepResult(success=True, output="Found\n3 events", tool_calls=[ToolCallRecord(name="list_events")]),
    )
    failed = format_step_result(
        _step("ghost-agent", id="step_2"),
        StepResult(success=False, error="Unknown capability: ghost-agent", failure_kind=StepFailureKind.unknown_capability),
    )

    assert ok == "[step_1] agent:calendar-agent -> ok: Found 3 events [tools: list_events]"
    assert failed == "[step_2] agent:ghost-agent -> failed (unknown_capability): Unknown capability: ghost-agent"


@pytest.mark.asyncio
async def test_tool_allow_list_reaches_capability(plan_context) -> None:
    seen: list[ExecutionContext] = []

    async def email(task: str, ctx: ExecutionContext) -> Any:
        seen.append(ctx)
        return "sent"

    cap = make_capability(email, name="email-agent", description="e", tool_allow_list=["send_email", "list_threads"])

    await StepDispatcher(build_registry([cap])).execute_step(_step("email-agent"), plan_context())

    assert tuple(seen[0].tool_allow_list) == ("send_email", "list_threads")
