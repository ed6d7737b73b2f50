from __future__ import annotations

"""Prompt templates for planning and replanning.

Templates are filled by ``fill`` on ``{placeholder}`` markers so the
JSON examples they contain need no brace escaping.
"""

import json
import re
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional, Sequence
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from ..runtime.context import PlanContext
from ..runtime.history import format_history_for_prompt
from ..runtime.media import format_current_media_context
from ..schemas.domain import StepError, StepResult, UserProfile
from .steps import Plan, PlanStep

PLANNING_PROMPT = """You are a planning module for a personal assistant.

Analyze the user's request and create a plan with sequential steps.

<current_time>
{timeContext}
</current_time>

<available_capabilities>
{capabilities}
</available_capabilities>

<user_context>
{userContext}
</user_context>

<conversation_history>
{history}
</conversation_history>
{media}
<rules>
1. Use the MINIMUM number of steps needed - prefer fewer steps
2. For simple requests (greetings, questions, single actions), use 1 step with {defaultCapability}
3. Only use multiple steps when truly necessary (e.g., "check calendar AND create reminder")
4. Each step should be a discrete, completable task
5. Steps execute sequentially - later steps can reference earlier results by step id
6. Maximum {maxSteps} steps per plan
7. If dates/times are relative (tomorrow, friday, next week), resolve them to specific dates in the task description
8. Today is {today}
</rules>

<output_format>
Respond with ONLY a JSON object (no markdown, no explanation):
{
  "analysis": "Brief analysis of what the user wants",
  "goal": "One sentence describing the goal",
  "steps": [
    {
      "id": "step_1",
      "targetType": "agent",
      "target": "capability-name",
      "task": "Specific task with resolved dates (e.g., 'List events on 2026-01-30' not 'List events on friday')"
    }
  ]
}
</output_format>"""

REPLANNING_PROMPT = """You are revising an execution plan after a step failure or unexpected result.

<available_capabilities>
{capabilities}
</available_capabilities>

<original_request>
{request}
</original_request>

<original_goal>
{goal}
</original_goal>

<prior_steps>
{steps}
</prior_steps>

<errors>
{errors}
</errors>

<rules>
1. Keep completed steps - don't redo work that succeeded
2. Adjust or remove failed/pending steps as needed
3. Add new steps if necessary to achieve the goal
4. If the goal cannot be achieved, create a plan that handles the failure gracefully
5. Maximum {maxSteps} total steps
</rules>

<output_format>
Respond with ONLY a JSON object (no markdown):
{
  "analysis": "Brief analysis of what went wrong and how to fix it",
  "goal": "One sentence describing the goal",
  "steps": [
    {
      "id": "step_1",
      "targetType": "agent",
      "target": "capability-name",
      "task": "Task description",
      "status": "completed"
    }
  ]
}
Mark steps that already ran as "completed" and new steps as "pending".
</output_format>"""

REPLAN_USER_MESSAGE = "Create a revised plan to handle the failures."


_PLACEHOLDER = re.compile(r"\{(\w+)\}")


def fill(template: str, **values: Any) -> str:
    """Substitute ``{name}`` markers in one pass; unknown markers are kept."""
    return _PLACEHOLDER.sub(lambda m: str(values[m.group(1)]) if m.group(1) in values else m.group(0), template)


def _zone(name: Optional[str]) -> Optional[ZoneInfo]:
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def build_time_context(tz_name: Optional[str], *, now: Optional[datetime] = None) -> str:
    current = now or datetime.now(timezone.utc)
    zone = _zone(tz_name)
    if zone is None:
        return f"Current time: {current.astimezone(timezone.utc).isoformat()} (UTC - user timezone unknown)"
    local = current.astimezone(zone)
    hour = local.strftime("%I").lstrip("0") or "12"
    stamp = local.strftime(f"%A, %B {local.day}, %Y at {hour}:%M %p %Z")
    return f"Current time: {stamp} ({tz_name})"


def local_today(tz_name: Optional[str], *, now: Optional[datetime] = None) -> str:
    current = now or datetime.now(timezone.utc)
    zone = _zone(tz_name) or timezone.utc
    return current.astimezone(zone).date().isoformat()


def build_facts_xml(facts: Iterable[str], *, max_facts: Optional[int] = None, max_chars: Optional[int] = None) -> str:
    """Render facts as ``<facts>`` (``""`` when there are none)."""
    normalized = [" ".join(f.split()) for f in facts]
    selected: list[str] = []
    total = 0
    for fact in (f for f in normalized if f):
        if max_facts is not None and len(selected) >= max_facts:
            break
        addition = len(fact) + (2 if selected else 0)
        if max_chars is not None and total + addition + 1 > max_chars:
            break
        selected.append(fact)
        total += addition
    if not selected:
        return ""
    return f"  <facts>\n    {'. '.join(selected)}.\n  </facts>"


def build_user_context(profile: Optional[UserProfile], *, now: Optional[datetime] = None) -> str:
    name = profile.name if profile else None
    tz_name = profile.timezone if profile else None
    lines = [
        f"- Name: {name or 'not set'}",
        f"- Timezone: {tz_name or 'not set'}",
        f"- {build_time_context(tz_name, now=now)}",
    ]
    profile_xml = ["<user_memory>", "  <profile>"]
    if name:
        profile_xml.append(f"    <name>{name}</name>")
    if tz_name:
        profile_xml.append(f"    <timezone>{tz_name}</timezone>")
    profile_xml.append("  </profile>")
    facts = build_facts_xml(profile.facts if profile else [])
    if facts:
        profile_xml.append(facts)
    profile_xml.append("</user_memory>")
    return "\n".join(lines) + "\n\n" + "\n".join(profile_xml)


def build_planning_prompt(
    ctx: PlanContext,
    catalogue: str,
    *,
    default_capability: str = "general-agent",
    max_steps: int = 10,
    now: Optional[datetime] = None,
) -> str:
    media = format_current_media_context(ctx.media_summaries)
    if ctx.media_context:
        media = f"{media}\n{ctx.media_context}" if media else ctx.media_context
    return fill(
        PLANNING_PROMPT,
        timeContext=build_time_context(ctx.timezone if ctx.user_profile else None, now=now),
        capabilities=catalogue,
        userContext=build_user_context(ctx.user_profile, now=now),
        history=format_history_for_prompt(ctx.history),
        media=f"\n{media}\n" if media else "",
        defaultCapability=default_capability,
        maxSteps=max_steps,
        today=local_today(ctx.timezone, now=now),
    )


def _render_output(output: Any, limit: int) -> str:
    if isinstance(output, str):
        text = output
    else:
        text = json.dumps(output, default=str, ensure_ascii=False)
    return text[:limit]


def format_prior_steps(steps: Sequence[PlanStep], results: Mapping[str, StepResult], *, output_chars: int = 200) -> str:
    if not steps:
        return "(No prior steps)"
    blocks = []
    for step in steps:
        result = results.get(step.id)
        if result is None:
            status = "pending"
        else:
            status = "completed" if result.success else "failed"
        block = f"  - [{step.id}] {step.target_type.value}:{step.target} ({status})\n    Task: {step.task}"
        if result is not None:
            block += f"\n    Result: {'SUCCESS' if result.success else 'FAILED'}"
            if result.error:
                block += f" - {result.error}"
            if result.output:
                block += f"\n    Output: {_render_output(result.output, output_chars)}"
        blocks.append(block)
    return "\n".join(blocks)


def format_errors(errors: Sequence[StepError]) -> str:
    if not errors:
        return "(No errors recorded)"
    return "\n".join(f"  - [{e.step_id}] {e.error}" for e in errors)


def build_replanning_prompt(
    plan: Plan,
    ctx: PlanContext,
    catalogue: str,
    *,
    executed: Sequence[PlanStep] = (),
    max_steps: int = 10,
) -> str:
    # executed steps first, then whatever of the current plan has not run
    executed_ids = {s.id for s in executed}
    prior = list(executed) + [s for s in plan.steps if s.id not in executed_ids]
    return fill(
        REPLANNING_PROMPT,
        capabilities=catalogue,
        request=ctx.user_message,
        goal=plan.goal or "(not stated)",
        steps=format_prior_steps(prior, ctx.step_results),
        errors=format_errors(ctx.errors),
        maxSteps=max_steps,
    )
