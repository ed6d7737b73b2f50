from __future__ import annotations

"""Reply synthesis.

``ResponseComposer.compose`` makes one LLM call that turns everything the run
produced into a single conversational reply. It never raises for model
problems: if the call fails or returns blank text the reply is derived from
the step results instead (a generated link when one exists, otherwise
``GENERIC_FAILURE_REPLY``).
"""

import json
import logging
import re
from typing import Any, Iterable, Mapping, Optional

from pydantic_ai import Agent

from ..core.logging_config import log_event
from .errors import ComposerEmptyError
from .planning.prompts import build_facts_xml, fill
from .planning.steps import Plan
from .runtime.context import PlanContext
from .runtime.history import format_history_for_prompt
from .schemas.domain import FailureReason, OrchestrationEventType, StepResult

logger = logging.getLogger(__name__)

GENERIC_FAILURE_REPLY = "Sorry, I could not complete that request. Please try again."
LINK_REPLY = "Here's your link: {url}"

COMPOSE_USER_MESSAGE = "Compose the final response."

COMPOSITION_PROMPT = """You are composing a final response for a personal assistant.

The user's request has been processed. Create a friendly, conversational response
that summarizes what was done.

<user_request>
{request}
</user_request>

<goal>
{goal}
</goal>

<step_results>
{results}
</step_results>
{errorContext}
<conversation_history>
{history}
</conversation_history>

<rules>
1. Be conversational and friendly
2. Response MUST be under 1000 characters - summarize if needed
3. Don't mention internal steps or technical details
4. If there were partial failures, acknowledge what succeeded and what didn't
5. If there's a URL or link in the results, include it prominently
6. Use the user's name if available
</rules>

Write ONLY the final response message (no JSON, no explanation)."""

_LINK_KEYS = ("short_url", "shortUrl", "url")
_BARE_URL = re.compile(r"^https?://\S+$")


def _render_output(output: Any) -> str:
    if output is None or output == "" or output == {} or output == []:
        return "(no output)"
    if isinstance(output, str):
        return output
    return json.dumps(output, default=str, ensure_ascii=False)


def format_step_results(results: Mapping[str, StepResult], *, max_chars: int = 500) -> str:
    if not results:
        return "(No step results)"
    blocks = []
    for step_id, result in results.items():
        output = _render_output(result.output)
        if len(output) > max_chars:
            output = f"{output[:max_chars]}...(truncated)"
        block = f"  - [{step_id}] {'SUCCESS' if result.success else 'FAILED'}\n    Output: {output}"
        if result.error:
            block += f"\n    Error: {result.error}"
        blocks.append(block)
    return "\n".join(blocks)


def format_failure_block(reason: Optional[FailureReason], ctx: PlanContext) -> str:
    if reason == FailureReason.timeout:
        return (
            "\n<error>\nThe request timed out before completing all steps. "
            "Some actions may have succeeded.\n</error>\n"
        )
    if reason == FailureReason.step_failed:
        errors = ", ".join(e.error for e in ctx.errors) or "Unknown error"
        return f"\n<error>\nSome steps failed: {errors}\nExplain what succeeded and what didn't.\n</error>\n"
    return ""


def _link_in(value: Any, depth: int = 0) -> Optional[str]:
    if depth > 3 or value is None:
        return None
    if isinstance(value, str):
        text = value.strip()
        return text if _BARE_URL.match(text) else None
    if isinstance(value, Mapping):
        for key in _LINK_KEYS:
            candidate = value.get(key)
            if isinstance(candidate, str) and _BARE_URL.match(candidate.strip()):
                return candidate.strip()
        for nested in value.values():
            if isinstance(nested, (Mapping, list, tuple)):
                found = _link_in(nested, depth + 1)
                if found:
                    return found
        return None
    if isinstance(value, (list, tuple)):
        for item in value:
            found = _link_in(item, depth + 1)
            if found:
                return found
    return None


def find_generated_link(results: Iterable[StepResult]) -> Optional[str]:
    """Most recent link among step outputs, then their tool-call results."""
    for result in reversed(list(results)):
        found = _link_in(result.output)
        if found:
            return found
        for call in result.tool_calls:
            found = _link_in(call.result)
            if found:
                return found
    return None


def fallback_reply(results: Iterable[StepResult]) -> str:
    link = find_generated_link(results)
    return LINK_REPLY.format(url=link) if link else GENERIC_FAILURE_REPLY


class ResponseComposer:
    """Compose the user-facing reply for a run.

    ``model=None`` selects deterministic mode: no LLM call is made and the
    reply always comes from ``fallback_reply``.
    """

    def __init__(self, *, model: Any | None = None, max_tokens: int = 512, max_output_chars: int = 500) -> None:
        self._model = model
        self._max_tokens = max_tokens
        self._max_output_chars = max_output_chars

    def build_prompt(self, ctx: PlanContext, plan: Optional[Plan], failure_reason: Optional[FailureReason]) -> str:
        prompt = fill(
            COMPOSITION_PROMPT,
            request=ctx.user_message,
            goal=(plan.goal if plan and plan.goal else "Handle user request"),
            results=format_step_results(ctx.step_results, max_chars=self._max_output_chars),
            errorContext=format_failure_block(failure_reason, ctx),
            history=format_history_for_prompt(ctx.history),
        )
        facts = build_facts_xml(ctx.user_facts, max_facts=20, max_chars=1500)
        if facts:
            prompt += f"\n\n<user_memory>\n{facts}\n</user_memory>"
        if ctx.user_profile and ctx.user_profile.name:
            prompt += f"\n\nThe user's name is {ctx.user_profile.name}. Use it naturally if appropriate."
        return prompt

    async def _synthesize(self, prompt: str) -> str:
        if self._model is None:
            raise ComposerEmptyError()
        agent: Agent = Agent(
            self._model,
            output_type=str,
            system_prompt=prompt,
            model_settings={"max_tokens": self._max_tokens},
        )
        result = await agent.run(COMPOSE_USER_MESSAGE)
        text = result.output if isinstance(result.output, str) else ""
        if not text.strip():
            raise ComposerEmptyError()
        return text.strip()

    async def compose(
        self,
        ctx: PlanContext,
        plan: Optional[Plan] = None,
        failure_reason: Optional[FailureReason] = None,
    ) -> str:
        prompt = self.build_prompt(ctx, plan, failure_reason)
        try:
            reply = await self._synthesize(prompt)
        except ComposerEmptyError as e:
            reply = fallback_reply(ctx.step_results.values())
            log_event(ctx.logger, OrchestrationEventType.reply_fallback, reason=str(e), length=len(reply))
            return reply
        except Exception as e:
            logger.error(f"Failed to synthesize response: {e}")
            reply = fallback_reply(ctx.step_results.values())
            log_event(
                ctx.logger,
                OrchestrationEventType.reply_fallback,
                level=logging.WARNING,
                reason=str(e) or e.__class__.__name__,
                length=len(reply),
            )
            return reply
        log_event(ctx.logger, OrchestrationEventType.reply_composed, length=len(reply))
        return reply
