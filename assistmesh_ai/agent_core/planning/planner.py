from __future__ import annotations

"""Structured planning for orchestration runs.

This module defines the default planner used by ``OrchestrationEngine``.

Responsibilities
----------------

- Turn the user task plus run context into raw planner text that is expected
  to contain a ``Plan`` JSON object.
- Turn a partially executed plan plus its results and errors into raw text
  for a revised plan.

The planner is intentionally constrained:

- It does not parse or validate its own output (``parse_plan`` does).
- It does not execute capabilities.
- It does not decide when to replan.
"""

import logging
from typing import Any, Optional, Sequence

from pydantic_ai import Agent

from ..runtime.context import PlanContext
from .prompts import REPLAN_USER_MESSAGE, build_planning_prompt, build_replanning_prompt
from .steps import Plan, PlanStep

logger = logging.getLogger(__name__)


class StructuredPlanner:
    """Planner that asks an LLM for plan JSON.

    The planner supports two modes:

    - ``model=None``: deterministic mode that returns an empty string. The
      engine then substitutes the single-step fallback plan, which is useful
      for tests or deployments that want to avoid LLM calls.
    - ``model!=None``: uses Pydantic AI with ``output_type=str`` and returns
      the model's text untouched.
    """

    def __init__(
        self,
        *,
        model: Any | None = None,
        temperature: float = 0.0,
        max_steps: int = 10,
        default_capability: str = "general-agent",
    ) -> None:
        """
        Initialize the planner.

        Args:
            model: A pydantic-ai model instance or model name. ``None`` selects deterministic mode.
            temperature: Sampling temperature passed to the model.
            max_steps: Step cap stated in the prompts.
            default_capability: Capability suggested for simple requests.
        """
        self._model = model
        self._temperature = temperature
        self._max_steps = max_steps
        self._default_capability = default_capability

    @property
    def model(self) -> Any | None:
        return self._model

    def _agent(self, system_prompt: str) -> Agent:
        return Agent(
            self._model,
            output_type=str,
            system_prompt=system_prompt,
            model_settings={"temperature": self._temperature},
        )

    async def plan(self, *, task: str, context: PlanContext, catalogue: str) -> str:
        """Generate raw plan text for ``task``.

        Returns
        -------
        str
            The model's text response, or ``""`` in deterministic mode.
        """
        if self._model is None:
            return ""
        prompt = build_planning_prompt(
            context,
            catalogue,
            default_capability=self._default_capability,
            max_steps=self._max_steps,
        )
        logger.debug(
            f"Creating execution plan: message_length={len(task)}, history={len(context.history)}, "
            f"facts={len(context.user_facts)}"
        )
        result = await self._agent(prompt).run(task)
        return _text(result.output)

    async def replan(
        self,
        *,
        plan: Plan,
        context: PlanContext,
        catalogue: str,
        executed: Sequence[PlanStep] = (),
    ) -> str:
        """Generate raw text for a revision of ``plan``."""
        if self._model is None:
            return ""
        prompt = build_replanning_prompt(plan, context, catalogue, executed=executed, max_steps=self._max_steps)
        logger.debug(f"Starting replan: errors={len(context.errors)}, executed={len(executed)}")
        result = await self._agent(prompt).run(REPLAN_USER_MESSAGE)
        return _text(result.output)


def _text(output: Optional[Any]) -> str:
    if output is None:
        return ""
    return output if isinstance(output, str) else str(output)
