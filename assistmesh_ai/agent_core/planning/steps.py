from __future__ import annotations

"""Plan schema and parsing of raw planner output.

The planner is a probabilistic upstream: its text is validated against the
``Plan`` schema before any field is trusted. Parsing fails closed. A response
that does not validate as a whole is rejected, never partially repaired, and
the orchestrator substitutes ``build_fallback_plan`` instead.
"""

import logging
import re
from typing import Any, List, Optional

from pydantic import AliasChoices, Field, ValidationError, ValidationInfo, field_validator, model_validator

from ..errors import PlanFormatError
from ..schemas.base import UpstreamSchema
from ..schemas.domain import TargetType

logger = logging.getLogger(__name__)

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```")

# Validation context flag: a revision may echo executed step ids, which
# ``revise_plan`` renames afterwards.
ALLOW_DUPLICATE_IDS = "allow_duplicate_ids"


class PlanStep(UpstreamSchema):
    id: str = ""
    target_type: TargetType = Field(
        default=TargetType.agent,
        validation_alias=AliasChoices("target_type", "targetType"),
    )
    target: str = Field(validation_alias=AliasChoices("target", "agent"), min_length=1)
    task: str = Field(min_length=1)
    status: Optional[str] = Field(default=None, exclude=True)

    @field_validator("id", "target", "task", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        if value is None:
            return ""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value.strip() if isinstance(value, str) else value


class Plan(UpstreamSchema):
    analysis: str = ""
    goal: str = ""
    steps: List[PlanStep] = Field(min_length=1)

    @field_validator("analysis", "goal", mode="before")
    @classmethod
    def _text_or_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @model_validator(mode="after")
    def _assign_and_check_ids(self, info: ValidationInfo) -> "Plan":
        allow_duplicates = bool(info.context and info.context.get(ALLOW_DUPLICATE_IDS))
        seen: set[str] = set()
        for i, step in enumerate(self.steps):
            if not step.id:
                step.id = f"step_{i + 1}"
            if step.id in seen and not allow_duplicates:
                raise ValueError(f"duplicate step id: {step.id}")
            seen.add(step.id)
        return self

    @property
    def step_ids(self) -> List[str]:
        return [s.id for s in self.steps]

    def capped(self, max_steps: int) -> "Plan":
        """Return a copy holding at most ``max_steps`` steps (never fewer than one)."""
        if len(self.steps) <= max_steps:
            return self
        return self.model_copy(update={"steps": list(self.steps[: max(1, max_steps)])})


def _json_candidates(text: str) -> List[str]:
    out: List[str] = []
    match = _FENCED_JSON.search(text)
    if match:
        out.append(match.group(1).strip())
    out.append(text.strip())
    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        out.append(text[start : end + 1])
    unique: List[str] = []
    for candidate in out:
        if candidate and candidate not in unique:
            unique.append(candidate)
    return unique


def parse_plan_or_raise(raw: Optional[str], *, allow_duplicate_ids: bool = False) -> Plan:
    """Validate raw planner text as a ``Plan``.

    ``allow_duplicate_ids`` is set for plan revisions, whose ids are made
    unique by ``revise_plan``.

    Raises
    ------
    PlanFormatError
        When no JSON object in the text validates against the schema.
    """
    text = raw or ""
    if not text.strip():
        raise PlanFormatError("empty planner response")
    last_error = "no JSON object found"
    for candidate in _json_candidates(text):
        try:
            return Plan.model_validate_json(candidate, context={ALLOW_DUPLICATE_IDS: allow_duplicate_ids})
        except ValidationError as e:
            last_error = e.errors()[0].get("msg", str(e)) if e.errors() else str(e)
    raise PlanFormatError(last_error)


def parse_plan(raw: Optional[str], *, allow_duplicate_ids: bool = False) -> Optional[Plan]:
    """Parse raw planner text, returning ``None`` instead of raising.

    Parsing is deterministic: the same text always yields a structurally equal
    ``Plan`` (or ``None``).
    """
    try:
        return parse_plan_or_raise(raw, allow_duplicate_ids=allow_duplicate_ids)
    except PlanFormatError as e:
        logger.warning(f"Failed to parse plan response: {e.reason}; text={(raw or '')[:500]!r}")
        return None


def parse_revision(raw: Optional[str]) -> Optional[Plan]:
    """Parse a replanning response; step ids may repeat until ``revise_plan``."""
    return parse_plan(raw, allow_duplicate_ids=True)


def build_fallback_plan(task: str, *, target: str, target_type: TargetType | str = TargetType.agent) -> Plan:
    """Single-step plan delegating the untouched user task to ``target``."""
    return Plan(
        analysis=f"Could not parse plan, defaulting to {target}",
        goal="Handle user request",
        steps=[PlanStep(id="step_1", target_type=TargetType(target_type), target=target, task=task)],
    )
