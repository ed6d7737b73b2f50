from __future__ import annotations

"""Capability bundle and execution context.

A capability is the concrete execution unit behind a plan step: an *agent*
(an LLM-backed worker owning a set of tools) or a *skill* (a narrower,
usually deterministic routine). The orchestration core never implements
capabilities itself; application wiring registers them in a
``CapabilityRegistry`` and the ``StepDispatcher`` resolves plan steps through
it.

Capabilities should:

- report business failures by returning ``StepResult(success=False, ...)``,
- treat ``ExecutionContext.step_results`` as read-only input,
- not enforce their own wall-clock limits (the dispatcher races every
  invocation against the step timeout).
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping, Optional, Sequence

from ...core.logging_config import RunLogger
from ..schemas.domain import (
    CapabilityDescriptor,
    MediaSummary,
    StepResult,
    TargetType,
    UserProfile,
)


@dataclass(frozen=True)
class ExecutionContext:
    """Per-invocation view of the run handed to a capability.

    Attributes
    ----------
    caller_id / channel:
        Identity of the requesting user and the messaging channel.
    step_results:
        Read-only snapshot of the results produced by earlier steps, keyed by
        step id in execution order.
    media_summaries / media_context:
        Current-turn attachment summaries and the historical media text block.
    logger:
        Run-scoped logger carrying caller/channel/run identifiers.
    tool_allow_list:
        Tools the invoked capability may use, from its descriptor (empty means
        no restriction).
    """

    caller_id: str
    channel: str
    user_profile: Optional[UserProfile]
    step_results: Mapping[str, StepResult]
    media_summaries: Sequence[MediaSummary] = ()
    media_context: Optional[str] = None
    message_id: Optional[str] = None
    logger: Optional[RunLogger] = None
    step_id: Optional[str] = None
    tool_allow_list: Sequence[str] = ()


CapabilityInvoker = Callable[[str, ExecutionContext], Awaitable[Any]]


@dataclass(frozen=True)
class Capability:
    """A registered agent or skill.

    ``invoke(task, ctx)`` may return a ``StepResult``, a mapping that validates
    as one, or any other value (treated as a successful output).
    """

    descriptor: CapabilityDescriptor
    invoke: CapabilityInvoker = field(repr=False)
    target_type: TargetType = TargetType.agent

    @property
    def name(self) -> str:
        return self.descriptor.name
