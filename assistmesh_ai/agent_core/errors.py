"""Error types for the orchestration core.

These exceptions never leave ``OrchestratorService.orchestrate``. Each one is
raised inside a single component and converted at that component's boundary:

- ``PlanFormatError``: planner output unusable; replaced by the fallback plan.
- ``UnknownCapabilityError``: step target not registered; becomes a failed step.
- ``StepTimeoutError``: invocation outlived its budget; becomes a failed step.
- ``CapabilityFaultError``: invocation raised; becomes a failed step.
- ``ComposerEmptyError``: synthesis produced no text; replaced by the fallback reply.
"""

from __future__ import annotations


class OrchestrationError(Exception):
    """Base error for all orchestration core exceptions."""


class PlanFormatError(OrchestrationError):
    """Raised when planner output cannot be validated as a plan."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Planner output is not a valid plan: {reason}")


class UnknownCapabilityError(OrchestrationError):
    """Raised when a step targets a capability that is not registered."""

    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"Unknown capability: {target}")


class StepTimeoutError(OrchestrationError):
    """Raised when an invocation does not settle within its time budget."""

    def __init__(self, seconds: float) -> None:
        self.seconds = seconds
        super().__init__(f"Step execution timeout after {seconds:g}s")


class CapabilityFaultError(OrchestrationError):
    """Wraps an unexpected exception raised from inside a capability."""

    def __init__(self, target: str, cause: BaseException) -> None:
        self.target = target
        self.cause = cause
        super().__init__(str(cause) or cause.__class__.__name__)


class ComposerEmptyError(OrchestrationError):
    """Raised when reply synthesis yields no usable text."""

    def __init__(self) -> None:
        super().__init__("Composer produced no usable text")
