"""Execution runtime for orchestration runs.

 The runtime takes a validated plan and executes it with strong guarantees:

 - steps run strictly in order, one at a time;
 - every capability invocation is raced against the step timeout
   (``settle_within``) and converted into a ``StepResult`` by
   ``StepDispatcher``;
 - results accumulate in the run's ``PlanContext`` and are exposed to
   capabilities only as a read-only snapshot.

 The LangGraph control loop lives in ``runtime.engine.OrchestrationEngine``
 and its dependency bundle in ``runtime.models.OrchestratorDeps``.
 """

from .context import PlanContext, build_execution_context
from .dispatcher import StepDispatcher, format_step_result, normalize_capability_output
from .history import format_history_for_prompt, get_relevant_history, get_window_stats
from .media import format_current_media_context
from .timeout import settle_within

__all__ = [
    "PlanContext",
    "StepDispatcher",
    "build_execution_context",
    "format_current_media_context",
    "format_history_for_prompt",
    "format_step_result",
    "get_relevant_history",
    "get_window_stats",
    "normalize_capability_output",
    "settle_within",
]
