from __future__ import annotations

"""Convenience factories for wiring the orchestration core.

This module contains small helpers to build a ``CapabilityRegistry`` and to
instantiate an ``OrchestratorService`` from ``Settings``.

The intent is to keep application wiring and tests concise, while still
allowing deployments to provide their own planner, composer and dependency
bundles.
"""

from typing import Any, Iterable, Optional, Sequence

from ..core.config import Settings, settings as default_settings
from .capabilities.base import Capability, CapabilityInvoker
from .capabilities.registry import CapabilityRegistry
from .composer import ResponseComposer
from .planning.planner import StructuredPlanner
from .runtime.models import OrchestratorDeps
from .schemas.domain import CapabilityDescriptor, TargetType
from .service import OrchestratorService


def make_capability(
    invoke: CapabilityInvoker,
    *,
    name: str,
    description: str,
    target_type: TargetType | str = TargetType.agent,
    examples: Sequence[str] = (),
    tool_allow_list: Sequence[str] = (),
) -> Capability:
    """Wrap an async callable ``invoke(task, ctx)`` as a ``Capability``."""
    return Capability(
        descriptor=CapabilityDescriptor(
            name=name,
            description=description,
            examples=tuple(examples),
            tool_allow_list=tuple(tool_allow_list),
        ),
        invoke=invoke,
        target_type=TargetType(target_type),
    )


def build_registry(capabilities: Iterable[Capability] = ()) -> CapabilityRegistry:
    """Build a ``CapabilityRegistry`` holding ``capabilities`` in order."""
    reg = CapabilityRegistry()
    for cap in capabilities:
        reg.register(cap)
    return reg


def build_deps(
    registry: CapabilityRegistry,
    *,
    settings: Optional[Settings] = None,
    planner_model: Any | None = None,
    composer_model: Any | None = None,
) -> OrchestratorDeps:
    """Construct ``OrchestratorDeps`` from settings.

    Explicit models take precedence over the model names in ``settings.llm``.
    """
    cfg = settings or default_settings
    limits = cfg.orchestrator
    planner = StructuredPlanner(
        model=planner_model if planner_model is not None else cfg.llm.planner_model,
        temperature=cfg.llm.planner_temperature,
        max_steps=limits.max_total_steps,
        default_capability=limits.default_capability,
    )
    composer = ResponseComposer(
        model=composer_model if composer_model is not None else cfg.llm.composer_model,
        max_tokens=cfg.llm.composer_max_tokens,
        max_output_chars=limits.composer_max_output_chars,
    )
    return OrchestratorDeps(
        registry=registry,
        planner=planner,
        composer=composer,
        limits=limits,
        window=cfg.conversation_window,
    )


def build_orchestrator(
    registry: CapabilityRegistry,
    *,
    settings: Optional[Settings] = None,
    planner_model: Any | None = None,
    composer_model: Any | None = None,
) -> OrchestratorService:
    """Construct a ready-to-use ``OrchestratorService``."""
    deps = build_deps(registry, settings=settings, planner_model=planner_model, composer_model=composer_model)
    return OrchestratorService(deps=deps)
