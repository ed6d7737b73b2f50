"""Capability registry and capability contracts.

 A *capability* is the execution unit behind a plan step.

 - The planner emits steps naming a target capability and its type
   (``agent`` or ``skill``).
 - The step dispatcher resolves the target through ``CapabilityRegistry``.
 - The capability is invoked with the step task and an ``ExecutionContext``
   carrying the caller identity and a read-only view of earlier results.

 This package exports:

 - ``Capability``: descriptor + target type + async ``invoke`` bundle.
 - ``CapabilityRegistry``: ``(target_type, name)`` → capability mapping.
 - ``ExecutionContext``: per-invocation input.
 """

from .base import Capability, CapabilityInvoker, ExecutionContext
from .registry import CapabilityRegistry

__all__ = [
    "Capability",
    "CapabilityInvoker",
    "CapabilityRegistry",
    "ExecutionContext",
]
