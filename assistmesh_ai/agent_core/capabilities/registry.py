from __future__ import annotations

"""Capability registry.

The registry maps a ``(target_type, name)`` pair to a registered capability.

The step dispatcher uses ``find`` to resolve plan steps into concrete
implementations and the planner prompt lists everything registered through
``format_for_prompt``. A registry is built once by application wiring and
injected; it is read-only while runs are in flight.
"""

from typing import Dict, Iterator, List, Optional, Tuple

from ..schemas.domain import CapabilityDescriptor, TargetType
from .base import Capability


class CapabilityRegistry:
    """
    In-memory mapping of capability names to implementations.

    Agents and skills live in separate namespaces, so an agent and a skill may
    share a name.

    Notes:
        - ``register`` overwrites any existing mapping for the same type and name.
        - ``find`` returns ``None`` for a missing capability; ``get`` raises ``KeyError``.
    """

    def __init__(self) -> None:
        """Initialize an empty capability registry."""
        self._caps: Dict[Tuple[TargetType, str], Capability] = {}

    def register(self, cap: Capability) -> None:
        """
        Register a capability implementation.

        Args:
            cap: The capability to register. Its descriptor name and target type form the key.
        """
        self._caps[(TargetType(cap.target_type), cap.name)] = cap

    def find(self, name: str, target_type: TargetType | str = TargetType.agent) -> Optional[Capability]:
        """Return the capability registered under ``name`` or ``None``."""
        return self._caps.get((TargetType(target_type), name))

    def get(self, name: str, target_type: TargetType | str = TargetType.agent) -> Capability:
        """
        Retrieve a registered capability by name.

        Raises:
            KeyError: If no capability is registered with the given type and name.
        """
        return self._caps[(TargetType(target_type), name)]

    def has(self, name: str, target_type: TargetType | str = TargetType.agent) -> bool:
        return (TargetType(target_type), name) in self._caps

    def descriptors(self, target_type: Optional[TargetType | str] = None) -> List[CapabilityDescriptor]:
        """List descriptors in registration order, optionally for one target type."""
        wanted = TargetType(target_type) if target_type is not None else None
        return [cap.descriptor for (kind, _), cap in self._caps.items() if wanted is None or kind == wanted]

    def format_for_prompt(self) -> str:
        """Render the catalogue shown to the planner.

        Agents come first, then skills, one ``- name: description`` line each
        with an indented ``Examples:`` line when the descriptor has examples.
        """
        sections: List[str] = []
        for kind, title in ((TargetType.agent, "Agents"), (TargetType.skill, "Skills")):
            lines = []
            for d in self.descriptors(kind):
                line = f"  - {d.name}: {d.description}"
                if d.examples:
                    line += f"\n    Examples: {', '.join(d.examples)}"
                lines.append(line)
            if lines:
                sections.append(f"{title} (targetType \"{kind.value}\"):\n" + "\n".join(lines))
        return "\n\n".join(sections) if sections else "  (no capabilities registered)"

    def __iter__(self) -> Iterator[Capability]:
        return iter(list(self._caps.values()))

    def __len__(self) -> int:
        return len(self._caps)
