"""AssistMesh-AI.

This package contains the orchestration core used by AssistMesh-AI to turn a
single user message, sent over a messaging channel, into one reply produced by
a team of capabilities (agents and skills).

High-level architecture
-----------------------

- ``assistmesh_ai.agent_core``:

  - Plan schema, planner and fail-closed plan parsing.
  - Capability registry and the timeout-bounded step dispatcher.
  - A LangGraph-based control loop with bounded replanning.
  - Reply composition with deterministic fallbacks.

- ``assistmesh_ai.core``:

  - Settings (``pydantic-settings``) and logging configuration.

Typical workflow
----------------

Most integrations should use ``assistmesh_ai.agent_core.OrchestratorService``:

1. Register capabilities in a ``CapabilityRegistry``.
2. Build the service with ``build_orchestrator(registry)``.
3. Call ``orchestrate(task, caller_id=..., channel=..., ...)`` per message.

Channel adapters, persistence and the capabilities themselves live outside
this package.
"""
