"""Pydantic base schema utilities for agent core models."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class BaseSchema(BaseModel):
    """
    Base Pydantic model for records created by the orchestration core.

    Configures common Pydantic behaviors:
    - ``populate_by_name=True``: Allow initialization by alias or field name.
    - ``extra="forbid"``: Prevent unknown fields from slipping into the model, ensuring strict validation.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="forbid",
    )


class UpstreamSchema(BaseModel):
    """
    Base model for payloads produced outside the core (planner text, capability results).

    Unknown keys are dropped instead of rejected: a planner adding a ``notes``
    field or a capability attaching diagnostics must not turn an otherwise
    valid payload into a failure.
    """
    model_config = ConfigDict(
        populate_by_name=True,
        extra="ignore",
    )
