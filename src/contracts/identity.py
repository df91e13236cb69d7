"""Identifier types used across contract shapes."""

from __future__ import annotations

from typing import Annotated

from pydantic import StringConstraints

TraceId = Annotated[str, StringConstraints(min_length=8)]
PlanId = Annotated[str, StringConstraints(min_length=8)]
RunId = Annotated[str, StringConstraints(min_length=8)]
EvalId = Annotated[str, StringConstraints(min_length=8)]
NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


def plan_id_for(trace_id: str) -> str:
    """Return the plan identifier derived from a trace id."""
    return f"{trace_id}-plan"
