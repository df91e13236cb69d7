"""Planning context derived from the latest event and the live environment."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from config import EnvironmentDefaults
from contracts.event import EventEnvelope
from models import ActionRecord, ExecutionRun
from time_utils import utc_now

DEFAULT_WORKFLOW = "capture"


@dataclass(frozen=True)
class PlanningEnvironment:
    """What the planner may rely on: configured systems and their defaults."""

    capabilities: tuple[str, ...] = ()
    defaults: EnvironmentDefaults = field(default_factory=EnvironmentDefaults)


class HistoricalSignals(BaseModel):
    """Prior runs recorded for the same trace."""

    model_config = ConfigDict(frozen=True)

    related_run_ids: list[str] = Field(default_factory=list)
    previous_action_types: list[str] = Field(default_factory=list)


class PlanningContext(BaseModel):
    """Derived, non-authoritative context handed to the planner."""

    model_config = ConfigDict(frozen=True)

    trace_id: str = Field(min_length=1)
    workflow: str = Field(min_length=1)
    source: str = Field(min_length=1)
    event_type: str = Field(min_length=1)
    capabilities: list[str] = Field(default_factory=list)
    environment_defaults: EnvironmentDefaults = Field(default_factory=EnvironmentDefaults)
    historical_signals: HistoricalSignals | None = None
    created_at: datetime


def load_historical_signals(session: Session, trace_id: str) -> HistoricalSignals | None:
    """Collect prior run ids and action types for a trace, or None if it has no runs."""
    runs = (
        session.query(ExecutionRun.id)
        .filter(ExecutionRun.trace_id == trace_id)
        .order_by(ExecutionRun.started_at)
        .all()
    )
    if not runs:
        return None
    run_ids = [run_id for (run_id,) in runs]
    action_types = (
        session.query(ActionRecord.action_type)
        .filter(ActionRecord.run_id.in_(run_ids))
        .order_by(ActionRecord.action_type)
        .distinct()
        .all()
    )
    return HistoricalSignals(
        related_run_ids=[str(run_id) for run_id in run_ids],
        previous_action_types=[action_type for (action_type,) in action_types],
    )


def derive_planning_context(
    event: EventEnvelope,
    environment: PlanningEnvironment,
    history: HistoricalSignals | None = None,
    now: datetime | None = None,
) -> PlanningContext:
    """Build the planning context for an event."""
    return PlanningContext(
        trace_id=event.trace_id,
        workflow=event.context.workflow or DEFAULT_WORKFLOW,
        source=event.source,
        event_type=event.type,
        capabilities=list(environment.capabilities),
        environment_defaults=environment.defaults,
        historical_signals=history,
        created_at=now or utc_now(),
    )
