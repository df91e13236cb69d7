"""Event ingestion and per-trace planning context storage."""

from __future__ import annotations

import logging
from contextlib import closing
from typing import Any, Callable

from sqlalchemy.orm import Session

from contracts.event import EventEnvelope
from contracts.guards import assert_schema
from events.planning import (
    PlanningContext,
    PlanningEnvironment,
    derive_planning_context,
    load_historical_signals,
)
from models import Event, PlanningContextSnapshot

logger = logging.getLogger(__name__)


def _to_envelope(row: Event) -> EventEnvelope:
    return EventEnvelope(
        event_id=row.event_id,
        trace_id=row.trace_id,
        source=row.source,
        type=row.type,
        occurred_at=row.occurred_at,
        received_at=row.received_at,
        payload=row.payload,
        context=row.context,
    )


class EventStore:
    """Records inbound events and keeps one planning context row per trace."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        environment: Callable[[], PlanningEnvironment] = PlanningEnvironment,
    ) -> None:
        """Initialize the store.

        Args:
            session_factory: SQLAlchemy session factory.
            environment: Returns the current capabilities and defaults; called
                on every context derivation so configuration changes are seen.
        """
        self._session_factory = session_factory
        self._environment = environment

    def ingest(self, raw: Any) -> EventEnvelope:
        """Validate an event, upsert it by event id, and refresh the planning context.

        Raises:
            SchemaValidationError: If the event is malformed.
        """
        envelope = raw if isinstance(raw, EventEnvelope) else assert_schema(
            EventEnvelope, raw, subject="event"
        )
        with closing(self._session_factory()) as session:
            try:
                session.merge(
                    Event(
                        event_id=envelope.event_id,
                        trace_id=envelope.trace_id,
                        source=envelope.source,
                        type=envelope.type,
                        occurred_at=envelope.occurred_at,
                        received_at=envelope.received_at,
                        payload=envelope.model_dump(mode="json")["payload"],
                        context=envelope.context.model_dump(mode="json", exclude_none=True),
                    )
                )
                session.commit()
            except Exception:
                session.rollback()
                raise
        logger.info("Event ingested: %s trace=%s", envelope.event_id, envelope.trace_id)
        self.rebuild_planning_context(envelope.trace_id)
        return envelope

    def latest_event(self, trace_id: str) -> EventEnvelope | None:
        """Return the most recently occurred event for a trace."""
        with closing(self._session_factory()) as session:
            row = (
                session.query(Event)
                .filter(Event.trace_id == trace_id)
                .order_by(Event.occurred_at.desc(), Event.received_at.desc())
                .first()
            )
            return _to_envelope(row) if row is not None else None

    def list_events(self, trace_id: str) -> list[EventEnvelope]:
        """Return every event for a trace, oldest first."""
        with closing(self._session_factory()) as session:
            rows = (
                session.query(Event)
                .filter(Event.trace_id == trace_id)
                .order_by(Event.occurred_at, Event.received_at)
                .all()
            )
            return [_to_envelope(row) for row in rows]

    def planning_context(self, trace_id: str) -> PlanningContext | None:
        """Return the stored planning context, rebuilding it when absent."""
        with closing(self._session_factory()) as session:
            row = session.get(PlanningContextSnapshot, trace_id)
            if row is not None:
                return PlanningContext.model_validate(row.snapshot)
        return self.rebuild_planning_context(trace_id)

    def rebuild_planning_context(self, trace_id: str) -> PlanningContext | None:
        """Recompute the planning context from the latest event and current environment."""
        event = self.latest_event(trace_id)
        if event is None:
            return None
        return self._upsert_context(event)

    def _upsert_context(self, event: EventEnvelope) -> PlanningContext:
        with closing(self._session_factory()) as session:
            try:
                context = derive_planning_context(
                    event,
                    self._environment(),
                    history=load_historical_signals(session, event.trace_id),
                )
                session.merge(
                    PlanningContextSnapshot(
                        trace_id=context.trace_id,
                        workflow=context.workflow,
                        source=context.source,
                        event_type=context.event_type,
                        snapshot=context.model_dump(mode="json"),
                        created_at=context.created_at,
                    )
                )
                session.commit()
            except Exception:
                session.rollback()
                raise
        logger.debug("Planning context stored for trace %s", context.trace_id)
        return context
