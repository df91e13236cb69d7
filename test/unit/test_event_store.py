"""Unit tests for event ingestion and planning context storage."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from config import EnvironmentDefaults
from contracts.guards import SchemaValidationError
from events.planning import PlanningEnvironment
from events.store import EventStore
from execution.result import ExecutionResult
from execution.store import RunStore
from plan.validator import validate_plan


class _Environment:
    """Mutable environment source standing in for live configuration."""

    def __init__(self) -> None:
        self.current = PlanningEnvironment(
            capabilities=("task-tracker",),
            defaults=EnvironmentDefaults(default_team_id="team-1"),
        )

    def __call__(self) -> PlanningEnvironment:
        return self.current


def test_ingest_normalizes_timestamps(sqlite_session_factory, event_data) -> None:
    """Offsets are converted to UTC on ingestion."""
    store = EventStore(sqlite_session_factory)

    event = store.ingest(event_data(occurred_at="2025-01-01T14:00:00+02:00"))

    assert event.occurred_at == datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
    assert store.latest_event(event.trace_id).occurred_at == event.occurred_at


def test_ingest_rejects_malformed_event(sqlite_session_factory, event_data) -> None:
    """Unknown sources and missing fields are schema errors."""
    store = EventStore(sqlite_session_factory)
    data = event_data(source="email")
    del data["context"]

    with pytest.raises(SchemaValidationError) as excinfo:
        store.ingest(data)

    assert set(excinfo.value.paths) >= {"source", "context"}


def test_ingest_upserts_by_event_id(sqlite_session_factory, event_data) -> None:
    """Re-ingesting the same event id replaces the stored event."""
    store = EventStore(sqlite_session_factory)

    store.ingest(event_data(payload={"text": "first"}))
    store.ingest(event_data(payload={"text": "second"}))

    events = store.list_events(event_data()["trace_id"])
    assert len(events) == 1
    assert events[0].payload == {"text": "second"}


def test_latest_event_prefers_most_recent_occurrence(sqlite_session_factory, event_data) -> None:
    """The latest event is the one that occurred last, not the one ingested last."""
    store = EventStore(sqlite_session_factory)
    store.ingest(event_data(event_id="evt-late", occurred_at="2025-01-02T00:00:00Z"))
    store.ingest(event_data(event_id="evt-early", occurred_at="2025-01-01T00:00:00Z"))

    latest = store.latest_event(event_data()["trace_id"])

    assert latest.event_id == "evt-late"
    assert [e.event_id for e in store.list_events(latest.trace_id)] == ["evt-early", "evt-late"]


def test_latest_event_unknown_trace(sqlite_session_factory) -> None:
    """Traces without events have no latest event or planning context."""
    store = EventStore(sqlite_session_factory)

    assert store.latest_event("trace-unknown") is None
    assert store.planning_context("trace-unknown") is None
    assert store.rebuild_planning_context("trace-unknown") is None


def test_planning_context_is_stable_without_reingest(sqlite_session_factory, event_data) -> None:
    """Two reads without a new ingest return identical context content."""
    environment = _Environment()
    store = EventStore(sqlite_session_factory, environment)
    event = store.ingest(event_data())

    first = store.planning_context(event.trace_id)
    environment.current = PlanningEnvironment(capabilities=("note-vault",))
    second = store.planning_context(event.trace_id)

    assert first == second
    assert first.workflow == "capture"
    assert first.source == "manual"
    assert first.event_type == "capture.requested"
    assert first.capabilities == ["task-tracker"]
    assert first.environment_defaults.default_team_id == "team-1"
    assert first.historical_signals is None


def test_rebuild_picks_up_environment_changes(sqlite_session_factory, event_data) -> None:
    """Rebuilding recomputes the context from the current environment."""
    environment = _Environment()
    store = EventStore(sqlite_session_factory, environment)
    event = store.ingest(event_data(context={"user_id": "local", "workflow": "triage"}))

    environment.current = PlanningEnvironment(
        capabilities=("note-vault", "issue-tracker"),
        defaults=EnvironmentDefaults(default_team_id="team-2"),
    )
    rebuilt = store.rebuild_planning_context(event.trace_id)

    assert rebuilt.workflow == "triage"
    assert rebuilt.capabilities == ["note-vault", "issue-tracker"]
    assert store.planning_context(event.trace_id) == rebuilt


def test_context_includes_prior_runs(sqlite_session_factory, event_data, plan_data) -> None:
    """Runs recorded for the trace surface as historical signals."""
    store = EventStore(sqlite_session_factory)
    event = store.ingest(event_data())
    plan = validate_plan(plan_data({"type": "task.close", "taskId": "t-1"}))
    started = datetime(2025, 1, 1, tzinfo=timezone.utc)
    run = RunStore(sqlite_session_factory).record(
        plan, ExecutionResult(trace_id=plan.trace_id), started, started + timedelta(seconds=1)
    )

    context = store.rebuild_planning_context(event.trace_id)

    assert context.historical_signals.related_run_ids == [str(run.id)]
    assert context.historical_signals.previous_action_types == ["task.close"]
