"""Unit tests for run persistence and link derivation."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from connectors.base import CreatedIssue, CreatedTask, NoteWrite
from execution.result import ActionOutcome, ExecutionResult
from execution.store import RunStore, build_links
from plan.validator import validate_plan

STARTED = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)
FINISHED = STARTED + timedelta(seconds=2)


def _result(trace_id: str, **buckets) -> ExecutionResult:
    return ExecutionResult(trace_id=trace_id, **buckets)


def test_build_links_one_per_created_artifact() -> None:
    """Notes, created tasks, and created issues each yield exactly one link."""
    result = _result(
        "trace-links-1",
        notes=(NoteWrite("Inbox/a.md", "obsidian://open?path=Inbox%2Fa.md"),),
        created_tasks=(CreatedTask("t-1", "Do thing", "https://tasks.test/t-1"),),
        created_issues=(CreatedIssue("ISS-1", "Bug"),),
        closed_tasks=("t-0",),
        updated_issues=("ISS-0",),
    )

    links = build_links(result)

    assert [(link.source_type.value, link.external_id) for link in links] == [
        ("note-vault", "Inbox/a.md"),
        ("task-tracker", "t-1"),
        ("issue-tracker", "ISS-1"),
    ]
    assert links[1].metadata == {"content": "Do thing"}
    assert links[2].metadata == {"title": "Bug"}


def test_record_then_list_links_matches_artifacts(sqlite_session_factory, plan_data) -> None:
    """Listing links after recording returns one link per created artifact."""
    store = RunStore(sqlite_session_factory)
    plan = validate_plan(
        plan_data(
            {"type": "task.create", "content": "a"},
            {"type": "task.create", "content": "b"},
        )
    )
    result = _result(
        plan.trace_id,
        created_tasks=(CreatedTask("t-1", "a"), CreatedTask("t-2", "b")),
        outcomes=(
            ActionOutcome(0, "task.create", "success", "t-1"),
            ActionOutcome(1, "task.create", "success", "t-2"),
        ),
    )

    run = store.record(plan, result, STARTED, FINISHED)
    links = store.list_links(plan.trace_id)

    assert sorted(link.external_id for link in links) == ["t-1", "t-2"]
    assert all(link.run_id == run.id for link in links)
    assert all(link.created_at == FINISHED for link in links)


def test_record_empty_result_writes_no_links(sqlite_session_factory, plan_data) -> None:
    """An execution that created nothing records a run and zero links."""
    store = RunStore(sqlite_session_factory)
    plan = validate_plan(plan_data())

    store.record(plan, _result(plan.trace_id), STARTED, FINISHED)
    store.record(plan, _result(plan.trace_id), STARTED, FINISHED)

    assert store.list_links(plan.trace_id) == []
    assert len(store.list_runs(plan.trace_id)) == 2


def test_list_runs_returns_recorded_run(sqlite_session_factory, plan_data) -> None:
    """A recorded run is listed with the plan's action count."""
    store = RunStore(sqlite_session_factory)
    plan = validate_plan(
        plan_data(
            {"type": "task.create", "content": "a"},
            {"type": "task.close", "taskId": "t-9"},
            {"type": "note.upsert", "notePath": "a.md", "title": "A", "markdown": "x"},
        )
    )

    store.record(plan, _result(plan.trace_id), STARTED, FINISHED)
    runs = store.list_runs(plan.trace_id)

    assert len(runs) == 1
    assert runs[0].actions_count == len(plan.actions) == 3
    assert runs[0].plan_user_intent == plan.user_intent
    assert runs[0].summary == plan.receipt_summary
    assert runs[0].started_at == STARTED
    assert runs[0].state == "DONE"


def test_list_runs_newest_first_and_filtered(sqlite_session_factory, plan_data) -> None:
    """Runs are ordered by start time descending and filtered by trace."""
    store = RunStore(sqlite_session_factory)
    first = validate_plan(plan_data(trace_id="trace-first-1"))
    second = validate_plan(plan_data(trace_id="trace-second-1"))

    store.record(first, _result(first.trace_id), STARTED, FINISHED)
    store.record(second, _result(second.trace_id), FINISHED, FINISHED + timedelta(seconds=1))

    assert [run.trace_id for run in store.list_runs()] == ["trace-second-1", "trace-first-1"]
    assert [run.trace_id for run in store.list_runs("trace-first-1")] == ["trace-first-1"]


def test_actions_without_outcome_are_pending(sqlite_session_factory, plan_data) -> None:
    """Action records mirror outcomes and default to pending."""
    store = RunStore(sqlite_session_factory)
    plan = validate_plan(
        plan_data(
            {"type": "task.create", "content": "a"},
            {"type": "task.create", "content": "b"},
        )
    )
    result = _result(
        plan.trace_id,
        outcomes=(ActionOutcome(0, "task.create", "failed", "boom"),),
    )

    run = store.record(plan, result, STARTED, FINISHED)
    actions = store.list_actions(run.id)

    assert run.state == "FAILED"
    assert [(a.position, a.status, a.detail) for a in actions] == [
        (0, "failed", "boom"),
        (1, "pending", None),
    ]
    assert actions[0].payload == {"type": "task.create", "content": "a", "labels": []}


def test_get_run_unknown_returns_none(sqlite_session_factory) -> None:
    """Unknown run ids resolve to None."""
    from uuid import uuid4

    assert RunStore(sqlite_session_factory).get_run(uuid4()) is None
