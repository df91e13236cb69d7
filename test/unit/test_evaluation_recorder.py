"""Unit tests for evaluation snapshot recording."""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import datetime, timedelta, timezone

from connectors.base import CreatedTask
from contracts.api import TraceResponse
from evals.recorder import EvaluationRecorder, build_eval_report, build_run_contract
from events.store import EventStore
from execution.result import ActionOutcome, ExecutionResult
from execution.store import RunStore
from plan.validator import validate_plan
from verification.service import Verifier

STARTED = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


def _recorded(session_factory, plan, result):
    runs = RunStore(session_factory)
    run = runs.record(plan, result, STARTED, STARTED + timedelta(seconds=1))
    verification = Verifier(session_factory).verify(plan.trace_id, run.id)
    return run, verification, runs.list_links(plan.trace_id)


def test_snapshot_without_event_returns_failure(
    sqlite_session_factory, tmp_path, plan_data
) -> None:
    """No ingested event means no file and an error result."""
    plan = validate_plan(plan_data())
    result = ExecutionResult(trace_id=plan.trace_id)
    run, verification, links = _recorded(sqlite_session_factory, plan, result)
    recorder = EvaluationRecorder(tmp_path / "evals", EventStore(sqlite_session_factory))

    snapshot = recorder.snapshot(plan, result, verification, run, links)

    assert snapshot.ok is False
    assert snapshot.path is None
    assert plan.trace_id in snapshot.error
    assert not (tmp_path / "evals" / plan.trace_id).exists()


def test_snapshot_writes_contract_file(
    sqlite_session_factory, tmp_path, plan_data, event_data
) -> None:
    """A snapshot bundles event, plan, run, links, and one evaluation."""
    events = EventStore(sqlite_session_factory)
    plan = validate_plan(plan_data({"type": "task.create", "content": "a"}))
    events.ingest(event_data(trace_id=plan.trace_id))
    result = ExecutionResult(
        trace_id=plan.trace_id,
        created_tasks=(CreatedTask("t-1", "a"),),
        outcomes=(ActionOutcome(0, "task.create", "success", "t-1"),),
    )
    run, verification, links = _recorded(sqlite_session_factory, plan, result)
    recorder = EvaluationRecorder(tmp_path / "evals", events)

    snapshot = recorder.snapshot(plan, result, verification, run, links)

    assert snapshot.ok
    assert snapshot.path.parent == tmp_path / "evals" / plan.trace_id
    data = json.loads(snapshot.path.read_text(encoding="utf-8"))
    assert set(data) == {"event", "plan", "run", "links", "evaluations"}
    assert data["plan"]["traceId"] == plan.trace_id
    assert data["run"]["state"] == "DONE"
    assert data["run"]["plan_id"] == f"{plan.trace_id}-plan"
    assert data["links"]["task_ids"] == ["t-1"]
    assert len(data["evaluations"]) == 1
    evaluation = data["evaluations"][0]
    assert evaluation["verdict"] == "FAIL"
    assert set(evaluation["category_scores"].values()) == {1}


def test_snapshots_never_overwrite(
    sqlite_session_factory, tmp_path, plan_data, event_data
) -> None:
    """Each snapshot call writes a new file and load_latest reads the newest."""
    events = EventStore(sqlite_session_factory)
    plan = validate_plan(plan_data())
    events.ingest(event_data(trace_id=plan.trace_id))
    result = ExecutionResult(trace_id=plan.trace_id)
    run, verification, links = _recorded(sqlite_session_factory, plan, result)
    recorder = EvaluationRecorder(tmp_path / "evals", events)

    first = recorder.snapshot(plan, result, verification, run, links)
    second = recorder.snapshot(plan, result, verification, run, links)

    assert first.path != second.path
    assert len(list((tmp_path / "evals" / plan.trace_id).glob("*.json"))) == 2
    latest = recorder.load_latest(plan.trace_id)
    assert isinstance(latest, TraceResponse)
    assert latest.plan == plan


def test_load_latest_without_snapshots(sqlite_session_factory, tmp_path) -> None:
    """Traces without snapshots load as None."""
    recorder = EvaluationRecorder(tmp_path, EventStore(sqlite_session_factory))

    assert recorder.load_latest("trace-missing") is None


def test_eval_report_scores_follow_verdict(sqlite_session_factory, plan_data) -> None:
    """A passing verification scores 5 everywhere with no fatal flags."""
    plan = validate_plan(plan_data())
    result = ExecutionResult(trace_id=plan.trace_id)
    _, verification, _ = _recorded(sqlite_session_factory, plan, result)
    passing = replace(verification, status="passing", issues=())

    report = build_eval_report(passing, plan.trace_id)

    assert report.verdict == "PASS"
    assert report.overall_score == 5
    assert set(report.category_scores.model_dump().values()) == {5}
    assert report.flags.FATAL_CONNECTOR is False


def test_run_contract_reports_failed_execution(sqlite_session_factory, plan_data) -> None:
    """Runs whose execution failed are exported with state FAILED."""
    plan = validate_plan(plan_data())
    result = ExecutionResult(
        trace_id=plan.trace_id,
        outcomes=(ActionOutcome(0, "note.upsert", "failed", "boom"),),
    )
    run, _, _ = _recorded(sqlite_session_factory, plan, result)

    contract = build_run_contract(run, result)

    assert contract.state == "FAILED"
    assert contract.started_at == "2025-01-01T12:00:00.000Z"
    assert contract.run_id == str(run.id)
