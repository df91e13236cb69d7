"""Integration tests for the end-to-end capture workflow."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter

from config import ObservabilityConfig, load_settings
from connectors.base import Connectors
from execution.errors import ConnectorCallFailure
from observability.telemetry import Telemetry
from plan.validator import validate_plan
from services.app_context import build_app_context
from workflows.capture import capture

TRACE = "trace-capture-integration"


class _StaticPlanner:
    """Planner stub that returns one stored plan for any text."""

    def __init__(self, data: dict[str, Any]) -> None:
        self.data = data
        self.contexts: list[Any] = []

    def generate_plan(self, text, *, trace_id=None, context=None):
        self.contexts.append(context)
        return validate_plan({**self.data, "traceId": trace_id or self.data["traceId"]})


def _app(connectors: Connectors, *, tracing: bool = True, **overrides: Any):
    exporter = InMemorySpanExporter()
    telemetry = Telemetry.from_config(
        ObservabilityConfig(tracing_enabled=tracing),
        span_exporter=exporter,
    )
    app = build_app_context(load_settings(**overrides), connectors=connectors, telemetry=telemetry)
    return app, exporter


@pytest.fixture
def note_and_task_plan(plan_data) -> dict[str, Any]:
    """Return a plan that writes one note and creates one task."""
    return plan_data(
        {
            "type": "note.upsert",
            "notePath": "Inbox/thing.md",
            "title": "Thing",
            "markdown": "Body",
        },
        {"type": "task.create", "content": "Do thing", "priority": 1},
        trace_id=TRACE,
    )


def test_capture_records_everything(notes, tasks, note_and_task_plan) -> None:
    """A capture executes, writes a receipt, records evidence, verifies, and snapshots."""
    app, exporter = _app(Connectors(notes=notes, tasks=tasks))
    planner = _StaticPlanner(note_and_task_plan)
    try:
        outcome = capture(app, "Remember the thing", planner, trace_id=TRACE)

        assert outcome.event.trace_id == TRACE
        assert planner.contexts[0].capabilities == ["note-vault", "task-tracker"]
        assert outcome.run.state == "DONE"
        assert [task.id for task in outcome.result.created_tasks] == ["task-1"]
        assert notes.calls == [("upsert", "Inbox/thing.md"), ("append", "Inbox/thing.md")]
        assert "## Receipt" in notes.files["Inbox/thing.md"]
        assert outcome.receipt is not None
        assert outcome.trace_evidence.status == "recorded"
        assert outcome.trace_evidence.reference == format(
            exporter.get_finished_spans()[0].context.trace_id, "032x"
        )
        assert outcome.verification.issue_codes == ["artifact_evidence_missing"]
        assert outcome.snapshot.ok
        assert outcome.warnings == ()
        links = app.runs.list_links(TRACE)
        assert sorted(link.source_type for link in links) == ["note-vault", "task-tracker"]
        assert app.recorder.load_latest(TRACE).links.task_ids == ["task-1"]
    finally:
        app.close()


def test_artifact_registration_makes_verification_pass(
    notes, tasks, note_and_task_plan, tmp_path
) -> None:
    """Registering an artifact satisfies the last verification rule."""
    app, _ = _app(Connectors(notes=notes, tasks=tasks))
    try:
        outcome = capture(app, "x", _StaticPlanner(note_and_task_plan), trace_id=TRACE)
        har = tmp_path / "session.har"
        har.write_text("{}", encoding="utf-8")

        app.artifacts.register(TRACE, har)
        result = app.verifier.verify(TRACE, outcome.run.id)

        assert result.status == "passing"
        assert len(app.verifier.list_results(TRACE)) == 2
    finally:
        app.close()


def test_dry_run_capture_touches_nothing(notes, tasks, note_and_task_plan) -> None:
    """Dry run skips connectors and the receipt but still records and verifies."""
    app, _ = _app(Connectors(notes=notes, tasks=tasks))
    try:
        outcome = capture(
            app, "x", _StaticPlanner(note_and_task_plan), trace_id=TRACE, dry_run=True
        )

        assert notes.calls == []
        assert tasks.created == []
        assert outcome.receipt is None
        assert len(outcome.warnings) == 2
        assert outcome.verification.issue_codes[0] == "detail_links_missing"
        assert app.runs.list_runs(TRACE)[0].actions_count == 2
    finally:
        app.close()


def test_tracing_disabled_records_missing_config(notes, tasks, note_and_task_plan) -> None:
    """Without tracing the trace evidence is recorded as missing configuration."""
    app, _ = _app(Connectors(notes=notes, tasks=tasks), tracing=False)
    try:
        outcome = capture(app, "x", _StaticPlanner(note_and_task_plan), trace_id=TRACE)

        assert outcome.trace_evidence.status == "missing_config"
        assert outcome.verification.issue_codes == [
            "trace_evidence_missing",
            "artifact_evidence_missing",
        ]
    finally:
        app.close()


def test_receipt_goes_to_receipts_folder_without_note(notes, tasks, plan_data) -> None:
    """Plans without a note write the receipt to the receipts folder."""
    task_plan = plan_data({"type": "task.create", "content": "Do thing"}, trace_id=TRACE)
    app, _ = _app(
        Connectors(notes=notes, tasks=tasks),
        execution={"receipts_folder": "Receipts/"},
    )
    try:
        outcome = capture(app, "x", _StaticPlanner(task_plan), trace_id=TRACE)

        assert notes.calls == [("upsert", f"Receipts/{TRACE}.md")]
        assert outcome.receipt.path == f"Receipts/{TRACE}.md"
    finally:
        app.close()


def test_missing_note_connector_warns_about_receipt(tasks, note_and_task_plan) -> None:
    """A capture without a vault reports both the skipped note and the receipt."""
    app, _ = _app(Connectors(tasks=tasks))
    try:
        outcome = capture(app, "x", _StaticPlanner(note_and_task_plan), trace_id=TRACE)

        assert outcome.receipt is None
        assert outcome.warnings[-1] == "No note vault connector configured; receipt not written."
        assert outcome.run.state == "DONE"
    finally:
        app.close()


def test_connector_failure_propagates_after_recording(notes, tasks, note_and_task_plan) -> None:
    """A failing connector aborts the capture after the run is persisted."""
    tasks.fail_with = httpx.ConnectError("refused")
    app, _ = _app(Connectors(notes=notes, tasks=tasks))
    try:
        with pytest.raises(ConnectorCallFailure) as excinfo:
            capture(app, "x", _StaticPlanner(note_and_task_plan), trace_id=TRACE)

        runs = app.runs.list_runs(TRACE)
        assert [run.state for run in runs] == ["FAILED"]
        assert excinfo.value.run.id == runs[0].id
    finally:
        app.close()
