"""Capture workflow: event, plan, execute, receipt, evidence, verify, snapshot."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from typing import Any

import httpx

from connectors.base import ConnectorError, NoteWrite
from contracts.event import EventEnvelope
from contracts.plan import NoteUpsertAction, Plan
from evals.recorder import SnapshotResult
from execution.records import ExecutionRunRecord
from execution.result import ExecutionResult
from observability.evidence import EvidenceRecord
from observability.logging_setup import log_context
from plan.planner import Planner
from plan.receipt import build_receipt_markdown
from services.app_context import AppContext
from time_utils import utc_now
from verification.service import VerificationResult

logger = logging.getLogger(__name__)

CAPTURE_EVENT_TYPE = "capture.requested"


@dataclass(frozen=True)
class CaptureOutcome:
    """Everything one capture produced."""

    event: EventEnvelope
    plan: Plan
    result: ExecutionResult
    run: ExecutionRunRecord
    receipt: NoteWrite | None
    trace_evidence: EvidenceRecord
    verification: VerificationResult
    snapshot: SnapshotResult
    warnings: tuple[str, ...]


def manual_event(text: str, trace_id: str, user_id: str = "local") -> dict[str, Any]:
    """Build the raw event recorded for a manual capture."""
    now = utc_now()
    return {
        "event_id": str(uuid.uuid4()),
        "trace_id": trace_id,
        "source": "manual",
        "type": CAPTURE_EVENT_TYPE,
        "occurred_at": now,
        "received_at": now,
        "payload": {"text": text},
        "context": {"user_id": user_id, "workflow": "capture"},
    }


def _receipt_target(app: AppContext, plan: Plan) -> tuple[str, bool] | None:
    """Return ``(note_path, append)`` for the receipt, or None if there is no target."""
    note = plan.first_action(NoteUpsertAction)
    if note is not None:
        return note.note_path, True
    folder = app.settings.execution.receipts_folder
    if folder:
        return f"{folder.rstrip('/')}/{plan.trace_id}.md", False
    return None


def write_receipt(
    app: AppContext,
    plan: Plan,
    result: ExecutionResult,
    *,
    dry_run: bool,
) -> tuple[NoteWrite | None, list[str]]:
    """Write the receipt into the captured note and return any warnings.

    Receipt failures never fail the capture.
    """
    target = _receipt_target(app, plan)
    if target is None:
        logger.warning("No note target for receipt; skipping receipt write")
        return None, []
    if dry_run:
        logger.info("Dry run: skipping receipt write")
        return None, []
    notes = app.connectors.notes
    if notes is None:
        return None, ["No note vault connector configured; receipt not written."]

    note_path, append = target
    if append and note_path not in {note.path for note in result.notes}:
        return None, [f"Receipt not written: note {note_path} was not created."]

    receipt = build_receipt_markdown(plan, result)
    try:
        if append:
            write = notes.append(note_path, f"\n{receipt}")
        else:
            write = notes.upsert(note_path, receipt)
    except (httpx.HTTPError, OSError, ConnectorError, ValueError) as exc:
        logger.warning("Receipt write failed for %s: %s", note_path, exc)
        return None, [f"Receipt write failed for {note_path}: {exc}"]
    logger.info("Receipt written: %s", write.path)
    return write, []


def capture(
    app: AppContext,
    text: str,
    planner: Planner,
    *,
    trace_id: str | None = None,
    event: Any = None,
    user_id: str = "local",
    dry_run: bool | None = None,
) -> CaptureOutcome:
    """Run one capture end to end.

    When no event is given a manual capture event is recorded under
    ``trace_id`` (or a fresh id); otherwise the event's trace id is used.

    Raises:
        SchemaValidationError: If the event or the planner's plan is malformed.
        ConnectorCallFailure: If a connector call failed during execution.
    """
    if event is None:
        event = manual_event(text, trace_id or str(uuid.uuid4()), user_id)
    executor = app.executor(dry_run=dry_run)
    is_dry_run = app.settings.execution.dry_run if dry_run is None else dry_run

    envelope = app.events.ingest(event)
    with log_context({"trace_id": envelope.trace_id}):
        context = app.events.planning_context(envelope.trace_id)

        with app.telemetry.span(
            "capture.workflow",
            {"assistant.trace_id": envelope.trace_id, "assistant.dry_run": is_dry_run},
        ) as span:
            plan = planner.generate_plan(text, trace_id=envelope.trace_id, context=context)
            outcome = executor.run(plan)
            receipt, receipt_warnings = write_receipt(
                app, plan, outcome.result, dry_run=is_dry_run
            )
            otel_trace_id = app.telemetry.trace_id_of(span)

        if otel_trace_id is not None:
            trace_evidence = app.evidence.record(
                plan.trace_id,
                "trace",
                otel_trace_id,
                "recorded",
                {"span": "capture.workflow"},
            )
        else:
            trace_evidence = app.evidence.record(
                plan.trace_id,
                "trace",
                "tracing-disabled",
                "missing_config",
                {"hint": "Set OTEL_TRACING_ENABLED=true to record traces."},
            )

        verification = app.verifier.verify(plan.trace_id, outcome.run.id)
        snapshot = app.recorder.snapshot(
            plan,
            outcome.result,
            verification,
            outcome.run,
            app.runs.list_links(plan.trace_id),
        )
        logger.info(
            "Capture complete: run=%s verification=%s snapshot=%s",
            outcome.run.id,
            verification.status,
            snapshot.path or snapshot.error,
        )
    return CaptureOutcome(
        event=envelope,
        plan=plan,
        result=outcome.result,
        run=outcome.run,
        receipt=receipt,
        trace_evidence=trace_evidence,
        verification=verification,
        snapshot=snapshot,
        warnings=outcome.result.warnings + tuple(receipt_warnings),
    )
