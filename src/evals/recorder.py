"""Evaluation snapshots: one contract-shaped JSON file per recording, keyed by trace."""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence

from contracts.api import TraceResponse
from contracts.evaluation import CategoryScores, EvalFlags, EvalReport
from contracts.execution import ExecutionRunContract
from contracts.guards import assert_schema
from contracts.identity import plan_id_for
from contracts.link import LinkGraph, SourceType
from contracts.plan import Plan
from events.store import EventStore
from execution.records import DetailSourceLinkRecord, ExecutionRunRecord
from execution.result import ExecutionResult
from observability.telemetry import PipelineMetrics
from time_utils import isoformat
from verification.service import VerificationResult

logger = logging.getLogger(__name__)

PASS_SCORE = 5
FAIL_SCORE = 1


class MissingCorrelatedEvent(LookupError):
    """Raised when a snapshot is requested for a trace with no ingested event."""

    def __init__(self, trace_id: str) -> None:
        """Initialize the error with the trace that has no event."""
        super().__init__(f"No event available for trace {trace_id}")
        self.trace_id = trace_id


@dataclass(frozen=True)
class SnapshotResult:
    """Where a snapshot was written, or why it was not."""

    path: Path | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        """Return True when the snapshot file was written."""
        return self.path is not None


def build_eval_report(verification: VerificationResult, trace_id: str) -> EvalReport:
    """Score a run from its verification verdict.

    Every category gets the same score: 5 when verification passed, 1 otherwise.
    """
    passing = verification.passing
    score = PASS_SCORE if passing else FAIL_SCORE
    return EvalReport(
        eval_id=str(uuid.uuid4()),
        trace_id=trace_id,
        plan_id=plan_id_for(trace_id),
        overall_score=score,
        verdict="PASS" if passing else "FAIL",
        category_scores=CategoryScores.uniform(score),
        flags=EvalFlags(
            FATAL_SCHEMA=not passing,
            FATAL_SECURITY=False,
            FATAL_CONNECTOR=not passing,
            DRIFT=False,
            NON_DETERMINISTIC=False,
        ),
    )


def build_link_graph(trace_id: str, links: Sequence[DetailSourceLinkRecord]) -> LinkGraph:
    """Group stored links into the link graph contract."""
    note_paths = [link.external_id for link in links if link.source_type == SourceType.NOTE_VAULT]
    return LinkGraph(
        trace_id=trace_id,
        note_path=note_paths[0] if note_paths else None,
        task_ids=[
            link.external_id for link in links if link.source_type == SourceType.TASK_TRACKER
        ],
        issue_ids=[
            link.external_id for link in links if link.source_type == SourceType.ISSUE_TRACKER
        ],
    )


def build_run_contract(
    run: ExecutionRunRecord,
    execution: ExecutionResult,
) -> ExecutionRunContract:
    """Express a recorded run as the execution run contract."""
    return ExecutionRunContract(
        run_id=str(run.id),
        trace_id=run.trace_id,
        plan_id=plan_id_for(run.trace_id),
        state="FAILED" if execution.failed else "DONE",
        started_at=isoformat(run.started_at),
        finished_at=isoformat(run.finished_at),
        retry_count=0,
    )


class EvaluationRecorder:
    """Writes trace snapshots under ``<evals_dir>/<trace_id>/``; files are never overwritten."""

    def __init__(
        self,
        evals_dir: str | Path,
        events: EventStore,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        """Initialize the recorder with its base directory and event store."""
        self.evals_dir = Path(evals_dir)
        self._events = events
        self._metrics = metrics

    def snapshot(
        self,
        plan: Plan,
        execution: ExecutionResult,
        verification: VerificationResult,
        run: ExecutionRunRecord,
        links: Sequence[DetailSourceLinkRecord],
    ) -> SnapshotResult:
        """Assemble and write one snapshot for the plan's trace.

        Never raises: any failure is logged and reported in the returned
        ``SnapshotResult``.
        """
        try:
            response = self.build(plan, execution, verification, run, links)
            trace_dir = self.evals_dir / plan.trace_id
            trace_dir.mkdir(parents=True, exist_ok=True)
            path = trace_dir / f"{int(time.time() * 1000)}-{uuid.uuid4()}.json"
            with path.open("x", encoding="utf-8") as handle:
                json.dump(response.to_wire(), handle, indent=2)
        except Exception as exc:
            logger.warning(
                "Failed to record evaluation snapshot for trace %s: %s",
                plan.trace_id,
                exc,
                exc_info=True,
            )
            if self._metrics is not None:
                self._metrics.record_snapshot("failed")
            return SnapshotResult(error=str(exc))
        if self._metrics is not None:
            self._metrics.record_snapshot("written")
        logger.info("Evaluation snapshot written: %s", path)
        return SnapshotResult(path=path)

    def build(
        self,
        plan: Plan,
        execution: ExecutionResult,
        verification: VerificationResult,
        run: ExecutionRunRecord,
        links: Sequence[DetailSourceLinkRecord],
    ) -> TraceResponse:
        """Assemble the trace response contract without writing it.

        Raises:
            MissingCorrelatedEvent: If the trace has no ingested event.
        """
        event = self._events.latest_event(plan.trace_id)
        if event is None:
            raise MissingCorrelatedEvent(plan.trace_id)
        return TraceResponse(
            event=event,
            plan=plan,
            run=build_run_contract(run, execution),
            links=build_link_graph(plan.trace_id, links),
            evaluations=[build_eval_report(verification, plan.trace_id)],
        )

    def load_latest(self, trace_id: str) -> TraceResponse | None:
        """Return the newest snapshot for a trace, or None if there is none readable."""
        trace_dir = self.evals_dir / trace_id
        candidates = sorted(trace_dir.glob("*.json")) if trace_dir.is_dir() else []
        if not candidates:
            return None
        try:
            data = json.loads(candidates[-1].read_text(encoding="utf-8"))
            return assert_schema(TraceResponse, data, subject="trace snapshot")
        except (OSError, ValueError) as exc:
            logger.warning("Failed to load snapshot for trace %s: %s", trace_id, exc)
            return None
