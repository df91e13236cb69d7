"""Post-condition verification of executed runs.

Rules read persisted state only, so a run can be verified later or from
another process. Every pass appends a new result row; earlier passes are kept
as history.
"""

from __future__ import annotations

import logging
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Literal
from uuid import UUID

from sqlalchemy.orm import Session

from models import DetailSourceLink, ExecutionRun, VerificationResult as VerificationResultRow
from observability.evidence import has_recorded_evidence
from observability.telemetry import PipelineMetrics
from time_utils import ensure_aware, utc_now

logger = logging.getLogger(__name__)

VerificationStatus = Literal["passing", "failing"]


class RunNotFound(LookupError):
    """Raised when the run to verify does not exist for the trace."""


@dataclass(frozen=True)
class VerificationIssue:
    """A named post-condition that did not hold."""

    code: str
    message: str


@dataclass(frozen=True)
class VerificationResult:
    """Point-in-time verdict for one run."""

    id: UUID
    trace_id: str
    run_id: UUID
    status: VerificationStatus
    issues: tuple[VerificationIssue, ...]
    created_at: datetime

    @property
    def passing(self) -> bool:
        """Return True when no rule produced an issue."""
        return self.status == "passing"

    @property
    def issue_codes(self) -> list[str]:
        """Return the issue codes in rule order."""
        return [issue.code for issue in self.issues]


Rule = Callable[[Session, str], VerificationIssue | None]


def detail_links_rule(session: Session, trace_id: str) -> VerificationIssue | None:
    """At least one detail source link exists for the trace."""
    exists = (
        session.query(DetailSourceLink.id)
        .filter(DetailSourceLink.trace_id == trace_id)
        .first()
        is not None
    )
    if exists:
        return None
    return VerificationIssue(
        "detail_links_missing",
        "Detail source links missing for trace; receipts/external IDs not recorded.",
    )


def trace_evidence_rule(session: Session, trace_id: str) -> VerificationIssue | None:
    """Telemetry trace evidence was recorded for the trace."""
    if has_recorded_evidence(session, trace_id, "trace"):
        return None
    return VerificationIssue(
        "trace_evidence_missing",
        "Telemetry trace evidence missing for trace; enable tracing to record spans.",
    )


def artifact_evidence_rule(session: Session, trace_id: str) -> VerificationIssue | None:
    """Captured artifact evidence was recorded for the trace."""
    if has_recorded_evidence(session, trace_id, "artifact"):
        return None
    return VerificationIssue(
        "artifact_evidence_missing",
        "Artifact evidence missing for trace; register a captured artifact.",
    )


DEFAULT_RULES: tuple[Rule, ...] = (
    detail_links_rule,
    trace_evidence_rule,
    artifact_evidence_rule,
)


def _to_result(row: VerificationResultRow) -> VerificationResult:
    return VerificationResult(
        id=row.id,
        trace_id=row.trace_id,
        run_id=row.run_id,
        status=row.status,
        issues=tuple(
            VerificationIssue(issue["code"], issue["message"]) for issue in row.issues or []
        ),
        created_at=ensure_aware(row.created_at),
    )


class Verifier:
    """Runs the ordered rule battery and stores each verdict."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        rules: tuple[Rule, ...] = DEFAULT_RULES,
        metrics: PipelineMetrics | None = None,
    ) -> None:
        """Initialize the verifier with a session factory and its rules."""
        self._session_factory = session_factory
        self._rules = rules
        self._metrics = metrics

    def verify(self, trace_id: str, run_id: UUID) -> VerificationResult:
        """Evaluate every rule for the trace and append the verdict.

        All rules run; the result lists every issue found, in rule order.

        Raises:
            RunNotFound: If no run with ``run_id`` was recorded for the trace.
        """
        with closing(self._session_factory()) as session:
            try:
                run = session.get(ExecutionRun, run_id)
                if run is None or run.trace_id != trace_id:
                    raise RunNotFound(f"No run {run_id} recorded for trace {trace_id}")
                issues = [
                    issue
                    for issue in (rule(session, trace_id) for rule in self._rules)
                    if issue is not None
                ]
                row = VerificationResultRow(
                    trace_id=trace_id,
                    run_id=run_id,
                    status="failing" if issues else "passing",
                    issues=[{"code": issue.code, "message": issue.message} for issue in issues],
                    created_at=utc_now(),
                )
                session.add(row)
                session.commit()
                result = _to_result(row)
            except Exception:
                session.rollback()
                raise
        if self._metrics is not None:
            self._metrics.record_verification(result.status)
        logger.info(
            "Verification %s for trace %s run %s: %s",
            result.status,
            trace_id,
            run_id,
            ",".join(result.issue_codes) or "no issues",
        )
        return result

    def list_results(self, trace_id: str | None = None) -> list[VerificationResult]:
        """Return stored verdicts, oldest first, optionally filtered by trace."""
        with closing(self._session_factory()) as session:
            query = session.query(VerificationResultRow)
            if trace_id is not None:
                query = query.filter(VerificationResultRow.trace_id == trace_id)
            rows = query.order_by(VerificationResultRow.created_at).all()
            return [_to_result(row) for row in rows]
