"""Transactional persistence of execution runs, action records, and links."""

from __future__ import annotations

import logging
from contextlib import closing
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable
from uuid import UUID

from sqlalchemy.orm import Session

from contracts.link import SourceType
from contracts.plan import Plan
from execution.records import ActionRecordView, DetailSourceLinkRecord, ExecutionRunRecord
from execution.result import ExecutionResult
from models import ActionRecord, DetailSourceLink, ExecutionRun
from time_utils import ensure_aware, to_utc

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LinkSpec:
    """A link derived from an execution result, before it is stored."""

    source_type: SourceType
    external_id: str
    uri: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def build_links(result: ExecutionResult) -> list[LinkSpec]:
    """Derive one link per external artifact the result produced.

    Notes link by vault path, tasks and issues by their external id. Closed
    tasks and updated issues produce no links.
    """
    links: list[LinkSpec] = []
    for note in result.notes:
        links.append(LinkSpec(SourceType.NOTE_VAULT, note.path, note.uri))
    for task in result.created_tasks:
        links.append(
            LinkSpec(SourceType.TASK_TRACKER, task.id, task.url, {"content": task.content})
        )
    for issue in result.created_issues:
        links.append(
            LinkSpec(SourceType.ISSUE_TRACKER, issue.id, issue.url, {"title": issue.title})
        )
    return links


def _run_record(row: ExecutionRun) -> ExecutionRunRecord:
    return ExecutionRunRecord(
        id=row.id,
        trace_id=row.trace_id,
        plan_user_intent=row.plan_user_intent,
        started_at=ensure_aware(row.started_at),
        finished_at=ensure_aware(row.finished_at),
        summary=row.summary,
        actions_count=row.actions_count,
        state=row.state,
    )


def _link_record(row: DetailSourceLink) -> DetailSourceLinkRecord:
    return DetailSourceLinkRecord(
        id=row.id,
        trace_id=row.trace_id,
        run_id=row.run_id,
        source_type=row.source_type,
        external_id=row.external_id,
        uri=row.uri,
        metadata=dict(row.link_metadata or {}),
        created_at=ensure_aware(row.created_at),
    )


class RunStore:
    """Owns execution runs, their action records, and derived links."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize the store with a SQLAlchemy session factory."""
        self._session_factory = session_factory

    def record(
        self,
        plan: Plan,
        result: ExecutionResult,
        started_at: datetime,
        finished_at: datetime,
    ) -> ExecutionRunRecord:
        """Persist a run with its action records and links in one transaction.

        The run state is ``FAILED`` when any action outcome failed, otherwise
        ``DONE``.
        """
        statuses = {outcome.index: outcome for outcome in result.outcomes}
        finished_at = to_utc(finished_at)
        with closing(self._session_factory()) as session:
            try:
                run = ExecutionRun(
                    trace_id=plan.trace_id,
                    plan_user_intent=plan.user_intent,
                    started_at=to_utc(started_at),
                    finished_at=finished_at,
                    summary=plan.receipt_summary,
                    actions_count=len(plan.actions),
                    state="FAILED" if result.failed else "DONE",
                )
                session.add(run)
                session.flush()

                for position, action in enumerate(plan.actions):
                    outcome = statuses.get(position)
                    session.add(
                        ActionRecord(
                            run_id=run.id,
                            position=position,
                            action_type=action.type,
                            payload=action.to_wire(),
                            status=outcome.status if outcome else "pending",
                            detail=outcome.detail if outcome else None,
                        )
                    )

                links = build_links(result)
                for link in links:
                    session.add(
                        DetailSourceLink(
                            trace_id=plan.trace_id,
                            run_id=run.id,
                            source_type=link.source_type.value,
                            external_id=link.external_id,
                            uri=link.uri,
                            link_metadata=link.metadata,
                            created_at=finished_at,
                        )
                    )
                session.commit()
                record = _run_record(run)
            except Exception:
                session.rollback()
                raise
        logger.info(
            "Recorded run %s for trace %s: actions=%s links=%s state=%s",
            record.id,
            record.trace_id,
            record.actions_count,
            len(links),
            record.state,
        )
        return record

    def list_runs(self, trace_id: str | None = None) -> list[ExecutionRunRecord]:
        """Return runs, newest first, optionally filtered by trace."""
        with closing(self._session_factory()) as session:
            query = session.query(ExecutionRun)
            if trace_id is not None:
                query = query.filter(ExecutionRun.trace_id == trace_id)
            rows = query.order_by(ExecutionRun.started_at.desc()).all()
            return [_run_record(row) for row in rows]

    def get_run(self, run_id: UUID) -> ExecutionRunRecord | None:
        """Return one run by id."""
        with closing(self._session_factory()) as session:
            row = session.get(ExecutionRun, run_id)
            return _run_record(row) if row is not None else None

    def list_actions(self, run_id: UUID) -> list[ActionRecordView]:
        """Return the action records of a run in plan order."""
        with closing(self._session_factory()) as session:
            rows = (
                session.query(ActionRecord)
                .filter(ActionRecord.run_id == run_id)
                .order_by(ActionRecord.position)
                .all()
            )
            return [
                ActionRecordView(
                    id=row.id,
                    run_id=row.run_id,
                    position=row.position,
                    action_type=row.action_type,
                    payload=dict(row.payload or {}),
                    status=row.status,
                    detail=row.detail,
                )
                for row in rows
            ]

    def list_links(self, trace_id: str) -> list[DetailSourceLinkRecord]:
        """Return every link recorded for a trace, oldest first."""
        with closing(self._session_factory()) as session:
            rows = (
                session.query(DetailSourceLink)
                .filter(DetailSourceLink.trace_id == trace_id)
                .order_by(
                    DetailSourceLink.created_at,
                    DetailSourceLink.source_type,
                    DetailSourceLink.external_id,
                )
                .all()
            )
            return [_link_record(row) for row in rows]
