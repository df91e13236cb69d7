"""Append-only ledger of observability evidence per trace."""

from __future__ import annotations

import logging
from contextlib import closing
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Literal
from uuid import UUID

from sqlalchemy.orm import Session

from models import ObservabilityEvidence
from time_utils import ensure_aware, utc_now

logger = logging.getLogger(__name__)

EvidenceKind = Literal["trace", "artifact"]
EvidenceStatus = Literal["recorded", "missing_config", "failed"]


@dataclass(frozen=True)
class EvidenceRecord:
    """One piece of recorded observability evidence."""

    id: UUID
    trace_id: str
    kind: str
    reference: str
    status: str
    metadata: dict[str, Any]
    created_at: datetime


def _to_record(row: ObservabilityEvidence) -> EvidenceRecord:
    return EvidenceRecord(
        id=row.id,
        trace_id=row.trace_id,
        kind=row.kind,
        reference=row.reference,
        status=row.status,
        metadata=dict(row.evidence_metadata or {}),
        created_at=ensure_aware(row.created_at),
    )


class EvidenceLedger:
    """Records and queries evidence rows; rows are never updated."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        """Initialize the ledger with a SQLAlchemy session factory."""
        self._session_factory = session_factory

    def record(
        self,
        trace_id: str,
        kind: EvidenceKind,
        reference: str,
        status: EvidenceStatus,
        metadata: dict[str, Any] | None = None,
    ) -> EvidenceRecord:
        """Append one evidence row."""
        with closing(self._session_factory()) as session:
            try:
                row = ObservabilityEvidence(
                    trace_id=trace_id,
                    kind=kind,
                    reference=reference,
                    status=status,
                    evidence_metadata=metadata or {},
                    created_at=utc_now(),
                )
                session.add(row)
                session.commit()
                record = _to_record(row)
            except Exception:
                session.rollback()
                raise
        logger.info("Evidence %s recorded for trace %s: %s", kind, trace_id, status)
        return record

    def list_evidence(
        self,
        trace_id: str,
        kind: EvidenceKind | None = None,
    ) -> list[EvidenceRecord]:
        """Return evidence for a trace, oldest first."""
        with closing(self._session_factory()) as session:
            query = session.query(ObservabilityEvidence).filter(
                ObservabilityEvidence.trace_id == trace_id
            )
            if kind is not None:
                query = query.filter(ObservabilityEvidence.kind == kind)
            rows = query.order_by(ObservabilityEvidence.created_at).all()
            return [_to_record(row) for row in rows]

    def has_recorded(self, trace_id: str, kind: EvidenceKind) -> bool:
        """Return True when any ``recorded`` evidence of the kind exists."""
        with closing(self._session_factory()) as session:
            return has_recorded_evidence(session, trace_id, kind)


def has_recorded_evidence(session: Session, trace_id: str, kind: EvidenceKind) -> bool:
    """Check for recorded evidence within an existing session."""
    return (
        session.query(ObservabilityEvidence.id)
        .filter(
            ObservabilityEvidence.trace_id == trace_id,
            ObservabilityEvidence.kind == kind,
            ObservabilityEvidence.status == "recorded",
        )
        .first()
        is not None
    )
