"""Database models for the capture pipeline."""

from datetime import datetime, timezone
import uuid

from sqlalchemy import (
    JSON,
    CheckConstraint,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
)
from sqlalchemy.orm import declarative_base

# SQLAlchemy base
Base = declarative_base()

EventSourceEnum = Enum(
    "manual",
    "linear",
    "todoist",
    "obsidian",
    name="event_source",
    native_enum=False,
)
RunStateEnum = Enum(
    "DONE",
    "FAILED",
    name="run_state",
    native_enum=False,
)
ActionStatusEnum = Enum(
    "success",
    "skipped",
    "failed",
    "pending",
    name="action_status",
    native_enum=False,
)
SourceTypeEnum = Enum(
    "note-vault",
    "task-tracker",
    "issue-tracker",
    name="source_type",
    native_enum=False,
)
VerificationStatusEnum = Enum(
    "passing",
    "failing",
    name="verification_status",
    native_enum=False,
)
EvidenceKindEnum = Enum(
    "trace",
    "artifact",
    name="evidence_kind",
    native_enum=False,
)
EvidenceStatusEnum = Enum(
    "recorded",
    "missing_config",
    "failed",
    name="evidence_status",
    native_enum=False,
)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Event(Base):
    """Inbound trigger correlated to downstream artifacts by trace id."""

    __tablename__ = "events"
    __table_args__ = (Index("ix_events_trace_occurred", "trace_id", "occurred_at"),)

    event_id = Column(String(200), primary_key=True)
    trace_id = Column(String(200), nullable=False)
    source = Column(EventSourceEnum, nullable=False)
    type = Column(String(200), nullable=False)
    occurred_at = Column(DateTime(timezone=True), nullable=False)
    received_at = Column(DateTime(timezone=True), nullable=False)
    payload = Column(JSON, nullable=True)
    context = Column(JSON, nullable=False)


class PlanningContextSnapshot(Base):
    """Derived planning context, one row per trace."""

    __tablename__ = "planning_contexts"

    trace_id = Column(String(200), primary_key=True)
    workflow = Column(String(200), nullable=False)
    source = Column(String(50), nullable=False)
    event_type = Column(String(200), nullable=False)
    snapshot = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ExecutionRun(Base):
    """One execution of one plan."""

    __tablename__ = "execution_runs"
    __table_args__ = (
        CheckConstraint("actions_count >= 0", name="ck_execution_runs_actions_count"),
        Index("ix_execution_runs_trace_id", "trace_id"),
    )

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trace_id = Column(String(200), nullable=False)
    plan_user_intent = Column(Text, nullable=False)
    started_at = Column(DateTime(timezone=True), nullable=False)
    finished_at = Column(DateTime(timezone=True), nullable=False)
    summary = Column(Text, nullable=True)
    actions_count = Column(Integer, nullable=False)
    state = Column(RunStateEnum, nullable=False, default="DONE")


class ActionRecord(Base):
    """Per-action record for an execution run."""

    __tablename__ = "action_records"

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    run_id = Column(Uuid(as_uuid=True), ForeignKey("execution_runs.id"), nullable=False)
    position = Column(Integer, nullable=False)
    action_type = Column(String(100), nullable=False)
    payload = Column(JSON, nullable=False)
    status = Column(ActionStatusEnum, nullable=False)
    detail = Column(Text, nullable=True)


class DetailSourceLink(Base):
    """Correlation between a trace and an external artifact id."""

    __tablename__ = "detail_source_links"
    __table_args__ = (Index("ix_detail_source_links_trace_id", "trace_id"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trace_id = Column(String(200), nullable=False)
    run_id = Column(Uuid(as_uuid=True), ForeignKey("execution_runs.id"), nullable=True)
    source_type = Column(SourceTypeEnum, nullable=False)
    external_id = Column(String(1000), nullable=False)
    uri = Column(Text, nullable=True)
    link_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class VerificationResult(Base):
    """Point-in-time verification verdict for a run."""

    __tablename__ = "verification_results"
    __table_args__ = (Index("ix_verification_results_trace_id", "trace_id"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trace_id = Column(String(200), nullable=False)
    run_id = Column(Uuid(as_uuid=True), ForeignKey("execution_runs.id"), nullable=False)
    status = Column(VerificationStatusEnum, nullable=False)
    issues = Column(JSON, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class ObservabilityEvidence(Base):
    """Append-only ledger of observability evidence per trace."""

    __tablename__ = "observability_evidence"
    __table_args__ = (Index("ix_observability_evidence_trace_kind", "trace_id", "kind"),)

    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    trace_id = Column(String(200), nullable=False)
    kind = Column(EvidenceKindEnum, nullable=False)
    reference = Column(Text, nullable=False)
    status = Column(EvidenceStatusEnum, nullable=False)
    evidence_metadata = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
