"""Initial capture pipeline schema.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-01 00:00:00.000000

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None


def _enum(*values: str, name: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False)


def upgrade() -> None:
    op.create_table(
        "events",
        sa.Column("event_id", sa.String(length=200), primary_key=True),
        sa.Column("trace_id", sa.String(length=200), nullable=False),
        sa.Column(
            "source",
            _enum("manual", "linear", "todoist", "obsidian", name="event_source"),
            nullable=False,
        ),
        sa.Column("type", sa.String(length=200), nullable=False),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=True),
        sa.Column("context", sa.JSON(), nullable=False),
    )
    op.create_index("ix_events_trace_occurred", "events", ["trace_id", "occurred_at"])

    op.create_table(
        "planning_contexts",
        sa.Column("trace_id", sa.String(length=200), primary_key=True),
        sa.Column("workflow", sa.String(length=200), nullable=False),
        sa.Column("source", sa.String(length=50), nullable=False),
        sa.Column("event_type", sa.String(length=200), nullable=False),
        sa.Column("snapshot", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )

    op.create_table(
        "execution_runs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("trace_id", sa.String(length=200), nullable=False),
        sa.Column("plan_user_intent", sa.Text(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("actions_count", sa.Integer(), nullable=False),
        sa.Column("state", _enum("DONE", "FAILED", name="run_state"), nullable=False),
        sa.CheckConstraint("actions_count >= 0", name="ck_execution_runs_actions_count"),
    )
    op.create_index("ix_execution_runs_trace_id", "execution_runs", ["trace_id"])

    op.create_table(
        "action_records",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("action_type", sa.String(length=100), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column(
            "status",
            _enum("success", "skipped", "failed", "pending", name="action_status"),
            nullable=False,
        ),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(["run_id"], ["execution_runs.id"]),
    )

    op.create_table(
        "detail_source_links",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("trace_id", sa.String(length=200), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=True),
        sa.Column(
            "source_type",
            _enum("note-vault", "task-tracker", "issue-tracker", name="source_type"),
            nullable=False,
        ),
        sa.Column("external_id", sa.String(length=1000), nullable=False),
        sa.Column("uri", sa.Text(), nullable=True),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["run_id"], ["execution_runs.id"]),
    )
    op.create_index("ix_detail_source_links_trace_id", "detail_source_links", ["trace_id"])

    op.create_table(
        "verification_results",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("trace_id", sa.String(length=200), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column(
            "status",
            _enum("passing", "failing", name="verification_status"),
            nullable=False,
        ),
        sa.Column("issues", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["run_id"], ["execution_runs.id"]),
    )
    op.create_index("ix_verification_results_trace_id", "verification_results", ["trace_id"])

    op.create_table(
        "observability_evidence",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("trace_id", sa.String(length=200), nullable=False),
        sa.Column("kind", _enum("trace", "artifact", name="evidence_kind"), nullable=False),
        sa.Column("reference", sa.Text(), nullable=False),
        sa.Column(
            "status",
            _enum("recorded", "missing_config", "failed", name="evidence_status"),
            nullable=False,
        ),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    )
    op.create_index(
        "ix_observability_evidence_trace_kind",
        "observability_evidence",
        ["trace_id", "kind"],
    )


def downgrade() -> None:
    op.drop_index("ix_observability_evidence_trace_kind", table_name="observability_evidence")
    op.drop_table("observability_evidence")
    op.drop_index("ix_verification_results_trace_id", table_name="verification_results")
    op.drop_table("verification_results")
    op.drop_index("ix_detail_source_links_trace_id", table_name="detail_source_links")
    op.drop_table("detail_source_links")
    op.drop_table("action_records")
    op.drop_index("ix_execution_runs_trace_id", table_name="execution_runs")
    op.drop_table("execution_runs")
    op.drop_table("planning_contexts")
    op.drop_index("ix_events_trace_occurred", table_name="events")
    op.drop_table("events")
