"""Read models returned by the run store."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any
from uuid import UUID

from execution.result import ExecutionResult


@dataclass(frozen=True)
class ExecutionRunRecord:
    """Durable record of one plan execution."""

    id: UUID
    trace_id: str
    plan_user_intent: str
    started_at: datetime
    finished_at: datetime
    summary: str | None
    actions_count: int
    state: str


@dataclass(frozen=True)
class ActionRecordView:
    """Persisted per-action row of a run."""

    id: UUID
    run_id: UUID
    position: int
    action_type: str
    payload: dict[str, Any]
    status: str
    detail: str | None


@dataclass(frozen=True)
class DetailSourceLinkRecord:
    """Persisted correlation between a trace and an external artifact."""

    id: UUID
    trace_id: str
    run_id: UUID | None
    source_type: str
    external_id: str
    uri: str | None
    metadata: dict[str, Any]
    created_at: datetime


@dataclass(frozen=True)
class ExecutionOutcome:
    """The execution result together with its recorded run."""

    result: ExecutionResult
    run: ExecutionRunRecord
