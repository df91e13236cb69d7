"""Pytest configuration for the capture assistant test suite."""

from __future__ import annotations

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Callable, Generator

import pytest

ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"
sys.path.insert(0, str(SRC))

_CONFIG_ENV_KEYS = (
    "ANTHROPIC_API_KEY",
    "OBSIDIAN_VAULT_PATH",
    "OBSIDIAN_REST_URL",
    "OBSIDIAN_REST_TOKEN",
    "TODOIST_API_TOKEN",
    "TODOIST_DEFAULT_PROJECT_ID",
    "TODOIST_DEFAULT_LABELS",
    "LINEAR_API_TOKEN",
    "LINEAR_DEFAULT_TEAM_ID",
    "LINEAR_DEFAULT_ASSIGNEE_ID",
    "DATABASE_URL",
    "APP_DB_PATH",
    "DRY_RUN",
    "GLOBAL_TAGS",
    "RECEIPTS_FOLDER",
    "EVALS_DIR",
    "ARTIFACTS_DIR",
    "OTEL_TRACING_ENABLED",
    "OTEL_CONSOLE_EXPORTER",
    "OTEL_EXPORTER_OTLP_ENDPOINT",
)

from connectors.base import (  # noqa: E402
    CreatedIssue,
    CreatedTask,
    IssueCreateRequest,
    NoteWrite,
    TaskCreateRequest,
)
from contracts.plan import IssuePatch  # noqa: E402

TRACE_ID = "trace-0001-capture"


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch, tmp_path) -> None:
    """Keep host configuration out of tests and point storage at tmp_path."""
    for key in _CONFIG_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr("config._USER_CONFIG_PATHS", [])
    monkeypatch.setattr("config._USER_SECRETS_PATHS", [])
    monkeypatch.setenv("APP_DB_PATH", ":memory:")
    monkeypatch.setenv("EVALS_DIR", str(tmp_path / "evals"))
    monkeypatch.setenv("ARTIFACTS_DIR", str(tmp_path / "artifacts"))


@pytest.fixture
def sqlite_session_factory() -> Generator[Any, None, None]:
    """Provide an in-memory sqlite session factory with the full schema."""
    from models import Base
    from services.database import create_db_engine, create_session_factory

    engine = create_db_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    yield create_session_factory(engine)
    engine.dispose()


class DeterministicClock:
    """Clock that advances one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> DeterministicClock:
    """Return a clock that ticks forward on every call."""
    return DeterministicClock()


class RecordingNotes:
    """Note store that keeps written notes in memory."""

    def __init__(self) -> None:
        self.files: dict[str, str] = {}
        self.calls: list[tuple[str, str]] = []

    def upsert(self, path: str, markdown: str) -> NoteWrite:
        self.calls.append(("upsert", path))
        self.files[path] = markdown
        return NoteWrite(path=path, uri=f"obsidian://open?path={path}")

    def append(self, path: str, markdown: str) -> NoteWrite:
        self.calls.append(("append", path))
        self.files[path] = self.files.get(path, "") + markdown
        return NoteWrite(path=path, uri=f"obsidian://open?path={path}")


class RecordingTasks:
    """Task tracker that hands out sequential ids."""

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.created: list[TaskCreateRequest] = []
        self.closed: list[str] = []
        self.fail_with = fail_with

    def create_task(self, request: TaskCreateRequest) -> CreatedTask:
        if self.fail_with is not None:
            raise self.fail_with
        self.created.append(request)
        task_id = f"task-{len(self.created)}"
        return CreatedTask(
            id=task_id, content=request.content, url=f"https://tasks.test/{task_id}"
        )

    def close_task(self, task_id: str) -> None:
        self.closed.append(task_id)


class RecordingIssues:
    """Issue tracker that hands out sequential ids."""

    def __init__(self) -> None:
        self.created: list[IssueCreateRequest] = []
        self.updated: list[tuple[str, IssuePatch]] = []

    def create_issue(self, request: IssueCreateRequest) -> CreatedIssue:
        self.created.append(request)
        issue_id = f"ISS-{len(self.created)}"
        return CreatedIssue(
            id=issue_id, title=request.title, url=f"https://issues.test/{issue_id}"
        )

    def update_issue(self, issue_id: str, patch: IssuePatch) -> None:
        self.updated.append((issue_id, patch))


@pytest.fixture
def notes() -> RecordingNotes:
    """Return an in-memory note store."""
    return RecordingNotes()


@pytest.fixture
def tasks() -> RecordingTasks:
    """Return an in-memory task tracker."""
    return RecordingTasks()


@pytest.fixture
def issues() -> RecordingIssues:
    """Return an in-memory issue tracker."""
    return RecordingIssues()


@pytest.fixture
def plan_data() -> Callable[..., dict[str, Any]]:
    """Return a builder for raw camelCase plan payloads."""

    def build(*actions: dict[str, Any], trace_id: str = TRACE_ID, **overrides: Any):
        data: dict[str, Any] = {
            "version": "1.0.0",
            "traceId": trace_id,
            "userIntent": "Capture the thing",
            "assumptions": [],
            "actions": list(actions)
            or [
                {
                    "type": "note.upsert",
                    "notePath": "Inbox/thing.md",
                    "title": "Thing",
                    "markdown": "Body",
                }
            ],
            "receiptSummary": "Captured the thing",
        }
        data.update(overrides)
        return data

    return build


@pytest.fixture
def event_data() -> Callable[..., dict[str, Any]]:
    """Return a builder for raw event envelopes."""

    def build(
        trace_id: str = TRACE_ID,
        event_id: str = "evt-1",
        occurred_at: str = "2025-01-01T12:00:00Z",
        **overrides: Any,
    ) -> dict[str, Any]:
        data: dict[str, Any] = {
            "event_id": event_id,
            "trace_id": trace_id,
            "source": "manual",
            "type": "capture.requested",
            "occurred_at": occurred_at,
            "received_at": occurred_at,
            "payload": {"text": "Capture the thing"},
            "context": {"user_id": "local"},
        }
        data.update(overrides)
        return data

    return build
