"""Capability interfaces the executor calls, plus their request/response types."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Protocol

from contracts.plan import IssuePatch


@dataclass(frozen=True)
class NoteWrite:
    """A note mutation acknowledged by the vault."""

    path: str
    uri: str | None = None


@dataclass(frozen=True)
class TaskCreateRequest:
    """Fully resolved task creation request."""

    content: str
    description: str | None = None
    project_id: str | None = None
    priority: int | None = None
    due_date: str | None = None
    due_datetime: str | None = None
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class CreatedTask:
    """A task created in the task tracker."""

    id: str
    content: str
    url: str | None = None


@dataclass(frozen=True)
class IssueCreateRequest:
    """Fully resolved issue creation request."""

    team_id: str
    title: str
    description: str | None = None
    assignee_id: str | None = None
    labels: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class CreatedIssue:
    """An issue created in the issue tracker."""

    id: str
    title: str
    url: str | None = None


class NoteStore(Protocol):
    """Writes markdown notes into the vault."""

    def upsert(self, path: str, markdown: str) -> NoteWrite:
        """Create or replace the note at ``path``."""

    def append(self, path: str, markdown: str) -> NoteWrite:
        """Append markdown to the note at ``path``."""


class TaskTracker(Protocol):
    """Creates and closes tasks."""

    def create_task(self, request: TaskCreateRequest) -> CreatedTask:
        """Create one task."""

    def close_task(self, task_id: str) -> None:
        """Close one task."""


class IssueTracker(Protocol):
    """Creates and updates issues."""

    def create_issue(self, request: IssueCreateRequest) -> CreatedIssue:
        """Create one issue."""

    def update_issue(self, issue_id: str, patch: IssuePatch) -> None:
        """Apply a partial update to one issue."""


class ConnectorError(RuntimeError):
    """Raised when an external system rejects a request."""


@dataclass(frozen=True)
class Connectors:
    """The configured connectors; ``None`` means the system is unavailable."""

    notes: NoteStore | None = None
    tasks: TaskTracker | None = None
    issues: IssueTracker | None = None

    def capabilities(self) -> list[str]:
        """Return the source types with a configured connector."""
        available: list[str] = []
        if self.notes is not None:
            available.append("note-vault")
        if self.tasks is not None:
            available.append("task-tracker")
        if self.issues is not None:
            available.append("issue-tracker")
        return available
