"""Immutable execution results and the builder that accumulates them."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from connectors.base import CreatedIssue, CreatedTask, NoteWrite

ActionStatus = Literal["success", "skipped", "failed", "pending"]


@dataclass(frozen=True)
class ActionOutcome:
    """What happened to one plan action."""

    index: int
    type: str
    status: ActionStatus
    detail: str | None = None


@dataclass(frozen=True)
class ExecutionResult:
    """Outcome of executing one plan, grouped by external system."""

    trace_id: str
    notes: tuple[NoteWrite, ...] = ()
    created_tasks: tuple[CreatedTask, ...] = ()
    closed_tasks: tuple[str, ...] = ()
    created_issues: tuple[CreatedIssue, ...] = ()
    updated_issues: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()
    outcomes: tuple[ActionOutcome, ...] = ()

    @property
    def failed(self) -> bool:
        """Return True when any action failed."""
        return any(outcome.status == "failed" for outcome in self.outcomes)

    @property
    def artifact_count(self) -> int:
        """Return the number of external artifacts produced."""
        return len(self.notes) + len(self.created_tasks) + len(self.created_issues)


@dataclass
class ResultBuilder:
    """Append-only accumulator for one execution pass."""

    trace_id: str
    notes: list[NoteWrite] = field(default_factory=list)
    created_tasks: list[CreatedTask] = field(default_factory=list)
    closed_tasks: list[str] = field(default_factory=list)
    created_issues: list[CreatedIssue] = field(default_factory=list)
    updated_issues: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    outcomes: list[ActionOutcome] = field(default_factory=list)

    def outcome(
        self,
        index: int,
        action_type: str,
        status: ActionStatus,
        detail: str | None = None,
    ) -> None:
        """Record the outcome of one action."""
        self.outcomes.append(ActionOutcome(index, action_type, status, detail))

    def skip(self, index: int, action_type: str, warning: str) -> None:
        """Record a skipped action along with its warning."""
        self.warnings.append(warning)
        self.outcome(index, action_type, "skipped", warning)

    def freeze(self) -> ExecutionResult:
        """Return the immutable result."""
        return ExecutionResult(
            trace_id=self.trace_id,
            notes=tuple(self.notes),
            created_tasks=tuple(self.created_tasks),
            closed_tasks=tuple(self.closed_tasks),
            created_issues=tuple(self.created_issues),
            updated_issues=tuple(self.updated_issues),
            warnings=tuple(self.warnings),
            outcomes=tuple(self.outcomes),
        )
