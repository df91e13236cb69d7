"""Plan executor: walks a validated plan and dispatches each action to a connector.

Actions run strictly in order. Skips (dry run, missing connector, missing
default) become warnings and the plan continues; a connector call that raises
aborts the remaining actions. Either way the result is persisted through the
run store before control returns, so plan-level atomicity is not guaranteed.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, Iterable, assert_never

from config import EnvironmentDefaults, Settings
from connectors.base import (
    Connectors,
    IssueCreateRequest,
    IssueTracker,
    NoteStore,
    TaskCreateRequest,
    TaskTracker,
)
from contracts.plan import (
    IssueCreateAction,
    IssueUpdateAction,
    NoteAppendReceiptAction,
    NoteUpsertAction,
    Plan,
    PlanAction,
    TaskCloseAction,
    TaskCreateAction,
)
from execution.defaults import merge_unique, resolve_action
from execution.errors import ConnectorCallFailure, ConnectorUnavailable, MissingEnvironmentDefault
from execution.records import ExecutionOutcome
from execution.result import ExecutionResult, ResultBuilder
from execution.store import RunStore
from observability.logging_setup import log_context
from observability.telemetry import PipelineMetrics
from time_utils import looks_date_only, utc_now

logger = logging.getLogger(__name__)

ISSUE_SOURCE_LABEL = "assistant"

_NOTE_HINT = "Set OBSIDIAN_VAULT_PATH or OBSIDIAN_REST_URL."
_TASK_HINT = "Set TODOIST_API_TOKEN to create tasks."
_ISSUE_HINT = "Set LINEAR_API_TOKEN to create issues."


def render_note(title: str, markdown: str, tags: Iterable[str]) -> str:
    """Render note markdown with a title heading and an optional tag line."""
    lines = [f"# {title}", ""]
    tag_list = list(tags)
    if tag_list:
        rendered = " ".join("#" + "-".join(tag.split()) for tag in tag_list)
        lines.extend([f"Tags: {rendered}", ""])
    lines.extend([markdown.strip(), ""])
    return "\n".join(lines)


def issue_description(description: str | None, trace_id: str) -> str:
    """Append the trace footer to an issue description."""
    return "\n".join(
        [
            (description or "").strip(),
            "",
            "---",
            f"traceId: {trace_id}",
            f"source: {ISSUE_SOURCE_LABEL}",
        ]
    ).strip()


def route_due(due: str | None) -> tuple[str | None, str | None]:
    """Split a due value into ``(due_date, due_datetime)``."""
    if not due:
        return None, None
    if looks_date_only(due):
        return due, None
    return None, due


class PlanExecutor:
    """Executes plans against the configured connectors and records each run."""

    def __init__(
        self,
        connectors: Connectors,
        store: RunStore,
        *,
        defaults: EnvironmentDefaults | None = None,
        global_tags: Iterable[str] = (),
        default_task_labels: Iterable[str] = (),
        dry_run: bool = False,
        metrics: PipelineMetrics | None = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize the executor.

        Args:
            connectors: Configured connectors; missing ones cause skips.
            store: Run store that persists every execution.
            defaults: Environment defaults used to fill unset action fields.
            global_tags: Tags merged into every note, task, and issue.
            default_task_labels: Labels merged into every task.
            dry_run: When True, no connector is ever called.
            metrics: Optional pipeline metrics sink.
            clock: Time source for run timestamps.
        """
        self._connectors = connectors
        self._store = store
        self._defaults = defaults or EnvironmentDefaults()
        self._global_tags = tuple(global_tags)
        self._default_task_labels = tuple(default_task_labels)
        self._dry_run = dry_run
        self._metrics = metrics
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        connectors: Connectors,
        store: RunStore,
        metrics: PipelineMetrics | None = None,
    ) -> "PlanExecutor":
        """Build an executor from application settings."""
        return cls(
            connectors,
            store,
            defaults=settings.environment_defaults(),
            global_tags=settings.execution.global_tags,
            default_task_labels=settings.todoist.default_labels,
            dry_run=settings.execution.dry_run,
            metrics=metrics,
        )

    def execute(self, plan: Plan) -> ExecutionResult:
        """Execute the plan and return its already-persisted result."""
        return self.run(plan).result

    def run(self, plan: Plan) -> ExecutionOutcome:
        """Execute the plan and return the result together with the recorded run.

        Raises:
            ConnectorCallFailure: If a connector call raised. Remaining actions
                are marked pending and the partial result is persisted first.
        """
        started_at = self._clock()
        builder = ResultBuilder(plan.trace_id)
        with log_context({"trace_id": plan.trace_id}):
            logger.info(
                "Executing plan: actions=%s dry_run=%s",
                len(plan.actions),
                self._dry_run,
            )
            for index, action in enumerate(plan.actions):
                try:
                    self._apply(index, action, plan.trace_id, builder)
                except (ConnectorUnavailable, MissingEnvironmentDefault) as exc:
                    logger.warning("Action %s skipped: %s", index, exc)
                    builder.skip(index, action.type, str(exc))
                except Exception as exc:
                    logger.error("Action %s (%s) failed: %s", index, action.type, exc)
                    builder.outcome(index, action.type, "failed", str(exc))
                    for later_index in range(index + 1, len(plan.actions)):
                        builder.outcome(later_index, plan.actions[later_index].type, "pending")
                    outcome = self._finish(plan, builder, started_at)
                    raise ConnectorCallFailure(
                        plan.trace_id, index, action.type, exc, outcome.run
                    ) from exc
            return self._finish(plan, builder, started_at)

    def _finish(
        self,
        plan: Plan,
        builder: ResultBuilder,
        started_at: datetime,
    ) -> ExecutionOutcome:
        result = builder.freeze()
        finished_at = self._clock()
        run = self._store.record(plan, result, started_at, finished_at)
        if self._metrics is not None:
            for action_outcome in result.outcomes:
                self._metrics.record_action(action_outcome.type, action_outcome.status)
            duration_ms = (finished_at - started_at).total_seconds() * 1000
            self._metrics.record_plan(run.state, duration_ms)
        logger.info(
            "Plan executed: run=%s state=%s warnings=%s",
            run.id,
            run.state,
            len(result.warnings),
        )
        return ExecutionOutcome(result=result, run=run)

    def _apply(
        self,
        index: int,
        action: PlanAction,
        trace_id: str,
        builder: ResultBuilder,
    ) -> None:
        action = resolve_action(action, self._defaults)
        match action:
            case NoteUpsertAction():
                self._upsert_note(index, action, builder)
            case NoteAppendReceiptAction():
                self._append_receipt(index, action, builder)
            case TaskCreateAction():
                self._create_task(index, action, builder)
            case TaskCloseAction():
                self._close_task(index, action, builder)
            case IssueCreateAction():
                self._create_issue(index, action, trace_id, builder)
            case IssueUpdateAction():
                self._update_issue(index, action, builder)
            case _:
                assert_never(action)

    def _dry_run_skip(
        self,
        index: int,
        action_type: str,
        intent: str,
        builder: ResultBuilder,
    ) -> bool:
        if not self._dry_run:
            return False
        logger.info("Dry run: would %s", intent)
        builder.skip(index, action_type, f"Dry run: would {intent}")
        return True

    def _notes(self, action_type: str) -> NoteStore:
        if self._connectors.notes is None:
            raise ConnectorUnavailable("note vault", action_type, _NOTE_HINT)
        return self._connectors.notes

    def _tasks(self, action_type: str) -> TaskTracker:
        if self._connectors.tasks is None:
            raise ConnectorUnavailable("task tracker", action_type, _TASK_HINT)
        return self._connectors.tasks

    def _issues(self, action_type: str) -> IssueTracker:
        if self._connectors.issues is None:
            raise ConnectorUnavailable("issue tracker", action_type, _ISSUE_HINT)
        return self._connectors.issues

    def _upsert_note(self, index: int, action: NoteUpsertAction, builder: ResultBuilder) -> None:
        tags = merge_unique(self._global_tags, action.tags)
        markdown = render_note(action.title, action.markdown, tags)
        if self._dry_run_skip(index, action.type, f"upsert note {action.note_path}", builder):
            return
        write = self._notes(action.type).upsert(action.note_path, markdown)
        builder.notes.append(write)
        builder.outcome(index, action.type, "success", write.path)

    def _append_receipt(
        self,
        index: int,
        action: NoteAppendReceiptAction,
        builder: ResultBuilder,
    ) -> None:
        intent = f"append receipt to {action.note_path}"
        if self._dry_run_skip(index, action.type, intent, builder):
            return
        write = self._notes(action.type).append(action.note_path, action.receipt_markdown)
        builder.notes.append(write)
        builder.outcome(index, action.type, "success", write.path)

    def _create_task(self, index: int, action: TaskCreateAction, builder: ResultBuilder) -> None:
        due_date, due_datetime = route_due(action.due)
        request = TaskCreateRequest(
            content=action.content,
            description=action.description,
            project_id=action.project_id,
            priority=action.priority,
            due_date=due_date,
            due_datetime=due_datetime,
            labels=merge_unique(self._default_task_labels, self._global_tags, action.labels),
        )
        if self._dry_run_skip(index, action.type, f"create task {action.content!r}", builder):
            return
        task = self._tasks(action.type).create_task(request)
        builder.created_tasks.append(task)
        builder.outcome(index, action.type, "success", task.id)

    def _close_task(self, index: int, action: TaskCloseAction, builder: ResultBuilder) -> None:
        if self._dry_run_skip(index, action.type, f"close task {action.task_id}", builder):
            return
        self._tasks(action.type).close_task(action.task_id)
        builder.closed_tasks.append(action.task_id)
        builder.outcome(index, action.type, "success", action.task_id)

    def _create_issue(
        self,
        index: int,
        action: IssueCreateAction,
        trace_id: str,
        builder: ResultBuilder,
    ) -> None:
        request = IssueCreateRequest(
            team_id=action.team_id,
            title=action.title,
            description=issue_description(action.description, trace_id),
            assignee_id=action.assignee_id,
            labels=merge_unique(self._global_tags, action.labels),
        )
        if self._dry_run_skip(index, action.type, f"create issue {action.title!r}", builder):
            return
        issue = self._issues(action.type).create_issue(request)
        builder.created_issues.append(issue)
        builder.outcome(index, action.type, "success", issue.id)

    def _update_issue(self, index: int, action: IssueUpdateAction, builder: ResultBuilder) -> None:
        if self._dry_run_skip(index, action.type, f"update issue {action.issue_id}", builder):
            return
        self._issues(action.type).update_issue(action.issue_id, action.patch)
        builder.updated_issues.append(action.issue_id)
        builder.outcome(index, action.type, "success", action.issue_id)
