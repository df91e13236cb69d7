"""Error types raised while executing a plan."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from execution.records import ExecutionRunRecord


class ConnectorUnavailable(RuntimeError):
    """Raised when an action targets a system with no configured connector."""

    def __init__(self, source_type: str, action_type: str, hint: str) -> None:
        """Initialize the error with the missing source type and a config hint."""
        super().__init__(f"No {source_type} connector configured; skipped {action_type}. {hint}")
        self.source_type = source_type
        self.action_type = action_type


class MissingEnvironmentDefault(LookupError):
    """Raised when an action needs a default that is not configured."""

    def __init__(self, field: str, action_type: str, setting: str) -> None:
        """Initialize the error with the unresolved field and the setting to configure."""
        super().__init__(f"{action_type} skipped (missing {field}). Configure {setting}.")
        self.field = field
        self.action_type = action_type
        self.setting = setting


class ConnectorCallFailure(RuntimeError):
    """Raised when a connector call fails and the rest of the plan is aborted.

    The partial result has already been persisted; ``run`` is the recorded run.
    """

    def __init__(
        self,
        trace_id: str,
        index: int,
        action_type: str,
        cause: BaseException,
        run: "ExecutionRunRecord",
    ) -> None:
        """Initialize the error with the failing action and the persisted run."""
        super().__init__(
            f"trace {trace_id}: action {index} ({action_type}) failed: {cause}"
        )
        self.trace_id = trace_id
        self.index = index
        self.action_type = action_type
        self.cause = cause
        self.run = run
