"""Plan contract and the closed set of action variants.

The ``PlanAction`` union is the single definition of the action vocabulary: the
planner-facing JSON schema and the executor's dispatch both consume it.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Union, get_args

from pydantic import BaseModel, ConfigDict, Field, StrictInt, field_validator
from pydantic.alias_generators import to_camel

from contracts.identity import NonEmptyStr, TraceId
from contracts.version import CONTRACT_VERSION, ContractVersion

# Placeholder strings older planners emit instead of omitting a field.
LEGACY_DEFAULT_MARKERS = frozenset(
    {"__DEFAULT_TEAM__", "__DEFAULT_PROJECT__", "__DEFAULT_ASSIGNEE__"}
)

Priority = Annotated[StrictInt, Field(ge=1, le=4)]


def _clear_default_marker(value: Any) -> Any:
    if isinstance(value, str) and value.strip() in LEGACY_DEFAULT_MARKERS:
        return None
    return value


class _WireModel(BaseModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
    )

    def to_wire(self) -> dict[str, Any]:
        """Return the camelCase JSON-compatible representation."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class _ActionModel(_WireModel):
    model_config = ConfigDict(
        frozen=True,
        alias_generator=to_camel,
        populate_by_name=True,
        extra="forbid",
    )


class NoteUpsertAction(_ActionModel):
    """Create or replace a note in the vault."""

    type: Literal["note.upsert"] = "note.upsert"
    note_path: NonEmptyStr
    title: NonEmptyStr
    markdown: NonEmptyStr
    tags: tuple[str, ...] = ()


class NoteAppendReceiptAction(_ActionModel):
    """Append a receipt block to an existing note."""

    type: Literal["note.append_receipt"] = "note.append_receipt"
    note_path: NonEmptyStr
    receipt_markdown: NonEmptyStr


class TaskCreateAction(_ActionModel):
    """Create a task; a missing project falls back to the default project."""

    type: Literal["task.create"] = "task.create"
    content: NonEmptyStr
    description: str | None = None
    due: str | None = None
    priority: Priority | None = None
    project_id: str | None = None
    labels: tuple[str, ...] = ()

    @field_validator("project_id", mode="before")
    @classmethod
    def clear_project_marker(cls, value: Any) -> Any:
        return _clear_default_marker(value)


class TaskCloseAction(_ActionModel):
    """Close an existing task."""

    type: Literal["task.close"] = "task.close"
    task_id: NonEmptyStr


class IssueCreateAction(_ActionModel):
    """Create an issue; missing team or assignee fall back to defaults."""

    type: Literal["issue.create"] = "issue.create"
    team_id: str | None = None
    title: NonEmptyStr
    description: str | None = None
    assignee_id: str | None = None
    labels: tuple[str, ...] = ()

    @field_validator("team_id", "assignee_id", mode="before")
    @classmethod
    def clear_default_markers(cls, value: Any) -> Any:
        value = _clear_default_marker(value)
        if isinstance(value, str) and not value.strip():
            return None
        return value


class IssuePatch(_ActionModel):
    """Partial issue update."""

    state_id: str | None = None
    title: str | None = None
    description: str | None = None


class IssueUpdateAction(_ActionModel):
    """Apply a partial patch to an existing issue."""

    type: Literal["issue.update"] = "issue.update"
    issue_id: NonEmptyStr
    patch: IssuePatch


PlanAction = Annotated[
    Union[
        NoteUpsertAction,
        NoteAppendReceiptAction,
        TaskCreateAction,
        TaskCloseAction,
        IssueCreateAction,
        IssueUpdateAction,
    ],
    Field(discriminator="type"),
]

ACTION_MODELS: tuple[type[_ActionModel], ...] = get_args(get_args(PlanAction)[0])
ACTION_TYPES: tuple[str, ...] = tuple(
    get_args(model.model_fields["type"].annotation)[0] for model in ACTION_MODELS
)


class Plan(_WireModel):
    """A validated, schema-closed list of actions for one trace."""

    version: ContractVersion = CONTRACT_VERSION
    trace_id: TraceId
    user_intent: NonEmptyStr
    assumptions: tuple[str, ...] = ()
    actions: tuple[PlanAction, ...] = Field(min_length=1)
    receipt_summary: NonEmptyStr

    def first_action(self, action_type: type[_ActionModel]) -> _ActionModel | None:
        """Return the first action of the given class, if any."""
        for action in self.actions:
            if isinstance(action, action_type):
                return action
        return None
