"""Cross-system link graph contract."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

from contracts.identity import TraceId
from contracts.version import CONTRACT_VERSION, ContractVersion


class SourceType(str, Enum):
    """External system a detail source link points into."""

    NOTE_VAULT = "note-vault"
    TASK_TRACKER = "task-tracker"
    ISSUE_TRACKER = "issue-tracker"


class LinkGraph(BaseModel):
    """External ids produced for one trace, grouped by system."""

    model_config = ConfigDict(frozen=True)

    version: ContractVersion = CONTRACT_VERSION
    trace_id: TraceId
    note_path: str | None = None
    task_ids: list[str] = Field(default_factory=list)
    issue_ids: list[str] = Field(default_factory=list)
