"""Resolution of environment defaults for plan actions."""

from __future__ import annotations

from typing import Iterable

from config import EnvironmentDefaults
from contracts.plan import IssueCreateAction, PlanAction, TaskCreateAction
from execution.errors import MissingEnvironmentDefault


def resolve_action(action: PlanAction, defaults: EnvironmentDefaults) -> PlanAction:
    """Return the action with unset fields filled from environment defaults.

    Raises:
        MissingEnvironmentDefault: If an issue has no team and no default team exists.
    """
    if isinstance(action, TaskCreateAction):
        if action.project_id is None and defaults.default_project_id:
            return action.model_copy(update={"project_id": defaults.default_project_id})
        return action

    if isinstance(action, IssueCreateAction):
        updates: dict[str, str] = {}
        if action.team_id is None:
            if not defaults.default_team_id:
                raise MissingEnvironmentDefault(
                    "team id", action.type, "LINEAR_DEFAULT_TEAM_ID"
                )
            updates["team_id"] = defaults.default_team_id
        if action.assignee_id is None and defaults.default_assignee_id:
            updates["assignee_id"] = defaults.default_assignee_id
        return action.model_copy(update=updates) if updates else action

    return action


def merge_unique(*groups: Iterable[str]) -> tuple[str, ...]:
    """Union tag groups, dropping blanks and duplicates while keeping first-seen order."""
    merged: dict[str, None] = {}
    for group in groups:
        for item in group:
            cleaned = item.strip()
            if cleaned:
                merged.setdefault(cleaned, None)
    return tuple(merged)
