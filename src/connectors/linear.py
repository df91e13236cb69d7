"""Linear issue tracker connector (GraphQL API)."""

from __future__ import annotations

import logging
from typing import Any

from connectors.base import ConnectorError, CreatedIssue, IssueCreateRequest
from contracts.plan import IssuePatch
from services.http_client import HttpClient

logger = logging.getLogger(__name__)

LINEAR_API_URL = "https://api.linear.app/graphql"

_ISSUE_CREATE = """
mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id title url }
  }
}
"""

_ISSUE_UPDATE = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) {
    success
    issue { id }
  }
}
"""

_TEAM_LABELS = """
query TeamLabels($teamId: String!) {
  team(id: $teamId) {
    labels { nodes { id name } }
  }
}
"""


class LinearClient:
    """Creates and updates Linear issues."""

    def __init__(
        self,
        api_token: str,
        api_url: str = LINEAR_API_URL,
        http: HttpClient | None = None,
    ) -> None:
        """Initialize the client with a personal API key."""
        self.api_url = api_url
        self.http = http or HttpClient()
        self._headers = {"Authorization": api_token}
        self._label_cache: dict[str, dict[str, str]] = {}

    def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        """Run a GraphQL operation and return its ``data`` mapping."""
        payload = self.http.post(
            self.api_url,
            json={"query": query, "variables": variables},
            headers=self._headers,
        ).json()
        if payload.get("errors"):
            raise ConnectorError(f"Linear API errors: {payload['errors']}")
        return payload.get("data") or {}

    def _label_ids(self, team_id: str, names: tuple[str, ...]) -> list[str]:
        """Resolve label names to ids for a team, dropping unknown names."""
        if not names:
            return []
        if team_id not in self._label_cache:
            data = self._graphql(_TEAM_LABELS, {"teamId": team_id})
            nodes = ((data.get("team") or {}).get("labels") or {}).get("nodes") or []
            self._label_cache[team_id] = {
                node["name"].lower(): node["id"] for node in nodes if node.get("name")
            }
        known = self._label_cache[team_id]
        label_ids: list[str] = []
        for name in names:
            label_id = known.get(name.lower())
            if label_id is None:
                logger.info("Linear label not found for team %s: %s", team_id, name)
                continue
            label_ids.append(label_id)
        return label_ids

    def create_issue(self, request: IssueCreateRequest) -> CreatedIssue:
        """Create an issue and return its id, title, and url."""
        issue_input: dict[str, Any] = {"teamId": request.team_id, "title": request.title}
        if request.description:
            issue_input["description"] = request.description
        if request.assignee_id:
            issue_input["assigneeId"] = request.assignee_id
        label_ids = self._label_ids(request.team_id, request.labels)
        if label_ids:
            issue_input["labelIds"] = label_ids

        data = self._graphql(_ISSUE_CREATE, {"input": issue_input})
        issue = (data.get("issueCreate") or {}).get("issue") or {}
        if not issue.get("id"):
            raise ConnectorError(f"Linear issueCreate failed: {data!r}")
        logger.info("Linear issue created: %s", issue["id"])
        return CreatedIssue(
            id=issue["id"],
            title=issue.get("title") or request.title,
            url=issue.get("url"),
        )

    def update_issue(self, issue_id: str, patch: IssuePatch) -> None:
        """Apply a partial update to an issue."""
        issue_input = patch.model_dump(by_alias=True, exclude_none=True)
        data = self._graphql(_ISSUE_UPDATE, {"id": issue_id, "input": issue_input})
        if not (data.get("issueUpdate") or {}).get("success"):
            raise ConnectorError(f"Linear issueUpdate failed: {data!r}")
        logger.info("Linear issue updated: %s", issue_id)
