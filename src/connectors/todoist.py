"""Todoist task tracker connector (REST API v1)."""

from __future__ import annotations

import logging
from typing import Any

from connectors.base import ConnectorError, CreatedTask, TaskCreateRequest
from services.http_client import HttpClient

logger = logging.getLogger(__name__)

TODOIST_BASE_URL = "https://api.todoist.com/api/v1"


class TodoistClient:
    """Creates and closes Todoist tasks."""

    def __init__(
        self,
        api_token: str,
        base_url: str = TODOIST_BASE_URL,
        http: HttpClient | None = None,
    ) -> None:
        """Initialize the client with a personal API token."""
        self.base_url = base_url.rstrip("/")
        self.http = http or HttpClient()
        self._headers = {"Authorization": f"Bearer {api_token}"}

    def create_task(self, request: TaskCreateRequest) -> CreatedTask:
        """Create a task and return its id, content, and url."""
        body: dict[str, Any] = {"content": request.content}
        if request.description:
            body["description"] = request.description
        if request.project_id:
            body["project_id"] = request.project_id
        if request.priority is not None:
            body["priority"] = request.priority
        if request.due_date:
            body["due_date"] = request.due_date
        if request.due_datetime:
            body["due_datetime"] = request.due_datetime
        if request.labels:
            body["labels"] = list(request.labels)

        response = self.http.post(f"{self.base_url}/tasks", json=body, headers=self._headers)
        data = response.json()
        task_id = data.get("id") if isinstance(data, dict) else None
        if not task_id:
            raise ConnectorError(f"Todoist task creation returned no id: {data!r}")
        logger.info("Todoist task created: %s", task_id)
        return CreatedTask(
            id=str(task_id),
            content=data.get("content") or request.content,
            url=data.get("url"),
        )

    def close_task(self, task_id: str) -> None:
        """Mark a task as completed."""
        self.http.post(f"{self.base_url}/tasks/{task_id}/close", headers=self._headers)
        logger.info("Todoist task closed: %s", task_id)
