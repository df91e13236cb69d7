"""External system connectors and the registry that builds them from settings."""

from __future__ import annotations

import logging

from config import Settings
from connectors.base import Connectors
from connectors.linear import LinearClient
from connectors.obsidian import ObsidianRest, ObsidianVault
from connectors.todoist import TodoistClient
from services.http_client import HttpClient

logger = logging.getLogger(__name__)


def build_connectors(settings: Settings) -> Connectors:
    """Build the connectors whose credentials are configured.

    A vault path takes precedence over the REST endpoint for notes.
    """
    http = HttpClient(
        timeout=settings.http.timeout,
        connect_timeout=settings.http.connect_timeout,
    )

    notes = None
    if settings.obsidian.vault_path:
        notes = ObsidianVault(settings.obsidian.vault_path)
    elif settings.obsidian.rest_url:
        notes = ObsidianRest(settings.obsidian.rest_url, settings.obsidian.api_key, http=http)

    tasks = None
    if settings.todoist.api_token:
        tasks = TodoistClient(settings.todoist.api_token, settings.todoist.base_url, http=http)

    issues = None
    if settings.linear.api_token:
        issues = LinearClient(settings.linear.api_token, settings.linear.api_url, http=http)

    connectors = Connectors(notes=notes, tasks=tasks, issues=issues)
    logger.debug("Connectors configured: %s", ", ".join(connectors.capabilities()) or "none")
    return connectors
