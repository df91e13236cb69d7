"""Obsidian note vault connectors: direct filesystem writes or the Local REST API."""

from __future__ import annotations

import logging
from pathlib import Path, PurePosixPath
from urllib.parse import quote

from connectors.base import NoteWrite
from services.http_client import HttpClient

logger = logging.getLogger(__name__)


def _open_uri(path: str, *, include_file: bool = True) -> str:
    """Build an ``obsidian://open`` link for a vault-relative path."""
    uri = f"obsidian://open?path={quote(path, safe='')}"
    if include_file:
        uri += f"&file={quote(PurePosixPath(path).name, safe='')}"
    return uri


class ObsidianVault:
    """Writes notes directly into a local vault directory."""

    def __init__(self, vault_path: str | Path) -> None:
        """Initialize the connector for the vault root."""
        self.vault_path = Path(vault_path).expanduser()

    def _resolve(self, path: str) -> Path:
        root = self.vault_path.resolve()
        target = (root / path).resolve()
        if not target.is_relative_to(root):
            raise ValueError(f"Note path escapes the vault: {path}")
        return target

    def upsert(self, path: str, markdown: str) -> NoteWrite:
        """Create or replace a note file."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(markdown, encoding="utf-8")
        logger.info("Vault note written: %s chars=%s", path, len(markdown))
        return NoteWrite(path=path, uri=_open_uri(path))

    def append(self, path: str, markdown: str) -> NoteWrite:
        """Append markdown to a note file, creating it when absent."""
        target = self._resolve(path)
        target.parent.mkdir(parents=True, exist_ok=True)
        existing = target.read_text(encoding="utf-8") if target.exists() else ""
        separator = "" if not existing or existing.endswith("\n") else "\n"
        with target.open("a", encoding="utf-8") as handle:
            handle.write(f"{separator}{markdown}")
        logger.info("Vault note appended: %s chars=%s", path, len(markdown))
        return NoteWrite(path=path, uri=_open_uri(path))


class ObsidianRest:
    """Writes notes through the Obsidian Local REST API plugin."""

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        http: HttpClient | None = None,
    ) -> None:
        """Initialize the connector for the REST endpoint."""
        self.base_url = base_url.rstrip("/")
        self.http = http or HttpClient()
        self._headers = {"Content-Type": "text/markdown"}
        if api_key:
            self._headers["Authorization"] = f"Bearer {api_key}"

    def _note_url(self, path: str) -> str:
        return f"{self.base_url}/vault/{quote(path.lstrip('/'))}"

    def upsert(self, path: str, markdown: str) -> NoteWrite:
        """Create or replace a note through the REST API."""
        self.http.put(
            self._note_url(path),
            content=markdown.encode("utf-8"),
            headers=self._headers,
        )
        logger.info("REST note written: %s chars=%s", path, len(markdown))
        return NoteWrite(path=path, uri=_open_uri(path, include_file=False))

    def append(self, path: str, markdown: str) -> NoteWrite:
        """Append markdown to a note through the REST API."""
        self.http.post(
            self._note_url(path),
            content=markdown.encode("utf-8"),
            headers=self._headers,
        )
        logger.info("REST note appended: %s chars=%s", path, len(markdown))
        return NoteWrite(path=path, uri=_open_uri(path, include_file=False))
