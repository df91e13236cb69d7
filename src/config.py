"""Configuration management for the capture assistant."""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_REPO_ROOT = Path(__file__).resolve().parents[1]
_DEFAULT_CONFIG_PATH = _REPO_ROOT / "config" / "assistant.yml"
_USER_CONFIG_PATHS = [
    Path("~/.config/assistant/assistant.yml").expanduser(),
    Path("/config/assistant.yml"),
]
_USER_SECRETS_PATHS = [
    Path("~/.config/assistant/secrets.yml").expanduser(),
    Path("/config/secrets.yml"),
]


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML mapping from disk, returning an empty mapping if missing."""
    if not path.exists():
        return {}
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping: {path}")
    return data


def _deep_merge(target: dict[str, Any], source: dict[str, Any]) -> dict[str, Any]:
    """Merge ``source`` into ``target`` recursively, preferring ``source`` leaves."""
    for key, value in source.items():
        existing = target.get(key)
        if isinstance(existing, dict) and isinstance(value, dict):
            _deep_merge(existing, value)
        else:
            target[key] = value
    return target


def _yaml_settings_source(paths: list[Path]):
    """Create a Pydantic settings source for a list of YAML paths."""

    def source() -> dict[str, Any]:
        merged: dict[str, Any] = {}
        for path in paths:
            _deep_merge(merged, _load_yaml(path))
        return merged

    return source


def _set_nested_value(target: dict[str, Any], path: str, value: Any) -> None:
    """Set a dotted-path value on a nested mapping, creating containers."""
    parts = path.split(".")
    cursor = target
    for key in parts[:-1]:
        node = cursor.get(key)
        if not isinstance(node, dict):
            node = {}
            cursor[key] = node
        cursor = node
    cursor[parts[-1]] = value


def _parse_env_value(raw: str, kind: str) -> Any:
    """Parse an environment value into the requested primitive type."""
    if kind == "int":
        return int(raw)
    if kind == "bool":
        return raw.strip().lower() in {"1", "true", "yes", "on"}
    if kind == "json":
        return json.loads(raw)
    if kind == "csv":
        return [item.strip() for item in raw.split(",") if item.strip()]
    return raw


def _env_settings_source():
    """Create a settings source that maps environment variables to config keys."""
    mapping = {
        "ANTHROPIC_API_KEY": ("anthropic_api_key", "str"),
        "LOG_LEVEL": ("log_level", "str"),
        "LOG_JSON": ("log_json", "bool"),
        "OBSIDIAN_VAULT_PATH": ("obsidian.vault_path", "str"),
        "OBSIDIAN_REST_URL": ("obsidian.rest_url", "str"),
        "OBSIDIAN_REST_TOKEN": ("obsidian.api_key", "str"),
        "TODOIST_API_TOKEN": ("todoist.api_token", "str"),
        "TODOIST_DEFAULT_PROJECT_ID": ("todoist.default_project_id", "str"),
        "TODOIST_DEFAULT_LABELS": ("todoist.default_labels", "csv"),
        "LINEAR_API_TOKEN": ("linear.api_token", "str"),
        "LINEAR_DEFAULT_TEAM_ID": ("linear.default_team_id", "str"),
        "LINEAR_DEFAULT_ASSIGNEE_ID": ("linear.default_assignee_id", "str"),
        "DATABASE_URL": ("database.url", "str"),
        "APP_DB_PATH": ("database.path", "str"),
        "DRY_RUN": ("execution.dry_run", "bool"),
        "GLOBAL_TAGS": ("execution.global_tags", "csv"),
        "RECEIPTS_FOLDER": ("execution.receipts_folder", "str"),
        "EVALS_DIR": ("evals.dir", "str"),
        "ARTIFACTS_DIR": ("artifacts.dir", "str"),
        "HTTP_TIMEOUT": ("http.timeout", "int"),
        "LLM_BASE_URL": ("llm.base_url", "str"),
        "LLM_TIMEOUT": ("llm.timeout", "int"),
        "LITELLM_MODEL": ("llm.model", "str"),
        "CLAUDE_MODEL": ("llm.model", "str"),
        "OTEL_TRACING_ENABLED": ("observability.tracing_enabled", "bool"),
        "OTEL_CONSOLE_EXPORTER": ("observability.console_exporter", "bool"),
        "OTEL_EXPORTER_OTLP_ENDPOINT": ("observability.otlp_endpoint", "str"),
        "OTEL_SERVICE_NAME": ("observability.service_name", "str"),
    }

    def source() -> dict[str, Any]:
        data: dict[str, Any] = {}
        for env_key, (path, kind) in mapping.items():
            raw = os.environ.get(env_key)
            if raw is None:
                continue
            _set_nested_value(data, path, _parse_env_value(raw, kind))
        return data

    return source


class ObsidianConfig(BaseModel):
    """Note vault connector configuration.

    A filesystem vault path takes precedence over the Local REST API URL.
    """

    vault_path: str | None = None
    rest_url: str | None = None
    api_key: str | None = None

    @property
    def configured(self) -> bool:
        """Return True when any vault backend is configured."""
        return bool(self.vault_path or self.rest_url)


class TodoistConfig(BaseModel):
    """Task tracker configuration."""

    api_token: str | None = None
    base_url: str = "https://api.todoist.com/api/v1"
    default_project_id: str | None = None
    default_labels: list[str] = Field(default_factory=list)


class LinearConfig(BaseModel):
    """Issue tracker configuration."""

    api_token: str | None = None
    api_url: str = "https://api.linear.app/graphql"
    default_team_id: str | None = None
    default_assignee_id: str | None = None


class DatabaseConfig(BaseModel):
    """Embedded store configuration."""

    url: str | None = None
    path: str = "data/assistant.db"

    @model_validator(mode="after")
    def populate_database_url(self) -> "DatabaseConfig":
        """Populate the database URL from the SQLite path when missing."""
        if self.url:
            return self
        if self.path == ":memory:":
            self.url = "sqlite:///:memory:"
            return self
        self.url = f"sqlite:///{self.path}"
        return self


class ExecutionConfig(BaseModel):
    """Plan execution behavior."""

    dry_run: bool = False
    global_tags: list[str] = Field(default_factory=list)
    receipts_folder: str | None = None

    @field_validator("global_tags")
    @classmethod
    def strip_global_tags(cls, value: list[str]) -> list[str]:
        """Drop blank tags and surrounding whitespace."""
        return [tag.strip() for tag in value if tag and tag.strip()]


class EvalsConfig(BaseModel):
    """Evaluation snapshot storage."""

    dir: str = "data/evals"


class ArtifactsConfig(BaseModel):
    """Captured artifact storage."""

    dir: str = "data/artifacts"


class HttpConfig(BaseModel):
    """Connector HTTP timeouts in seconds."""

    timeout: int = 30
    connect_timeout: int = 10

    @field_validator("timeout", "connect_timeout")
    @classmethod
    def validate_positive(cls, value: int) -> int:
        """Ensure timeouts are positive."""
        if value < 1:
            raise ValueError("http timeouts must be >= 1.")
        return value


class LlmConfig(BaseModel):
    """Planner model routing settings."""

    model: str = "anthropic:claude-sonnet-4-20250514"
    base_url: str | None = None
    timeout: int = 600


class ObservabilityConfig(BaseModel):
    """OpenTelemetry export settings."""

    tracing_enabled: bool = False
    console_exporter: bool = False
    otlp_endpoint: str | None = None
    service_name: str = "assistant"


class EnvironmentDefaults(BaseModel):
    """Connector defaults the planner cannot know."""

    default_team_id: str | None = None
    default_project_id: str | None = None
    default_assignee_id: str | None = None


class Settings(BaseSettings):
    """Application settings loaded from environment variables and YAML."""

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_nested_delimiter="__",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        """Layer settings sources in descending order of precedence."""
        return (
            init_settings,
            _env_settings_source(),
            _yaml_settings_source(_USER_SECRETS_PATHS),
            _yaml_settings_source(_USER_CONFIG_PATHS),
            _yaml_settings_source([_DEFAULT_CONFIG_PATH]),
        )

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Planner
    anthropic_api_key: str | None = None
    llm: LlmConfig = Field(default_factory=LlmConfig)

    # Connectors
    obsidian: ObsidianConfig = Field(default_factory=ObsidianConfig)
    todoist: TodoistConfig = Field(default_factory=TodoistConfig)
    linear: LinearConfig = Field(default_factory=LinearConfig)
    http: HttpConfig = Field(default_factory=HttpConfig)

    # Storage
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    evals: EvalsConfig = Field(default_factory=EvalsConfig)
    artifacts: ArtifactsConfig = Field(default_factory=ArtifactsConfig)

    # Execution
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)

    # Telemetry
    observability: ObservabilityConfig = Field(default_factory=ObservabilityConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        """Ensure the log level is a standard logging level name."""
        normalized = value.strip().upper()
        if normalized not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError("log_level must be a standard logging level.")
        return normalized

    def environment_defaults(self) -> EnvironmentDefaults:
        """Return connector defaults resolved from configuration."""
        return EnvironmentDefaults(
            default_team_id=self.linear.default_team_id,
            default_project_id=self.todoist.default_project_id,
            default_assignee_id=self.linear.default_assignee_id,
        )


def load_settings(**overrides: Any) -> Settings:
    """Build settings from all layered sources plus explicit overrides."""
    return Settings(**overrides)
