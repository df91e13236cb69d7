"""Readiness checks for configured connectors, storage, and telemetry.

Missing optional integrations are warnings: the pipeline skips their actions.
Only storage the pipeline cannot run without fails the report.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from config import Settings
from services.database import check_connection, create_db_engine

logger = logging.getLogger(__name__)


class CheckStatus(str, Enum):
    """Outcome of a single readiness check."""

    PASS = "pass"
    WARN = "warn"
    FAIL = "fail"


@dataclass(frozen=True)
class DoctorCheck:
    """Structured result for one readiness check."""

    name: str
    status: CheckStatus
    details: str

    def as_dict(self) -> dict[str, str]:
        """Render the check as a serializable mapping."""
        return {"name": self.name, "status": self.status.value, "details": self.details}


@dataclass(frozen=True)
class DoctorReport:
    """All readiness checks in the order they ran."""

    checks: tuple[DoctorCheck, ...]

    @property
    def failures(self) -> list[DoctorCheck]:
        """Return the checks that failed."""
        return [check for check in self.checks if check.status is CheckStatus.FAIL]

    def as_dict(self) -> dict[str, object]:
        """Render the report as a serializable mapping."""
        return {
            "status": "fail" if self.failures else "pass",
            "checks": [check.as_dict() for check in self.checks],
        }


def _accessible(path: str | Path) -> bool:
    target = Path(path).expanduser()
    return target.is_dir() and os.access(target, os.R_OK | os.W_OK)


def _check_planner(settings: Settings) -> DoctorCheck:
    if settings.anthropic_api_key:
        return DoctorCheck("Planner", CheckStatus.PASS, f"Model {settings.llm.model} configured")
    return DoctorCheck(
        "Planner",
        CheckStatus.WARN,
        "ANTHROPIC_API_KEY missing; capture needs --plan-file",
    )


def _check_notes(settings: Settings) -> DoctorCheck:
    vault_path = settings.obsidian.vault_path
    if vault_path:
        if _accessible(vault_path):
            return DoctorCheck(
                "Obsidian vault", CheckStatus.PASS, f"Writable vault at {vault_path}"
            )
        return DoctorCheck(
            "Obsidian vault", CheckStatus.FAIL, f"Vault path {vault_path} not accessible"
        )
    if settings.obsidian.rest_url:
        return DoctorCheck(
            "Obsidian REST",
            CheckStatus.WARN,
            "REST endpoint configured; ensure token and plugin are running",
        )
    return DoctorCheck(
        "Obsidian connector",
        CheckStatus.WARN,
        "Set OBSIDIAN_VAULT_PATH or OBSIDIAN_REST_URL to write notes and receipts",
    )


def _check_token(name: str, token: str | None, env_key: str, consequence: str) -> DoctorCheck:
    if token:
        return DoctorCheck(name, CheckStatus.PASS, "API token configured")
    return DoctorCheck(name, CheckStatus.WARN, f"{env_key} missing; {consequence}")


def _check_tracing(settings: Settings) -> DoctorCheck:
    observability = settings.observability
    if not observability.tracing_enabled:
        return DoctorCheck(
            "Tracing",
            CheckStatus.WARN,
            "Tracing disabled; trace evidence will be recorded as missing_config",
        )
    exporter = observability.otlp_endpoint
    if exporter is None and observability.console_exporter:
        exporter = "console"
    if exporter is None:
        return DoctorCheck(
            "Tracing", CheckStatus.WARN, "Tracing enabled without an exporter; spans stay local"
        )
    return DoctorCheck("Tracing", CheckStatus.PASS, f"Spans exported to {exporter}")


def _check_directory(name: str, path: str, consequence: str) -> DoctorCheck:
    if _accessible(path):
        return DoctorCheck(name, CheckStatus.PASS, f"Stored in {path}")
    return DoctorCheck(name, CheckStatus.WARN, f"Directory {path} not accessible; {consequence}")


def _check_database(settings: Settings) -> DoctorCheck:
    url = settings.database.url or ""
    try:
        engine = create_db_engine(url)
    except OSError as exc:
        return DoctorCheck("Database", CheckStatus.FAIL, f"Cannot open {url}: {exc}")
    try:
        connected = check_connection(engine)
    finally:
        engine.dispose()
    if connected:
        return DoctorCheck("Database", CheckStatus.PASS, f"Connected to {url}")
    return DoctorCheck("Database", CheckStatus.FAIL, f"Connection to {url} failed")


def run_doctor_checks(settings: Settings) -> DoctorReport:
    """Run every readiness check against the settings and log each outcome."""
    checks = (
        _check_planner(settings),
        _check_notes(settings),
        _check_token(
            "Todoist",
            settings.todoist.api_token,
            "TODOIST_API_TOKEN",
            "tasks will not be created",
        ),
        _check_token(
            "Linear",
            settings.linear.api_token,
            "LINEAR_API_TOKEN",
            "issues will not be created",
        ),
        _check_tracing(settings),
        _check_database(settings),
        _check_directory("Evals", settings.evals.dir, "snapshots will be created on first run"),
        _check_directory(
            "Artifacts", settings.artifacts.dir, "artifacts will be created on registration"
        ),
    )
    for check in checks:
        logger.info("Doctor check %s: %s (%s)", check.name, check.status.value, check.details)
    return DoctorReport(checks=checks)
