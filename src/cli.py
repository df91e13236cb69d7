"""Assistant command-line interface implemented with Typer."""

from __future__ import annotations

import dataclasses
import json
import sys
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable
from uuid import UUID

import typer

from config import Settings, load_settings
from contracts.guards import SchemaValidationError, SchemaViolation
from diagnostics.doctor import run_doctor_checks
from execution.errors import ConnectorCallFailure
from observability.logging_setup import configure_logging
from plan.planner import FilePlanner
from plan.validator import plan_json_schema, validate_plan_json
from services.app_context import AppContext, build_app_context
from workflows.capture import capture

SUCCESS_EXIT_CODE = 0
DOMAIN_ERROR_EXIT_CODE = 3
CONNECTOR_ERROR_EXIT_CODE = 4


class NotFound(LookupError):
    """Raised when a command refers to a trace or run that does not exist."""


@dataclass(frozen=True)
class CliConfig:
    """Global CLI runtime options."""

    settings: Settings
    as_json: bool
    context_factory: Callable[[Settings], AppContext]


def _serialize(value: Any) -> Any:
    """Convert result objects to JSON-serializable structures."""

    if value is None or isinstance(value, (bool, int, float, str)):
        return value
    if isinstance(value, Enum):
        return _serialize(value.value)
    if isinstance(value, (datetime, date, Path, UUID)):
        return str(value)
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", exclude_none=True)
    if dataclasses.is_dataclass(value):
        return {
            field.name: _serialize(getattr(value, field.name))
            for field in dataclasses.fields(value)
        }
    if isinstance(value, dict):
        return {str(key): _serialize(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [_serialize(item) for item in value]
    return str(value)


def _emit_output(result: Any, as_json: bool) -> None:
    """Render command output in the requested format, warnings inline."""

    data = _serialize(result)
    if as_json:
        typer.echo(json.dumps(data, sort_keys=True, separators=(",", ":")))
        return
    if data is None:
        typer.echo("ok")
        return
    if isinstance(data, (dict, list)):
        typer.echo(json.dumps(data, indent=2, sort_keys=True))
    else:
        typer.echo(str(data))
    warnings = data.get("warnings") if isinstance(data, dict) else None
    for warning in warnings or []:
        typer.echo(f"warning: {warning}")


def _emit_error(message: str, as_json: bool, **details: Any) -> None:
    """Render an error to stderr."""

    if as_json:
        typer.echo(json.dumps({"error": message, **_serialize(details)}), err=True)
        return
    typer.echo(f"error: {message}", err=True)
    for key, value in details.items():
        typer.echo(f"  {key}: {value}", err=True)


def _run_command(cfg: CliConfig, invoke: Callable[[AppContext], Any]) -> None:
    """Run one command against a fresh application context and map errors to exit codes."""
    context = cfg.context_factory(cfg.settings)
    try:
        result = invoke(context)
    except SchemaValidationError as exc:
        _emit_error(str(exc), cfg.as_json, fields=exc.paths)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    except ConnectorCallFailure as exc:
        _emit_error(
            str(exc),
            cfg.as_json,
            trace_id=exc.trace_id,
            action_index=exc.index,
            action_type=exc.action_type,
            run_id=exc.run.id,
        )
        raise typer.Exit(code=CONNECTOR_ERROR_EXIT_CODE) from exc
    except (LookupError, FileNotFoundError) as exc:
        _emit_error(str(exc), cfg.as_json)
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE) from exc
    finally:
        context.close()

    _emit_output(result, cfg.as_json)
    raise typer.Exit(code=SUCCESS_EXIT_CODE)


def _require_config(ctx: typer.Context) -> CliConfig:
    """Return required CLI config from Typer context."""

    config = ctx.obj
    if not isinstance(config, CliConfig):
        raise RuntimeError("CLI configuration not initialized")
    return config


def _read_json_text(source: str) -> str:
    """Read JSON text from a file path, or stdin when the path is ``-``."""
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def _decode_json(text: str, subject: str) -> Any:
    """Decode JSON text, reporting malformed input as a schema error."""
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(
            subject, (SchemaViolation(path="$", message=f"invalid JSON: {exc.msg}"),)
        ) from exc


app = typer.Typer(no_args_is_help=True, help="Personal automation assistant")


@app.callback()
def main(
    ctx: typer.Context,
    as_json: bool = typer.Option(False, "--json", help="Emit JSON output"),
    log_level: str | None = typer.Option(None, help="Override the configured log level"),
) -> None:
    """Load settings and store global options for all commands."""

    overrides = {"log_level": log_level} if log_level else {}
    settings = load_settings(**overrides)
    configure_logging(level=settings.log_level, json_output=settings.log_json, stream=sys.stderr)
    ctx.obj = CliConfig(settings=settings, as_json=as_json, context_factory=build_app_context)


@app.command("ingest")
def ingest_command(
    ctx: typer.Context,
    event_file: str = typer.Argument(..., help="Event JSON file, or - for stdin"),
) -> None:
    """Record an inbound event and refresh its planning context."""
    cfg = _require_config(ctx)
    text = _read_json_text(event_file)
    _run_command(cfg, lambda context: context.events.ingest(_decode_json(text, "event")))


@app.command("capture")
def capture_command(
    ctx: typer.Context,
    text: str = typer.Argument(..., help="What to capture"),
    trace_id: str | None = typer.Option(None, help="Trace id for the capture"),
    plan_file: Path | None = typer.Option(None, help="Use a stored plan instead of the model"),
    dry_run: bool | None = typer.Option(None, "--dry-run/--no-dry-run", help="Preview only"),
) -> None:
    """Plan, execute, verify, and snapshot one capture."""
    cfg = _require_config(ctx)

    def invoke(context: AppContext) -> dict[str, Any]:
        planner = FilePlanner(plan_file) if plan_file else context.planner()
        outcome = capture(context, text, planner, trace_id=trace_id, dry_run=dry_run)
        return {
            "trace_id": outcome.plan.trace_id,
            "run_id": outcome.run.id,
            "state": outcome.run.state,
            "notes": outcome.result.notes,
            "created_tasks": outcome.result.created_tasks,
            "created_issues": outcome.result.created_issues,
            "verification": {
                "status": outcome.verification.status,
                "issues": outcome.verification.issue_codes,
            },
            "snapshot": outcome.snapshot.path or outcome.snapshot.error,
            "warnings": outcome.warnings,
        }

    _run_command(cfg, invoke)


@app.command("execute")
def execute_command(
    ctx: typer.Context,
    plan_file: str = typer.Argument(..., help="Plan JSON file, or - for stdin"),
    dry_run: bool | None = typer.Option(None, "--dry-run/--no-dry-run", help="Preview only"),
) -> None:
    """Validate and execute a stored plan."""
    cfg = _require_config(ctx)
    text = _read_json_text(plan_file)

    def invoke(context: AppContext) -> dict[str, Any]:
        plan = validate_plan_json(text)
        outcome = context.executor(dry_run=dry_run).run(plan)
        return {
            "run": outcome.run,
            "result": outcome.result,
            "warnings": outcome.result.warnings,
        }

    _run_command(cfg, invoke)


@app.command("verify")
def verify_command(
    ctx: typer.Context,
    trace_id: str = typer.Argument(..., help="Trace id"),
    run_id: str | None = typer.Option(None, help="Run id (defaults to the latest run)"),
) -> None:
    """Verify the latest (or given) run of a trace."""
    cfg = _require_config(ctx)

    def invoke(context: AppContext) -> Any:
        if run_id is not None:
            try:
                target = UUID(run_id)
            except ValueError as exc:
                raise NotFound(f"Invalid run id: {run_id}") from exc
        else:
            runs = context.runs.list_runs(trace_id)
            if not runs:
                raise NotFound(f"No runs recorded for trace {trace_id}")
            target = runs[0].id
        return context.verifier.verify(trace_id, target)

    _run_command(cfg, invoke)


@app.command("runs")
def runs_command(
    ctx: typer.Context,
    trace_id: str | None = typer.Option(None, help="Only runs for this trace"),
) -> None:
    """List recorded runs, newest first."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda context: context.runs.list_runs(trace_id))


@app.command("links")
def links_command(
    ctx: typer.Context,
    trace_id: str = typer.Argument(..., help="Trace id"),
) -> None:
    """List detail source links for a trace."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda context: context.runs.list_links(trace_id))


@app.command("context")
def context_command(
    ctx: typer.Context,
    trace_id: str = typer.Argument(..., help="Trace id"),
    rebuild: bool = typer.Option(False, help="Recompute from the latest event"),
) -> None:
    """Show the planning context for a trace."""
    cfg = _require_config(ctx)

    def invoke(context: AppContext) -> Any:
        if rebuild:
            planning = context.events.rebuild_planning_context(trace_id)
        else:
            planning = context.events.planning_context(trace_id)
        if planning is None:
            raise NotFound(f"No event recorded for trace {trace_id}")
        return planning

    _run_command(cfg, invoke)


@app.command("artifact")
def artifact_command(
    ctx: typer.Context,
    trace_id: str = typer.Argument(..., help="Trace id"),
    path: Path = typer.Argument(..., help="Captured artifact file"),
    label: str | None = typer.Option(None, help="Optional label"),
) -> None:
    """Register a captured artifact as evidence for a trace."""
    cfg = _require_config(ctx)
    _run_command(cfg, lambda context: context.artifacts.register(trace_id, path, label))


@app.command("snapshot")
def snapshot_command(
    ctx: typer.Context,
    trace_id: str = typer.Argument(..., help="Trace id"),
) -> None:
    """Show the latest evaluation snapshot for a trace."""
    cfg = _require_config(ctx)

    def invoke(context: AppContext) -> Any:
        response = context.recorder.load_latest(trace_id)
        if response is None:
            raise NotFound(f"No snapshot recorded for trace {trace_id}")
        return response.to_wire()

    _run_command(cfg, invoke)


@app.command("doctor")
def doctor_command(ctx: typer.Context) -> None:
    """Check connector credentials, storage, and telemetry readiness."""
    cfg = _require_config(ctx)
    report = run_doctor_checks(cfg.settings)
    _emit_output(report.as_dict(), cfg.as_json)
    if report.failures:
        raise typer.Exit(code=DOMAIN_ERROR_EXIT_CODE)


@app.command("plan-schema")
def plan_schema_command() -> None:
    """Print the plan JSON schema used for structured planner output."""
    typer.echo(json.dumps(plan_json_schema(), indent=2, sort_keys=True))


if __name__ == "__main__":
    app()
