"""Planners turn free text into a validated Plan.

The LLM planner only produces the plan; execution stays deterministic.
"""

from __future__ import annotations

import json
import logging
import re
from pathlib import Path
from typing import Any, Protocol

from contracts.guards import SchemaValidationError, SchemaViolation
from contracts.plan import ACTION_TYPES, Plan
from events.planning import PlanningContext
from llm import LLMClient
from plan.validator import plan_json_schema, validate_plan

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^```(?:json)?\s*(.*?)\s*```$", re.DOTALL)


class Planner(Protocol):
    """Produces a plan for one user intent."""

    def generate_plan(
        self,
        text: str,
        *,
        trace_id: str | None = None,
        context: PlanningContext | None = None,
    ) -> Plan:
        """Return a validated plan or raise SchemaValidationError."""


def _decode(text: str) -> Any:
    stripped = text.strip()
    match = _FENCE.match(stripped)
    if match:
        stripped = match.group(1)
    try:
        return json.loads(stripped)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(
            "plan",
            (SchemaViolation(path="$", message=f"planner returned invalid JSON: {exc.msg}"),),
        ) from exc


def _with_trace_id(raw: Any, trace_id: str | None) -> Any:
    if trace_id and isinstance(raw, dict):
        raw = {key: value for key, value in raw.items() if key not in {"traceId", "trace_id"}}
        raw["traceId"] = trace_id
    return raw


def build_system_prompt(context: PlanningContext | None = None) -> str:
    """Return the planner system prompt, including available systems when known."""
    lines = [
        "You are a planning agent for a personal assistant.",
        "You MUST output JSON that conforms to the provided JSON schema.",
        "Translate the user's request into a deterministic execution plan using ONLY "
        "these action types:",
        *(f"- {action_type}" for action_type in ACTION_TYPES),
        "",
        "Rules:",
        "1) Prefer creating ONE note that captures context and links. Use a stable notePath.",
        "2) Create tasks for actionable personal work items.",
        "3) Create issues only for scoped team or engineering work. If unsure, create a task.",
        "4) Use ISO-8601 dates when you infer due dates. Use YYYY-MM-DD for all-day dues. "
        "If not given, omit due.",
        "5) Include a concise receiptSummary for audit logs.",
        "6) Add tags or labels only if the user hints at projects.",
        "7) Omit teamId, projectId, and assigneeId when you do not know them; "
        "configured defaults are applied.",
        "",
        "Never invent credentials. Never include secrets.",
    ]
    if context is not None:
        lines.extend(
            [
                "",
                f"Configured systems: {', '.join(context.capabilities) or 'none'}.",
                "Only plan actions for configured systems.",
            ]
        )
    return "\n".join(lines)


class LitellmPlanner:
    """Plans with a LiteLLM-routed model using structured JSON output."""

    def __init__(self, client: LLMClient) -> None:
        """Initialize the planner with an LLM client."""
        self._client = client

    def generate_plan(
        self,
        text: str,
        *,
        trace_id: str | None = None,
        context: PlanningContext | None = None,
    ) -> Plan:
        """Ask the model for a plan and validate the reply.

        Raises:
            SchemaValidationError: If the reply is not a valid plan.
        """
        logger.info("Generating plan: text_chars=%s model=%s", len(text), self._client.model)
        reply = self._client.complete_sync(
            [
                {"role": "system", "content": build_system_prompt(context)},
                {"role": "user", "content": text},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {"name": "plan", "schema": plan_json_schema()},
            },
        )
        plan = validate_plan(_with_trace_id(_decode(reply or ""), trace_id))
        logger.info("Plan generated: trace=%s actions=%s", plan.trace_id, len(plan.actions))
        return plan


class FilePlanner:
    """Replays a plan stored as JSON, for previews and offline runs."""

    def __init__(self, path: str | Path) -> None:
        """Initialize the planner with the plan file path."""
        self.path = Path(path)

    def generate_plan(
        self,
        text: str,
        *,
        trace_id: str | None = None,
        context: PlanningContext | None = None,
    ) -> Plan:
        """Load and validate the stored plan, ignoring the text."""
        raw = _decode(self.path.read_text(encoding="utf-8"))
        return validate_plan(_with_trace_id(raw, trace_id))
