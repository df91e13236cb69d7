"""Plan validation against the closed action union."""

from __future__ import annotations

import json
import logging
from typing import Any

from contracts.guards import SchemaValidationError, SchemaViolation, assert_schema
from contracts.plan import Plan

logger = logging.getLogger(__name__)


def validate_plan(raw: Any) -> Plan:
    """Validate a raw plan mapping and return the normalized Plan.

    Args:
        raw: Decoded plan payload, camelCase or snake_case keys.

    Returns:
        Frozen Plan with defaults applied and legacy default markers cleared.

    Raises:
        SchemaValidationError: If the payload does not match the plan schema.
    """
    if isinstance(raw, Plan):
        return raw
    plan = assert_schema(Plan, raw, subject="plan")
    logger.debug(
        "Validated plan for trace %s with %d action(s)",
        plan.trace_id,
        len(plan.actions),
    )
    return plan


def validate_plan_json(text: str) -> Plan:
    """Parse plan JSON text and validate it.

    Raises:
        SchemaValidationError: If the text is not JSON or the plan is malformed.
    """
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as exc:
        raise SchemaValidationError(
            "plan",
            (SchemaViolation(path="$", message=f"invalid JSON: {exc.msg}"),),
        ) from exc
    return validate_plan(raw)


def plan_json_schema() -> dict[str, Any]:
    """Return the JSON schema handed to the planner for structured output."""
    return Plan.model_json_schema(by_alias=True)
