"""Versioned wire contracts shared between producers and consumers."""

from contracts.api import TraceResponse
from contracts.evaluation import CategoryScores, EvalFlags, EvalReport
from contracts.event import EventContext, EventEnvelope
from contracts.execution import ExecutionRunContract
from contracts.guards import SchemaValidationError, SchemaViolation, assert_schema
from contracts.link import LinkGraph, SourceType
from contracts.plan import ACTION_TYPES, Plan, PlanAction
from contracts.version import CONTRACT_VERSION

__all__ = [
    "ACTION_TYPES",
    "CONTRACT_VERSION",
    "CategoryScores",
    "EvalFlags",
    "EvalReport",
    "EventContext",
    "EventEnvelope",
    "ExecutionRunContract",
    "LinkGraph",
    "Plan",
    "PlanAction",
    "SchemaValidationError",
    "SchemaViolation",
    "SourceType",
    "TraceResponse",
    "assert_schema",
]
