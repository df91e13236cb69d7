"""Inbound event envelope contract."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, field_serializer, field_validator

from contracts.identity import NonEmptyStr
from contracts.version import CONTRACT_VERSION, ContractVersion
from time_utils import isoformat, to_utc

EventSource = Literal["manual", "linear", "todoist", "obsidian"]
EventPriority = Literal["low", "normal", "high"]


class EventContext(BaseModel):
    """Who and what workflow an event belongs to."""

    model_config = ConfigDict(frozen=True)

    user_id: NonEmptyStr
    workspace_id: str | None = None
    workflow: str | None = None
    priority: EventPriority | None = None


class EventEnvelope(BaseModel):
    """An inbound trigger, immutable after ingestion."""

    model_config = ConfigDict(frozen=True)

    version: ContractVersion = CONTRACT_VERSION
    event_id: NonEmptyStr
    trace_id: NonEmptyStr
    source: EventSource
    type: NonEmptyStr
    occurred_at: datetime
    received_at: datetime
    payload: Any = None
    context: EventContext

    @field_validator("occurred_at", "received_at")
    @classmethod
    def normalize_timestamp(cls, value: datetime) -> datetime:
        """Store all event timestamps in UTC."""
        return to_utc(value)

    @field_serializer("occurred_at", "received_at", when_used="json")
    def serialize_timestamp(self, value: datetime) -> str:
        """Render timestamps as ISO-8601 UTC strings on the wire."""
        return isoformat(value)
