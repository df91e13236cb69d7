"""Trace response contract, the unit of replay and audit."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from contracts.evaluation import EvalReport
from contracts.event import EventEnvelope
from contracts.execution import ExecutionRunContract
from contracts.link import LinkGraph
from contracts.plan import Plan


class TraceResponse(BaseModel):
    """Event, plan, run, links, and evaluations for one trace."""

    model_config = ConfigDict(frozen=True)

    event: EventEnvelope
    plan: Plan
    run: ExecutionRunContract
    links: LinkGraph
    evaluations: list[EvalReport]

    def to_wire(self) -> dict:
        """Return the JSON-compatible snapshot payload."""
        return {
            "event": self.event.model_dump(mode="json"),
            "plan": self.plan.to_wire(),
            "run": self.run.model_dump(mode="json", exclude_none=True),
            "links": self.links.model_dump(mode="json", exclude_none=True),
            "evaluations": [report.model_dump(mode="json") for report in self.evaluations],
        }
