"""Execution run contract as exposed in trace snapshots."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict

from contracts.identity import PlanId, RunId, TraceId
from contracts.version import CONTRACT_VERSION, ContractVersion

RunState = Literal["RECEIVED", "EXECUTING", "DONE", "FAILED"]


class ExecutionRunContract(BaseModel):
    """Wire shape of one execution run."""

    model_config = ConfigDict(frozen=True)

    version: ContractVersion = CONTRACT_VERSION
    run_id: RunId
    trace_id: TraceId
    plan_id: PlanId
    state: RunState
    started_at: str | None = None
    finished_at: str | None = None
    retry_count: int = 0
