"""Evaluation report contract."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from contracts.identity import EvalId, PlanId, TraceId
from contracts.version import CONTRACT_VERSION, ContractVersion

Verdict = Literal["PASS", "WARN", "FAIL"]


class CategoryScores(BaseModel):
    """Per-category rubric scores."""

    intent_alignment: float
    action_minimalism: float
    determinism_idempotency: float
    detail_source_correctness: float
    cross_system_integrity: float
    verification_coverage: float
    failure_handling_clarity: float

    @classmethod
    def uniform(cls, score: float) -> "CategoryScores":
        """Return scores with every category set to the same value."""
        return cls(**{name: score for name in cls.model_fields})


class EvalFlags(BaseModel):
    """Fatal and drift markers for an evaluation."""

    FATAL_SCHEMA: bool
    FATAL_SECURITY: bool
    FATAL_CONNECTOR: bool
    DRIFT: bool
    NON_DETERMINISTIC: bool


class EvalReport(BaseModel):
    """Scored evaluation of one plan execution."""

    model_config = ConfigDict(frozen=True)

    version: ContractVersion = CONTRACT_VERSION
    eval_id: EvalId
    trace_id: TraceId
    plan_id: PlanId
    overall_score: float = Field(ge=0, le=5)
    verdict: Verdict
    category_scores: CategoryScores
    flags: EvalFlags
