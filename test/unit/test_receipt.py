"""Unit tests for receipt markdown rendering."""

from __future__ import annotations

from connectors.base import CreatedIssue, CreatedTask
from execution.result import ExecutionResult
from plan.receipt import build_receipt_markdown
from plan.validator import validate_plan


def test_receipt_lists_artifacts_and_warnings(plan_data) -> None:
    """Receipts summarize the plan, created artifacts, and warnings."""
    plan = validate_plan(plan_data(assumptions=["Due date is flexible"]))
    result = ExecutionResult(
        trace_id=plan.trace_id,
        created_tasks=(CreatedTask("t-1", "Do thing", "https://tasks.test/t-1"),),
        closed_tasks=("t-0",),
        created_issues=(CreatedIssue("ISS-1", "Bug"),),
        warnings=("No issue tracker connector configured",),
    )

    markdown = build_receipt_markdown(plan, result)

    assert markdown.splitlines() == [
        "## Receipt",
        f"- traceId: `{plan.trace_id}`",
        "- intent: Capture the thing",
        "- summary: Captured the thing",
        "- assumptions:",
        "  - Due date is flexible",
        "",
        "### Tasks",
        "- [ ] Do thing (id: `t-1`, url: https://tasks.test/t-1)",
        "- [x] closed `t-0`",
        "",
        "### Issues",
        "- Bug (id: `ISS-1`)",
        "",
        "### Warnings",
        "- No issue tracker connector configured",
    ]
    assert markdown.endswith("\n")


def test_receipt_omits_empty_sections(plan_data) -> None:
    """Sections without content are left out."""
    plan = validate_plan(plan_data())

    markdown = build_receipt_markdown(plan, ExecutionResult(trace_id=plan.trace_id))

    assert "###" not in markdown
    assert "assumptions" not in markdown
