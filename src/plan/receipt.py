"""Markdown receipt appended to the captured note after execution."""

from __future__ import annotations

from contracts.plan import Plan
from execution.result import ExecutionResult


def _with_url(label: str, external_id: str, url: str | None) -> str:
    suffix = f", url: {url}" if url else ""
    return f"{label} (id: `{external_id}`{suffix})"


def build_receipt_markdown(plan: Plan, result: ExecutionResult) -> str:
    """Render what a plan did as a markdown receipt block."""
    lines = [
        "## Receipt",
        f"- traceId: `{plan.trace_id}`",
        f"- intent: {plan.user_intent}",
        f"- summary: {plan.receipt_summary}",
    ]
    if plan.assumptions:
        lines.append("- assumptions:")
        lines.extend(f"  - {assumption}" for assumption in plan.assumptions)

    if result.created_tasks or result.closed_tasks:
        lines.extend(["", "### Tasks"])
        lines.extend(
            "- [ ] " + _with_url(task.content, task.id, task.url) for task in result.created_tasks
        )
        lines.extend(f"- [x] closed `{task_id}`" for task_id in result.closed_tasks)

    if result.created_issues or result.updated_issues:
        lines.extend(["", "### Issues"])
        lines.extend(
            "- " + _with_url(issue.title, issue.id, issue.url) for issue in result.created_issues
        )
        lines.extend(f"- updated `{issue_id}`" for issue_id in result.updated_issues)

    if result.warnings:
        lines.extend(["", "### Warnings"])
        lines.extend(f"- {warning}" for warning in result.warnings)

    lines.append("")
    return "\n".join(lines)
