"""Validation helpers that turn pydantic failures into schema errors."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

ModelT = TypeVar("ModelT", bound=BaseModel)


@dataclass(frozen=True)
class SchemaViolation:
    """A single offending field path and its message."""

    path: str
    message: str


class SchemaValidationError(ValueError):
    """Raised when a plan, event, or contract payload is malformed."""

    def __init__(self, subject: str, violations: tuple[SchemaViolation, ...]) -> None:
        """Initialize the error with the payload subject and its violations."""
        summary = "; ".join(f"{v.path}: {v.message}" for v in violations) or "invalid payload"
        super().__init__(f"{subject} failed schema validation: {summary}")
        self.subject = subject
        self.violations = violations

    @property
    def paths(self) -> list[str]:
        """Return the offending field paths in reported order."""
        return [violation.path for violation in self.violations]

    @classmethod
    def from_validation_error(cls, subject: str, exc: ValidationError) -> "SchemaValidationError":
        """Build a schema error from a pydantic validation error."""
        violations = tuple(
            SchemaViolation(
                path=".".join(str(part) for part in error["loc"]) or "$",
                message=error["msg"],
            )
            for error in exc.errors()
        )
        return cls(subject, violations)


def assert_schema(model: type[ModelT], data: Any, *, subject: str | None = None) -> ModelT:
    """Validate data against a contract model or raise SchemaValidationError."""
    try:
        return model.model_validate(data)
    except ValidationError as exc:
        raise SchemaValidationError.from_validation_error(subject or model.__name__, exc) from exc
