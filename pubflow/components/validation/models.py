"""
Validation component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal
from uuid import UUID

from pubflow.domain.entities import ValidationIssue

Severity = Literal["error", "warning"]


# --- Input Models ---


@dataclass(frozen=True)
class ValidateContentInput:
    """Input for running the publish-readiness checks."""

    html: str
    title: str | None
    meta_description: str | None
    content_id: UUID | None = None


@dataclass(frozen=True)
class ValidationHistoryInput:
    """Input for listing past validation runs of an item."""

    content_id: UUID
    limit: int = 50


# --- Output Models ---


@dataclass(frozen=True)
class ValidationResult:
    """Verdict of one validation run."""

    passed: bool
    errors: list[ValidationIssue] = field(default_factory=list)
    warnings: list[ValidationIssue] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)

    @property
    def infrastructure_failure(self) -> bool:
        return any(e.type == "validation_unavailable" for e in self.errors)
