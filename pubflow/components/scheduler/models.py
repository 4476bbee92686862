"""
Scheduler component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal
from uuid import UUID

from pubflow.components.validation import ValidationResult

SlaTier = Literal["none", "ok", "warning", "urgent", "auto_approved"]

SweepAction = Literal[
    "auto_approved",
    "skipped",
    "lost_race",
    "error",
    "published",
    "publish_failed",
]


# --- SLA Status ---


@dataclass(frozen=True)
class SlaStatus:
    """Review-clock view of one item. Display only, never changes state."""

    pending: bool
    days_pending: int = 0
    days_remaining: int = 0
    hours_remaining: int = 0
    auto_publish_eligible: bool = False
    tier: SlaTier = "none"
    deadline: datetime | None = None


# --- Policy ---


@dataclass(frozen=True)
class PolicyVerdict:
    """Outcome of an auto-approve policy for one item."""

    reason: str | None = None
    validation: ValidationResult | None = None


# --- Input Models ---


@dataclass(frozen=True)
class SlaStatusInput:
    """Input for computing the SLA status of an item."""

    content_id: UUID


@dataclass(frozen=True)
class SweepInput:
    """Input for running one SLA sweep."""

    publish_approved: bool | None = None


# --- Output Models ---


@dataclass(frozen=True)
class SweepItemResult:
    """What a sweep did with one item."""

    content_id: UUID
    action: SweepAction
    message: str = ""


@dataclass(frozen=True)
class SweepReport:
    """Summary of one sweep."""

    started_at: datetime
    checked: int = 0
    auto_approved: int = 0
    skipped: int = 0
    lost_races: int = 0
    published: int = 0
    errors: int = 0
    results: list[SweepItemResult] = field(default_factory=list)
