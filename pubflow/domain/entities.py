from datetime import UTC, datetime
from decimal import Decimal
from typing import Any, Literal
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

# --- Enums / Literals ---
ContentStatus = Literal[
    "draft",
    "transformed",
    "validated",
    "pending_review",
    "approved",
    "rejected",
    "published",
]
ValidationStatus = Literal["pending", "valid", "invalid"]
FeedbackType = Literal["approve", "reject", "comment", "rewrite"]
UsagePurpose = Literal["generation", "verification", "other"]


def utc_now() -> datetime:
    return datetime.now(UTC)


# --- Validation ---

class ValidationIssue(BaseModel):
    type: str
    message: str


# --- Content ---

class ContentItem(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    title: str
    body_html: str = ""
    meta_title: str | None = None
    meta_description: str | None = None
    target_keywords: list[str] = Field(default_factory=list)

    status: ContentStatus = "draft"
    pending_since: datetime | None = None
    auto_approve_at: datetime | None = None
    published_at: datetime | None = None

    validation_status: ValidationStatus = "pending"
    validation_errors: list[ValidationIssue] = Field(default_factory=list)

    # Review metadata
    rejection_reason: str | None = None
    rewrite_instructions: str | None = None
    auto_approved: bool = False
    auto_approved_at: datetime | None = None
    link_summary: dict[str, int] = Field(default_factory=dict)

    # Cached from usage_logs, refreshed by the cost accountant
    generation_cost: Decimal = Decimal("0")
    verification_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")

    remote_post_id: str | None = None
    remote_url: str | None = None

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


# --- Audit trails ---

class UsageRecord(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    content_id: UUID | None = None
    provider: str
    model: str
    agent_name: str | None = None
    purpose: UsagePurpose = "generation"
    input_tokens: int = 0
    output_tokens: int = 0
    input_cost: Decimal = Decimal("0")
    output_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    duration_ms: int = 0
    success: bool = True
    error_message: str | None = None
    created_at: datetime = Field(default_factory=utc_now)


class ValidationLog(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    content_id: UUID | None = None
    passed: bool
    errors: list[ValidationIssue] = Field(default_factory=list)
    warnings: list[ValidationIssue] = Field(default_factory=list)
    metrics: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)


class Feedback(BaseModel):
    id: UUID = Field(default_factory=uuid4)
    content_id: UUID
    type: FeedbackType
    payload: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=utc_now)
