from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, Field

from pubflow.domain.entities import ContentItem, UsagePurpose, ValidationIssue

# --- Content ---


class ContentCreateRequest(BaseModel):
    title: str = Field(min_length=1)
    body_html: str
    meta_title: str | None = None
    meta_description: str | None = None
    target_keywords: list[str] = []


class ApproveRequest(BaseModel):
    actor: str | None = None
    note: str | None = None


class RejectRequest(BaseModel):
    reason: str
    actor: str | None = None


class RewriteRequest(BaseModel):
    instructions: str
    actor: str | None = None


class CommentRequest(BaseModel):
    text: str = Field(min_length=1)
    actor: str | None = None


class IssueModel(BaseModel):
    code: str
    message: str


class ValidationResultModel(BaseModel):
    passed: bool
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    metrics: dict[str, Any] = {}


class ReceiptModel(BaseModel):
    post_id: str
    url: str


class WorkflowResponse(BaseModel):
    """Authoritative item state after an action; changed=False means nothing was applied."""

    item: ContentItem | None
    changed: bool
    errors: list[IssueModel] = []
    link_summary: dict[str, int] | None = None
    validation: ValidationResultModel | None = None
    receipt: ReceiptModel | None = None


class FeedbackResponse(BaseModel):
    id: UUID
    content_id: UUID
    type: str
    payload: dict[str, Any]
    created_at: datetime


# --- SLA ---


class SlaStatusResponse(BaseModel):
    pending: bool
    days_pending: int
    days_remaining: int
    hours_remaining: int
    auto_publish_eligible: bool
    tier: str
    deadline: datetime | None = None


class SweepItemModel(BaseModel):
    content_id: UUID
    action: str
    message: str = ""


class SweepResponse(BaseModel):
    started_at: datetime
    checked: int
    auto_approved: int
    skipped: int
    lost_races: int
    published: int
    errors: int
    results: list[SweepItemModel] = []


# --- Costs ---


class CostSummaryResponse(BaseModel):
    content_id: UUID
    generation_cost: Decimal
    verification_cost: Decimal
    total_cost: Decimal
    call_count: int
    failed_calls: int
    budget: Decimal
    within_budget: bool
    by_model: dict[str, Decimal] = {}


class ValidationLogResponse(BaseModel):
    id: UUID
    passed: bool
    errors: list[ValidationIssue] = []
    warnings: list[ValidationIssue] = []
    metrics: dict[str, Any] = {}
    created_at: datetime


# --- LLM ---


class LLMInvokeRequest(BaseModel):
    provider: str
    model: str
    prompt: str | None = None
    messages: list[dict[str, str]] | None = None
    system_prompt: str | None = None
    temperature: float | None = None
    max_tokens: int | None = None
    content_id: UUID | None = None
    agent_name: str | None = None
    purpose: UsagePurpose = "generation"


class LLMUsageModel(BaseModel):
    input_tokens: int
    output_tokens: int


class LLMInvokeResponse(BaseModel):
    content: str
    model: str
    usage: LLMUsageModel
    cost: dict[str, str]


# --- Webhooks ---


class WebhookResponse(BaseModel):
    success: bool
    message: str
    content_id: UUID | None = None
