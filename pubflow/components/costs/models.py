"""
Costs component input/output models.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from pubflow.domain.entities import UsagePurpose

# --- Errors ---


class LLMCallError(Exception):
    """An LLM invocation failed (provider, network or gateway error)."""

    def __init__(self, error: str, message: str, status_code: int | None = None) -> None:
        super().__init__(f"{error}: {message}")
        self.error = error
        self.message = message
        self.status_code = status_code


# --- Pricing ---


@dataclass(frozen=True)
class ModelPricing:
    """Price per million tokens for one model."""

    input_per_million: Decimal
    output_per_million: Decimal


@dataclass(frozen=True)
class CostBreakdown:
    """Cost of a single call."""

    input_cost: Decimal
    output_cost: Decimal
    total_cost: Decimal

    def as_dict(self) -> dict[str, str]:
        return {
            "input_cost": str(self.input_cost),
            "output_cost": str(self.output_cost),
            "total_cost": str(self.total_cost),
        }


# --- LLM boundary ---


@dataclass(frozen=True)
class LLMRequest:
    """Request to the LLM invocation endpoint."""

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

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"provider": self.provider, "model": self.model}
        if self.messages is not None:
            payload["messages"] = self.messages
        else:
            payload["prompt"] = self.prompt or ""
        optional = {
            "system_prompt": self.system_prompt,
            "temperature": self.temperature,
            "max_tokens": self.max_tokens,
            "content_id": str(self.content_id) if self.content_id else None,
            "agent_name": self.agent_name,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return payload


@dataclass(frozen=True)
class GatewayReply:
    """Raw reply from the gateway, before pricing."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class LLMResponse:
    """Reply enriched with the cost of the call."""

    content: str
    model: str
    input_tokens: int
    output_tokens: int
    cost: CostBreakdown


# --- Input Models ---


@dataclass(frozen=True)
class PriceInput:
    """Input for pricing a token count."""

    provider: str
    model: str
    input_tokens: int
    output_tokens: int


@dataclass(frozen=True)
class RecordUsageInput:
    """Input for recording one LLM call attempt."""

    provider: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    duration_ms: int = 0
    success: bool = True
    error_message: str | None = None
    content_id: UUID | None = None
    agent_name: str | None = None
    purpose: UsagePurpose = "generation"


@dataclass(frozen=True)
class CostSummaryInput:
    """Input for aggregating an item's spend."""

    content_id: UUID
    refresh_item: bool = False


# --- Output Models ---


@dataclass(frozen=True)
class CostSummary:
    """Aggregated spend for one content item."""

    content_id: UUID
    generation_cost: Decimal
    verification_cost: Decimal
    total_cost: Decimal
    call_count: int
    failed_calls: int
    budget: Decimal
    within_budget: bool
    by_model: dict[str, Decimal] = field(default_factory=dict)
