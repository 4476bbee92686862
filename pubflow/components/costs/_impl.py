"""
CostAccountantService - Prices LLM calls and keeps the usage audit trail.

Key behaviors:
- Prices are per million tokens, input and output priced independently
- Unknown models are priced at the default tier, never rejected
- Exactly one UsageRecord per call attempt; failures cost zero
- Writing the record is best-effort: a store failure is logged, not raised
- Item totals only count successful calls
- The budget is advisory; exceeding it logs a warning
- Metered calls refresh the item's cached cost columns
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import ROUND_HALF_UP, Decimal
from uuid import UUID

from pubflow.domain.entities import UsagePurpose, UsageRecord

from .models import (
    CostBreakdown,
    CostSummary,
    LLMCallError,
    LLMRequest,
    LLMResponse,
    ModelPricing,
)
from .ports import ContentCostPort, LLMGatewayPort, TimePort, UsageLogRepoPort

logger = logging.getLogger(__name__)

MILLION = Decimal("1000000")
QUANTUM = Decimal("0.000001")
ZERO = Decimal("0")


# --- Pricing ---


@dataclass(frozen=True)
class PricingTable:
    """Per-model prices with a default tier for anything unlisted."""

    default: ModelPricing
    prices: dict[str, ModelPricing] = field(default_factory=dict)

    def get_pricing(self, model: str, provider: str | None = None) -> ModelPricing:
        """
        Look up a model's price.

        Tries "provider/model" first, then the bare model name, then the
        default tier.
        """
        if provider and f"{provider}/{model}" in self.prices:
            return self.prices[f"{provider}/{model}"]
        if model in self.prices:
            return self.prices[model]
        logger.debug("No price for %s/%s, using default tier", provider, model)
        return self.default


DEFAULT_PRICING = PricingTable(
    default=ModelPricing(Decimal("2.00"), Decimal("10.00")),
    prices={
        "grok-2": ModelPricing(Decimal("2.00"), Decimal("10.00")),
        "sonar-pro": ModelPricing(Decimal("3.00"), Decimal("15.00")),
        "claude-sonnet": ModelPricing(Decimal("3.00"), Decimal("15.00")),
        "claude-haiku": ModelPricing(Decimal("0.25"), Decimal("1.25")),
    },
)


def calculate_cost(pricing: ModelPricing, input_tokens: int, output_tokens: int) -> CostBreakdown:
    """Cost of a call, each side rounded to the micro-dollar."""
    input_cost = (Decimal(input_tokens) / MILLION * pricing.input_per_million).quantize(
        QUANTUM, rounding=ROUND_HALF_UP
    )
    output_cost = (Decimal(output_tokens) / MILLION * pricing.output_per_million).quantize(
        QUANTUM, rounding=ROUND_HALF_UP
    )
    return CostBreakdown(
        input_cost=input_cost,
        output_cost=output_cost,
        total_cost=input_cost + output_cost,
    )


# --- Configuration ---


@dataclass(frozen=True)
class CostConfig:
    """Cost accounting settings from rules."""

    pricing: PricingTable = DEFAULT_PRICING
    budget: Decimal = Decimal("10.00")


DEFAULT_CONFIG = CostConfig()


# --- CostAccountantService ---


class CostAccountantService:
    """
    Cost accountant service.

    Owns pricing, the usage log and the per-item cost rollup.
    """

    def __init__(
        self,
        usage_repo: UsageLogRepoPort,
        content_repo: ContentCostPort | None = None,
        time_port: TimePort | None = None,
        config: CostConfig | None = None,
    ) -> None:
        self._usage_repo = usage_repo
        self._content_repo = content_repo
        self._time = time_port
        self._config = config or DEFAULT_CONFIG

    def _now_utc(self) -> datetime:
        if self._time:
            return self._time.now_utc()
        return datetime.now(UTC)

    @property
    def budget(self) -> Decimal:
        return self._config.budget

    def price(
        self,
        provider: str,
        model: str,
        input_tokens: int,
        output_tokens: int,
    ) -> CostBreakdown:
        """Price a token count for a model."""
        if input_tokens < 0 or output_tokens < 0:
            raise ValueError("Token counts cannot be negative")
        pricing = self._config.pricing.get_pricing(model, provider)
        return calculate_cost(pricing, input_tokens, output_tokens)

    def record_usage(
        self,
        provider: str,
        model: str,
        input_tokens: int = 0,
        output_tokens: int = 0,
        duration_ms: int = 0,
        success: bool = True,
        error_message: str | None = None,
        content_id: UUID | None = None,
        agent_name: str | None = None,
        purpose: UsagePurpose = "generation",
    ) -> UsageRecord:
        """
        Record one call attempt.

        Failed calls are stored with zero tokens and zero cost. The record is
        returned even if it could not be persisted.
        """
        if success:
            cost = self.price(provider, model, input_tokens, output_tokens)
        else:
            input_tokens = output_tokens = 0
            cost = CostBreakdown(ZERO, ZERO, ZERO)

        record = UsageRecord(
            content_id=content_id,
            provider=provider,
            model=model,
            agent_name=agent_name,
            purpose=purpose,
            input_tokens=input_tokens,
            output_tokens=output_tokens,
            input_cost=cost.input_cost,
            output_cost=cost.output_cost,
            total_cost=cost.total_cost,
            duration_ms=duration_ms,
            success=success,
            error_message=error_message,
            created_at=self._now_utc(),
        )

        try:
            self._usage_repo.append(record)
        except Exception:
            logger.exception(
                "Failed to write usage record %s (%s/%s, content %s)",
                record.id,
                provider,
                model,
                content_id,
            )
        return record

    def record_failure(
        self,
        provider: str,
        model: str,
        error_message: str,
        duration_ms: int = 0,
        content_id: UUID | None = None,
        agent_name: str | None = None,
        purpose: UsagePurpose = "generation",
    ) -> UsageRecord:
        """Record a failed call attempt."""
        return self.record_usage(
            provider=provider,
            model=model,
            duration_ms=duration_ms,
            success=False,
            error_message=error_message,
            content_id=content_id,
            agent_name=agent_name,
            purpose=purpose,
        )

    def summarize(self, content_id: UUID) -> CostSummary:
        """Aggregate successful spend for an item."""
        records = self._usage_repo.list_by_content(content_id)

        generation = ZERO
        verification = ZERO
        total = ZERO
        by_model: dict[str, Decimal] = {}
        failed = 0

        for r in records:
            if not r.success:
                failed += 1
                continue
            total += r.total_cost
            if r.purpose == "generation":
                generation += r.total_cost
            elif r.purpose == "verification":
                verification += r.total_cost
            by_model[r.model] = by_model.get(r.model, ZERO) + r.total_cost

        within_budget = total < self._config.budget
        if not within_budget:
            logger.warning(
                "Content %s is over budget: $%s >= $%s",
                content_id,
                total,
                self._config.budget,
            )

        return CostSummary(
            content_id=content_id,
            generation_cost=generation,
            verification_cost=verification,
            total_cost=total,
            call_count=len(records),
            failed_calls=failed,
            budget=self._config.budget,
            within_budget=within_budget,
            by_model=by_model,
        )

    def refresh_item_costs(self, content_id: UUID) -> CostSummary:
        """Recompute an item's cost and write the cached columns."""
        summary = self.summarize(content_id)
        if self._content_repo is not None:
            self._content_repo.update_fields(
                content_id,
                {
                    "generation_cost": summary.generation_cost,
                    "verification_cost": summary.verification_cost,
                    "total_cost": summary.total_cost,
                },
            )
        return summary


# --- Metered LLM client ---


class MeteredLLMClient:
    """
    Wraps the LLM gateway so every call attempt is priced and logged.

    Failures are logged as zero-cost records and re-raised. After a
    successful call tied to a content item, the item's cached cost
    columns are refreshed from the usage log.
    """

    def __init__(self, gateway: LLMGatewayPort, accountant: CostAccountantService) -> None:
        self._gateway = gateway
        self._accountant = accountant

    def complete(self, request: LLMRequest) -> LLMResponse:
        start = time.monotonic()
        try:
            reply = self._gateway.invoke(request)
        except LLMCallError as e:
            self._accountant.record_failure(
                provider=request.provider,
                model=request.model,
                error_message=e.message,
                duration_ms=int((time.monotonic() - start) * 1000),
                content_id=request.content_id,
                agent_name=request.agent_name,
                purpose=request.purpose,
            )
            raise

        record = self._accountant.record_usage(
            provider=request.provider,
            model=reply.model or request.model,
            input_tokens=reply.input_tokens,
            output_tokens=reply.output_tokens,
            duration_ms=int((time.monotonic() - start) * 1000),
            content_id=request.content_id,
            agent_name=request.agent_name,
            purpose=request.purpose,
        )
        if request.content_id is not None:
            self._refresh_item(request.content_id)
        return LLMResponse(
            content=reply.content,
            model=reply.model or request.model,
            input_tokens=reply.input_tokens,
            output_tokens=reply.output_tokens,
            cost=CostBreakdown(record.input_cost, record.output_cost, record.total_cost),
        )

    def _refresh_item(self, content_id: UUID) -> None:
        try:
            self._accountant.refresh_item_costs(content_id)
        except Exception:
            logger.exception("Failed to refresh cached costs for content %s", content_id)


# --- Factory ---


def create_cost_accountant(
    usage_repo: UsageLogRepoPort,
    content_repo: ContentCostPort | None = None,
    time_port: TimePort | None = None,
    config: CostConfig | None = None,
) -> CostAccountantService:
    """Create a CostAccountantService."""
    return CostAccountantService(
        usage_repo=usage_repo,
        content_repo=content_repo,
        time_port=time_port,
        config=config,
    )
