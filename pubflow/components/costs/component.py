"""
Costs component - LLM call pricing and usage accounting.

Invariants:
- Every call attempt yields exactly one UsageRecord
- Failed attempts record zero tokens and zero cost
- Item totals equal the sum of successful linked records
"""

from __future__ import annotations

from pubflow.domain.entities import UsageRecord
from pubflow.rules.models import Rules

from ._impl import CostAccountantService, CostConfig, PricingTable, calculate_cost
from .models import (
    CostBreakdown,
    CostSummary,
    CostSummaryInput,
    ModelPricing,
    PriceInput,
    RecordUsageInput,
)
from .ports import ContentCostPort, TimePort, UsageLogRepoPort


def build_config(rules: Rules | None) -> CostConfig:
    """Build cost config from the pricing and budget rules."""
    if rules is None:
        return CostConfig()

    table = PricingTable(
        default=ModelPricing(
            rules.pricing.default.input_per_million,
            rules.pricing.default.output_per_million,
        ),
        prices={
            name: ModelPricing(p.input_per_million, p.output_per_million)
            for name, p in rules.pricing.models.items()
        },
    )
    return CostConfig(pricing=table, budget=rules.budget.per_item_usd)


def _create_service(
    usage_repo: UsageLogRepoPort,
    content_repo: ContentCostPort | None,
    time_port: TimePort | None,
    rules: Rules | None,
) -> CostAccountantService:
    return CostAccountantService(
        usage_repo=usage_repo,
        content_repo=content_repo,
        time_port=time_port,
        config=build_config(rules),
    )


# --- Component Entry Points ---


def run_price(inp: PriceInput, *, rules: Rules | None = None) -> CostBreakdown:
    """
    Price a token count.

    Pricing needs no store, so the usage log is never touched.
    """
    pricing = build_config(rules).pricing.get_pricing(inp.model, inp.provider)
    if inp.input_tokens < 0 or inp.output_tokens < 0:
        raise ValueError("Token counts cannot be negative")
    return calculate_cost(pricing, inp.input_tokens, inp.output_tokens)


def run_record_usage(
    inp: RecordUsageInput,
    *,
    usage_repo: UsageLogRepoPort,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> UsageRecord:
    """
    Record one LLM call attempt.

    Args:
        inp: Call details; success=False records a zero-cost failure.
        usage_repo: Usage log repository port.
        time_port: Optional time port for timestamps.
        rules: Optional rules for pricing.

    Returns:
        The UsageRecord written (or attempted).
    """
    service = _create_service(usage_repo, None, time_port, rules)
    return service.record_usage(
        provider=inp.provider,
        model=inp.model,
        input_tokens=inp.input_tokens,
        output_tokens=inp.output_tokens,
        duration_ms=inp.duration_ms,
        success=inp.success,
        error_message=inp.error_message,
        content_id=inp.content_id,
        agent_name=inp.agent_name,
        purpose=inp.purpose,
    )


def run_summary(
    inp: CostSummaryInput,
    *,
    usage_repo: UsageLogRepoPort,
    content_repo: ContentCostPort | None = None,
    rules: Rules | None = None,
) -> CostSummary:
    """
    Aggregate an item's spend, optionally refreshing its cached columns.

    Args:
        inp: Content id and whether to write the cached cost columns.
        usage_repo: Usage log repository port.
        content_repo: Required when refresh_item is set.
        rules: Optional rules for the budget threshold.

    Returns:
        CostSummary with totals and the advisory budget flag.
    """
    service = _create_service(usage_repo, content_repo, None, rules)
    if inp.refresh_item:
        if content_repo is None:
            raise ValueError("ContentCostPort is required to refresh item costs")
        return service.refresh_item_costs(inp.content_id)
    return service.summarize(inp.content_id)


def run(
    inp: PriceInput | RecordUsageInput | CostSummaryInput,
    *,
    usage_repo: UsageLogRepoPort | None = None,
    content_repo: ContentCostPort | None = None,
    time_port: TimePort | None = None,
    rules: Rules | None = None,
) -> CostBreakdown | UsageRecord | CostSummary:
    """
    Main entry point for the costs component.

    Dispatches to appropriate handler based on input type.
    """
    if isinstance(inp, PriceInput):
        return run_price(inp, rules=rules)
    if usage_repo is None:
        raise ValueError("UsageLogRepoPort is required for usage operations")
    if isinstance(inp, RecordUsageInput):
        return run_record_usage(inp, usage_repo=usage_repo, time_port=time_port, rules=rules)
    elif isinstance(inp, CostSummaryInput):
        return run_summary(inp, usage_repo=usage_repo, content_repo=content_repo, rules=rules)
    else:
        raise ValueError(f"Unknown input type: {type(inp)}")
