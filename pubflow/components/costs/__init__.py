"""
Costs component - LLM call pricing and usage accounting.
"""

from ._impl import (
    DEFAULT_PRICING,
    CostAccountantService,
    CostConfig,
    MeteredLLMClient,
    PricingTable,
    calculate_cost,
    create_cost_accountant,
)
from .component import build_config, run, run_price, run_record_usage, run_summary
from .models import (
    CostBreakdown,
    CostSummary,
    CostSummaryInput,
    GatewayReply,
    LLMCallError,
    LLMRequest,
    LLMResponse,
    ModelPricing,
    PriceInput,
    RecordUsageInput,
)
from .ports import ContentCostPort, LLMGatewayPort, TimePort, UsageLogRepoPort

__all__ = [
    # Entry points
    "run",
    "run_price",
    "run_record_usage",
    "run_summary",
    "build_config",
    # Input models
    "CostSummaryInput",
    "LLMRequest",
    "PriceInput",
    "RecordUsageInput",
    # Output models
    "CostBreakdown",
    "CostSummary",
    "GatewayReply",
    "LLMResponse",
    "ModelPricing",
    "LLMCallError",
    # Ports
    "ContentCostPort",
    "LLMGatewayPort",
    "TimePort",
    "UsageLogRepoPort",
    # Service
    "DEFAULT_PRICING",
    "CostAccountantService",
    "CostConfig",
    "MeteredLLMClient",
    "PricingTable",
    "calculate_cost",
    "create_cost_accountant",
]
