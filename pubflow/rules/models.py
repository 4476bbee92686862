from decimal import Decimal
from typing import Literal

from pydantic import BaseModel, Field


class ProjectRules(BaseModel):
    slug: str
    rules_version: str


class LinkRules(BaseModel):
    token_prefix: str = "ge"
    internal_domains: list[str]
    affiliate_domains: list[str]
    rewriter_timeout_seconds: float = 30.0


class RangeRule(BaseModel):
    min: int
    max: int


class ValidationRules(BaseModel):
    internal_links: RangeRule
    min_external_links: int = 1
    word_count: RangeRule
    word_count_tolerance: int = 0
    title_length: RangeRule
    meta_description_length: RangeRule
    require_structured_data: bool = True


AutoApprovePolicyName = Literal["elapsed_only", "require_valid", "revalidate"]


class SlaRules(BaseModel):
    window_days: int = 5
    sweep_interval_seconds: float = 60.0
    auto_approve_policy: AutoApprovePolicyName = "require_valid"
    publish_approved: bool = False
    max_items_per_sweep: int = 50
    urgent_hours: int = 24
    warning_days: int = 3


class ModelPrice(BaseModel):
    input_per_million: Decimal
    output_per_million: Decimal


class PricingRules(BaseModel):
    default: ModelPrice
    models: dict[str, ModelPrice] = Field(default_factory=dict)


class BudgetRules(BaseModel):
    per_item_usd: Decimal = Decimal("10.00")


class PublishRules(BaseModel):
    default_post_status: str = "draft"
    timeout_seconds: float = 60.0


class WebhookRules(BaseModel):
    secret_env: str = "CMS_WEBHOOK_SECRET"
    # false: accept unauthenticated callbacks while no secret is set
    require_secret: bool = True


class OpsRules(BaseModel):
    required_env: list[str] = Field(default_factory=list)


class Rules(BaseModel):
    project: ProjectRules
    links: LinkRules
    validation: ValidationRules
    sla: SlaRules
    pricing: PricingRules
    budget: BudgetRules
    publish: PublishRules
    webhook: WebhookRules
    ops: OpsRules
