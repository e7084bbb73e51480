"""Pricing rule schemas."""

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field

PRICE_MIN = Decimal("0.01")
PRICE_MAX = Decimal("100")


class PricingCreate(BaseModel):
    """Create a city's pricing or supersede the rule in force."""

    city: str
    price_per_view: Decimal = Field(..., ge=PRICE_MIN, le=PRICE_MAX)
    price_per_like: Decimal = Field(..., ge=PRICE_MIN, le=PRICE_MAX)


class PricingUpdate(BaseModel):
    price_per_view: Decimal | None = Field(None, ge=PRICE_MIN, le=PRICE_MAX)
    price_per_like: Decimal | None = Field(None, ge=PRICE_MIN, le=PRICE_MAX)


class PricingRuleResponse(BaseModel):
    """Pricing rule with its multiplier-adjusted display prices."""

    id: int
    city: str
    tier: str
    multiplier: float
    price_per_view: float
    price_per_like: float
    effective_price_per_view: float
    effective_price_per_like: float
    effective_from: datetime
    effective_to: datetime | None
    is_active: bool
    created_by: str
    updated_by: str | None

    model_config = ConfigDict(from_attributes=True)


class PricingWriteResponse(BaseModel):
    rule: PricingRuleResponse
    versioned: bool


class TierAverage(BaseModel):
    tier: str
    count: int
    avg_price_per_view: float
    avg_price_per_like: float


class PricingStats(BaseModel):
    total_rules: int
    active_rules: int
    inactive_rules: int
    by_tier: dict[str, int]
    tier_averages: list[TierAverage]


class PricingInitResponse(BaseModel):
    created: int
    rules: list[PricingRuleResponse]
