"""Versioned per-city pricing rules."""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import DateTime, Index, Integer, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from engagement_engine.db.session import Base
from engagement_engine.db.time import utcnow

PRICE = Numeric(10, 4)


class PricingRule(Base):
    """Price per view / like for a city over an effective window.

    ``effective_to`` is exclusive; NULL means open-ended. Updates close the
    current rule and insert a new version rather than editing figures that may
    already have been paid out.
    """

    __tablename__ = "pricing_rule"
    __table_args__ = (
        Index("ix_pricing_rule_city_window", "city", "effective_from", "effective_to"),
        Index("ix_pricing_rule_active", "is_active"),
        Index("ix_pricing_rule_tier", "tier"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    city: Mapped[str] = mapped_column(String(64), nullable=False)
    tier: Mapped[str] = mapped_column(String(8), nullable=False)
    multiplier: Mapped[Decimal] = mapped_column(Numeric(6, 3), nullable=False)
    price_per_view: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    price_per_like: Mapped[Decimal] = mapped_column(PRICE, nullable=False)
    effective_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    effective_to: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    is_active: Mapped[bool] = mapped_column(default=True, nullable=False)
    created_by: Mapped[str] = mapped_column(String(64), nullable=False)
    updated_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    @property
    def effective_price_per_view(self) -> Decimal:
        """Multiplier-adjusted price, for display only."""
        return (self.price_per_view * self.multiplier).quantize(Decimal("0.0001"))

    @property
    def effective_price_per_like(self) -> Decimal:
        return (self.price_per_like * self.multiplier).quantize(Decimal("0.0001"))
