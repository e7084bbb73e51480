"""Per-city pricing rules: resolution and administration."""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from engagement_engine.core.cities import DEFAULT_CITY_TIERS, CityTierTable, Tier
from engagement_engine.core.settings import settings
from engagement_engine.db.time import utcnow
from engagement_engine.models.pricing import PricingRule
from engagement_engine.services.errors import ConflictError, EngineValidationError, NotFoundError

logger = logging.getLogger(__name__)

MIN_PRICE = Decimal("0.01")
MAX_PRICE = Decimal("100")


def _effective_clause(at: datetime) -> Any:
    return (
        PricingRule.is_active.is_(True),
        PricingRule.effective_from <= at,
        or_(PricingRule.effective_to.is_(None), PricingRule.effective_to > at),
    )


class PricingService:
    """Owns the city tier table and the versioned pricing rules."""

    def __init__(self, tiers: CityTierTable = DEFAULT_CITY_TIERS) -> None:
        self.tiers = tiers

    # --- Resolution -------------------------------------------------------------
    def resolve_effective_rule(
        self, db: Session, city: str, at: datetime | None = None
    ) -> PricingRule | None:
        """Return the rule in force for ``city`` at ``at``, if any.

        Overlapping active rules should not exist; if they do, the most
        recently created one wins (highest id breaks remaining ties).
        """
        at = at or utcnow()
        stmt = (
            select(PricingRule)
            .where(PricingRule.city == city, *_effective_clause(at))
            .order_by(PricingRule.created_at.desc(), PricingRule.id.desc())
            .limit(1)
        )
        return db.scalar(stmt)

    def list_rules(self, db: Session) -> list[PricingRule]:
        stmt = select(PricingRule).order_by(
            PricingRule.tier, PricingRule.city, PricingRule.effective_from.desc()
        )
        return list(db.execute(stmt).scalars())

    def list_active(self, db: Session, at: datetime | None = None) -> list[PricingRule]:
        at = at or utcnow()
        stmt = (
            select(PricingRule)
            .where(*_effective_clause(at))
            .order_by(PricingRule.city, PricingRule.created_at.desc())
        )
        return list(db.execute(stmt).scalars())

    # --- Administration ---------------------------------------------------------
    def _validate_city(self, city: str) -> None:
        if not self.tiers.is_supported(city):
            raise EngineValidationError(f"Unsupported city: {city}", code="INVALID_CITY")

    @staticmethod
    def _validate_price(value: Decimal, label: str) -> Decimal:
        price = Decimal(value)
        if price < MIN_PRICE or price > MAX_PRICE:
            raise EngineValidationError(
                f"{label} must be between {MIN_PRICE} and {MAX_PRICE}",
                code="INVALID_PRICE",
            )
        return price

    def _new_rule(
        self,
        *,
        city: str,
        price_per_view: Decimal,
        price_per_like: Decimal,
        actor_id: str,
        effective_from: datetime,
        updated_by: str | None = None,
    ) -> PricingRule:
        tier = self.tiers.tier_for(city)
        return PricingRule(
            city=city,
            tier=tier.value,
            multiplier=self.tiers.multiplier_for(city),
            price_per_view=price_per_view,
            price_per_like=price_per_like,
            effective_from=effective_from,
            effective_to=None,
            is_active=True,
            created_by=actor_id,
            updated_by=updated_by,
            created_at=effective_from,
        )

    def set_city_pricing(
        self,
        db: Session,
        *,
        city: str,
        price_per_view: Decimal,
        price_per_like: Decimal,
        actor_id: str,
    ) -> tuple[PricingRule, bool]:
        """Create the first rule for a city or supersede the one in force.

        Returns:
            The new rule and whether it replaced an existing one.
        """
        self._validate_city(city)
        view_price = self._validate_price(price_per_view, "Price per view")
        like_price = self._validate_price(price_per_like, "Price per like")
        now = utcnow()

        current = self.resolve_effective_rule(db, city, now)
        if current is not None:
            current.effective_to = now
            current.updated_by = actor_id
        rule = self._new_rule(
            city=city,
            price_per_view=view_price,
            price_per_like=like_price,
            actor_id=current.created_by if current is not None else actor_id,
            effective_from=now,
            updated_by=actor_id if current is not None else None,
        )
        db.add(rule)
        db.commit()
        db.refresh(rule)
        logger.info(
            "Pricing for %s %s: view=%s like=%s",
            city, "versioned" if current is not None else "created", view_price, like_price,
        )
        return rule, current is not None

    def update_rule(
        self,
        db: Session,
        rule_id: int,
        *,
        actor_id: str,
        price_per_view: Decimal | None = None,
        price_per_like: Decimal | None = None,
    ) -> PricingRule:
        """Supersede an existing rule with new prices.

        Only the rule currently in force can be superseded; earlier versions
        keep the window they were in force for.

        Raises:
            NotFoundError: If the rule does not exist or is no longer active.
            ConflictError: If the rule has already been superseded.
        """
        rule = db.get(PricingRule, rule_id)
        if rule is None or not rule.is_active:
            raise NotFoundError("Pricing configuration not found", code="PRICING_NOT_FOUND")
        if rule.effective_to is not None:
            raise ConflictError(
                f"Pricing rule {rule_id} has been superseded", code="PRICING_SUPERSEDED"
            )
        new_view = (
            self._validate_price(price_per_view, "Price per view")
            if price_per_view is not None
            else rule.price_per_view
        )
        new_like = (
            self._validate_price(price_per_like, "Price per like")
            if price_per_like is not None
            else rule.price_per_like
        )
        now = utcnow()
        rule.effective_to = now
        rule.updated_by = actor_id
        replacement = self._new_rule(
            city=rule.city,
            price_per_view=new_view,
            price_per_like=new_like,
            actor_id=rule.created_by,
            effective_from=now,
            updated_by=actor_id,
        )
        db.add(replacement)
        db.commit()
        db.refresh(replacement)
        logger.info("Pricing rule %s superseded by %s", rule_id, replacement.id)
        return replacement

    def deactivate_rule(self, db: Session, rule_id: int, *, actor_id: str) -> PricingRule:
        """Withdraw a rule; history stays in place for audit.

        Raises:
            NotFoundError: If the rule does not exist or was already withdrawn.
        """
        rule = db.get(PricingRule, rule_id)
        if rule is None or not rule.is_active:
            raise NotFoundError("Pricing configuration not found", code="PRICING_NOT_FOUND")
        rule.is_active = False
        rule.updated_by = actor_id
        if rule.effective_to is None:
            rule.effective_to = utcnow()
        db.commit()
        return rule

    def initialize_defaults(self, db: Session, *, actor_id: str) -> list[PricingRule]:
        """Seed default prices for every supported city lacking a rule in force."""
        now = utcnow()
        priced = {rule.city for rule in self.list_active(db, now)}
        created: list[PricingRule] = []
        for city in self.tiers.cities:
            if city in priced:
                continue
            rule = self._new_rule(
                city=city,
                price_per_view=settings.default_price_per_view,
                price_per_like=settings.default_price_per_like,
                actor_id=actor_id,
                effective_from=now,
            )
            db.add(rule)
            created.append(rule)
        db.commit()
        logger.info("Initialized default pricing for %d cities", len(created))
        return created

    def stats(self, db: Session) -> dict[str, Any]:
        """Summarize rule counts and average prices per tier."""
        total = int(db.scalar(select(func.count()).select_from(PricingRule)) or 0)
        active = int(
            db.scalar(
                select(func.count()).select_from(PricingRule).where(PricingRule.is_active.is_(True))
            )
            or 0
        )
        rows = db.execute(
            select(
                PricingRule.tier,
                func.count(PricingRule.id),
                func.avg(PricingRule.price_per_view),
                func.avg(PricingRule.price_per_like),
            )
            .where(*_effective_clause(utcnow()))
            .group_by(PricingRule.tier)
            .order_by(PricingRule.tier)
        ).all()
        by_tier = {tier.value: 0 for tier in Tier}
        averages = []
        for tier, count, avg_view, avg_like in rows:
            by_tier[tier] = int(count)
            averages.append(
                {
                    "tier": tier,
                    "count": int(count),
                    "avg_price_per_view": round(float(avg_view or 0), 4),
                    "avg_price_per_like": round(float(avg_like or 0), 4),
                }
            )
        return {
            "total_rules": total,
            "active_rules": active,
            "inactive_rules": total - active,
            "by_tier": by_tier,
            "tier_averages": averages,
        }
