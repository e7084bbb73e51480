"""Pricing administration endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from engagement_engine.api.v1.dependencies import (
    AdminDep,
    ModeratorDep,
    PricingServiceDep,
    SessionDep,
    raise_http,
)
from engagement_engine.schemas.pricing import (
    PricingCreate,
    PricingInitResponse,
    PricingRuleResponse,
    PricingStats,
    PricingUpdate,
    PricingWriteResponse,
)
from engagement_engine.services.audit import record_audit
from engagement_engine.services.errors import EngineError

router = APIRouter(prefix="/admin/pricing", tags=["pricing"])


@router.get("", response_model=list[PricingRuleResponse])
async def list_pricing(
    principal: ModeratorDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> list[PricingRuleResponse]:
    """All pricing rules, including superseded versions."""
    return [PricingRuleResponse.model_validate(rule) for rule in pricing.list_rules(db)]


@router.get("/active", response_model=list[PricingRuleResponse])
async def list_active_pricing(
    principal: ModeratorDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> list[PricingRuleResponse]:
    """Rules currently in force, one per priced city."""
    return [PricingRuleResponse.model_validate(rule) for rule in pricing.list_active(db)]


@router.get("/stats", response_model=PricingStats)
async def pricing_stats(
    principal: ModeratorDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> PricingStats:
    return PricingStats.model_validate(pricing.stats(db))


@router.post("", response_model=PricingWriteResponse, status_code=status.HTTP_201_CREATED)
async def set_city_pricing(
    payload: PricingCreate,
    principal: ModeratorDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> PricingWriteResponse:
    """Create a city's pricing, superseding any rule in force."""
    try:
        rule, versioned = pricing.set_city_pricing(
            db,
            city=payload.city,
            price_per_view=payload.price_per_view,
            price_per_like=payload.price_per_like,
            actor_id=principal.user_id,
        )
    except EngineError as exc:
        raise_http(exc)
    record_audit(
        db,
        actor_id=principal.user_id,
        actor_role=principal.role.value,
        action="UPDATE" if versioned else "CREATE",
        resource="PRICING",
        resource_id=rule.id,
        details={
            "city": rule.city,
            "price_per_view": str(payload.price_per_view),
            "price_per_like": str(payload.price_per_like),
        },
    )
    db.commit()
    return PricingWriteResponse(
        rule=PricingRuleResponse.model_validate(rule), versioned=versioned
    )


@router.put("/{rule_id}", response_model=PricingRuleResponse)
async def update_pricing(
    rule_id: int,
    payload: PricingUpdate,
    principal: ModeratorDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> PricingRuleResponse:
    """Supersede a rule with new prices."""
    try:
        rule = pricing.update_rule(
            db,
            rule_id,
            actor_id=principal.user_id,
            price_per_view=payload.price_per_view,
            price_per_like=payload.price_per_like,
        )
    except EngineError as exc:
        raise_http(exc)
    record_audit(
        db,
        actor_id=principal.user_id,
        actor_role=principal.role.value,
        action="UPDATE",
        resource="PRICING",
        resource_id=rule.id,
        details={"superseded": rule_id, "city": rule.city},
    )
    db.commit()
    return PricingRuleResponse.model_validate(rule)


@router.delete("/{rule_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_pricing(
    rule_id: int,
    principal: ModeratorDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> None:
    """Withdraw a rule; the city is unpriced until a new rule is set."""
    try:
        rule = pricing.deactivate_rule(db, rule_id, actor_id=principal.user_id)
    except EngineError as exc:
        raise_http(exc)
    record_audit(
        db,
        actor_id=principal.user_id,
        actor_role=principal.role.value,
        action="DELETE",
        resource="PRICING",
        resource_id=rule_id,
        details={"city": rule.city},
    )
    db.commit()


@router.post("/initialize", response_model=PricingInitResponse)
async def initialize_pricing(
    principal: AdminDep,
    db: SessionDep,
    pricing: PricingServiceDep,
) -> PricingInitResponse:
    """Seed default prices for every supported city without a rule in force."""
    created = pricing.initialize_defaults(db, actor_id=principal.user_id)
    record_audit(
        db,
        actor_id=principal.user_id,
        actor_role=principal.role.value,
        action="INITIALIZE",
        resource="PRICING",
        details={"created": len(created)},
    )
    db.commit()
    return PricingInitResponse(
        created=len(created),
        rules=[PricingRuleResponse.model_validate(rule) for rule in created],
    )
