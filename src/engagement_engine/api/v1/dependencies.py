"""Shared API dependencies for authentication and service wiring."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Annotated, NoReturn

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from engagement_engine.core.security import Role, decode_access_token
from engagement_engine.db.session import get_db
from engagement_engine.services.cooldown import CooldownStore, get_cooldown_store
from engagement_engine.services.errors import (
    ConflictError,
    EngineError,
    EngineValidationError,
    NotFoundError,
    RateLimitedError,
)
from engagement_engine.services.likes import LikeToggle
from engagement_engine.services.moderation import ModerationService
from engagement_engine.services.notifications import Notifier, get_notifier
from engagement_engine.services.pricing import PricingService
from engagement_engine.services.view_ledger import ViewLedger

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


@dataclass(frozen=True)
class Principal:
    """Identity supplied by the auth collaborator."""

    user_id: str
    role: Role


def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Principal:
    """Get the caller's identity from the bearer JWT.

    Raises:
        HTTPException: If the token is invalid or carries no usable subject/role.
    """
    try:
        payload = decode_access_token(credentials.credentials)
    except JWTError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err

    subject = payload.get("sub")
    if not isinstance(subject, str) or not subject:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        )
    try:
        role = Role(payload.get("role", Role.USER.value))
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unknown role",
        ) from err
    return Principal(user_id=subject, role=role)


# Type alias for current principal dependency
CurrentPrincipalDep = Annotated[Principal, Depends(get_current_principal)]


def require_roles(*roles: Role) -> Callable[[Principal], Principal]:
    """Build a dependency admitting only the given roles."""

    def _check(principal: CurrentPrincipalDep) -> Principal:
        if principal.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions",
            )
        return principal

    return _check


ModeratorDep = Annotated[Principal, Depends(require_roles(Role.ADMIN, Role.MANAGER))]
AdminDep = Annotated[Principal, Depends(require_roles(Role.ADMIN))]
FinanceDep = Annotated[
    Principal, Depends(require_roles(Role.ADMIN, Role.MANAGER, Role.ACCOUNTANT))
]


def client_ip(request: Request) -> str:
    """Return the caller IP, preferring the first ``X-Forwarded-For`` hop."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    if request.client is not None:
        return request.client.host
    return "unknown"


def raise_http(exc: EngineError) -> NoReturn:
    """Translate a service error into the matching HTTP error."""
    if isinstance(exc, RateLimitedError):
        code = status.HTTP_429_TOO_MANY_REQUESTS
    elif isinstance(exc, ConflictError):
        code = status.HTTP_409_CONFLICT
    elif isinstance(exc, NotFoundError):
        code = status.HTTP_404_NOT_FOUND
    elif isinstance(exc, EngineValidationError):
        code = status.HTTP_400_BAD_REQUEST
    else:
        code = status.HTTP_500_INTERNAL_SERVER_ERROR
    raise HTTPException(status_code=code, detail=exc.as_detail()) from exc


# --- Service wiring -----------------------------------------------------------
def get_pricing_service() -> PricingService:
    return PricingService()


def get_view_ledger() -> ViewLedger:
    return ViewLedger()


def get_like_toggle(
    cooldowns: Annotated[CooldownStore, Depends(get_cooldown_store)],
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> LikeToggle:
    return LikeToggle(cooldowns=cooldowns, notifier=notifier)


def get_moderation_service(
    notifier: Annotated[Notifier, Depends(get_notifier)],
) -> ModerationService:
    return ModerationService(notifier=notifier)


PricingServiceDep = Annotated[PricingService, Depends(get_pricing_service)]
ViewLedgerDep = Annotated[ViewLedger, Depends(get_view_ledger)]
LikeToggleDep = Annotated[LikeToggle, Depends(get_like_toggle)]
ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]
