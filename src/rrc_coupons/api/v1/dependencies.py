"""Shared API dependencies for the coupon endpoints."""

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, Request
from sqlalchemy.orm import Session

from rrc_coupons.core.settings import settings
from rrc_coupons.db.session import get_db
from rrc_coupons.db.time import now_ms
from rrc_coupons.services.cooldown import CooldownGate, get_cooldown_gate
from rrc_coupons.services.pool import PoolManager

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_pool_manager(db: SessionDep) -> PoolManager:
    """Return a pool manager bound to the request's database session."""
    return PoolManager(db)


def get_cooldown_gate_dep() -> CooldownGate:
    """Get CooldownGate dependency for dependency injection."""
    return get_cooldown_gate()


def get_clock() -> Callable[[], int]:
    """Return the epoch-millisecond clock used for cooldown bookkeeping."""
    return now_ms


def get_client_ip(request: Request) -> str:
    """Extract the client IP from the request.

    Forwarding headers are only honoured when ``TRUST_PROXY_HEADERS`` is set;
    otherwise a client could pick its own identity.
    """
    if settings.trust_proxy_headers:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            # Take the first IP in the chain (original client)
            return forwarded.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip.strip()

    if request.client:
        return request.client.host

    return "unknown"


PoolManagerDep = Annotated[PoolManager, Depends(get_pool_manager)]
CooldownGateDep = Annotated[CooldownGate, Depends(get_cooldown_gate_dep)]
ClockDep = Annotated[Callable[[], int], Depends(get_clock)]
ClientIpDep = Annotated[str, Depends(get_client_ip)]
