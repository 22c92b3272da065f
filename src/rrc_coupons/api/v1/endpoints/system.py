"""Service status endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from rrc_coupons.api.v1.dependencies import PoolManagerDep, SessionDep
from rrc_coupons.schemas.coupon import HealthResponse
from rrc_coupons.services.pool import PoolError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])

RUNNING_MESSAGE = "Coupon server is running ..."


@router.get("/", response_class=PlainTextResponse)
async def root() -> str:
    """Plain-text liveness message."""
    return RUNNING_MESSAGE


@router.get("/health", response_model=HealthResponse)
async def get_health(db: SessionDep, pool: PoolManagerDep) -> HealthResponse:
    """Check database connectivity and report the available pool size.

    Args:
        db: Database session
        pool: Pool manager bound to the same session

    Returns:
        Status ``ok`` with the number of available coupons, or ``degraded``
        when the database cannot be reached
    """
    try:
        db.execute(text("SELECT 1"))
        available = pool.counts().available
    except (SQLAlchemyError, PoolError) as e:
        logger.warning("Health check failed: %s", e)
        return HealthResponse(status="degraded", database=f"unhealthy: {type(e).__name__}")

    return HealthResponse(status="ok", database="healthy", available_coupons=available)
