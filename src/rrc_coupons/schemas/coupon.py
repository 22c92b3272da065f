"""Coupon endpoint schemas."""
from __future__ import annotations

from pydantic import BaseModel, Field


class CouponResponse(BaseModel):
    """Payload returned when a coupon was issued."""

    success: bool = True
    coupon: str = Field(..., description="Issued coupon code, e.g. RRC-123456")


class MessageResponse(BaseModel):
    """Error payload for rejected or failed requests."""

    msg: str


class HealthResponse(BaseModel):
    """Service and database status."""

    status: str
    database: str
    available_coupons: int | None = None
