"""Pydantic schemas for API responses."""

from .coupon import CouponResponse, HealthResponse, MessageResponse

__all__ = ["CouponResponse", "HealthResponse", "MessageResponse"]
