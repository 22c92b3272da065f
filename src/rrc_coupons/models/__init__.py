# src/rrc_coupons/models/__init__.py
"""SQLAlchemy models for the coupon service."""

from .coupon import AvailableCoupon, ClaimedCoupon, CouponBatch

__all__ = [
    "AvailableCoupon",
    "ClaimedCoupon",
    "CouponBatch",
]
