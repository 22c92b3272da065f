# src/rrc_coupons/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import coupons_router, system_router

__all__ = [
    "coupons_router",
    "system_router",
]
