"""API endpoint modules for version 1."""

from .coupons import router as coupons_router
from .system import router as system_router

__all__ = [
    "coupons_router",
    "system_router",
]
