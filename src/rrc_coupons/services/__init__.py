# src/rrc_coupons/services/__init__.py
"""Business logic services for the coupon service."""

from .cooldown import CooldownGate
from .ledger import ClaimLedger
from .pool import PoolManager

__all__ = [
    "ClaimLedger",
    "CooldownGate",
    "PoolManager",
]
