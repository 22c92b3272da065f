"""HTTP API for the coupon service."""
