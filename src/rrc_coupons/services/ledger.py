"""Server-side claim ledger for the cooldown gate."""

from __future__ import annotations

import logging
from threading import Lock
from typing import Final

import redis

from rrc_coupons.core.settings import settings

logger = logging.getLogger(__name__)

_KEY_PREFIX: Final[str] = "claim"


class ClaimLedger:
    """Remember when each client IP last received a coupon.

    Backed by Redis when ``REDIS_URL`` is configured so several workers share
    one view; otherwise entries live in an in-process cache. Entries expire
    after the cooldown window.
    """

    def __init__(self, window_seconds: int | None = None, redis_url: str | None = None) -> None:
        self._window_seconds = window_seconds or settings.cooldown_seconds
        self._redis: redis.Redis | None = None
        url = redis_url if redis_url is not None else settings.redis_url
        if url:
            try:
                self._redis = redis.from_url(url)
            except ValueError as exc:
                logger.warning("Invalid REDIS_URL, using in-process claim ledger: %s", exc)
                self._redis = None

    @property
    def uses_redis(self) -> bool:
        return self._redis is not None

    @staticmethod
    def _key(ip: str) -> str:
        return f"{_KEY_PREFIX}:{ip}"

    def last_claim_ms(self, ip: str, now_ms: int) -> int | None:
        """Return the epoch-ms timestamp of the last claim by ``ip`` still inside the window."""
        if self._redis is not None:
            try:
                raw = self._redis.get(self._key(ip))
            except redis.RedisError as exc:
                logger.warning("Claim ledger read failed, falling back to memory: %s", exc)
                self._redis = None
            else:
                if raw is None:
                    return None
                try:
                    return int(raw)
                except ValueError:
                    logger.warning("Ignoring unreadable claim ledger entry for %s: %r", ip, raw)
                    return None

        with _CACHE_LOCK:
            entry = _CLAIM_CACHE.get(self._key(ip))
            if entry is None:
                return None
            last_ms, expiry_ms = entry
            if expiry_ms <= now_ms:
                _CLAIM_CACHE.pop(self._key(ip), None)
                return None
            return last_ms

    def record_claim(self, ip: str, now_ms: int) -> None:
        """Store ``now_ms`` as the last claim time of ``ip``."""
        if self._redis is not None:
            try:
                self._redis.set(self._key(ip), int(now_ms), ex=int(self._window_seconds))
                return
            except redis.RedisError as exc:
                logger.warning("Claim ledger write failed, falling back to memory: %s", exc)
                self._redis = None

        with _CACHE_LOCK:
            _purge_expired(now_ms)
            _CLAIM_CACHE[self._key(ip)] = (int(now_ms), int(now_ms) + self._window_seconds * 1000)


def _purge_expired(now_ms: int) -> None:
    """Drop expired in-process entries. Caller holds ``_CACHE_LOCK``."""
    expired = [key for key, (_, expiry) in _CLAIM_CACHE.items() if expiry <= now_ms]
    for key in expired:
        del _CLAIM_CACHE[key]


_CLAIM_CACHE: dict[str, tuple[int, int]] = {}
_CACHE_LOCK = Lock()


def reset_claim_cache() -> None:
    """Forget every in-process claim entry."""
    with _CACHE_LOCK:
        _CLAIM_CACHE.clear()


def get_claim_ledger() -> ClaimLedger:
    """Return a claim ledger bound to the configured backend."""
    return ClaimLedger()
