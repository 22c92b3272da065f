"""Per-client cooldown between two coupon claims.

A client is identified by its IP address plus two cookies the server set on
its last successful claim: ``userIp`` and ``lastRequestTime`` (epoch ms). The
gate has two states, Eligible and Cooldown; Cooldown holds while the stored IP
matches the current IP and the last claim is younger than the window.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass

from rrc_coupons.core.settings import settings
from rrc_coupons.services.ledger import ClaimLedger, get_claim_ledger

logger = logging.getLogger(__name__)

__all__ = [
    "CooldownActiveError",
    "CooldownDecision",
    "CooldownGate",
    "format_remaining",
    "get_cooldown_gate",
]


def _with_unit(value: int, unit: str) -> str:
    return f"{value} {unit}" if value == 1 else f"{value} {unit}s"


def format_remaining(milliseconds: int) -> str:
    """Render a wait time such as ``"59 minutes and 30 seconds"``.

    Milliseconds are rounded up to whole seconds. Below one minute only seconds
    are shown; otherwise minutes and seconds, each pluralised on its own.
    """
    total_seconds = max(0, math.ceil(milliseconds / 1000))
    if total_seconds < 60:
        return _with_unit(total_seconds, "second")
    minutes, seconds = divmod(total_seconds, 60)
    return f"{_with_unit(minutes, 'minute')} and {_with_unit(seconds, 'second')}"


class CooldownActiveError(Exception):
    """Raised when a client asks for another coupon inside its cooldown window."""

    def __init__(self, remaining_ms: int) -> None:
        self.remaining_ms = remaining_ms
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return (
            f"Server restriction: Please wait {format_remaining(self.remaining_ms)} "
            "before requesting another coupon."
        )


@dataclass(frozen=True)
class CooldownDecision:
    """Outcome of a cooldown check."""

    eligible: bool
    remaining_ms: int = 0


def _parse_timestamp(value: str | int | None) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


class CooldownGate:
    """Decide whether a client may receive a coupon now."""

    def __init__(self, window_ms: int | None = None, ledger: ClaimLedger | None = None) -> None:
        self._window_ms = window_ms or settings.cooldown_ms
        self._ledger = ledger

    @property
    def window_ms(self) -> int:
        return self._window_ms

    def _remaining(self, last_ms: int, now_ms: int) -> int:
        elapsed = now_ms - last_ms
        if elapsed >= self._window_ms:
            return 0
        # A timestamp from the future never extends the wait past one window.
        return min(self._window_ms, self._window_ms - elapsed)

    def evaluate(
        self,
        current_ip: str,
        stored_ip: str | None,
        last_request_time: str | int | None,
        now_ms: int,
    ) -> CooldownDecision:
        """Return the cooldown state for a client.

        Args:
            current_ip: Client address as seen by the transport.
            stored_ip: Value of the ``userIp`` cookie, if sent.
            last_request_time: Value of the ``lastRequestTime`` cookie, if sent.
                Anything that is not an integer counts as absent.
            now_ms: Current epoch time in milliseconds.
        """
        remaining = 0

        last_ms = _parse_timestamp(last_request_time)
        if stored_ip == current_ip and last_ms is not None:
            remaining = self._remaining(last_ms, now_ms)

        if self._ledger is not None:
            ledger_ms = self._ledger.last_claim_ms(current_ip, now_ms)
            if ledger_ms is not None:
                remaining = max(remaining, self._remaining(ledger_ms, now_ms))

        if remaining > 0:
            return CooldownDecision(eligible=False, remaining_ms=remaining)
        return CooldownDecision(eligible=True)

    def enforce(
        self,
        current_ip: str,
        stored_ip: str | None,
        last_request_time: str | int | None,
        now_ms: int,
    ) -> None:
        """Raise ``CooldownActiveError`` if the client is still cooling down."""
        decision = self.evaluate(current_ip, stored_ip, last_request_time, now_ms)
        if not decision.eligible:
            logger.debug("Rejecting %s, %d ms of cooldown left", current_ip, decision.remaining_ms)
            raise CooldownActiveError(decision.remaining_ms)

    def record(self, ip: str, now_ms: int) -> None:
        """Note a successful claim so the server-side ledger can enforce the window."""
        if self._ledger is not None:
            self._ledger.record_claim(ip, now_ms)


def get_cooldown_gate() -> CooldownGate:
    """Return a gate configured from settings."""
    ledger = get_claim_ledger() if settings.server_side_cooldown else None
    return CooldownGate(ledger=ledger)
