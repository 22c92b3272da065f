"""Tests for the cooldown gate, the wait-time formatter and the claim ledger."""

import pytest

from rrc_coupons.services.cooldown import (
    CooldownActiveError,
    CooldownGate,
    format_remaining,
)
from rrc_coupons.services.ledger import ClaimLedger

HOUR_MS = 60 * 60 * 1000
NOW_MS = 1_700_000_000_000
IP = "198.51.100.4"


@pytest.mark.parametrize(
    ("milliseconds", "expected"),
    [
        (0, "0 seconds"),
        (1, "1 second"),
        (1000, "1 second"),
        (1001, "2 seconds"),
        (59000, "59 seconds"),
        (59001, "1 minute and 0 seconds"),
        (60000, "1 minute and 0 seconds"),
        (61000, "1 minute and 1 second"),
        (121000, "2 minutes and 1 second"),
        (3570000, "59 minutes and 30 seconds"),
        (3600000, "60 minutes and 0 seconds"),
    ],
)
def test_format_remaining(milliseconds: int, expected: str) -> None:
    assert format_remaining(milliseconds) == expected


@pytest.fixture()
def gate() -> CooldownGate:
    return CooldownGate(window_ms=HOUR_MS)


def test_no_cookies_is_eligible(gate: CooldownGate) -> None:
    decision = gate.evaluate(IP, None, None, NOW_MS)
    assert decision.eligible
    assert decision.remaining_ms == 0


def test_recent_claim_from_same_ip_is_rejected(gate: CooldownGate) -> None:
    decision = gate.evaluate(IP, IP, str(NOW_MS - 1), NOW_MS)
    assert not decision.eligible
    assert decision.remaining_ms == HOUR_MS - 1


@pytest.mark.parametrize("stored_ip", [IP, "203.0.113.9"])
def test_expired_window_is_eligible(gate: CooldownGate, stored_ip: str) -> None:
    decision = gate.evaluate(IP, stored_ip, str(NOW_MS - HOUR_MS - 1), NOW_MS)
    assert decision.eligible


def test_window_boundary_is_eligible(gate: CooldownGate) -> None:
    assert gate.evaluate(IP, IP, str(NOW_MS - HOUR_MS), NOW_MS).eligible


def test_different_ip_is_eligible(gate: CooldownGate) -> None:
    assert gate.evaluate(IP, "203.0.113.9", str(NOW_MS - 1), NOW_MS).eligible


def test_missing_timestamp_is_eligible(gate: CooldownGate) -> None:
    assert gate.evaluate(IP, IP, None, NOW_MS).eligible
    assert gate.evaluate(IP, IP, "", NOW_MS).eligible


def test_malformed_timestamp_is_eligible(gate: CooldownGate) -> None:
    assert gate.evaluate(IP, IP, "yesterday", NOW_MS).eligible


def test_future_timestamp_waits_one_window_at_most(gate: CooldownGate) -> None:
    decision = gate.evaluate(IP, IP, str(NOW_MS + 10 * HOUR_MS), NOW_MS)
    assert not decision.eligible
    assert decision.remaining_ms == HOUR_MS


def test_enforce_raises_with_wait_message(gate: CooldownGate) -> None:
    with pytest.raises(CooldownActiveError) as exc_info:
        gate.enforce(IP, IP, str(NOW_MS - 30_000), NOW_MS)

    assert exc_info.value.remaining_ms == HOUR_MS - 30_000
    assert exc_info.value.message == (
        "Server restriction: Please wait 59 minutes and 30 seconds "
        "before requesting another coupon."
    )


def test_enforce_passes_eligible_client(gate: CooldownGate) -> None:
    gate.enforce(IP, None, None, NOW_MS)


def test_record_without_ledger_is_noop(gate: CooldownGate) -> None:
    gate.record(IP, NOW_MS)
    assert gate.evaluate(IP, None, None, NOW_MS + 1).eligible


class TestClaimLedger:
    """The in-process ledger backs the gate when no Redis URL is configured."""

    def test_uses_memory_without_redis_url(self) -> None:
        assert not ClaimLedger(window_seconds=3600, redis_url="").uses_redis

    def test_ledger_rejects_client_without_cookies(self) -> None:
        gate = CooldownGate(window_ms=HOUR_MS, ledger=ClaimLedger(window_seconds=3600, redis_url=""))
        gate.record(IP, NOW_MS)

        decision = gate.evaluate(IP, None, None, NOW_MS + 60_000)
        assert not decision.eligible
        assert decision.remaining_ms == HOUR_MS - 60_000

    def test_ledger_is_keyed_by_ip(self) -> None:
        gate = CooldownGate(window_ms=HOUR_MS, ledger=ClaimLedger(window_seconds=3600, redis_url=""))
        gate.record(IP, NOW_MS)

        assert gate.evaluate("203.0.113.9", None, None, NOW_MS + 1).eligible

    def test_ledger_entries_expire(self) -> None:
        ledger = ClaimLedger(window_seconds=3600, redis_url="")
        ledger.record_claim(IP, NOW_MS)

        assert ledger.last_claim_ms(IP, NOW_MS + 1) == NOW_MS
        assert ledger.last_claim_ms(IP, NOW_MS + HOUR_MS) is None

    def test_longer_wait_wins(self) -> None:
        ledger = ClaimLedger(window_seconds=3600, redis_url="")
        ledger.record_claim(IP, NOW_MS - 10_000)
        gate = CooldownGate(window_ms=HOUR_MS, ledger=ledger)

        decision = gate.evaluate(IP, IP, str(NOW_MS - 20_000), NOW_MS)
        assert decision.remaining_ms == HOUR_MS - 10_000


class _StoredValueRedis:
    """Redis stand-in that returns a fixed raw value for every key."""

    def __init__(self, raw: bytes) -> None:
        self.raw = raw

    def get(self, key: str) -> bytes:
        return self.raw


def test_unreadable_redis_entry_counts_as_absent() -> None:
    ledger = ClaimLedger(window_seconds=3600, redis_url="")
    ledger._redis = _StoredValueRedis(b"not-a-timestamp")

    assert ledger.last_claim_ms(IP, NOW_MS) is None
    gate = CooldownGate(window_ms=HOUR_MS, ledger=ledger)
    assert gate.evaluate(IP, None, None, NOW_MS).eligible


def test_redis_entry_is_read_as_epoch_ms() -> None:
    ledger = ClaimLedger(window_seconds=3600, redis_url="")
    ledger._redis = _StoredValueRedis(str(NOW_MS - 5_000).encode())

    assert ledger.last_claim_ms(IP, NOW_MS) == NOW_MS - 5_000
