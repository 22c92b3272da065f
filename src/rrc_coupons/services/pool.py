"""Coupon pool management.

The available pool is stored as batches (``coupon_batch``) whose codes live in
``new_coupons`` in batch order; the claimed pool is the ``old_coupons`` set.
This module keeps both pools disjoint and exposes the claim-one-coupon contract
used by the HTTP layer:

- ``generate_batch`` draws globally unique codes by rejection sampling
- ``add_batch`` persists a batch as a new available-pool document
- ``fetch_one`` peeks at the next available code
- ``claim`` moves one code from available to claimed in a single transaction
- ``issue_one`` combines the above, replenishing an empty pool on demand
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

from sqlalchemy import delete, exists, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from rrc_coupons.core.settings import settings
from rrc_coupons.models import AvailableCoupon, ClaimedCoupon, CouponBatch
from rrc_coupons.services.codes import generate_code, is_well_formed

# Configure logger for this module
logger = logging.getLogger(__name__)

# Stages reported with pool failures
STAGE_LOOKUP = "lookup"
STAGE_GENERATION = "generation"
STAGE_PERSISTENCE = "persistence"
STAGE_RETRIEVAL = "retrieval"
STAGE_CLAIM = "claim"


class PoolError(RuntimeError):
    """Base exception raised for coupon pool failures.

    Every pool error carries the ``stage`` in which it happened so the HTTP
    layer can report a stage-specific message without leaking store details.
    """

    def __init__(self, message: str, *, stage: str) -> None:
        super().__init__(message)
        self.stage = stage


class TransientStoreError(PoolError):
    """Raised when a read or write against the database fails.

    Store errors are never retried within a request.
    """


class PoolExhaustionError(PoolError):
    """Raised when no usable coupon could be produced for a request."""


class CodeSpaceExhaustedError(PoolExhaustionError):
    """Raised when rejection sampling keeps hitting codes that already exist."""


class ClaimConflictError(PoolError):
    """Raised when a fetched coupon could not be moved to the claimed pool.

    The coupon stays in the available pool and will be offered to the next caller.
    """

    def __init__(self, code: str) -> None:
        super().__init__(f"Coupon {code} could not be claimed", stage=STAGE_CLAIM)
        self.code = code


@dataclass(frozen=True)
class PoolCounts:
    """Snapshot of the pool sizes."""

    available: int
    batches: int
    claimed: int


class PoolManager:
    """Service owning the available and claimed coupon pools."""

    def __init__(
        self,
        db: Session,
        *,
        batch_size: int | None = None,
        prefix: str | None = None,
        max_attempts: int | None = None,
        code_factory: Callable[[str], str] = generate_code,
    ) -> None:
        self._db = db
        self._batch_size = batch_size or settings.coupon_batch_size
        self._prefix = prefix or settings.coupon_prefix
        self._max_attempts = max_attempts or settings.max_generation_attempts
        self._code_factory = code_factory

    @property
    def batch_size(self) -> int:
        """Number of codes generated when the pool is replenished."""
        return self._batch_size

    def _rollback(self) -> None:
        with contextlib.suppress(SQLAlchemyError):
            self._db.rollback()

    # --- Uniqueness -------------------------------------------------------------
    def is_unique(self, code: str) -> bool:
        """Return True if ``code`` is in neither the available nor the claimed pool.

        Raises:
            TransientStoreError: If the lookup fails. A failed lookup is never
                reported as unique.
        """
        try:
            in_available = self._db.scalar(select(exists().where(AvailableCoupon.code == code)))
            in_claimed = self._db.scalar(select(exists().where(ClaimedCoupon.code == code)))
        except SQLAlchemyError as exc:
            self._rollback()
            logger.error("Uniqueness lookup failed for %s: %s", code, exc)
            raise TransientStoreError("Coupon lookup failed", stage=STAGE_LOOKUP) from exc
        return not (in_available or in_claimed)

    # --- Batches ----------------------------------------------------------------
    def generate_batch(self, count: int) -> list[str]:
        """Generate ``count`` distinct codes that exist in neither pool.

        Args:
            count: Number of codes to produce.

        Returns:
            The codes in generation order.

        Raises:
            ValueError: If ``count`` is not positive.
            CodeSpaceExhaustedError: If a code could not be found within the
                configured number of attempts.
            TransientStoreError: If a uniqueness lookup fails.
        """
        if count <= 0:
            raise ValueError("Batch size must be positive")

        batch: list[str] = []
        seen: set[str] = set()
        for _ in range(count):
            for attempt in range(1, self._max_attempts + 1):
                candidate = self._code_factory(self._prefix)
                if candidate not in seen and self.is_unique(candidate):
                    break
                logger.debug("Rejected duplicate candidate %s (attempt %d)", candidate, attempt)
            else:
                logger.error(
                    "Gave up generating coupons after %d attempts (%d of %d produced)",
                    self._max_attempts,
                    len(batch),
                    count,
                )
                raise CodeSpaceExhaustedError(
                    "Coupon code space is saturated", stage=STAGE_GENERATION
                )
            seen.add(candidate)
            batch.append(candidate)
        return batch

    def add_batch(self, codes: Sequence[str]) -> int:
        """Persist ``codes`` as a new available-pool batch and return its id."""
        if not codes:
            raise PoolExhaustionError("Cannot store an empty batch", stage=STAGE_GENERATION)
        malformed = [code for code in codes if not is_well_formed(code, self._prefix)]
        if malformed:
            raise ValueError(f"Malformed coupon codes: {', '.join(malformed)}")

        batch = CouponBatch()
        batch.coupons = [
            AvailableCoupon(code=code, position=position) for position, code in enumerate(codes)
        ]
        try:
            self._db.add(batch)
            self._db.flush()
            batch_id = batch.id
            self._db.commit()
        except SQLAlchemyError as exc:
            self._rollback()
            logger.error("Failed to store a batch of %d coupons: %s", len(codes), exc)
            raise TransientStoreError(
                "Failed to persist coupon batch", stage=STAGE_PERSISTENCE
            ) from exc

        logger.info("Stored coupon batch %d with %d coupons", batch_id, len(codes))
        return batch_id

    def replenish(self, count: int | None = None) -> int:
        """Generate and store one fresh batch. Returns the new batch id."""
        return self.add_batch(self.generate_batch(count or self._batch_size))

    # --- Retrieval and claim ----------------------------------------------------
    def fetch_one(self) -> str | None:
        """Return the next available code without modifying the pool."""
        stmt = (
            select(AvailableCoupon.code)
            .order_by(AvailableCoupon.batch_id, AvailableCoupon.position)
            .limit(1)
        )
        try:
            return self._db.scalar(stmt)
        except SQLAlchemyError as exc:
            self._rollback()
            logger.error("Failed to read the available pool: %s", exc)
            raise TransientStoreError("Coupon lookup failed", stage=STAGE_LOOKUP) from exc

    def claim(self, code: str) -> bool:
        """Move ``code`` from the available pool to the claimed pool.

        Removal, insert and the cleanup of an emptied batch share one
        transaction. The conditional delete decides the winner when two callers
        race on the same code: only one of them removes a row, the other gets
        ``False`` and nothing is written.

        Returns:
            True if the code was removed from the available pool and inserted
            into the claimed pool; False otherwise.

        Raises:
            TransientStoreError: If the database rejects the transaction for any
                reason other than the code already being claimed.
        """
        try:
            batch_id = self._db.scalar(
                select(AvailableCoupon.batch_id).where(AvailableCoupon.code == code)
            )
            if batch_id is None:
                self._db.rollback()
                logger.warning("Coupon %s is not in the available pool", code)
                return False

            # Serialize claims on one batch so the last claimer sees it empty
            self._db.execute(
                select(CouponBatch.id).where(CouponBatch.id == batch_id).with_for_update()
            )

            removed = self._db.execute(
                delete(AvailableCoupon).where(AvailableCoupon.code == code)
            ).rowcount
            if removed != 1:
                self._db.rollback()
                logger.warning("Coupon %s was taken by a concurrent claim", code)
                return False

            self._db.add(ClaimedCoupon(code=code))
            self._db.flush()

            remaining = self._db.scalar(
                select(func.count())
                .select_from(AvailableCoupon)
                .where(AvailableCoupon.batch_id == batch_id)
            )
            if not remaining:
                self._db.execute(delete(CouponBatch).where(CouponBatch.id == batch_id))
                logger.info("Coupon batch %d is used up and was removed", batch_id)

            self._db.commit()
        except IntegrityError:
            self._rollback()
            logger.warning("Coupon %s is already in the claimed pool", code)
            return False
        except SQLAlchemyError as exc:
            self._rollback()
            logger.error("Failed to claim coupon %s: %s", code, exc)
            raise TransientStoreError(
                "Failed to move coupon to the claimed pool", stage=STAGE_CLAIM
            ) from exc
        return True

    def issue_one(self) -> str:
        """Claim one coupon, replenishing the pool first if it is empty.

        Raises:
            PoolExhaustionError: If no coupon is available even after replenishment.
            ClaimConflictError: If the fetched coupon could not be claimed.
            TransientStoreError: If any database operation fails.
        """
        code = self.fetch_one()
        if code is None:
            logger.info("Available pool is empty, generating %d coupons", self._batch_size)
            self.replenish()
            code = self.fetch_one()
            if code is None:
                raise PoolExhaustionError(
                    "No coupon available after replenishment", stage=STAGE_RETRIEVAL
                )

        if not self.claim(code):
            raise ClaimConflictError(code)

        logger.info("Issued coupon %s", code)
        return code

    def counts(self) -> PoolCounts:
        """Return the current pool sizes."""
        try:
            available = self._db.scalar(select(func.count()).select_from(AvailableCoupon)) or 0
            batches = self._db.scalar(select(func.count()).select_from(CouponBatch)) or 0
            claimed = self._db.scalar(select(func.count()).select_from(ClaimedCoupon)) or 0
        except SQLAlchemyError as exc:
            self._rollback()
            raise TransientStoreError("Coupon lookup failed", stage=STAGE_LOOKUP) from exc
        return PoolCounts(available=int(available), batches=int(batches), claimed=int(claimed))
