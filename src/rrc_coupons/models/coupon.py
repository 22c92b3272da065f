# src/rrc_coupons/models/coupon.py
"""SQLAlchemy models for the available and claimed coupon pools."""

from datetime import datetime

from sqlalchemy import BigInteger, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from rrc_coupons.db.session import Base
from rrc_coupons.db.time import utcnow

CODE_LENGTH = 32


class CouponBatch(Base):
    """One replenishment batch of the available pool.

    A batch only exists while it still holds at least one unclaimed code.
    """

    __tablename__ = "coupon_batch"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    coupons: Mapped[list["AvailableCoupon"]] = relationship(
        back_populates="batch",
        order_by="AvailableCoupon.position",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class AvailableCoupon(Base):
    """A code waiting to be issued, kept in batch order."""

    __tablename__ = "new_coupons"

    code: Mapped[str] = mapped_column(String(CODE_LENGTH), primary_key=True)
    batch_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("coupon_batch.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    # Order of the code inside its batch; lowest goes out first.
    position: Mapped[int] = mapped_column(BigInteger, nullable=False)

    batch: Mapped[CouponBatch] = relationship(back_populates="coupons")


class ClaimedCoupon(Base):
    """A code that has been issued to a client. The primary key keeps the set unique."""

    __tablename__ = "old_coupons"

    code: Mapped[str] = mapped_column(String(CODE_LENGTH), primary_key=True)
    claimed_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
