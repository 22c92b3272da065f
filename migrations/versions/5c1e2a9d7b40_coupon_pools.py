"""coupon pools

Revision ID: 5c1e2a9d7b40
Revises:
Create Date: 2026-10-18 12:40:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2a9d7b40"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the available and claimed coupon pools."""
    op.create_table(
        "coupon_batch",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_table(
        "new_coupons",
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("batch_id", sa.Integer(), nullable=False),
        sa.Column("position", sa.BigInteger(), nullable=False),
        sa.ForeignKeyConstraint(["batch_id"], ["coupon_batch.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("code"),
    )
    op.create_index("ix_new_coupons_batch_id", "new_coupons", ["batch_id"])
    op.create_table(
        "old_coupons",
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("claimed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("code"),
    )


def downgrade() -> None:
    """Drop the coupon pools."""
    op.drop_table("old_coupons")
    op.drop_index("ix_new_coupons_batch_id", table_name="new_coupons")
    op.drop_table("new_coupons")
    op.drop_table("coupon_batch")
