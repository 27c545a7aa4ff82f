"""
Affiliate model.

Represents a node in the referral tree together with its earnings ledger.
"""

from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base, TimestampMixin


class Affiliate(TimestampMixin, Base):
    """
    Affiliate entity.

    Ledger fields are written only by the commission lifecycle:
    - pending_balance: commissions distributed but not yet released
    - available_balance: released commissions, withdrawable
    - total_earnings: everything ever released (never decreases)

    direct_referrals and total_downline are denormalized counters and may
    lag behind the tree.
    """

    __tablename__ = "affiliates"
    __table_args__ = (
        CheckConstraint(
            "total_earnings >= 0",
            name="check_affiliate_total_earnings_non_negative",
        ),
        CheckConstraint(
            "available_balance >= 0",
            name="check_affiliate_available_balance_non_negative",
        ),
        CheckConstraint(
            "pending_balance >= 0",
            name="check_affiliate_pending_balance_non_negative",
        ),
        CheckConstraint(
            "total_earnings >= available_balance",
            name="check_affiliate_earnings_cover_available",
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    # External user reference (optional for standalone affiliates)
    user_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    referral_code: Mapped[str] = mapped_column(
        String(20), nullable=False, unique=True, index=True
    )

    # Referrer (nullable root)
    parent_affiliate_id: Mapped[int | None] = mapped_column(
        ForeignKey("affiliates.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )

    # Ledger
    total_earnings: Mapped[Decimal] = mapped_column(
        DECIMAL(15, 2), default=Decimal("0"), nullable=False
    )
    available_balance: Mapped[Decimal] = mapped_column(
        DECIMAL(15, 2), default=Decimal("0"), nullable=False
    )
    pending_balance: Mapped[Decimal] = mapped_column(
        DECIMAL(15, 2), default=Decimal("0"), nullable=False
    )

    # Network counters
    direct_referrals: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )
    total_downline: Mapped[int] = mapped_column(
        Integer, default=0, nullable=False
    )

    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, nullable=False
    )

    @property
    def is_root(self) -> bool:
        """Check if affiliate has no referrer."""
        return self.parent_affiliate_id is None

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<Affiliate(id={self.id}, code={self.referral_code}, "
            f"parent_id={self.parent_affiliate_id}, "
            f"is_active={self.is_active})>"
        )


Index(
    "idx_affiliate_active_created",
    Affiliate.is_active,
    Affiliate.created_at,
)
