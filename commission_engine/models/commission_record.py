"""
CommissionRecord model.

Tracks one commission allocation per (sale, level).
"""

from datetime import datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base, TimestampMixin
from commission_engine.models.enums import CommissionStatus


class CommissionRecord(TimestampMixin, Base):
    """
    CommissionRecord entity.

    Created in one batch per sale (all PENDING), then the whole batch moves
    to PAID or CANCELLED. The (sale_id, level) unique constraint rejects
    overlapping rows of a second batch; a batch may be empty (0% rates or
    a 0% cap), so the sale's commissions_distributed_at stamp is what
    marks a sale as distributed.

    Attributes:
        id: Primary key
        sale_id: Foreign key to AffiliateSale
        affiliate_id: Credited affiliate
        level: 0 = direct seller, 1+ = upline
        commission_rate: Percentage actually applied
        commission_amount: Credited amount
        status: PENDING / PAID / CANCELLED
        rate_schedule_version: Schedule version used for the batch
    """

    __tablename__ = "commission_records"
    __table_args__ = (
        UniqueConstraint(
            "sale_id", "level", name="uq_commission_record_sale_level"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    sale_id: Mapped[int] = mapped_column(
        ForeignKey("affiliate_sales.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("affiliates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False)
    commission_rate: Mapped[Decimal] = mapped_column(
        DECIMAL(5, 2), nullable=False
    )
    commission_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(15, 2), nullable=False
    )

    status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=CommissionStatus.PENDING.value,
    )
    rate_schedule_version: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    cancelled_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Properties

    @property
    def is_pending(self) -> bool:
        """Check if commission awaits release."""
        return self.status == CommissionStatus.PENDING.value

    @property
    def is_paid(self) -> bool:
        """Check if commission is released."""
        return self.status == CommissionStatus.PAID.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"CommissionRecord(id={self.id}, sale_id={self.sale_id}, "
            f"affiliate_id={self.affiliate_id}, level={self.level}, "
            f"amount={self.commission_amount}, status={self.status})"
        )


# Composite indexes
Index(
    "idx_commission_record_affiliate_status",
    CommissionRecord.affiliate_id,
    CommissionRecord.status,
)
Index(
    "idx_commission_record_sale_status",
    CommissionRecord.sale_id,
    CommissionRecord.status,
)
