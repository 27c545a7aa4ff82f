"""
AffiliateSale model.

One row per external sale reference attributed to an affiliate.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any

from sqlalchemy import (
    DECIMAL,
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base, TimestampMixin
from commission_engine.models.enums import VerificationStatus


class AffiliateSale(TimestampMixin, Base):
    """
    AffiliateSale entity.

    Lifecycle:
    - created PENDING
    - transitions once to VERIFIED or REJECTED
    - VERIFIED sales are stamped commissions_distributed_at exactly once
    - VERIFIED sales flip commissions_paid false -> true exactly once

    Attributes:
        id: Primary key
        affiliate_id: Directly attributed seller
        sale_reference: Globally unique external identifier
        sale_amount: Commission base
        payment_method: Reported payment method
        payment_details: Validated method-specific details
        verification_status: PENDING / VERIFIED / REJECTED
        commissions_distributed_at: When the commission batch was created
        commissions_paid: True once commissions are released
        rate_schedule_version: Schedule version active when recorded
    """

    __tablename__ = "affiliate_sales"
    __table_args__ = (
        CheckConstraint(
            "sale_amount > 0", name="check_affiliate_sale_amount_positive"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    affiliate_id: Mapped[int] = mapped_column(
        ForeignKey("affiliates.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    customer_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )

    sale_reference: Mapped[str] = mapped_column(
        String(255), nullable=False, unique=True, index=True
    )
    sale_amount: Mapped[Decimal] = mapped_column(
        DECIMAL(15, 2), nullable=False
    )

    # Payment
    payment_method: Mapped[str] = mapped_column(String(32), nullable=False)
    payment_details: Mapped[dict[str, Any] | None] = mapped_column(
        JSON, nullable=True
    )

    # Verification
    verification_status: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
        default=VerificationStatus.PENDING.value,
    )
    verified_by: Mapped[int | None] = mapped_column(Integer, nullable=True)
    verified_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    verification_notes: Mapped[str | None] = mapped_column(
        Text, nullable=True
    )

    # Distribution
    commissions_distributed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    # Settlement
    commissions_paid: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False
    )
    commissions_paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    rate_schedule_version: Mapped[int | None] = mapped_column(
        Integer, nullable=True
    )

    # Properties

    @property
    def is_pending(self) -> bool:
        """Check if sale awaits verification."""
        return self.verification_status == VerificationStatus.PENDING.value

    @property
    def is_verified(self) -> bool:
        """Check if sale is verified."""
        return self.verification_status == VerificationStatus.VERIFIED.value

    @property
    def is_rejected(self) -> bool:
        """Check if sale is rejected."""
        return self.verification_status == VerificationStatus.REJECTED.value

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"AffiliateSale(id={self.id}, "
            f"reference={self.sale_reference}, "
            f"amount={self.sale_amount}, "
            f"status={self.verification_status}, "
            f"commissions_paid={self.commissions_paid})"
        )


# Composite indexes
Index(
    "idx_affiliate_sale_status_created",
    AffiliateSale.verification_status,
    AffiliateSale.created_at,
)
Index(
    "idx_affiliate_sale_paid_status",
    AffiliateSale.commissions_paid,
    AffiliateSale.verification_status,
)
