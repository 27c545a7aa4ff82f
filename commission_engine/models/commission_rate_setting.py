"""
Commission rate setting model.

Versions the per-level commission schedule.
"""

from datetime import UTC, datetime
from decimal import Decimal

from sqlalchemy import (
    DECIMAL,
    Boolean,
    DateTime,
    Integer,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from commission_engine.models.base import Base


class CommissionRateSetting(Base):
    """
    Commission rate setting model.

    One row per distribution level (0 = direct seller, 1 = first upline).
    A schedule is the set of rows sharing a version. Replacing a schedule
    deactivates the old version and inserts a new one, so sales recorded
    under an old version can still be distributed with their original rates.
    """

    __tablename__ = "commission_rate_settings"
    __table_args__ = (
        UniqueConstraint(
            "version", "level", name="uq_commission_rate_version_level"
        ),
    )

    # Primary key
    id: Mapped[int] = mapped_column(
        Integer, primary_key=True, autoincrement=True
    )

    level: Mapped[int] = mapped_column(Integer, nullable=False, index=True)

    # Percentages
    rate: Mapped[Decimal] = mapped_column(DECIMAL(5, 2), nullable=False)
    max_total_rate: Mapped[Decimal] = mapped_column(
        DECIMAL(5, 2), nullable=False, default=Decimal("25.00")
    )

    # Version tracking
    version: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, index=True
    )
    effective_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )
    effective_until: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True, index=True
    )

    # Operator tracking
    created_by: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"<CommissionRateSetting(level={self.level}, rate={self.rate}, "
            f"max_total_rate={self.max_total_rate}, version={self.version}, "
            f"is_active={self.is_active})>"
        )
