"""
Database models.

Exports all SQLAlchemy models for easy imports.
"""

from commission_engine.models.affiliate import Affiliate
from commission_engine.models.affiliate_sale import AffiliateSale
from commission_engine.models.base import Base
from commission_engine.models.commission_rate_setting import (
    CommissionRateSetting,
)
from commission_engine.models.commission_record import CommissionRecord
from commission_engine.models.enums import (
    CommissionStatus,
    PaymentMethod,
    VerificationStatus,
)

__all__ = [
    # Base
    "Base",
    # Enums
    "CommissionStatus",
    "PaymentMethod",
    "VerificationStatus",
    # Models
    "Affiliate",
    "AffiliateSale",
    "CommissionRateSetting",
    "CommissionRecord",
]
