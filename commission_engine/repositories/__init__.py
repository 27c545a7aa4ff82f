"""
Repositories.

Data access layer for all models.
"""

from commission_engine.repositories.affiliate_repository import (
    AffiliateRepository,
)
from commission_engine.repositories.affiliate_sale_repository import (
    AffiliateSaleRepository,
)
from commission_engine.repositories.base import BaseRepository
from commission_engine.repositories.commission_rate_setting_repository import (
    CommissionRateSettingRepository,
)
from commission_engine.repositories.commission_record_repository import (
    CommissionRecordRepository,
)

__all__ = [
    "BaseRepository",
    "AffiliateRepository",
    "AffiliateSaleRepository",
    "CommissionRateSettingRepository",
    "CommissionRecordRepository",
]
