"""
Services.

Business logic layer.
"""

from commission_engine.services.affiliate_service import AffiliateService
from commission_engine.services.balance_ledger import (
    BalanceLedger,
    LedgerBalance,
)
from commission_engine.services.commission_distributor import (
    CommissionAllocation,
    CommissionDistributor,
    DistributionPlan,
    allocate_commissions,
)
from commission_engine.services.rate_table import (
    CommissionRateTable,
    RateSchedule,
    ScheduleValidation,
    build_schedule,
)
from commission_engine.services.referral_graph import (
    DownlineEntry,
    ReferralGraph,
)
from commission_engine.services.sale_lifecycle import (
    BulkReleaseResult,
    SaleLifecycleCoordinator,
)

__all__ = [
    "AffiliateService",
    "BalanceLedger",
    "BulkReleaseResult",
    "CommissionAllocation",
    "CommissionDistributor",
    "CommissionRateTable",
    "DistributionPlan",
    "DownlineEntry",
    "LedgerBalance",
    "RateSchedule",
    "ReferralGraph",
    "SaleLifecycleCoordinator",
    "ScheduleValidation",
    "allocate_commissions",
    "build_schedule",
]
