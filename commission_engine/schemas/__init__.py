"""
Pydantic schemas.
"""

from commission_engine.schemas.payment_details import (
    BankTransferDetails,
    CashDetails,
    OnlinePaymentDetails,
    OtherPaymentDetails,
    PaymentDetails,
    dump_payment_details,
    parse_payment_details,
)

__all__ = [
    "BankTransferDetails",
    "CashDetails",
    "OnlinePaymentDetails",
    "OtherPaymentDetails",
    "PaymentDetails",
    "dump_payment_details",
    "parse_payment_details",
]
