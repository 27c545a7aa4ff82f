"""
Database enums.

Centralized enums used across database models.
"""

from enum import StrEnum


class VerificationStatus(StrEnum):
    """Sale verification status values."""

    PENDING = "PENDING"
    VERIFIED = "VERIFIED"
    REJECTED = "REJECTED"


class CommissionStatus(StrEnum):
    """Commission record status values."""

    PENDING = "PENDING"
    PAID = "PAID"
    CANCELLED = "CANCELLED"


class PaymentMethod(StrEnum):
    """Payment method reported for a sale."""

    ONLINE = "ONLINE"
    BANK_TRANSFER = "BANK_TRANSFER"
    CASH = "CASH"
    OTHER = "OTHER"
