"""
Business constants for commission calculation.
"""

from decimal import Decimal

# Monetary amounts are stored with two decimal places
MONEY_QUANTUM = Decimal("0.01")

# Percentages are stored with two decimal places
RATE_QUANTUM = Decimal("0.01")

HUNDRED = Decimal("100")
ZERO = Decimal("0")

# Default schedule: direct seller + two upline levels
DEFAULT_LEVEL_RATES = [Decimal("10.00"), Decimal("2.50"), Decimal("2.50")]
