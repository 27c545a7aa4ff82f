"""Input validation utilities."""

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from commission_engine.config.constants import MONEY_QUANTUM
from commission_engine.utils.exceptions import InvalidInputError

# DECIMAL(15, 2) upper bound
MAX_AMOUNT = Decimal("9999999999999.99")

SALE_REFERENCE_MAX_LENGTH = 255

REFERRAL_CODE_PATTERN = re.compile(r"^[0-9A-F]{6,20}$")


def quantize_money(amount: Decimal) -> Decimal:
    """
    Round a monetary amount to cents.

    Args:
        amount: Amount

    Returns:
        Amount rounded half up to 0.01
    """
    return amount.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def normalize_amount(
    amount: Decimal | str | int | float,
    max_amount: Decimal = MAX_AMOUNT,
) -> Decimal:
    """
    Validate and normalize a sale amount.

    Args:
        amount: Raw amount
        max_amount: Maximum accepted amount

    Returns:
        Amount rounded to cents

    Raises:
        InvalidInputError: Not a number, not finite, not positive or too big
    """
    if isinstance(amount, bool):
        raise InvalidInputError(f"Invalid amount: {amount!r}")

    try:
        value = Decimal(str(amount))
    except (InvalidOperation, ValueError) as e:
        raise InvalidInputError(f"Invalid amount: {amount!r}") from e

    if not value.is_finite():
        raise InvalidInputError(f"Invalid amount: {amount!r}")

    value = quantize_money(value)
    if value <= 0:
        raise InvalidInputError(f"Amount must be positive, got {value}")
    if value > max_amount:
        raise InvalidInputError(f"Amount exceeds maximum of {max_amount}")

    return value


def normalize_sale_reference(sale_reference: str | None) -> str:
    """
    Validate an external sale reference.

    Args:
        sale_reference: Raw reference

    Returns:
        Stripped reference

    Raises:
        InvalidInputError: Missing, blank or too long
    """
    if not isinstance(sale_reference, str) or not sale_reference.strip():
        raise InvalidInputError("Sale reference is required")

    reference = sale_reference.strip()
    if len(reference) > SALE_REFERENCE_MAX_LENGTH:
        raise InvalidInputError(
            f"Sale reference exceeds {SALE_REFERENCE_MAX_LENGTH} characters"
        )
    return reference


def validate_referral_code(code: str) -> bool:
    """
    Validate referral code format.

    Args:
        code: Referral code (any case)

    Returns:
        True if valid
    """
    if not code or not isinstance(code, str):
        return False
    return bool(REFERRAL_CODE_PATTERN.match(code.strip().upper()))


def sanitize_input(text: str | None, max_length: int = 1000) -> str | None:
    """
    Sanitize free-text input such as verification notes.

    Args:
        text: User input
        max_length: Maximum length

    Returns:
        Sanitized text, or None when empty
    """
    if not text:
        return None

    text = text.replace("\x00", "").strip()
    if len(text) > max_length:
        text = text[:max_length]

    return text or None
