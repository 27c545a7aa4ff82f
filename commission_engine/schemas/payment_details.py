"""
Payment details schemas.

Each payment method carries its own set of details. The variant is
selected by the ``method`` tag and must match the sale's payment method.
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError

from commission_engine.models.enums import PaymentMethod
from commission_engine.utils.exceptions import InvalidInputError


class _PaymentDetailsBase(BaseModel):
    """Common configuration for payment details variants."""

    model_config = ConfigDict(extra="forbid", str_strip_whitespace=True)


class BankTransferDetails(_PaymentDetailsBase):
    """Bank transfer details."""

    method: Literal["BANK_TRANSFER"] = "BANK_TRANSFER"
    bank_name: str = Field(min_length=1, max_length=255)
    account_name: str = Field(min_length=1, max_length=255)
    account_number: str = Field(min_length=1, max_length=64)
    transfer_reference: str | None = Field(default=None, max_length=255)


class OnlinePaymentDetails(_PaymentDetailsBase):
    """Online (gateway / card) payment details."""

    method: Literal["ONLINE"] = "ONLINE"
    gateway: str = Field(min_length=1, max_length=64)
    gateway_reference: str = Field(min_length=1, max_length=255)
    card_brand: str | None = Field(default=None, max_length=32)
    card_last4: str | None = Field(default=None, pattern=r"^\d{4}$")


class CashDetails(_PaymentDetailsBase):
    """Cash payment details."""

    method: Literal["CASH"] = "CASH"
    received_by: str | None = Field(default=None, max_length=255)
    receipt_number: str | None = Field(default=None, max_length=64)


class OtherPaymentDetails(_PaymentDetailsBase):
    """Free-form details for any other payment method."""

    method: Literal["OTHER"] = "OTHER"
    description: str = Field(min_length=1, max_length=1000)


PaymentDetails = Annotated[
    BankTransferDetails
    | OnlinePaymentDetails
    | CashDetails
    | OtherPaymentDetails,
    Field(discriminator="method"),
]

_payment_details_adapter: TypeAdapter[PaymentDetails] = TypeAdapter(
    PaymentDetails
)


def parse_payment_details(
    payment_method: PaymentMethod | str,
    details: dict[str, Any] | BaseModel | None,
) -> PaymentDetails | None:
    """
    Validate payment details against the sale's payment method.

    A missing ``method`` tag defaults to the sale's payment method.

    Args:
        payment_method: Payment method of the sale
        details: Raw details dict, a details model, or None

    Returns:
        Validated details variant, or None when no details were given

    Raises:
        InvalidInputError: Unknown method, invalid details or tag mismatch
    """
    try:
        method = PaymentMethod(payment_method)
    except ValueError as e:
        raise InvalidInputError(
            f"Unknown payment method: {payment_method}"
        ) from e

    if details is None:
        return None

    if isinstance(details, BaseModel):
        raw = details.model_dump()
    else:
        raw = dict(details)
    raw.setdefault("method", method.value)

    try:
        parsed = _payment_details_adapter.validate_python(raw)
    except ValidationError as e:
        raise InvalidInputError(f"Invalid payment details: {e}") from e

    if parsed.method != method:
        raise InvalidInputError(
            f"Payment details are for {parsed.method}, "
            f"sale payment method is {method.value}"
        )

    return parsed


def dump_payment_details(
    details: PaymentDetails | None,
) -> dict[str, Any] | None:
    """Serialize validated details for JSON storage."""
    if details is None:
        return None
    return details.model_dump(mode="json", exclude_none=True)
