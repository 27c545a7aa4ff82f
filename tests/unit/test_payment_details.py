"""
Unit tests for payment details schemas.
"""

import pytest

from commission_engine.models.enums import PaymentMethod
from commission_engine.schemas.payment_details import (
    BankTransferDetails,
    CashDetails,
    OnlinePaymentDetails,
    dump_payment_details,
    parse_payment_details,
)
from commission_engine.utils.exceptions import InvalidInputError


def test_method_tag_defaults_to_sale_method():
    """Details without a tag take the sale's payment method."""
    details = parse_payment_details(
        PaymentMethod.ONLINE,
        {"gateway": "stripe", "gateway_reference": "ch_1", "card_last4": "4242"},
    )

    assert isinstance(details, OnlinePaymentDetails)
    assert details.card_last4 == "4242"


def test_model_input_is_accepted():
    """Validated models can be passed directly."""
    details = parse_payment_details(
        "BANK_TRANSFER",
        BankTransferDetails(
            bank_name="First Bank",
            account_name="Jane Doe",
            account_number="001",
        ),
    )

    assert dump_payment_details(details) == {
        "method": "BANK_TRANSFER",
        "bank_name": "First Bank",
        "account_name": "Jane Doe",
        "account_number": "001",
    }


def test_no_details():
    """Details are optional."""
    assert parse_payment_details("CASH", None) is None
    assert dump_payment_details(None) is None


def test_empty_cash_details():
    """Cash details have no required fields."""
    details = parse_payment_details("CASH", {})

    assert isinstance(details, CashDetails)
    assert dump_payment_details(details) == {"method": "CASH"}


def test_mismatched_method_tag():
    """Details for another method are rejected."""
    with pytest.raises(InvalidInputError, match="sale payment method is CASH"):
        parse_payment_details(
            "CASH", {"method": "OTHER", "description": "voucher"}
        )


@pytest.mark.parametrize(
    "payment_method,details",
    [
        ("WIRE", {}),
        ("OTHER", {}),
        ("OTHER", {"description": ""}),
        ("CASH", {"tip": "5"}),
        ("ONLINE", {"gateway": "g", "gateway_reference": "r", "card_last4": "x1"}),
    ],
)
def test_invalid_details(payment_method, details):
    """Unknown methods and invalid fields are rejected."""
    with pytest.raises(InvalidInputError):
        parse_payment_details(payment_method, details)
