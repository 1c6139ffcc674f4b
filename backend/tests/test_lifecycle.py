from decimal import Decimal

import pytest

from shopledger.errors import AlreadyProcessed, InvalidStateTransition, ValidationError
from shopledger.services.lifecycle_service import (
    QuotationStatus,
    SaleStatus,
    TransactionType,
    TransferStatus,
    can_transition,
    ensure_transition,
    parse_status,
    signed_delta,
)


@pytest.mark.parametrize("current,target,allowed", [
    (SaleStatus.PENDING, SaleStatus.COMPLETED, True),
    (SaleStatus.COMPLETED, SaleStatus.CANCELLED, True),
    (SaleStatus.COMPLETED, SaleStatus.PENDING, False),
    (SaleStatus.PENDING, SaleStatus.CANCELLED, False),
    (SaleStatus.CANCELLED, SaleStatus.COMPLETED, False),
    (SaleStatus.REFUNDED, SaleStatus.CANCELLED, False),
    (TransferStatus.PENDING, TransferStatus.CANCELLED, True),
    (TransferStatus.COMPLETED, TransferStatus.CANCELLED, False),
    (QuotationStatus.EXPIRED, QuotationStatus.SENT, True),
    (QuotationStatus.DRAFT, QuotationStatus.ACCEPTED, False),
])
def test_transition_tables(current, target, allowed):
    assert can_transition(current, target) is allowed


def test_ensure_transition_accepts_stored_strings():
    assert ensure_transition("pending", SaleStatus.COMPLETED, entity="Sale 1") is SaleStatus.COMPLETED


def test_ensure_transition_raises_requested_error():
    with pytest.raises(AlreadyProcessed) as excinfo:
        ensure_transition("completed", TransferStatus.COMPLETED, entity="Transfer 3", error_cls=AlreadyProcessed)

    assert isinstance(excinfo.value, InvalidStateTransition)
    assert excinfo.value.details == {"from": "completed", "to": "completed"}
    assert "Transfer 3" in excinfo.value.message


def test_parse_status_rejects_unknown_value():
    with pytest.raises(ValidationError):
        parse_status(SaleStatus, "voided")


@pytest.mark.parametrize("tx_type,quantity,expected", [
    (TransactionType.PURCHASE, Decimal("3"), Decimal("3")),
    (TransactionType.RETURN, Decimal("3"), Decimal("3")),
    (TransactionType.TRANSFER_IN, Decimal("3"), Decimal("3")),
    (TransactionType.SALE, Decimal("3"), Decimal("-3")),
    (TransactionType.TRANSFER_OUT, Decimal("3"), Decimal("-3")),
    (TransactionType.ADJUSTMENT, Decimal("-2"), Decimal("-2")),
])
def test_signed_delta(tx_type, quantity, expected):
    assert signed_delta(tx_type, quantity) == expected
