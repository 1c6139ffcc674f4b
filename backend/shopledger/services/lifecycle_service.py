# Overview: Status enums and transition tables for sales, transfers, payments and quotations.

"""
Document lifecycles

================================================================================
Every status column is backed by an Enum below and every status change goes
through `ensure_transition`, which consults the explicit table for that Enum.
A transition that is not in the table is rejected before anything is written.
================================================================================

SALE:        pending -> completed -> cancelled
             (refunded exists for historical rows; nothing transitions into it)
TRANSFER:    pending -> completed | cancelled
PAYMENT:     completed -> refunded
QUOTATION:   draft -> sent | cancelled
             sent -> accepted | rejected | expired | cancelled
             expired -> sent

Terminal states have an empty set of successors. Same-state "transitions" are
not in the tables; callers handle no-ops themselves.
"""

from __future__ import annotations

from enum import Enum

from ..errors import InvalidStateTransition, ValidationError


class SaleStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REFUNDED = "refunded"


class TransferStatus(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentStatus(str, Enum):
    COMPLETED = "completed"
    REFUNDED = "refunded"


class QuotationStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class TransactionType(str, Enum):
    """Ledger entry types. The sign of the recorded delta follows DIRECTION."""

    PURCHASE = "purchase"
    SALE = "sale"
    RETURN = "return"
    ADJUSTMENT = "adjustment"
    TRANSFER_IN = "transfer_in"
    TRANSFER_OUT = "transfer_out"


# +1 = credits the shop, -1 = debits it, 0 = signed by the caller
DIRECTION = {
    TransactionType.PURCHASE: 1,
    TransactionType.RETURN: 1,
    TransactionType.TRANSFER_IN: 1,
    TransactionType.SALE: -1,
    TransactionType.TRANSFER_OUT: -1,
    TransactionType.ADJUSTMENT: 0,
}


SALE_TRANSITIONS = {
    SaleStatus.PENDING: frozenset({SaleStatus.COMPLETED}),
    SaleStatus.COMPLETED: frozenset({SaleStatus.CANCELLED}),
    SaleStatus.CANCELLED: frozenset(),
    SaleStatus.REFUNDED: frozenset(),
}

TRANSFER_TRANSITIONS = {
    TransferStatus.PENDING: frozenset({TransferStatus.COMPLETED, TransferStatus.CANCELLED}),
    TransferStatus.COMPLETED: frozenset(),
    TransferStatus.CANCELLED: frozenset(),
}

PAYMENT_TRANSITIONS = {
    PaymentStatus.COMPLETED: frozenset({PaymentStatus.REFUNDED}),
    PaymentStatus.REFUNDED: frozenset(),
}

QUOTATION_TRANSITIONS = {
    QuotationStatus.DRAFT: frozenset({QuotationStatus.SENT, QuotationStatus.CANCELLED}),
    QuotationStatus.SENT: frozenset({
        QuotationStatus.ACCEPTED,
        QuotationStatus.REJECTED,
        QuotationStatus.EXPIRED,
        QuotationStatus.CANCELLED,
    }),
    QuotationStatus.EXPIRED: frozenset({QuotationStatus.SENT}),
    QuotationStatus.ACCEPTED: frozenset(),
    QuotationStatus.REJECTED: frozenset(),
    QuotationStatus.CANCELLED: frozenset(),
}

TRANSITION_TABLES = {
    SaleStatus: SALE_TRANSITIONS,
    TransferStatus: TRANSFER_TRANSITIONS,
    PaymentStatus: PAYMENT_TRANSITIONS,
    QuotationStatus: QUOTATION_TRANSITIONS,
}


def parse_status(enum_cls: type[Enum], value) -> Enum:
    """
    Coerce a stored or user-supplied status string into its Enum.

    Raises:
        ValidationError: If value is not a member of enum_cls
    """
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        raise ValidationError(f"Invalid status '{value}'. Must be one of: {allowed}")


def can_transition(current, target: Enum) -> bool:
    """Check the transition table for target's Enum."""
    enum_cls = type(target)
    table = TRANSITION_TABLES[enum_cls]
    return target in table[parse_status(enum_cls, current)]


def ensure_transition(
    current,
    target: Enum,
    *,
    entity: str,
    error_cls: type[InvalidStateTransition] = InvalidStateTransition,
) -> Enum:
    """
    Validate current -> target and return target.

    Args:
        current: Current status (Enum member or stored string)
        target: Desired status
        entity: Human label used in the error message, e.g. "Sale 12"
        error_cls: InvalidStateTransition subclass to raise

    Raises:
        error_cls: If the transition is not in the table
    """
    current_status = parse_status(type(target), current)
    if not can_transition(current_status, target):
        raise error_cls(
            f"{entity} cannot move from {current_status.value} to {target.value}",
            details={"from": current_status.value, "to": target.value},
        )
    return target


def signed_delta(transaction_type: TransactionType, quantity):
    """
    Apply the ledger sign convention to an unsigned quantity.

    ADJUSTMENT carries its own sign and is returned unchanged.
    """
    direction = DIRECTION[transaction_type]
    if direction == 0:
        return quantity
    return quantity * direction
