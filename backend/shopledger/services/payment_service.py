# Overview: Service-layer operations for payments; keeps sale status consistent with completed payments.

"""
Payment processing

WHY: A sale's payment state is derived from its completed payments, never
stored separately, so it cannot drift from the payment rows.

- create_payment promotes a pending sale to completed once the completed
  payments cover total_amount. Nothing ever demotes a sale: there is no
  completed -> pending transition.
- refund_payment only flips the payment; the sale keeps its status and the
  derived payment_status ("paid" / "partial" / "unpaid") shows the refund.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy import func

from ..errors import InvalidStateTransition, NotFound, ValidationError
from ..extensions import db
from ..models import Payment, Sale
from ..models.sales import PAYMENT_METHODS
from ..time_utils import utcnow
from ..validation import quantize_money, require_choice, to_amount
from .lifecycle_service import PaymentStatus, SaleStatus, ensure_transition, parse_status
from .unit_of_work import UnitOfWork, lock_for_update, run_in_unit_of_work


PAYABLE_SALE_STATUSES = frozenset({SaleStatus.PENDING, SaleStatus.COMPLETED})


def _total_paid(session, sale_id: int) -> Decimal:
    total = (
        session.query(func.coalesce(func.sum(Payment.amount), 0))
        .filter(Payment.sale_id == sale_id, Payment.status == PaymentStatus.COMPLETED.value)
        .scalar()
    )
    return quantize_money(Decimal(total or 0))


def derive_payment_status(total_paid: Decimal, total_amount: Decimal) -> str:
    """
    "paid" when total_paid covers total_amount, "partial" when something was
    paid, "unpaid" otherwise. A zero-total sale counts as paid.
    """
    if total_paid >= Decimal(total_amount):
        return "paid"
    if total_paid > 0:
        return "partial"
    return "unpaid"


def create_payment_inner(
    session,
    *,
    sale_id: int,
    payment_method: str,
    amount,
    actor_id: int | None = None,
    reference_number: str | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Record a completed payment and promote the sale when fully paid.

    Raises:
        ValidationError: Unknown method or amount <= 0
        NotFound: Sale does not exist
        InvalidStateTransition: Sale is cancelled or refunded
    """
    method = require_choice(payment_method, "payment_method", PAYMENT_METHODS)
    value = to_amount(amount, "amount")
    if value <= 0:
        raise ValidationError("amount must be greater than zero")

    sale = lock_for_update(session.query(Sale).filter_by(id=sale_id)).first()
    if not sale:
        raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})

    sale_status = parse_status(SaleStatus, sale.status)
    if sale_status not in PAYABLE_SALE_STATUSES:
        raise InvalidStateTransition(
            f"Cannot record a payment on a {sale_status.value} sale",
            details={"sale_id": sale_id, "status": sale_status.value},
        )

    payment = Payment(
        sale_id=sale.id,
        payment_method=method,
        amount=value,
        reference_number=reference_number,
        status=PaymentStatus.COMPLETED.value,
        notes=notes,
        processed_by=actor_id,
        payment_date=utcnow(),
    )
    session.add(payment)
    session.flush()

    if sale_status == SaleStatus.PENDING and _total_paid(session, sale.id) >= Decimal(sale.total_amount):
        sale.status = ensure_transition(sale_status, SaleStatus.COMPLETED, entity=f"Sale {sale.id}").value
        session.flush()

    return payment


def refund_payment_inner(
    session,
    *,
    payment_id: int,
    actor_id: int | None = None,
    notes: str | None = None,
) -> Payment:
    """
    Mark a completed payment refunded. The sale status is left alone.

    Raises:
        NotFound: Payment does not exist
        InvalidStateTransition: Payment is already refunded
    """
    payment = lock_for_update(session.query(Payment).filter_by(id=payment_id)).first()
    if not payment:
        raise NotFound(f"Payment {payment_id} not found", details={"payment_id": payment_id})

    payment.status = ensure_transition(
        payment.status, PaymentStatus.REFUNDED, entity=f"Payment {payment.id}"
    ).value
    payment.refunded_at = utcnow()
    payment.refunded_by = actor_id
    if notes:
        payment.notes = f"{payment.notes}\n{notes}" if payment.notes else notes

    session.flush()
    return payment


def create_payment(*, uow: UnitOfWork | None = None, **kwargs) -> Payment:
    return run_in_unit_of_work(uow, lambda session: create_payment_inner(session, **kwargs))


def refund_payment(*, uow: UnitOfWork | None = None, **kwargs) -> Payment:
    return run_in_unit_of_work(uow, lambda session: refund_payment_inner(session, **kwargs))


def get_total_paid(sale_id: int, session=None) -> Decimal:
    """Sum of completed (not refunded) payments."""
    session = session if session is not None else db.session
    return _total_paid(session, sale_id)


def get_payment_status(sale_id: int, session=None) -> str:
    session = session if session is not None else db.session
    sale = session.query(Sale).filter_by(id=sale_id).first()
    if not sale:
        raise NotFound(f"Sale {sale_id} not found", details={"sale_id": sale_id})
    return derive_payment_status(_total_paid(session, sale_id), sale.total_amount)


def get_payment(payment_id: int) -> Payment | None:
    return db.session.query(Payment).filter_by(id=payment_id).first()


def list_payments(sale_id: int | None = None, status: str | None = None) -> list[Payment]:
    query = db.session.query(Payment)
    if sale_id is not None:
        query = query.filter(Payment.sale_id == sale_id)
    if status:
        query = query.filter(Payment.status == parse_status(PaymentStatus, status).value)
    return query.order_by(Payment.id.asc()).all()
