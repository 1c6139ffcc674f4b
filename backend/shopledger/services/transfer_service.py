# Overview: Service-layer operations for inter-shop stock transfers.
"""
Inter-shop transfer service.

WHY: Move one product between shops with an explicit pending step, so the
receiving shop confirms what arrived. Stock only moves on completion, as a
transfer_out entry at the source and a transfer_in entry at the destination
in the same transaction, so the total across shops is unchanged.

LIFECYCLE:
1. PENDING: Transfer created; source availability checked, nothing moved
2. COMPLETED: Received; source re-checked, stock moved atomically
3. CANCELLED: Cancelled while pending; nothing moved
"""
from __future__ import annotations

from ..errors import AlreadyProcessed, InsufficientStock, NotFound, ValidationError
from ..extensions import db
from ..models import StockTransfer
from ..time_utils import utcnow
from ..validation import require_id, to_quantity
from .document_service import next_transfer_number
from .lifecycle_service import TransactionType, TransferStatus, ensure_transition, parse_status
from .stock_service import add_stock_inner, lookup_stock_row, reduce_stock_inner, require_product, require_shop
from .unit_of_work import UnitOfWork, lock_for_update, run_in_unit_of_work


TRANSFER_REFERENCE = "stock_transfer"


def _check_source_availability(session, shop_id: int, product_id: int, quantity, *, lock: bool) -> None:
    lookup = lookup_stock_row(session, shop_id, product_id, lock=lock)
    if lookup.quantity < quantity:
        raise InsufficientStock(
            f"Insufficient stock in shop {shop_id} for product {product_id}: "
            f"requested {quantity}, available {lookup.quantity}",
            shop_id=shop_id,
            product_id=product_id,
            requested=quantity,
            available=lookup.quantity,
        )


def _locked_transfer(session, transfer_id: int) -> StockTransfer:
    transfer = lock_for_update(session.query(StockTransfer).filter_by(id=transfer_id)).first()
    if not transfer:
        raise NotFound(f"Transfer {transfer_id} not found", details={"transfer_id": transfer_id})
    return transfer


def create_transfer_inner(
    session,
    *,
    from_shop_id: int,
    to_shop_id: int,
    product_id: int,
    quantity,
    actor_id: int | None = None,
    notes: str | None = None,
) -> StockTransfer:
    """
    Create a pending transfer (no stock movement).

    Raises:
        ValidationError: Same source and destination, or quantity <= 0
        NotFound: A shop or the product does not exist
        InsufficientStock: The source does not hold quantity right now
    """
    require_id(from_shop_id, "from_shop_id")
    require_id(to_shop_id, "to_shop_id")
    if from_shop_id == to_shop_id:
        raise ValidationError("Source and destination shops must be different")
    qty = to_quantity(quantity)

    require_shop(session, from_shop_id)
    require_shop(session, to_shop_id)
    require_product(session, product_id)

    _check_source_availability(session, from_shop_id, product_id, qty, lock=False)

    transfer = StockTransfer(
        transfer_number=next_transfer_number(session, from_shop_id),
        from_shop_id=from_shop_id,
        to_shop_id=to_shop_id,
        product_id=product_id,
        quantity=qty,
        status=TransferStatus.PENDING.value,
        notes=notes,
        created_by=actor_id,
    )
    session.add(transfer)
    session.flush()
    return transfer


def complete_transfer_inner(session, *, transfer_id: int, receiver_id: int | None = None) -> StockTransfer:
    """
    Receive a pending transfer: debit the source, credit the destination.

    The source is checked again under its row lock, since stock may have been
    sold after the transfer was created. A failed check leaves the transfer
    pending.

    Raises:
        NotFound: Transfer does not exist
        AlreadyProcessed: Transfer is not pending
        InsufficientStock: The source no longer holds the quantity
    """
    transfer = _locked_transfer(session, transfer_id)
    target = ensure_transition(
        transfer.status,
        TransferStatus.COMPLETED,
        entity=f"Transfer {transfer.id}",
        error_cls=AlreadyProcessed,
    )

    _check_source_availability(session, transfer.from_shop_id, transfer.product_id, transfer.quantity, lock=True)

    reduce_stock_inner(
        session,
        shop_id=transfer.from_shop_id,
        product_id=transfer.product_id,
        quantity=transfer.quantity,
        transaction_type=TransactionType.TRANSFER_OUT,
        reference_type=TRANSFER_REFERENCE,
        reference_id=transfer.id,
        notes=f"Transfer {transfer.transfer_number} to shop {transfer.to_shop_id}",
        actor_id=transfer.created_by,
    )
    add_stock_inner(
        session,
        shop_id=transfer.to_shop_id,
        product_id=transfer.product_id,
        quantity=transfer.quantity,
        transaction_type=TransactionType.TRANSFER_IN,
        reference_type=TRANSFER_REFERENCE,
        reference_id=transfer.id,
        notes=f"Transfer {transfer.transfer_number} from shop {transfer.from_shop_id}",
        actor_id=receiver_id,
    )

    transfer.status = target.value
    transfer.received_by = receiver_id
    transfer.completed_at = utcnow()
    session.flush()
    return transfer


def cancel_transfer_inner(session, *, transfer_id: int, actor_id: int | None = None) -> StockTransfer:
    """
    Cancel a pending transfer. Nothing moves.

    Raises:
        NotFound: Transfer does not exist
        AlreadyProcessed: Transfer is not pending
    """
    transfer = _locked_transfer(session, transfer_id)
    target = ensure_transition(
        transfer.status,
        TransferStatus.CANCELLED,
        entity=f"Transfer {transfer.id}",
        error_cls=AlreadyProcessed,
    )

    transfer.status = target.value
    transfer.cancelled_at = utcnow()
    if actor_id is not None:
        note = f"Cancelled by {actor_id}"
        transfer.notes = f"{transfer.notes}\n{note}" if transfer.notes else note
    session.flush()
    return transfer


def create_transfer(*, uow: UnitOfWork | None = None, **kwargs) -> StockTransfer:
    return run_in_unit_of_work(uow, lambda session: create_transfer_inner(session, **kwargs))


def complete_transfer(*, uow: UnitOfWork | None = None, **kwargs) -> StockTransfer:
    return run_in_unit_of_work(uow, lambda session: complete_transfer_inner(session, **kwargs))


def cancel_transfer(*, uow: UnitOfWork | None = None, **kwargs) -> StockTransfer:
    return run_in_unit_of_work(uow, lambda session: cancel_transfer_inner(session, **kwargs))


def get_transfer(transfer_id: int) -> StockTransfer | None:
    return db.session.query(StockTransfer).filter_by(id=transfer_id).first()


def list_transfers(
    *,
    from_shop_id: int | None = None,
    to_shop_id: int | None = None,
    status: str | None = None,
) -> list[StockTransfer]:
    query = db.session.query(StockTransfer)
    if from_shop_id is not None:
        query = query.filter(StockTransfer.from_shop_id == from_shop_id)
    if to_shop_id is not None:
        query = query.filter(StockTransfer.to_shop_id == to_shop_id)
    if status:
        query = query.filter(StockTransfer.status == parse_status(TransferStatus, status).value)
    return query.order_by(StockTransfer.id.desc()).all()
