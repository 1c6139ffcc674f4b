# Overview: Service-layer operations for document numbering; per-scope sequences for sales, transfers and quotations.

from __future__ import annotations

from sqlalchemy import update

from ..errors import ValidationError
from ..models import DocumentSequence


SALE_DOCUMENT = ("sale", "SALE")
TRANSFER_DOCUMENT = ("stock_transfer", "TRF")
QUOTATION_DOCUMENT = ("quotation", "QUO")

# Quotations are not owned by a shop
GLOBAL_SCOPE = 0


def _current_value(session, scope_id: int, document_type: str) -> int:
    return (
        session.query(DocumentSequence.next_number)
        .filter_by(scope_id=scope_id, document_type=document_type)
        .scalar()
    )


def next_document_number(
    session,
    *,
    scope_id: int,
    document_type: str,
    prefix: str,
    pad: int = 6,
) -> str:
    """
    Allocate the next document number for a scope/type inside the caller's transaction.

    The counter row is bumped with a single UPDATE, which takes the row lock
    on databases that have one. The first allocation for a scope inserts the
    row; two transactions racing on that insert hit the unique constraint and
    the loser fails with PersistenceError (no retry).

    Returns:
        e.g. "SALE-001-000001"
    """
    if scope_id is None or scope_id < 0:
        raise ValidationError("scope_id is required")
    if not document_type:
        raise ValidationError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.scope_id == scope_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = session.execute(stmt)
    if result.rowcount:
        next_num = _current_value(session, scope_id, document_type) - 1
    else:
        session.add(DocumentSequence(scope_id=scope_id, document_type=document_type, next_number=2))
        session.flush()
        next_num = 1

    return f"{prefix}-{scope_id:03d}-{next_num:0{pad}d}"


def next_sale_number(session, shop_id: int) -> str:
    document_type, prefix = SALE_DOCUMENT
    return next_document_number(session, scope_id=shop_id, document_type=document_type, prefix=prefix)


def next_transfer_number(session, from_shop_id: int) -> str:
    document_type, prefix = TRANSFER_DOCUMENT
    return next_document_number(session, scope_id=from_shop_id, document_type=document_type, prefix=prefix)


def next_quotation_number(session) -> str:
    document_type, prefix = QUOTATION_DOCUMENT
    return next_document_number(session, scope_id=GLOBAL_SCOPE, document_type=document_type, prefix=prefix)
