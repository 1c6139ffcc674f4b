# Overview: Result boundary over the movement services; one transaction per call, structured results out.

"""
MovementEngine

WHY: Services raise typed MovementErrors and never commit. The engine is the
caller-facing seam: it opens one UnitOfWork per operation, runs the service,
and turns expected business failures into OperationResult(success=False)
with a stable error code. PersistenceError and anything unexpected are
logged with a traceback and re-raised, since the caller cannot fix those by
changing its input.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from flask import current_app

from .errors import MovementError, PersistenceError
from .services import payment_service, quotation_service, sales_service, stock_service, transfer_service
from .services.unit_of_work import UnitOfWork


@dataclass
class OperationResult:
    success: bool
    message: str
    data: dict | None = None
    error: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, message: str, data: dict | None = None) -> "OperationResult":
        return cls(success=True, message=message, data=data)

    @classmethod
    def failed(cls, exc: MovementError) -> "OperationResult":
        return cls(success=False, message=exc.message, error=exc.code, details=dict(exc.details))

    def to_dict(self) -> dict:
        payload = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = self.data
        if self.error is not None:
            payload["error"] = self.error
            payload["details"] = self.details
        return payload


class MovementEngine:
    """
    Args:
        uow_factory: Zero-argument callable returning a fresh UnitOfWork.
            Defaults to UnitOfWork over the Flask-SQLAlchemy session.
        logger: Defaults to the current Flask app's logger.
    """

    def __init__(
        self,
        uow_factory: Callable[[], UnitOfWork] | None = None,
        logger: logging.Logger | None = None,
    ):
        self._uow_factory = uow_factory or UnitOfWork
        self._logger = logger

    @property
    def logger(self) -> logging.Logger:
        return self._logger or current_app.logger

    def _run(
        self,
        operation: str,
        func: Callable[..., Any],
        describe: Callable[[Any, Any], tuple[str, dict]],
        **kwargs,
    ) -> OperationResult:
        # describe reads through the same session the operation committed on
        uow = self._uow_factory()
        try:
            outcome = func(uow=uow, **kwargs)
        except PersistenceError:
            self.logger.exception("%s failed to persist", operation)
            raise
        except MovementError as exc:
            self.logger.warning("%s rejected [%s]: %s", operation, exc.code, exc.message)
            return OperationResult.failed(exc)
        except Exception:
            self.logger.exception("%s failed unexpectedly", operation)
            raise

        message, data = describe(outcome, uow.session)
        self.logger.info("%s: %s", operation, message)
        return OperationResult.ok(message, data)

    # ------------------------------------------------------------------
    # Stock
    # ------------------------------------------------------------------

    def add_stock(
        self,
        shop_id: int,
        product_id: int,
        quantity,
        buy_price,
        sale_price,
        actor_id: int | None,
        notes: str | None = None,
        min_stock_level=None,
    ) -> OperationResult:
        return self._run(
            "add_stock",
            stock_service.add_stock,
            _describe_stock("Stock added"),
            shop_id=shop_id,
            product_id=product_id,
            quantity=quantity,
            buy_price=buy_price,
            sale_price=sale_price,
            min_stock_level=min_stock_level,
            notes=notes,
            actor_id=actor_id,
        )

    def reduce_stock(
        self,
        shop_id: int,
        product_id: int,
        quantity,
        actor_id: int | None,
        notes: str | None = None,
    ) -> OperationResult:
        return self._run(
            "reduce_stock",
            stock_service.reduce_stock,
            _describe_stock("Stock reduced"),
            shop_id=shop_id,
            product_id=product_id,
            quantity=quantity,
            notes=notes,
            actor_id=actor_id,
        )

    def adjust_stock(
        self,
        shop_id: int,
        product_id: int,
        absolute_quantity,
        actor_id: int | None,
        notes: str | None = None,
    ) -> OperationResult:
        return self._run(
            "adjust_stock",
            stock_service.adjust_stock,
            _describe_stock("Stock adjusted"),
            shop_id=shop_id,
            product_id=product_id,
            new_quantity=absolute_quantity,
            notes=notes,
            actor_id=actor_id,
        )

    # ------------------------------------------------------------------
    # Sales
    # ------------------------------------------------------------------

    def create_sale(
        self,
        shop_id: int,
        items: list[dict],
        tax_amount=0,
        discount_amount=0,
        actor_id: int | None = None,
        **sale_fields,
    ) -> OperationResult:
        def describe(sale, session):
            return f"Sale {sale.sale_number} created", {
                "sale_id": sale.id,
                "sale_number": sale.sale_number,
                "total_amount": str(sale.total_amount),
                "status": sale.status,
            }

        return self._run(
            "create_sale",
            sales_service.create_sale,
            describe,
            shop_id=shop_id,
            items=items,
            tax_amount=tax_amount,
            discount_amount=discount_amount,
            actor_id=actor_id,
            **sale_fields,
        )

    def cancel_sale(self, sale_id: int, actor_id: int | None) -> OperationResult:
        def describe(sale, session):
            return f"Sale {sale.sale_number} cancelled", {"sale_id": sale.id, "status": sale.status}

        return self._run("cancel_sale", sales_service.cancel_sale, describe, sale_id=sale_id, actor_id=actor_id)

    # ------------------------------------------------------------------
    # Transfers
    # ------------------------------------------------------------------

    def create_transfer(
        self,
        from_shop_id: int,
        to_shop_id: int,
        product_id: int,
        quantity,
        actor_id: int | None,
        notes: str | None = None,
    ) -> OperationResult:
        def describe(transfer, session):
            return f"Transfer {transfer.transfer_number} created", {
                "transfer_id": transfer.id,
                "transfer_number": transfer.transfer_number,
            }

        return self._run(
            "create_transfer",
            transfer_service.create_transfer,
            describe,
            from_shop_id=from_shop_id,
            to_shop_id=to_shop_id,
            product_id=product_id,
            quantity=quantity,
            actor_id=actor_id,
            notes=notes,
        )

    def complete_transfer(self, transfer_id: int, receiver_id: int | None) -> OperationResult:
        return self._run(
            "complete_transfer",
            transfer_service.complete_transfer,
            _describe_transfer("completed"),
            transfer_id=transfer_id,
            receiver_id=receiver_id,
        )

    def cancel_transfer(self, transfer_id: int, actor_id: int | None = None) -> OperationResult:
        return self._run(
            "cancel_transfer",
            transfer_service.cancel_transfer,
            _describe_transfer("cancelled"),
            transfer_id=transfer_id,
            actor_id=actor_id,
        )

    # ------------------------------------------------------------------
    # Payments
    # ------------------------------------------------------------------

    def create_payment(
        self,
        sale_id: int,
        payment_method: str,
        amount,
        actor_id: int | None,
        reference_number: str | None = None,
        notes: str | None = None,
    ) -> OperationResult:
        def describe(payment, session):
            return f"Payment {payment.id} recorded", {
                "payment_id": payment.id,
                "sale_id": payment.sale_id,
                "sale_status": payment.sale.status,
                "payment_status": payment_service.get_payment_status(payment.sale_id, session=session),
            }

        return self._run(
            "create_payment",
            payment_service.create_payment,
            describe,
            sale_id=sale_id,
            payment_method=payment_method,
            amount=amount,
            actor_id=actor_id,
            reference_number=reference_number,
            notes=notes,
        )

    def refund_payment(self, payment_id: int, actor_id: int | None, notes: str | None = None) -> OperationResult:
        def describe(payment, session):
            return f"Payment {payment.id} refunded", {
                "payment_id": payment.id,
                "sale_id": payment.sale_id,
                "payment_status": payment_service.get_payment_status(payment.sale_id, session=session),
            }

        return self._run(
            "refund_payment",
            payment_service.refund_payment,
            describe,
            payment_id=payment_id,
            actor_id=actor_id,
            notes=notes,
        )

    # ------------------------------------------------------------------
    # Quotations
    # ------------------------------------------------------------------

    def create_quotation(self, supplier_name: str, items: list[dict], actor_id: int | None = None, **fields) -> OperationResult:
        return self._run(
            "create_quotation",
            quotation_service.create_quotation,
            _describe_quotation("created"),
            supplier_name=supplier_name,
            items=items,
            actor_id=actor_id,
            **fields,
        )

    def update_quotation(self, quotation_id: int, **changes) -> OperationResult:
        return self._run(
            "update_quotation",
            quotation_service.update_quotation,
            _describe_quotation("updated"),
            quotation_id=quotation_id,
            **changes,
        )

    def mark_quotation_sent(self, quotation_id: int) -> OperationResult:
        return self._run(
            "mark_quotation_sent",
            quotation_service.mark_quotation_sent,
            _describe_quotation("sent"),
            quotation_id=quotation_id,
        )

    def delete_quotation(self, quotation_id: int) -> OperationResult:
        return self._run(
            "delete_quotation",
            quotation_service.delete_quotation,
            _describe_quotation("deleted"),
            quotation_id=quotation_id,
        )


def _describe_stock(verb: str):
    def describe(outcome, session):
        row, entry = outcome
        return (
            f"{verb} for product {row.product_id} in shop {row.shop_id}",
            {"stock": row.to_dict(), "transaction_id": entry.id},
        )
    return describe


def _describe_transfer(verb: str):
    def describe(transfer, session):
        return (
            f"Transfer {transfer.transfer_number} {verb}",
            {"transfer_id": transfer.id, "status": transfer.status},
        )
    return describe


def _describe_quotation(verb: str):
    def describe(quotation, session):
        return (
            f"Quotation {quotation.quotation_number} {verb}",
            {
                "quotation_id": quotation.id,
                "quotation_number": quotation.quotation_number,
                "status": quotation.status,
                "total_amount": str(quotation.total_amount),
            },
        )
    return describe
