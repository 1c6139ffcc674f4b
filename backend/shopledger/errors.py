# Overview: Domain error taxonomy shared by the stock, sale, transfer, payment and quotation services.

"""
Movement errors.

Services raise these; `shopledger.engine.MovementEngine` turns the expected
ones into failed `OperationResult`s and lets `PersistenceError` propagate.
Every error carries a stable `code` and an optional `details` dict so callers
can branch without parsing messages.
"""

from __future__ import annotations


class MovementError(Exception):
    """Base class for all stock-movement domain errors."""

    code = "movement_error"

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ValidationError(MovementError, ValueError):
    """Malformed, missing or out-of-range input."""

    code = "validation_error"


class InsufficientStock(MovementError):
    """Requested quantity exceeds what the (shop, product) row holds."""

    code = "insufficient_stock"

    def __init__(
        self,
        message: str,
        *,
        shop_id: int | None = None,
        product_id: int | None = None,
        requested=None,
        available=None,
    ):
        super().__init__(
            message,
            details={
                "shop_id": shop_id,
                "product_id": product_id,
                "requested": str(requested) if requested is not None else None,
                "available": str(available) if available is not None else None,
            },
        )
        self.shop_id = shop_id
        self.product_id = product_id
        self.requested = requested
        self.available = available


class NotFound(MovementError):
    """Referenced shop, product, sale, transfer, payment or quotation is absent."""

    code = "not_found"


class InvalidStateTransition(MovementError):
    """Transition not present in the entity's transition table."""

    code = "invalid_state"


class NotCancellable(InvalidStateTransition):
    """Sale is missing or not in a cancellable state."""

    code = "not_cancellable"


class AlreadyProcessed(InvalidStateTransition):
    """Transfer is no longer pending."""

    code = "already_processed"


class PersistenceError(MovementError):
    """The store failed to flush or commit the unit of work."""

    code = "persistence_error"
