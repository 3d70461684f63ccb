# Overview: Domain error taxonomy for the sales engine; every error carries structured details for the caller.

"""
Sales Engine Errors

Every error raised by the services is an expected, caller-correctable condition.
None of them is retried internally. Each carries:
- message: human readable summary
- details: structured payload (offending ids, current vs expected values)
- status_code: HTTP status the routes map it to

Infrastructure failures (database unavailable, driver errors) are NOT wrapped
here; they propagate after the unit of work rolls back.
"""

from __future__ import annotations


class SaleError(Exception):
    """Base class for sale operation errors."""

    status_code = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    @property
    def code(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {
            "error": self.message,
            "code": self.code,
            "details": self.details,
        }


class ValidationError(SaleError):
    """400-level input problem (quantities, prices, discounts, payload shape)."""


class InvalidAmount(ValidationError):
    """A computed monetary amount would be negative."""


class EmptySale(SaleError):
    """Confirm requested on a sale without items."""


class NotFoundError(SaleError):
    status_code = 404


class SaleNotFound(NotFoundError):
    def __init__(self, sale_id: int):
        super().__init__("Sale not found", details={"sale_id": sale_id})


class ItemNotFound(NotFoundError):
    def __init__(self, sale_id: int, item_id: int):
        super().__init__(
            "Item not found on this sale",
            details={"sale_id": sale_id, "item_id": item_id},
        )


class CustomerNotFound(NotFoundError):
    def __init__(self, customer_id: int):
        super().__init__(
            "Customer not found or inactive",
            details={"customer_id": customer_id},
        )


class ProductNotFound(NotFoundError):
    def __init__(self, product_id: int):
        super().__init__("Product not found", details={"product_id": product_id})


class ProductInactive(SaleError):
    status_code = 400

    def __init__(self, product_id: int):
        super().__init__("Product is inactive", details={"product_id": product_id})


class PermissionDeniedError(SaleError):
    """Raised when the access policy rejects the caller for a sale operation."""

    status_code = 403


class InvalidStateTransition(SaleError):
    """
    Operation not allowed in the sale's current status.

    details carries the current status and the statuses the operation
    accepts, so the caller can see why it was rejected.
    """

    status_code = 409

    def __init__(
        self,
        message: str,
        *,
        current_status: str,
        allowed_statuses: list[str] | tuple[str, ...] | set[str],
        sale_id: int | None = None,
    ):
        details = {
            "current_status": current_status,
            "allowed_statuses": sorted(allowed_statuses),
        }
        if sale_id is not None:
            details["sale_id"] = sale_id
        super().__init__(message, details=details)
        self.current_status = current_status
        self.allowed_statuses = details["allowed_statuses"]


class InsufficientStock(SaleError):
    """
    Stock on hand does not cover the requested quantities.

    items: list of {"product_id", "requested", "available"} for every
    product that failed the check (not only the first).
    """

    status_code = 409

    def __init__(self, items: list[dict], message: str = "Insufficient stock"):
        super().__init__(message, details={"items": items})
        self.items = items


class DuplicateItem(SaleError):
    status_code = 409

    def __init__(self, sale_id: int | None, product_id: int):
        super().__init__(
            "Product is already on this sale; update the existing item instead",
            details={"sale_id": sale_id, "product_id": product_id},
        )


class ConcurrentModificationError(SaleError):
    """The sale row changed under us (optimistic version check failed)."""

    status_code = 409
