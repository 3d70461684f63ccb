from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any

from .errors import ValidationError
from .services.lifecycle_service import parse_status
from .services.pricing_service import DISCOUNT_FIXED, DISCOUNT_TYPES
from .models import SaleStatus
from .time_utils import parse_iso_datetime


# Maximum amount: R$ 999,999.99 (99,999,999 cents)
# Keeps totals well inside a 32-bit integer column
MAX_AMOUNT_CENTS = 99_999_999

SALE_CONSTRAINTS = {
    "min_quantity": 1,
    "max_quantity": 10_000,
    "max_amount_cents": MAX_AMOUNT_CENTS,
    "max_notes_length": 1000,
    "max_cancel_reason_length": 200,
}


# -- request structs --

def check_range(key: str, value: Any, *, minimum: int, maximum: int) -> None:
    """Structs built outside the HTTP parsers get the same bounds."""
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(f"{key} must be an integer", details={key: value})
    if value < minimum or value > maximum:
        raise ValidationError(
            f"{key} must be between {minimum} and {maximum}",
            details={key: value},
        )


def _check_quantity(value: Any) -> None:
    check_range(
        "quantity", value,
        minimum=SALE_CONSTRAINTS["min_quantity"],
        maximum=SALE_CONSTRAINTS["max_quantity"],
    )


@dataclass(frozen=True)
class AddItemRequest:
    product_id: int
    quantity: int
    unit_price_cents: int | None = None  # None -> current catalog price
    discount_cents: int = 0

    def __post_init__(self):
        _check_quantity(self.quantity)
        if self.unit_price_cents is not None:
            check_range("unit_price_cents", self.unit_price_cents, minimum=1, maximum=MAX_AMOUNT_CENTS)
        check_range("discount_cents", self.discount_cents, minimum=0, maximum=MAX_AMOUNT_CENTS)


@dataclass(frozen=True)
class CreateSaleRequest:
    customer_id: int
    items: tuple[AddItemRequest, ...] = ()
    notes: str | None = None
    discount_cents: int = 0
    tax_cents: int = 0

    def __post_init__(self):
        check_range("discount_cents", self.discount_cents, minimum=0, maximum=MAX_AMOUNT_CENTS)
        check_range("tax_cents", self.tax_cents, minimum=0, maximum=MAX_AMOUNT_CENTS)


@dataclass(frozen=True)
class UpdateSaleRequest:
    """
    Partial update of sale header fields.

    provided lists the keys the caller actually sent, so notes=None can mean
    "clear the notes" while an absent key means "leave as is".
    """
    customer_id: int | None = None
    notes: str | None = None
    discount_cents: int | None = None
    tax_cents: int | None = None
    provided: frozenset[str] = field(default_factory=frozenset)

    def __post_init__(self):
        if not self.provided:
            raise ValidationError(
                "At least one field must be provided",
                details={"fields": sorted(UPDATE_SALE_FIELDS)},
            )
        for key in ("discount_cents", "tax_cents"):
            value = getattr(self, key)
            if value is not None:
                check_range(key, value, minimum=0, maximum=MAX_AMOUNT_CENTS)


@dataclass(frozen=True)
class UpdateItemRequest:
    quantity: int | None = None
    unit_price_cents: int | None = None
    discount_cents: int | None = None

    def __post_init__(self):
        if self.quantity is None and self.unit_price_cents is None and self.discount_cents is None:
            raise ValidationError(
                "At least one of quantity, unit_price_cents, discount_cents must be provided",
            )
        if self.quantity is not None:
            _check_quantity(self.quantity)
        if self.unit_price_cents is not None:
            check_range("unit_price_cents", self.unit_price_cents, minimum=1, maximum=MAX_AMOUNT_CENTS)
        if self.discount_cents is not None:
            check_range("discount_cents", self.discount_cents, minimum=0, maximum=MAX_AMOUNT_CENTS)


@dataclass(frozen=True)
class ApplyDiscountRequest:
    discount_type: str
    discount_value: Decimal


@dataclass(frozen=True)
class StockCheckItem:
    product_id: int
    quantity: int

    def __post_init__(self):
        _check_quantity(self.quantity)


@dataclass(frozen=True)
class StockCheckRequest:
    items: tuple[StockCheckItem, ...]


@dataclass(frozen=True)
class CancelRequest:
    reason: str | None = None


@dataclass(frozen=True)
class ListSalesFilters:
    customer_id: int | None = None
    user_id: int | None = None
    status: SaleStatus | None = None
    date_from: datetime | None = None
    date_to: datetime | None = None
    page: int = 1
    per_page: int = 10


UPDATE_SALE_FIELDS = {"customer_id", "notes", "discount_cents", "tax_cents"}
UPDATE_ITEM_FIELDS = {"quantity", "unit_price_cents", "discount_cents"}


# -- coercion helpers --

def _require_dict(payload: Any) -> dict:
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")
    return payload


def _reject_unknown(payload: dict, allowed: set[str]) -> None:
    for k in payload.keys():
        if k not in allowed:
            raise ValidationError(f"Field not allowed: {k}", details={"field": k})


def coerce_int(key: str, value: Any) -> int:
    """
    Strict integer coercion: rejects floats, booleans, decimals and
    scientific notation ("1e3").
    """
    # Already an int (but not bool which is a subclass of int)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{key} must be an integer", details={key: value})
        if "e" in stripped.lower():
            raise ValidationError(
                f"{key} must be a plain integer (scientific notation not allowed)",
                details={key: value},
            )
        if "." in stripped:
            raise ValidationError(f"{key} must be an integer (no decimals)", details={key: value})
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{key} must be an integer", details={key: value})
    if isinstance(value, float):
        raise ValidationError(f"{key} must be an integer, not a decimal", details={key: value})
    raise ValidationError(f"{key} must be an integer", details={key: value})


def _bounded_int(key: str, value: Any, *, minimum: int, maximum: int) -> int:
    n = coerce_int(key, value)
    if n < minimum or n > maximum:
        raise ValidationError(
            f"{key} must be between {minimum} and {maximum}",
            details={key: n},
        )
    return n


def _id(key: str, value: Any) -> int:
    return _bounded_int(key, value, minimum=1, maximum=2**31 - 1)


def _quantity(value: Any) -> int:
    return _bounded_int(
        "quantity", value,
        minimum=SALE_CONSTRAINTS["min_quantity"],
        maximum=SALE_CONSTRAINTS["max_quantity"],
    )


def _amount(key: str, value: Any, *, minimum: int = 0) -> int:
    return _bounded_int(key, value, minimum=minimum, maximum=MAX_AMOUNT_CENTS)


def _text(key: str, value: Any, max_length: int) -> str | None:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValidationError(f"{key} must be a string", details={key: value})
    s = value.strip()
    if len(s) > max_length:
        raise ValidationError(
            f"{key} must be at most {max_length} characters",
            details={key: len(s)},
        )
    return s or None


def _required(payload: dict, *keys: str) -> None:
    missing = [k for k in keys if payload.get(k) is None]
    if missing:
        raise ValidationError(
            f"Missing required fields: {', '.join(missing)}",
            details={"missing": missing},
        )


# -- payload parsers --

def parse_add_item(payload: Any) -> AddItemRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"product_id", "quantity", "unit_price_cents", "discount_cents"})
    _required(payload, "product_id", "quantity")

    unit_price = payload.get("unit_price_cents")
    discount = payload.get("discount_cents")
    return AddItemRequest(
        product_id=_id("product_id", payload["product_id"]),
        quantity=_quantity(payload["quantity"]),
        unit_price_cents=_amount("unit_price_cents", unit_price, minimum=1) if unit_price is not None else None,
        discount_cents=_amount("discount_cents", discount) if discount is not None else 0,
    )


def parse_create_sale(payload: Any) -> CreateSaleRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"customer_id", "items", "notes", "discount_cents", "tax_cents"})
    _required(payload, "customer_id")

    raw_items = payload.get("items") or []
    if not isinstance(raw_items, list):
        raise ValidationError("items must be a list")

    items = []
    for index, raw in enumerate(raw_items):
        try:
            items.append(parse_add_item(raw))
        except ValidationError as e:
            raise ValidationError(e.message, details={**e.details, "item_index": index})

    return CreateSaleRequest(
        customer_id=_id("customer_id", payload["customer_id"]),
        items=tuple(items),
        notes=_text("notes", payload.get("notes"), SALE_CONSTRAINTS["max_notes_length"]),
        discount_cents=_amount("discount_cents", payload.get("discount_cents") or 0),
        tax_cents=_amount("tax_cents", payload.get("tax_cents") or 0),
    )


def parse_update_sale(payload: Any) -> UpdateSaleRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, UPDATE_SALE_FIELDS)

    kwargs: dict[str, Any] = {}
    if "customer_id" in payload:
        _required(payload, "customer_id")
        kwargs["customer_id"] = _id("customer_id", payload["customer_id"])
    if "notes" in payload:
        kwargs["notes"] = _text("notes", payload["notes"], SALE_CONSTRAINTS["max_notes_length"])
    if "discount_cents" in payload:
        kwargs["discount_cents"] = _amount("discount_cents", payload["discount_cents"] or 0)
    if "tax_cents" in payload:
        kwargs["tax_cents"] = _amount("tax_cents", payload["tax_cents"] or 0)

    return UpdateSaleRequest(provided=frozenset(payload.keys()), **kwargs)


def parse_update_item(payload: Any) -> UpdateItemRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, UPDATE_ITEM_FIELDS)

    kwargs: dict[str, Any] = {}
    if payload.get("quantity") is not None:
        kwargs["quantity"] = _quantity(payload["quantity"])
    if payload.get("unit_price_cents") is not None:
        kwargs["unit_price_cents"] = _amount("unit_price_cents", payload["unit_price_cents"], minimum=1)
    if payload.get("discount_cents") is not None:
        kwargs["discount_cents"] = _amount("discount_cents", payload["discount_cents"])
    return UpdateItemRequest(**kwargs)


def parse_apply_discount(payload: Any) -> ApplyDiscountRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"discount_type", "discount_value"})
    _required(payload, "discount_type", "discount_value")

    discount_type = str(payload["discount_type"]).strip().upper()
    if discount_type not in DISCOUNT_TYPES:
        raise ValidationError(
            f"discount_type must be one of: {', '.join(sorted(DISCOUNT_TYPES))}",
            details={"discount_type": payload["discount_type"]},
        )

    raw = payload["discount_value"]
    if discount_type == DISCOUNT_FIXED:
        return ApplyDiscountRequest(
            discount_type=discount_type,
            discount_value=Decimal(_amount("discount_value", raw)),
        )

    if isinstance(raw, bool):
        raise ValidationError("discount_value must be a number", details={"discount_value": raw})
    try:
        value = Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValidationError("discount_value must be a number", details={"discount_value": raw})
    if not value.is_finite():
        raise ValidationError("discount_value must be a number", details={"discount_value": raw})
    return ApplyDiscountRequest(discount_type=discount_type, discount_value=value)


def parse_stock_check(payload: Any) -> StockCheckRequest:
    payload = _require_dict(payload)
    _required(payload, "items")
    raw_items = payload["items"]
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for raw in raw_items:
        raw = _require_dict(raw)
        _required(raw, "product_id", "quantity")
        items.append(StockCheckItem(
            product_id=_id("product_id", raw["product_id"]),
            quantity=_quantity(raw["quantity"]),
        ))
    return StockCheckRequest(items=tuple(items))


def parse_cancel(payload: Any) -> CancelRequest:
    payload = _require_dict(payload)
    _reject_unknown(payload, {"reason"})
    return CancelRequest(
        reason=_text("reason", payload.get("reason"), SALE_CONSTRAINTS["max_cancel_reason_length"]),
    )


def parse_list_filters(args, *, default_per_page: int = 10, max_per_page: int = 100) -> ListSalesFilters:
    """Query-string filters for the sale listing (request.args or any mapping)."""

    def opt_int(key: str) -> int | None:
        raw = args.get(key)
        if raw is None or raw == "":
            return None
        return coerce_int(key, raw)

    def opt_date(key: str) -> datetime | None:
        raw = args.get(key)
        try:
            return parse_iso_datetime(raw)
        except ValueError:
            raise ValidationError(f"{key} must be an ISO-8601 datetime", details={key: raw})

    status = args.get("status")
    page = opt_int("page") or 1
    per_page = opt_int("per_page") or default_per_page
    if page < 1:
        raise ValidationError("page must be >= 1", details={"page": page})
    if per_page < 1 or per_page > max_per_page:
        raise ValidationError(
            f"per_page must be between 1 and {max_per_page}",
            details={"per_page": per_page},
        )

    filters = ListSalesFilters(
        customer_id=opt_int("customer_id"),
        user_id=opt_int("user_id"),
        status=parse_status(status) if status else None,
        date_from=opt_date("date_from"),
        date_to=opt_date("date_to"),
        page=page,
        per_page=per_page,
    )
    if filters.date_from and filters.date_to and filters.date_from > filters.date_to:
        raise ValidationError("date_from must not be after date_to")
    return filters
