# Overview: Service-layer operations for sale items; add, change and remove items while the sale is editable.

"""
Sale Item Manager

Items can only change while the sale is DRAFT or PENDING. Every change:
1. asks the access policy (EDIT) before touching anything
2. locks the sale row inside a UnitOfWork
3. recomputes the item total and the sale totals before commit

Stock checks here are advisory (stock is not held until confirmation).
The authoritative check happens again under lock in confirm_sale.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from ..errors import DuplicateItem, InsufficientStock, ItemNotFound, ValidationError
from ..models import Sale, SaleItem
from ..permissions import SaleOperation
from ..validation import AddItemRequest, UpdateItemRequest
from . import pricing_service
from .access_policy import Actor, AccessPolicy, require_sale_access
from .catalog_service import get_sellable_product
from .inventory_service import get_quantity_on_hand
from .lifecycle_service import require_editable
from .unit_of_work import UnitOfWork


def recalculate_totals(sale: Sale) -> None:
    """Re-derive subtotal and total from the items and header amounts."""
    sale.subtotal_cents = pricing_service.subtotal(sale.items)
    sale.total_cents = pricing_service.sale_total(
        sale.subtotal_cents,
        sale.discount_cents or 0,
        sale.tax_cents or 0,
    )


def _precheck_stock(session: Session, product_id: int, quantity: int) -> None:
    available = get_quantity_on_hand(product_id, session=session)
    if available < quantity:
        raise InsufficientStock([{
            "product_id": product_id,
            "requested": quantity,
            "available": available,
        }])


def _find_item(sale: Sale, item_id: int) -> SaleItem:
    for item in sale.items:
        if item.id == item_id:
            return item
    raise ItemNotFound(sale.id, item_id)


def attach_item(session: Session, sale: Sale, req: AddItemRequest) -> SaleItem:
    """
    Validate req against the catalog and stock and append it to sale.items.

    Shared by add_item and create_sale. Does not recompute sale totals.
    """
    product = get_sellable_product(req.product_id, session=session)

    if any(existing.product_id == product.id for existing in sale.items):
        raise DuplicateItem(sale.id, product.id)

    _precheck_stock(session, product.id, req.quantity)

    # Price is frozen at add time
    unit_price = req.unit_price_cents if req.unit_price_cents is not None else product.price_cents
    if unit_price is None or unit_price <= 0:
        raise ValidationError(
            "unit_price_cents must be greater than zero",
            details={"product_id": product.id, "unit_price_cents": unit_price},
        )

    discount = req.discount_cents or 0
    item = SaleItem(
        product_id=product.id,
        quantity=req.quantity,
        unit_price_cents=unit_price,
        discount_cents=discount,
        total_cents=pricing_service.item_total(req.quantity, unit_price, discount),
    )
    sale.items.append(item)
    return item


def add_item(
    actor: Actor,
    sale_id: int,
    req: AddItemRequest,
    policy: AccessPolicy | None = None,
) -> SaleItem:
    require_sale_access(actor, SaleOperation.EDIT, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_editable(sale, action="add items to")
        item = attach_item(uow.session, sale, req)
        recalculate_totals(sale)
        uow.flush()

    return item


def update_item(
    actor: Actor,
    sale_id: int,
    item_id: int,
    req: UpdateItemRequest,
    policy: AccessPolicy | None = None,
) -> SaleItem:
    """
    Change quantity, unit price and/or discount of one item.

    Only a quantity increase is checked against stock on hand.
    """
    require_sale_access(actor, SaleOperation.EDIT, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_editable(sale, action="edit items on")
        item = _find_item(sale, item_id)

        if req.quantity is not None and req.quantity > item.quantity:
            _precheck_stock(uow.session, item.product_id, req.quantity)

        quantity = req.quantity if req.quantity is not None else item.quantity
        unit_price = req.unit_price_cents if req.unit_price_cents is not None else item.unit_price_cents
        discount = req.discount_cents if req.discount_cents is not None else item.discount_cents

        # Validate before mutating so a bad discount leaves the item untouched
        total = pricing_service.item_total(quantity, unit_price, discount)

        item.quantity = quantity
        item.unit_price_cents = unit_price
        item.discount_cents = discount
        item.total_cents = total
        recalculate_totals(sale)

    return item


def remove_item(
    actor: Actor,
    sale_id: int,
    item_id: int,
    policy: AccessPolicy | None = None,
) -> Sale:
    require_sale_access(actor, SaleOperation.EDIT, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_editable(sale, action="remove items from")
        item = _find_item(sale, item_id)
        sale.items.remove(item)
        recalculate_totals(sale)

    return sale
