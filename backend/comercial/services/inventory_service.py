# Overview: Service-layer operations for the inventory ledger; guarded stock mutations and read-side checks.

# backend/comercial/services/inventory_service.py

"""
Inventory Ledger Invariants (authoritative)

Inventory model:
- One Inventory row per product holds the current on-hand quantity.
- A product without an Inventory row has zero stock on hand.

Business invariants:
- On-hand quantity may never go below zero. decrement() uses a guarded
  UPDATE (... WHERE quantity >= amount) and checks the row count, so an
  insufficient decrement changes nothing and raises InsufficientStock.
- increment() has no upper bound check (max_stock is informational).
- min_stock / max_stock drive read-side flags only; nothing here enforces them.

Transactions:
- decrement/increment never commit. They run inside the caller's UnitOfWork,
  which holds the row locks and decides commit vs rollback for the whole sale.

Audit:
- Every mutation appends an InventoryMovement row in the same DB transaction.
"""

from __future__ import annotations

from ..errors import InsufficientStock, NotFoundError, ProductNotFound, ValidationError
from ..extensions import db
from ..models import Inventory, InventoryMovement, MovementType, Product
from .unit_of_work import UnitOfWork


def get_inventory(product_id: int) -> Inventory | None:
    return db.session.query(Inventory).filter_by(product_id=product_id).first()


def get_quantity_on_hand(product_id: int, session=None) -> int:
    session = session or db.session
    qty = session.query(Inventory.quantity).filter_by(product_id=product_id).scalar()
    return int(qty or 0)


def _require_positive(amount: int) -> None:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount <= 0:
        raise ValidationError("amount must be a positive integer", details={"amount": amount})


def _reload(uow: UnitOfWork, product_id: int) -> Inventory:
    return (
        uow.session.query(Inventory)
        .filter_by(product_id=product_id)
        .populate_existing()
        .one()
    )


def _record_movement(
    uow: UnitOfWork,
    inventory: Inventory,
    movement_type: MovementType,
    quantity: int,
    *,
    sale_id: int | None,
    user_id: int | None,
    reason: str | None,
) -> InventoryMovement:
    movement = InventoryMovement(
        inventory_id=inventory.id,
        product_id=inventory.product_id,
        type=movement_type,
        quantity=quantity,
        sale_id=sale_id,
        user_id=user_id,
        reason=reason,
    )
    uow.add(movement)
    return movement


def decrement(
    uow: UnitOfWork,
    product_id: int,
    amount: int,
    *,
    sale_id: int | None = None,
    user_id: int | None = None,
    reason: str | None = None,
) -> Inventory:
    """
    Remove amount units from on-hand stock.

    Raises InsufficientStock (and changes nothing) if on-hand < amount.
    """
    _require_positive(amount)

    table = Inventory.__table__
    result = uow.session.execute(
        table.update()
        .where(table.c.product_id == product_id, table.c.quantity >= amount)
        .values(quantity=table.c.quantity - amount)
    )
    if result.rowcount != 1:
        raise InsufficientStock([{
            "product_id": product_id,
            "requested": amount,
            "available": get_quantity_on_hand(product_id, session=uow.session),
        }])

    inventory = _reload(uow, product_id)
    _record_movement(
        uow, inventory, MovementType.OUT, amount,
        sale_id=sale_id, user_id=user_id, reason=reason,
    )
    return inventory


def increment(
    uow: UnitOfWork,
    product_id: int,
    amount: int,
    *,
    sale_id: int | None = None,
    user_id: int | None = None,
    reason: str | None = None,
) -> Inventory:
    """Return amount units to on-hand stock."""
    _require_positive(amount)

    table = Inventory.__table__
    result = uow.session.execute(
        table.update()
        .where(table.c.product_id == product_id)
        .values(quantity=table.c.quantity + amount)
    )
    if result.rowcount != 1:
        raise NotFoundError(
            "Inventory record not found",
            details={"product_id": product_id},
        )

    inventory = _reload(uow, product_id)
    _record_movement(
        uow, inventory, MovementType.IN, amount,
        sale_id=sale_id, user_id=user_id, reason=reason,
    )
    return inventory


def find_shortages(requested: dict[int, int], stock: dict[int, Inventory]) -> list[dict]:
    """
    Compare requested quantities (product_id -> qty) against inventory rows.

    Returns one {"product_id", "requested", "available"} entry per product
    whose on-hand quantity does not cover the request, in product_id order.
    """
    shortages = []
    for product_id in sorted(requested):
        qty = requested[product_id]
        row = stock.get(product_id)
        available = row.quantity if row is not None else 0
        if available < qty:
            shortages.append({
                "product_id": product_id,
                "requested": qty,
                "available": available,
            })
    return shortages


def check_stock(items) -> dict:
    """
    Non-mutating availability report for a prospective list of items.

    items: iterable of objects with product_id and quantity.
    """
    results = []
    for item in items:
        product = db.session.get(Product, item.product_id)
        if product is None or not product.is_active:
            results.append({
                "product_id": item.product_id,
                "is_valid": False,
                "error": "Product not found or inactive",
                "requested": item.quantity,
                "available": 0,
            })
            continue

        inventory = product.inventory
        if inventory is None:
            results.append({
                "product_id": item.product_id,
                "product_name": product.name,
                "product_code": product.code,
                "is_valid": False,
                "error": "Product has no stock record",
                "requested": item.quantity,
                "available": 0,
            })
            continue

        is_valid = inventory.quantity >= item.quantity
        entry = {
            "product_id": item.product_id,
            "product_name": product.name,
            "product_code": product.code,
            "is_valid": is_valid,
            "requested": item.quantity,
            "available": inventory.quantity,
        }
        if not is_valid:
            entry["error"] = "Insufficient stock"
            entry["shortfall"] = item.quantity - inventory.quantity
        results.append(entry)

    invalid_count = sum(1 for r in results if not r["is_valid"])
    all_valid = invalid_count == 0
    return {
        "is_valid": all_valid,
        "total_items": len(results),
        "valid_items": len(results) - invalid_count,
        "invalid_items": invalid_count,
        "results": results,
        "summary": {
            "can_proceed": all_valid,
            "message": (
                "All items have sufficient stock"
                if all_valid
                else f"{invalid_count} item(s) with insufficient stock"
            ),
        },
    }


def list_movements(product_id: int, limit: int = 50) -> list[InventoryMovement]:
    if db.session.get(Product, product_id) is None:
        raise ProductNotFound(product_id)
    return (
        db.session.query(InventoryMovement)
        .filter_by(product_id=product_id)
        .order_by(InventoryMovement.created_at.desc(), InventoryMovement.id.desc())
        .limit(limit)
        .all()
    )


def get_stock_position(product_id: int) -> dict:
    """Ledger read model for one product; a missing inventory row reads as zero."""
    product = db.session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)

    inventory = product.inventory
    return {
        "product": product.to_dict(),
        "quantity_on_hand": inventory.quantity if inventory is not None else 0,
        "inventory": inventory.to_dict() if inventory is not None else None,
    }
