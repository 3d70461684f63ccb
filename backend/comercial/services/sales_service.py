# Overview: Service-layer operations for sales; lifecycle transitions with inventory reservation and release.

"""
Sales Service - sale lifecycle and stock reservation

WHY: A sale is a document with a lifecycle. Stock is only taken from the
ledger when the sale is confirmed and only given back when a confirmed sale
is cancelled. Everything in between is editing a document.

Each operation:
- asks the access policy first (denials are audited, nothing is locked)
- runs its reads, checks and writes in one UnitOfWork
- leaves no partial state behind when it raises
"""

from __future__ import annotations

from sqlalchemy import func

from ..errors import EmptySale, InsufficientStock
from ..extensions import db
from ..models import Sale, SaleItem, SaleStatus
from ..permissions import SaleOperation
from ..time_utils import utcnow
from ..validation import (
    ApplyDiscountRequest,
    CreateSaleRequest,
    ListSalesFilters,
    StockCheckRequest,
    UpdateSaleRequest,
)
from . import inventory_service, pricing_service
from .access_policy import Actor, AccessPolicy, get_policy, require_access, require_sale_access
from .catalog_service import get_active_customer
from .lifecycle_service import require_editable, require_transition
from .sale_item_service import attach_item, recalculate_totals
from .unit_of_work import UnitOfWork


# Statuses that count towards revenue in listing summaries
REVENUE_STATUSES = (SaleStatus.PENDING, SaleStatus.CONFIRMED, SaleStatus.COMPLETED)


def _requested_quantities(items: list[SaleItem]) -> dict[int, int]:
    requested: dict[int, int] = {}
    for item in items:
        requested[item.product_id] = requested.get(item.product_id, 0) + item.quantity
    return requested


# -- document operations --

def create_sale(actor: Actor, req: CreateSaleRequest, policy: AccessPolicy | None = None) -> Sale:
    """Create a DRAFT sale owned by the actor, optionally with initial items."""
    require_access(actor, SaleOperation.CREATE, owner_user_id=None, resource="sale", policy=policy)

    with UnitOfWork() as uow:
        customer = get_active_customer(req.customer_id, session=uow.session)

        now = utcnow()
        sale = Sale(
            customer_id=customer.id,
            user_id=actor.user_id,
            status=SaleStatus.DRAFT,
            notes=req.notes,
            discount_cents=req.discount_cents,
            tax_cents=req.tax_cents,
            sale_date=now,
            created_at=now,
            updated_at=now,
        )
        uow.add(sale)

        for item_req in req.items:
            attach_item(uow.session, sale, item_req)

        recalculate_totals(sale)
        uow.flush()

    return sale


def get_sale(actor: Actor, sale_id: int, policy: AccessPolicy | None = None) -> Sale:
    require_sale_access(actor, SaleOperation.VIEW, sale_id, policy=policy)
    return db.session.get(Sale, sale_id)


def list_sales(actor: Actor, filters: ListSalesFilters, policy: AccessPolicy | None = None) -> dict:
    """
    Paginated sale listing plus a summary over every matching sale.

    Actors the policy does not grant VIEW_ALL_SALES only see their own sales.
    This is scoping, not a denial, so nothing is audited.
    """
    policy = policy or get_policy()

    query = db.session.query(Sale)
    if not policy(actor, SaleOperation.LIST_ALL, None):
        query = query.filter(Sale.user_id == actor.user_id)

    if filters.customer_id is not None:
        query = query.filter(Sale.customer_id == filters.customer_id)
    if filters.user_id is not None:
        query = query.filter(Sale.user_id == filters.user_id)
    if filters.status is not None:
        query = query.filter(Sale.status == filters.status)
    if filters.date_from is not None:
        query = query.filter(Sale.sale_date >= filters.date_from)
    if filters.date_to is not None:
        query = query.filter(Sale.sale_date <= filters.date_to)

    total = query.order_by(None).count()
    sales = (
        query.order_by(Sale.sale_date.desc(), Sale.id.desc())
        .offset((filters.page - 1) * filters.per_page)
        .limit(filters.per_page)
        .all()
    )

    revenue_query = query.filter(Sale.status.in_(REVENUE_STATUSES))
    revenue_count = revenue_query.order_by(None).count()
    revenue = revenue_query.with_entities(func.coalesce(func.sum(Sale.total_cents), 0)).scalar()
    quantity = (
        revenue_query.join(SaleItem, SaleItem.sale_id == Sale.id)
        .with_entities(func.coalesce(func.sum(SaleItem.quantity), 0))
        .scalar()
    )

    pages = (total + filters.per_page - 1) // filters.per_page if total else 0
    return {
        "sales": sales,
        "pagination": {
            "page": filters.page,
            "per_page": filters.per_page,
            "total": total,
            "pages": pages,
            "has_next": filters.page < pages,
            "has_prev": filters.page > 1,
        },
        "summary": {
            "total_sales": total,
            "total_revenue_cents": int(revenue or 0),
            "average_order_value_cents": int(revenue or 0) // revenue_count if revenue_count else 0,
            "total_quantity": int(quantity or 0),
        },
    }


def update_sale(
    actor: Actor,
    sale_id: int,
    req: UpdateSaleRequest,
    policy: AccessPolicy | None = None,
) -> Sale:
    require_sale_access(actor, SaleOperation.EDIT, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_editable(sale, action="update")

        if "customer_id" in req.provided and req.customer_id != sale.customer_id:
            sale.customer_id = get_active_customer(req.customer_id, session=uow.session).id
        if "notes" in req.provided:
            sale.notes = req.notes
        if "discount_cents" in req.provided:
            sale.discount_cents = req.discount_cents or 0
        if "tax_cents" in req.provided:
            sale.tax_cents = req.tax_cents or 0

        recalculate_totals(sale)

    return sale


def apply_discount(
    actor: Actor,
    sale_id: int,
    req: ApplyDiscountRequest,
    policy: AccessPolicy | None = None,
) -> Sale:
    """
    Set the sale-level discount from a FIXED amount or a PERCENTAGE of the
    current subtotal. Replaces any previous sale discount.
    """
    require_sale_access(actor, SaleOperation.EDIT, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_editable(sale, action="discount")

        sale.discount_cents = pricing_service.discount_amount(
            sale.subtotal_cents, req.discount_type, req.discount_value,
        )
        recalculate_totals(sale)

    return sale


# -- lifecycle transitions --

def submit_sale(actor: Actor, sale_id: int, policy: AccessPolicy | None = None) -> Sale:
    """DRAFT -> PENDING. No inventory effect."""
    require_sale_access(actor, SaleOperation.SUBMIT, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_transition(sale, SaleStatus.PENDING, action="submit")
        sale.status = SaleStatus.PENDING

    return sale


def confirm_sale(actor: Actor, sale_id: int, policy: AccessPolicy | None = None) -> Sale:
    """
    PENDING -> CONFIRMED, reserving stock for every item.

    Under lock (sale row, then inventory rows in product_id order):
    1. Re-read on-hand quantity for every product on the sale
    2. If any is short, raise InsufficientStock listing ALL short products
    3. Otherwise decrement each item and flip the status

    Either all decrements and the status change commit, or nothing does.
    """
    require_sale_access(actor, SaleOperation.CONFIRM, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_transition(sale, SaleStatus.CONFIRMED, action="confirm")

        items = list(sale.items)
        if not items:
            raise EmptySale("Cannot confirm a sale without items", details={"sale_id": sale.id})

        requested = _requested_quantities(items)
        stock = uow.lock_inventory(requested.keys())

        shortages = inventory_service.find_shortages(requested, stock)
        if shortages:
            raise InsufficientStock(shortages, message="Insufficient stock to confirm sale")

        reason = f"Sale {sale.sale_number} confirmed"
        for item in sorted(items, key=lambda i: i.product_id):
            inventory_service.decrement(
                uow, item.product_id, item.quantity,
                sale_id=sale.id, user_id=actor.user_id, reason=reason,
            )

        sale.status = SaleStatus.CONFIRMED

    return sale


def complete_sale(actor: Actor, sale_id: int, policy: AccessPolicy | None = None) -> Sale:
    """CONFIRMED -> COMPLETED. Stock was already taken at confirmation."""
    require_sale_access(actor, SaleOperation.COMPLETE, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_transition(sale, SaleStatus.COMPLETED, action="complete")

        now = utcnow()
        sale.status = SaleStatus.COMPLETED
        sale.completed_at = now
        sale.sale_date = now

    return sale


def cancel_sale(
    actor: Actor,
    sale_id: int,
    reason: str | None = None,
    policy: AccessPolicy | None = None,
) -> Sale:
    """
    DRAFT/PENDING/CONFIRMED -> CANCELLED.

    A CONFIRMED sale gives every item's quantity back to the ledger in the
    same transaction as the status change. DRAFT/PENDING never held stock.
    """
    require_sale_access(actor, SaleOperation.CANCEL, sale_id, policy=policy)

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        require_transition(sale, SaleStatus.CANCELLED, action="cancel")

        if sale.status == SaleStatus.CONFIRMED:
            items = list(sale.items)
            uow.lock_inventory(i.product_id for i in items)
            movement_reason = f"Sale {sale.sale_number} cancelled"
            for item in sorted(items, key=lambda i: i.product_id):
                inventory_service.increment(
                    uow, item.product_id, item.quantity,
                    sale_id=sale.id, user_id=actor.user_id, reason=movement_reason,
                )

        sale.status = SaleStatus.CANCELLED
        sale.cancelled_at = utcnow()
        sale.cancelled_by_user_id = actor.user_id
        sale.cancel_reason = reason

    return sale


def validate_stock(actor: Actor, req: StockCheckRequest, policy: AccessPolicy | None = None) -> dict:
    """Availability report for prospective items. Reads only."""
    require_access(actor, SaleOperation.CREATE, owner_user_id=None, resource="sale", policy=policy)
    return inventory_service.check_stock(req.items)
