from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class SaleStatus(str, enum.Enum):
    """
    Closed set of sale lifecycle states.

    Allowed transitions live in services/lifecycle_service.py (single table).
    REFUNDED is reserved for a refund workflow that this service does not run.
    """
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    REFUNDED = "REFUNDED"


def format_sale_number(sale_id: int) -> str:
    """Display number shown on receipts and screens (e.g., "VD000042")."""
    return f"VD{sale_id:06d}"


class Sale(db.Model):
    """
    Sale document: one customer transaction, its items and lifecycle status.

    WHY: Sales are documents with lifecycle, not just inventory decrements.
    Stock is only reserved when the sale is confirmed.

    INVARIANTS:
    - total_cents == subtotal_cents - discount_cents + tax_cents
    - subtotal_cents == sum(item.total_cents)
    - Never physically deleted; cancellation is a status change.
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_status_sale_date", "status", "sale_date"),
        db.Index("ix_sales_user_status", "user_id", "status"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sales_discount_non_negative"),
        db.CheckConstraint("tax_cents >= 0", name="ck_sales_tax_non_negative"),
        db.CheckConstraint("total_cents >= 0", name="ck_sales_total_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Owning salesperson (creator)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    # Lifecycle status
    status = db.Column(
        db.Enum(SaleStatus, native_enum=False, length=16, validate_strings=True),
        nullable=False,
        default=SaleStatus.DRAFT,
        index=True,
    )

    # Amounts (all in cents)
    subtotal_cents = db.Column(db.Integer, nullable=False, default=0)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    tax_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)

    # Timestamps
    sale_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)

    # Cancel audit trail
    cancelled_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancel_reason = db.Column(db.String(200), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    user = db.relationship("User", foreign_keys=[user_id], backref=db.backref("sales", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def sale_number(self) -> str | None:
        return format_sale_number(self.id) if self.id is not None else None

    def to_dict(self, include_items: bool = False) -> dict:
        from ..services.lifecycle_service import next_statuses

        data = {
            "id": self.id,
            "sale_number": self.sale_number,
            "customer_id": self.customer_id,
            "user_id": self.user_id,
            "status": self.status.value,
            "allowed_transitions": [s.value for s in next_statuses(self.status)],
            "subtotal_cents": self.subtotal_cents,
            "discount_cents": self.discount_cents,
            "tax_cents": self.tax_cents,
            "total_cents": self.total_cents,
            "notes": self.notes,
            "item_count": len(self.items),
            "sale_date": to_utc_z(self.sale_date),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "completed_at": to_utc_z(self.completed_at) if self.completed_at else None,
            "cancelled_by_user_id": self.cancelled_by_user_id,
            "cancelled_at": to_utc_z(self.cancelled_at) if self.cancelled_at else None,
            "cancel_reason": self.cancel_reason,
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class SaleItem(db.Model):
    """
    Line item on a sale.

    unit_price_cents is captured when the item is added and is not linked to
    the live catalog price. A product appears at most once per sale.
    """
    __tablename__ = "sale_items"
    __table_args__ = (
        db.UniqueConstraint("sale_id", "product_id", name="uq_sale_items_sale_product"),
        db.CheckConstraint("quantity > 0", name="ck_sale_items_quantity_positive"),
        db.CheckConstraint("unit_price_cents > 0", name="ck_sale_items_unit_price_positive"),
        db.CheckConstraint("discount_cents >= 0", name="ck_sale_items_discount_non_negative"),
        db.CheckConstraint("total_cents >= 0", name="ck_sale_items_total_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.Integer, nullable=False)
    discount_cents = db.Column(db.Integer, nullable=False, default=0)
    total_cents = db.Column(db.Integer, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    sale = db.relationship(
        "Sale",
        backref=db.backref("items", lazy=True, cascade="all, delete-orphan", order_by="SaleItem.id"),
    )
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "product_name": self.product.name if self.product else None,
            "product_code": self.product.code if self.product else None,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "discount_cents": self.discount_cents,
            "total_cents": self.total_cents,
            "created_at": to_utc_z(self.created_at),
        }
