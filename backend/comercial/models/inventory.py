from __future__ import annotations

import enum

from ..extensions import db
from ..time_utils import to_utc_z


class Product(db.Model):
    """
    Product master data (read model for the sales engine).

    Catalog CRUD is owned elsewhere. Sales read three things from here:
    whether the product exists, whether it is active, and its current price.
    The price is copied onto the sale item when the item is added and never
    read again for that item.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("code", name="uq_products_code"),
        db.Index("ix_products_active_name", "is_active", "name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    # Authoritative storage in cents (frontend may only format for display)
    price_cents = db.Column(db.Integer, nullable=False)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "description": self.description,
            "price_cents": self.price_cents,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class Inventory(db.Model):
    """
    Per-product stock record (the ledger row).

    INVARIANTS:
    - Exactly one row per product (unique product_id).
    - quantity never goes below zero; the sales engine mutates it only with
      guarded UPDATEs inside a unit of work (see inventory_service).
    - min_stock / max_stock are thresholds for read-side flags only.
    """
    __tablename__ = "inventory"
    __table_args__ = (
        db.UniqueConstraint("product_id", name="uq_inventory_product"),
        db.CheckConstraint("quantity >= 0", name="ck_inventory_quantity_non_negative"),
        db.CheckConstraint("min_stock >= 0", name="ck_inventory_min_stock_non_negative"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Integer, nullable=False, default=0)
    min_stock = db.Column(db.Integer, nullable=False, default=10)
    max_stock = db.Column(db.Integer, nullable=True)
    location = db.Column(db.String(100), nullable=True)

    last_update = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    product = db.relationship("Product", backref=db.backref("inventory", uselist=False, lazy=True))

    @property
    def is_low_stock(self) -> bool:
        return self.quantity <= self.min_stock

    @property
    def is_out_of_stock(self) -> bool:
        return self.quantity == 0

    @property
    def is_overstock(self) -> bool:
        return self.max_stock is not None and self.quantity > self.max_stock

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "product_id": self.product_id,
            "quantity": self.quantity,
            "min_stock": self.min_stock,
            "max_stock": self.max_stock,
            "location": self.location,
            "is_low_stock": self.is_low_stock,
            "is_out_of_stock": self.is_out_of_stock,
            "is_overstock": self.is_overstock,
            "last_update": to_utc_z(self.last_update),
        }


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"


class InventoryMovement(db.Model):
    """
    Append-only record of inventory ledger mutations.

    The sales engine writes OUT rows when a sale is confirmed (stock reserved)
    and IN rows when a confirmed sale is cancelled (stock released), in the same
    DB transaction as the quantity change.

    IMMUTABLE: Records are never updated or deleted.
    """
    __tablename__ = "inventory_movements"
    __table_args__ = (
        db.Index("ix_inventory_movements_product_created", "product_id", "created_at"),
        db.CheckConstraint("quantity > 0", name="ck_inventory_movements_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    inventory_id = db.Column(db.Integer, db.ForeignKey("inventory.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    type = db.Column(db.Enum(MovementType, native_enum=False, length=16), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    reason = db.Column(db.String(500), nullable=True)

    # Attribution
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=True, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    inventory = db.relationship("Inventory", backref=db.backref("movements", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "inventory_id": self.inventory_id,
            "product_id": self.product_id,
            "type": self.type.value,
            "quantity": self.quantity,
            "reason": self.reason,
            "sale_id": self.sale_id,
            "user_id": self.user_id,
            "created_at": to_utc_z(self.created_at),
        }
