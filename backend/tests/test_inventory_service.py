"""
Inventory ledger and transaction boundary tests.

Verifies:
- decrement() is guarded: a short decrement raises and leaves stock as it was
- increment()/decrement() write one movement each and reject non-positive amounts
- A failure part-way through confirm rolls back every decrement and the status
- A stale sale version surfaces as ConcurrentModificationError
"""

import pytest
from sqlalchemy import update
from sqlalchemy.orm.exc import StaleDataError

from comercial.errors import (
    ConcurrentModificationError,
    InsufficientStock,
    NotFoundError,
    ValidationError,
)
from comercial.extensions import db
from comercial.models import InventoryMovement, MovementType, Sale, SaleStatus
from comercial.services import inventory_service, sales_service
from comercial.services.unit_of_work import UnitOfWork


class TestLedger:
    def test_decrement_short_raises_and_keeps_quantity(self, make_product, stock_of):
        product = make_product("P-1", stock=2)

        with pytest.raises(InsufficientStock) as exc:
            with UnitOfWork() as uow:
                inventory_service.decrement(uow, product.id, 3)

        assert exc.value.items == [{"product_id": product.id, "requested": 3, "available": 2}]
        assert stock_of(product.id) == 2
        assert db.session.query(InventoryMovement).count() == 0

    def test_decrement_without_inventory_row_is_short(self, make_product):
        product = make_product("P-1", stock=None)

        with pytest.raises(InsufficientStock) as exc:
            with UnitOfWork() as uow:
                inventory_service.decrement(uow, product.id, 1)

        assert exc.value.items[0]["available"] == 0

    def test_decrement_to_zero_records_out_movement(self, seller, make_product, stock_of):
        product = make_product("P-1", stock=5)

        with UnitOfWork() as uow:
            inventory_service.decrement(uow, product.id, 5, user_id=seller.id, reason="manual")

        assert stock_of(product.id) == 0
        movement = db.session.query(InventoryMovement).one()
        assert (movement.type, movement.quantity, movement.user_id) == (MovementType.OUT, 5, seller.id)

    def test_increment_records_in_movement(self, make_product, stock_of):
        product = make_product("P-1", stock=5)

        with UnitOfWork() as uow:
            inventory_service.increment(uow, product.id, 7)

        assert stock_of(product.id) == 12
        movement = db.session.query(InventoryMovement).one()
        assert (movement.type, movement.quantity) == (MovementType.IN, 7)

    def test_increment_without_inventory_row(self, make_product):
        product = make_product("P-1", stock=None)

        with pytest.raises(NotFoundError):
            with UnitOfWork() as uow:
                inventory_service.increment(uow, product.id, 1)

    @pytest.mark.parametrize("amount", [0, -3, True])
    @pytest.mark.parametrize("operation", ["decrement", "increment"])
    def test_non_positive_amount_rejected(self, make_product, stock_of, operation, amount):
        product = make_product("P-1", stock=5)

        with pytest.raises(ValidationError):
            with UnitOfWork() as uow:
                getattr(inventory_service, operation)(uow, product.id, amount)

        assert stock_of(product.id) == 5


class TestRollback:
    def test_failure_mid_confirm_rolls_back_everything(
        self, monkeypatch, seller_actor, make_product, make_sale, stock_of,
    ):
        a = make_product("P-A", stock=10)
        b = make_product("P-B", stock=10)
        sale = make_sale(seller_actor, items=[(a, 3), (b, 4)], status="PENDING")

        real_decrement = inventory_service.decrement
        calls = []

        def failing_decrement(uow, product_id, amount, **kwargs):
            calls.append(product_id)
            if len(calls) == 2:
                raise RuntimeError("disk I/O error")
            return real_decrement(uow, product_id, amount, **kwargs)

        monkeypatch.setattr(inventory_service, "decrement", failing_decrement)

        with pytest.raises(RuntimeError):
            sales_service.confirm_sale(seller_actor, sale.id)

        assert len(calls) == 2
        assert stock_of(a.id) == 10
        assert stock_of(b.id) == 10
        assert db.session.get(Sale, sale.id).status == SaleStatus.PENDING
        assert db.session.query(InventoryMovement).count() == 0


class TestStaleVersion:
    def test_stale_sale_version_on_commit(self, seller_actor, make_sale):
        sale = make_sale(seller_actor)

        with pytest.raises(ConcurrentModificationError):
            with UnitOfWork() as uow:
                locked = uow.lock_sale(sale.id)
                # Another writer bumped the version after our read
                uow.session.execute(
                    update(Sale.__table__)
                    .where(Sale.__table__.c.id == sale.id)
                    .values(version_id=Sale.__table__.c.version_id + 1)
                )
                locked.notes = "late edit"

        refreshed = db.session.get(Sale, sale.id)
        db.session.refresh(refreshed)
        assert refreshed.notes is None

    def test_stale_data_inside_unit_is_mapped(self, db_session):
        with pytest.raises(ConcurrentModificationError) as exc:
            with UnitOfWork():
                raise StaleDataError("UPDATE statement on table 'sales' expected to update 1 row(s); 0 were matched.")

        assert isinstance(exc.value.__cause__, StaleDataError)
