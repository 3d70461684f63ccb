# Overview: Transaction boundary and row locking for sale mutations; the atomic unit used by confirm/cancel.

"""
Unit of Work

Every sale mutation runs inside one UnitOfWork:

    with UnitOfWork() as uow:
        sale = uow.lock_sale(sale_id)
        stock = uow.lock_inventory([...])
        ...

- Entering opens the write transaction. On SQLite this is BEGIN IMMEDIATE,
  which takes the database write lock up front, so two writers are
  serialized and the second one reads the first one's committed result.
  Other stores honor SELECT ... FOR UPDATE on the rows we lock.
- Leaving normally commits. Leaving with any exception rolls back everything
  and re-raises. There are no automatic retries.
- Inventory rows are always locked in ascending product_id order so that two
  confirmations over overlapping product sets cannot deadlock each other.
"""

from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.orm.exc import StaleDataError

from ..errors import ConcurrentModificationError, SaleNotFound
from ..extensions import db
from ..models import Inventory, Sale


def lock_for_update(query):
    """
    Apply row-level locking for critical operations.

    populate_existing() makes the locked read overwrite any stale copy the
    session already holds. SQLite ignores FOR UPDATE; BEGIN IMMEDIATE covers it.
    """
    return query.with_for_update().populate_existing()


class UnitOfWork:
    """Explicit transaction boundary passed through sale operations."""

    def __init__(self, session=None):
        self.session = session or db.session

    @property
    def dialect_name(self) -> str:
        return self.session.get_bind().dialect.name

    def __enter__(self) -> "UnitOfWork":
        if self.dialect_name == "sqlite":
            self.session.execute(text("BEGIN IMMEDIATE"))
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        if exc_type is not None:
            self.session.rollback()
            if issubclass(exc_type, StaleDataError):
                raise ConcurrentModificationError(
                    "Sale was modified concurrently; reload and retry",
                ) from exc
            return False

        try:
            self.session.commit()
        except StaleDataError as commit_exc:
            self.session.rollback()
            raise ConcurrentModificationError(
                "Sale was modified concurrently; reload and retry",
            ) from commit_exc
        except Exception:
            self.session.rollback()
            raise
        return False

    def add(self, obj) -> None:
        self.session.add(obj)

    def flush(self) -> None:
        self.session.flush()

    def lock_sale(self, sale_id: int) -> Sale:
        sale = lock_for_update(self.session.query(Sale).filter_by(id=sale_id)).first()
        if sale is None:
            raise SaleNotFound(sale_id)
        return sale

    def lock_inventory(self, product_ids) -> dict[int, Inventory]:
        """
        Lock the inventory rows for product_ids and return them keyed by product_id.

        Products without an inventory row are simply absent from the result.
        """
        ids = sorted(set(product_ids))
        if not ids:
            return {}
        rows = lock_for_update(
            self.session.query(Inventory)
            .filter(Inventory.product_id.in_(ids))
            .order_by(Inventory.product_id)
        ).all()
        return {row.product_id: row for row in rows}
