"""
Pytest fixtures for the sales engine backend tests.

Provides test database setup, users per role, catalog/stock factories and
test client identity helpers.
"""

import pytest

from comercial import create_app
from comercial.extensions import db
from comercial.models import Customer, Inventory, Product, User, UserRole
from comercial.services.access_policy import Actor


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app({
        'TESTING': True,
        'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
        'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    })

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()
        app.config['SALE_ACCESS_POLICY'] = None


def _make_user(db_session, name: str, email: str, role: UserRole, is_active: bool = True) -> User:
    user = User(name=name, email=email, role=role, is_active=is_active)
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture(scope='function')
def admin(db_session):
    return _make_user(db_session, "Admin", "admin@comercial.test", UserRole.ADMIN)


@pytest.fixture(scope='function')
def manager(db_session):
    return _make_user(db_session, "Manager", "manager@comercial.test", UserRole.MANAGER)


@pytest.fixture(scope='function')
def seller(db_session):
    """Salesperson who owns the sales created in most tests."""
    return _make_user(db_session, "Seller One", "seller1@comercial.test", UserRole.SALESPERSON)


@pytest.fixture(scope='function')
def other_seller(db_session):
    return _make_user(db_session, "Seller Two", "seller2@comercial.test", UserRole.SALESPERSON)


@pytest.fixture(scope='function')
def customer(db_session):
    customer = Customer(name="Mercado Central", document="12.345.678/0001-90", is_active=True)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def inactive_customer(db_session):
    customer = Customer(name="Closed Account", is_active=False)
    db_session.add(customer)
    db_session.commit()
    return customer


@pytest.fixture(scope='function')
def make_product(db_session):
    """
    Factory: make_product(code, price_cents=1000, stock=10, min_stock=2, is_active=True).

    stock=None creates the product without an inventory row.
    """
    def _make(code: str, price_cents: int = 1000, stock: int | None = 10,
              min_stock: int = 2, is_active: bool = True) -> Product:
        product = Product(code=code, name=f"Product {code}", price_cents=price_cents, is_active=is_active)
        if stock is not None:
            product.inventory = Inventory(quantity=stock, min_stock=min_stock)
        db_session.add(product)
        db_session.commit()
        return product

    return _make


# Actors as the authentication layer hands them to the services

@pytest.fixture(scope='function')
def admin_actor(admin):
    return Actor.from_user(admin)


@pytest.fixture(scope='function')
def manager_actor(manager):
    return Actor.from_user(manager)


@pytest.fixture(scope='function')
def seller_actor(seller):
    return Actor.from_user(seller)


@pytest.fixture(scope='function')
def other_seller_actor(other_seller):
    return Actor.from_user(other_seller)


# Identity headers for the test client

@pytest.fixture(scope='function')
def admin_headers(admin):
    return {'X-User-Id': str(admin.id)}


@pytest.fixture(scope='function')
def seller_headers(seller):
    return {'X-User-Id': str(seller.id)}


@pytest.fixture(scope='function')
def other_seller_headers(other_seller):
    return {'X-User-Id': str(other_seller.id)}


@pytest.fixture(scope='function')
def stock_of(db_session):
    """stock_of(product_id) -> on-hand quantity read straight from the ledger."""
    def _stock(product_id: int) -> int:
        return db_session.query(Inventory.quantity).filter_by(product_id=product_id).scalar()

    return _stock


@pytest.fixture(scope='function')
def make_sale(customer):
    """
    Factory: make_sale(actor, [(product, quantity), ...], status="DRAFT").

    status="PENDING" submits the sale after adding the items.
    """
    from comercial.services import sales_service
    from comercial.validation import AddItemRequest, CreateSaleRequest

    def _make(actor: Actor, items=(), status: str = "DRAFT", **fields):
        req = CreateSaleRequest(
            customer_id=customer.id,
            items=tuple(AddItemRequest(product_id=p.id, quantity=q) for p, q in items),
            **fields,
        )
        sale = sales_service.create_sale(actor, req)
        if status == "PENDING":
            sale = sales_service.submit_sale(actor, sale.id)
        return sale

    return _make
