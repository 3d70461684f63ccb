# Overview: Read-only catalog lookups (products, customers) consumed by the sales engine.

from __future__ import annotations

from ..errors import CustomerNotFound, ProductInactive, ProductNotFound
from ..extensions import db
from ..models import Customer, Product


def get_active_customer(customer_id: int, session=None) -> Customer:
    """Customer must exist and be active; both failures read as not found."""
    session = session or db.session
    customer = session.get(Customer, customer_id)
    if customer is None or not customer.is_active:
        raise CustomerNotFound(customer_id)
    return customer


def get_sellable_product(product_id: int, session=None) -> Product:
    session = session or db.session
    product = session.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if not product.is_active:
        raise ProductInactive(product_id)
    return product
