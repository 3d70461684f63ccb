"""
Sale access policy tests.

Verifies:
- Salespeople act only on their own sales; managers and admins on any
- Denials raise before any state change and are written to security_events
- A policy injected through app config (or per call) replaces the default
"""

import pytest

from comercial.errors import PermissionDeniedError
from comercial.extensions import db
from comercial.models import Sale, SaleItem, SaleStatus, SecurityEvent, UserRole
from comercial.permissions import SaleOperation
from comercial.services import sale_item_service, sales_service
from comercial.services.access_policy import Actor, role_access_policy
from comercial.validation import AddItemRequest


class TestRolePolicy:
    def test_salesperson_owns_own_sales(self):
        actor = Actor(user_id=1, role=UserRole.SALESPERSON)
        assert role_access_policy(actor, SaleOperation.CONFIRM, 1)
        assert not role_access_policy(actor, SaleOperation.CONFIRM, 2)

    def test_salesperson_cannot_list_all(self):
        actor = Actor(user_id=1, role=UserRole.SALESPERSON)
        assert not role_access_policy(actor, SaleOperation.LIST_ALL, None)

    @pytest.mark.parametrize("role", [UserRole.ADMIN, UserRole.MANAGER])
    def test_elevated_roles_act_on_any_sale(self, role):
        actor = Actor(user_id=1, role=role)
        assert role_access_policy(actor, SaleOperation.CANCEL, 99)
        assert role_access_policy(actor, SaleOperation.LIST_ALL, None)

    def test_unknown_operation_denied(self):
        actor = Actor(user_id=1, role=UserRole.ADMIN)
        assert not role_access_policy(actor, "DELETE_SALE", 1)


class TestEnforcement:
    def test_other_salesperson_cannot_confirm(
        self, seller_actor, other_seller_actor, make_product, make_sale, stock_of,
    ):
        product = make_product("P", stock=10)
        sale = make_sale(seller_actor, items=[(product, 4)], status="PENDING")

        with pytest.raises(PermissionDeniedError):
            sales_service.confirm_sale(other_seller_actor, sale.id)

        assert db.session.get(Sale, sale.id).status == SaleStatus.PENDING
        assert stock_of(product.id) == 10

        event = db.session.query(SecurityEvent).filter_by(event_type="PERMISSION_DENIED").one()
        assert event.user_id == other_seller_actor.user_id
        assert event.action == SaleOperation.CONFIRM
        assert event.resource == f"sale:{sale.id}"
        assert event.success is False

    def test_other_salesperson_cannot_add_items(self, seller_actor, other_seller_actor, make_product, make_sale):
        product = make_product("P")
        sale = make_sale(seller_actor)

        with pytest.raises(PermissionDeniedError):
            sale_item_service.add_item(other_seller_actor, sale.id, AddItemRequest(product_id=product.id, quantity=1))
        assert db.session.query(SaleItem).count() == 0

    def test_manager_can_confirm_salesperson_sale(self, seller_actor, manager_actor, make_product, make_sale, stock_of):
        product = make_product("P", stock=10)
        sale = make_sale(seller_actor, items=[(product, 4)], status="PENDING")

        sales_service.confirm_sale(manager_actor, sale.id)

        assert stock_of(product.id) == 6
        assert db.session.query(SecurityEvent).count() == 0

    def test_configured_policy_replaces_default(self, app, admin_actor, make_sale):
        sale = make_sale(admin_actor)
        calls = []

        def read_only(actor, operation, owner_user_id):
            calls.append((actor.user_id, operation, owner_user_id))
            return operation == SaleOperation.VIEW

        app.config["SALE_ACCESS_POLICY"] = read_only

        assert sales_service.get_sale(admin_actor, sale.id).id == sale.id
        with pytest.raises(PermissionDeniedError):
            sales_service.submit_sale(admin_actor, sale.id)

        assert calls == [
            (admin_actor.user_id, SaleOperation.VIEW, admin_actor.user_id),
            (admin_actor.user_id, SaleOperation.SUBMIT, admin_actor.user_id),
        ]

    def test_policy_argument_overrides_config(self, seller_actor, make_sale):
        sale = make_sale(seller_actor)

        with pytest.raises(PermissionDeniedError):
            sales_service.cancel_sale(seller_actor, sale.id, policy=lambda *_: False)

        assert db.session.get(Sale, sale.id).status == SaleStatus.DRAFT
