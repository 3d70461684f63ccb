# Overview: Flask API routes for sales operations; parses input and returns JSON responses.

# backend/comercial/routes/sales.py
"""
Sales API routes

SECURITY: All routes require a resolved caller (require_auth). Per-sale
access is decided by the sale access policy inside the services.

Lifecycle:
    POST /<id>/submit    DRAFT -> PENDING
    POST /<id>/confirm   PENDING -> CONFIRMED (reserves stock)
    POST /<id>/complete  CONFIRMED -> COMPLETED
    POST /<id>/cancel    DRAFT/PENDING/CONFIRMED -> CANCELLED (releases stock if CONFIRMED)
"""

from flask import Blueprint, current_app, g, jsonify, request

from ..decorators import require_auth
from ..errors import SaleError
from ..services import sale_item_service, sales_service
from ..validation import (
    parse_add_item,
    parse_apply_discount,
    parse_cancel,
    parse_create_sale,
    parse_list_filters,
    parse_stock_check,
    parse_update_item,
    parse_update_sale,
)


sales_bp = Blueprint("sales", __name__, url_prefix="/api/sales")


def error_response(e: SaleError):
    return jsonify(e.to_dict()), e.status_code


def internal_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error", "code": "InternalError", "details": {}}), 500


def _log_transition(action: str, sale) -> None:
    current_app.logger.info(
        "Sale %s %s by user %s (status=%s)",
        sale.sale_number, action, g.actor.user_id, sale.status.value,
    )


@sales_bp.get("")
@require_auth
def list_sales_route():
    """
    List sales visible to the caller.

    Query: customer_id, user_id, status, date_from, date_to, page, per_page
    """
    try:
        filters = parse_list_filters(
            request.args,
            default_per_page=current_app.config["SALES_PAGE_SIZE"],
            max_per_page=current_app.config["SALES_MAX_PAGE_SIZE"],
        )
        result = sales_service.list_sales(g.actor, filters)
        return jsonify({
            "sales": [sale.to_dict() for sale in result["sales"]],
            "pagination": result["pagination"],
            "summary": result["summary"],
        }), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list sales")


@sales_bp.post("")
@require_auth
def create_sale_route():
    """Create a DRAFT sale owned by the caller, optionally with items."""
    try:
        req = parse_create_sale(request.get_json(silent=True))
        sale = sales_service.create_sale(g.actor, req)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 201

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to create sale")


@sales_bp.post("/validate-stock")
@require_auth
def validate_stock_route():
    try:
        req = parse_stock_check(request.get_json(silent=True))
        return jsonify(sales_service.validate_stock(g.actor, req)), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to validate stock")


@sales_bp.get("/<int:sale_id>")
@require_auth
def get_sale_route(sale_id: int):
    try:
        sale = sales_service.get_sale(g.actor, sale_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load sale")


@sales_bp.patch("/<int:sale_id>")
@require_auth
def update_sale_route(sale_id: int):
    """Update customer, notes, discount_cents, tax_cents (DRAFT/PENDING only)."""
    try:
        req = parse_update_sale(request.get_json(silent=True))
        sale = sales_service.update_sale(g.actor, sale_id, req)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update sale")


@sales_bp.post("/<int:sale_id>/discount")
@require_auth
def apply_discount_route(sale_id: int):
    """
    Apply a sale-level discount.

    Body: {"discount_type": "FIXED" | "PERCENTAGE", "discount_value": ...}
    FIXED values are cents; PERCENTAGE values are 0..100.
    """
    try:
        req = parse_apply_discount(request.get_json(silent=True))
        sale = sales_service.apply_discount(g.actor, sale_id, req)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to apply discount")


@sales_bp.post("/<int:sale_id>/items")
@require_auth
def add_item_route(sale_id: int):
    try:
        req = parse_add_item(request.get_json(silent=True))
        item = sale_item_service.add_item(g.actor, sale_id, req)
        return jsonify({"item": item.to_dict(), "sale": item.sale.to_dict()}), 201

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to add sale item")


@sales_bp.patch("/<int:sale_id>/items/<int:item_id>")
@require_auth
def update_item_route(sale_id: int, item_id: int):
    try:
        req = parse_update_item(request.get_json(silent=True))
        item = sale_item_service.update_item(g.actor, sale_id, item_id, req)
        return jsonify({"item": item.to_dict(), "sale": item.sale.to_dict()}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to update sale item")


@sales_bp.delete("/<int:sale_id>/items/<int:item_id>")
@require_auth
def remove_item_route(sale_id: int, item_id: int):
    try:
        sale = sale_item_service.remove_item(g.actor, sale_id, item_id)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to remove sale item")


@sales_bp.post("/<int:sale_id>/submit")
@require_auth
def submit_sale_route(sale_id: int):
    try:
        sale = sales_service.submit_sale(g.actor, sale_id)
        _log_transition("submitted", sale)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to submit sale")


@sales_bp.post("/<int:sale_id>/confirm")
@require_auth
def confirm_sale_route(sale_id: int):
    """
    Confirm a PENDING sale and reserve its stock.

    409 InsufficientStock lists every short product; nothing is reserved.
    """
    try:
        sale = sales_service.confirm_sale(g.actor, sale_id)
        _log_transition("confirmed", sale)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to confirm sale")


@sales_bp.post("/<int:sale_id>/complete")
@require_auth
def complete_sale_route(sale_id: int):
    try:
        sale = sales_service.complete_sale(g.actor, sale_id)
        _log_transition("completed", sale)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to complete sale")


@sales_bp.post("/<int:sale_id>/cancel")
@require_auth
def cancel_sale_route(sale_id: int):
    """Cancel a sale. Body (optional): {"reason": "..."}"""
    try:
        req = parse_cancel(request.get_json(silent=True))
        sale = sales_service.cancel_sale(g.actor, sale_id, reason=req.reason)
        _log_transition("cancelled", sale)
        return jsonify({"sale": sale.to_dict(include_items=True)}), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to cancel sale")
