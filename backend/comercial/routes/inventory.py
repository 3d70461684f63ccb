# backend/comercial/routes/inventory.py
"""
Inventory ledger read routes.

SECURITY: All routes require authentication. Stock is only mutated by sale
confirmation and cancellation; there are no write endpoints here.
"""
from flask import Blueprint, jsonify, request

from ..decorators import require_auth
from ..errors import SaleError
from ..services import inventory_service
from ..validation import coerce_int
from .sales import error_response, internal_error


inventory_bp = Blueprint("inventory", __name__, url_prefix="/api/inventory")

MAX_MOVEMENTS_LIMIT = 500


@inventory_bp.get("/<int:product_id>")
@require_auth
def get_stock_route(product_id: int):
    try:
        return jsonify(inventory_service.get_stock_position(product_id)), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to load inventory")


@inventory_bp.get("/<int:product_id>/movements")
@require_auth
def list_movements_route(product_id: int):
    """
    Movement history, newest first.

    Query: limit (default 50, max 500)
    """
    try:
        raw_limit = request.args.get("limit")
        limit = coerce_int("limit", raw_limit) if raw_limit else 50
        limit = max(1, min(limit, MAX_MOVEMENTS_LIMIT))

        movements = inventory_service.list_movements(product_id, limit=limit)
        return jsonify({
            "product_id": product_id,
            "movements": [m.to_dict() for m in movements],
        }), 200

    except SaleError as e:
        return error_response(e)
    except Exception:
        return internal_error("Failed to list inventory movements")
