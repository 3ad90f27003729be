# Overview: Flask API routes for applying checkout orders to stock.

from dataclasses import asdict

from flask import Blueprint, request, jsonify, current_app

from ..schemas import OrderStockRequest
from ..services import checkout_service
from ..validation import LedgerError

orders_bp = Blueprint("orders", __name__, url_prefix="/api/orders")


@orders_bp.post("/stock")
def apply_order_stock_route():
    """
    Deduct stock for every line of a completed order.

    Request body:
    {
        "order_reference": "ORD-1042",
        "order_type": "dine-in",                    (optional)
        "note": "no onions",                        (optional)
        "customer": {"id": "c-9", "name": "Bob"},   (optional)
        "lines": [{"product_id": 1, "quantity": 2}],
        "user_id": "u-1",
        "user_name": "alice"
    }

    Returns:
        200: every line applied
        207: some lines failed; see "errors" (applied lines stay applied)
        400: invalid request
    """
    try:
        req = OrderStockRequest.from_json(request.get_json(silent=True))
        result = checkout_service.apply_order_stock(
            order_reference=req.order_reference,
            lines=req.lines,
            user_id=req.user_id,
            user_name=req.user_name,
            order_type=req.order_type,
            note=req.note,
            customer=asdict(req.customer) if req.customer else None,
        )
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update order stock")
        return jsonify({"error": "Internal server error"}), 500

    if result["errors"]:
        return jsonify({"error": "Some stock updates failed", **result}), 207
    return jsonify({"message": "Stock updated successfully", **result}), 200
