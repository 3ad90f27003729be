# Overview: Flask API routes for stock transitions; parses input and returns JSON responses.

from dataclasses import asdict

from flask import Blueprint, request, jsonify, current_app

from ..schemas import TransitionQuery, TransitionRequest
from ..services import ledger_service
from ..validation import LedgerError

"""
Time semantics:
- start_date / end_date accept ISO-8601 dates or datetimes with Z/offsets;
  they are normalized to UTC-naive and both bounds are inclusive.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/stock-transitions")


@ledger_bp.get("")
def list_transitions_route():
    """
    List stock transitions, newest first.

    Query params:
    - page: int (default 1)
    - limit: int (default LEDGER_DEFAULT_PAGE_SIZE, max LEDGER_MAX_PAGE_SIZE)
    - product_id: int (optional)
    - transaction_type: sale|purchase|customer_return|supplier_return|adjustment|all
    - start_date, end_date: ISO-8601 (optional, inclusive)
    """
    try:
        query = TransitionQuery.from_args(
            request.args,
            default_limit=current_app.config["LEDGER_DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["LEDGER_MAX_PAGE_SIZE"],
        )
        return jsonify(ledger_service.list_transitions(**asdict(query))), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to fetch stock transitions")
        return jsonify({"error": "Internal server error"}), 500


@ledger_bp.post("")
def create_transition_route():
    """
    Record a stock transition and update the product's stock.

    Request body:
    {
        "product_id": 1,
        "transaction_type": "purchase",
        "quantity": 12,                  (target stock for "adjustment")
        "unit_price_cents": 450,         (optional, default 0)
        "reference": "PO-1001",          (optional)
        "party": {"name": "Acme", "type": "supplier", "id": "7"},  (optional)
        "user_id": "u-1",
        "user_name": "alice",
        "notes": "weekly delivery"       (optional)
    }

    Returns:
        201: Transition created
        400: Validation failure, invalid type/quantity, insufficient stock
        404: Product not found
        409: Concurrent modification
    """
    try:
        req = TransitionRequest.from_json(request.get_json(silent=True))
        transition = ledger_service.record_transition(
            product_id=req.product_id,
            transaction_type=req.transaction_type,
            quantity=req.quantity,
            user_id=req.user_id,
            user_name=req.user_name,
            unit_price_cents=req.unit_price_cents,
            reference=req.reference,
            party=asdict(req.party) if req.party else None,
            notes=req.notes,
        )
        return jsonify(transition.to_dict()), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create stock transition")
        return jsonify({"error": "Internal server error"}), 500
