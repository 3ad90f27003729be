# Overview: Flask API routes for returns; parses input and returns JSON responses.

# backend/stockledger/routes/returns.py
"""
Return Processing API Routes

- Customer returns add stock, supplier returns remove it
- Every return is recorded with the stock before/after and the acting user
- The acting user comes from the X-User-Info header (see require_actor)
"""

from flask import Blueprint, request, jsonify, g, current_app

from ..schemas import ReturnQuery, ReturnRequest
from ..services import return_service
from ..validation import LedgerError
from ..decorators import require_actor


returns_bp = Blueprint("returns", __name__, url_prefix="/api/returns")


@returns_bp.post("")
@require_actor
def create_return_route():
    """
    Process a return.

    Headers:
        X-User-Info: {"id": "u-1", "username": "alice"}

    Request body:
    {
        "product_id": 1,
        "return_type": "customer",   (customer | supplier)
        "quantity": 2,
        "reason": "Damaged packaging",
        "notes": "..."               (optional)
    }

    Returns:
        201: {"message", "return", "new_stock", "transition_id"}
        400: Invalid input or insufficient stock (supplier returns)
        404: Product not found
    """
    try:
        req = ReturnRequest.from_json(request.get_json(silent=True))
        result = return_service.process_return(
            product_id=req.product_id,
            return_type=req.return_type,
            quantity=req.quantity,
            reason=req.reason,
            notes=req.notes,
            user_id=g.actor.id,
            user_name=g.actor.name,
        )
        transition = result["transition"]
        return jsonify({
            "message": "Return processed successfully",
            "return": result["return"].to_dict(),
            "new_stock": result["new_stock"],
            "transition_id": transition.id if transition is not None else None,
        }), 201
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create return")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("")
def list_returns_route():
    """
    List returns, most recent first.

    Query params: page, limit, return_type (customer|supplier|all), product_id
    """
    try:
        query = ReturnQuery.from_args(
            request.args,
            default_limit=current_app.config["LEDGER_DEFAULT_PAGE_SIZE"],
            max_limit=current_app.config["LEDGER_MAX_PAGE_SIZE"],
        )
        result = return_service.list_returns(
            page=query.page,
            limit=query.limit,
            return_type=query.return_type,
            product_id=query.product_id,
        )
        return jsonify(result), 200
    except LedgerError as e:
        return jsonify(e.to_dict()), e.status_code
    except Exception:
        current_app.logger.exception("Failed to list returns")
        return jsonify({"error": "Internal server error"}), 500


@returns_bp.get("/<int:return_id>")
def get_return_route(return_id: int):
    """Get one return with its linked stock transition (null if missing)."""
    return_doc = return_service.get_return(return_id)
    if return_doc is None:
        return jsonify({"error": f"Return {return_id} not found", "kind": "ItemNotFound"}), 404

    transition = return_service.get_linked_transition(return_doc)
    return jsonify({
        "return": return_doc.to_dict(),
        "transition": transition.to_dict() if transition is not None else None,
    }), 200
