# Overview: Flask API routes for catalog products; parses input and returns JSON responses.

# backend/stockledger/routes/products.py
"""
Product catalog routes.

`stock` can only be given on create. To change stock afterwards, record a
stock transition (POST /api/stock-transitions) or process a return.
"""
from flask import Blueprint, request, current_app

from ..models import Product
from ..services import products_service
from ..validation import (
    LedgerError,
    ModelValidationPolicy,
    ValidationError,
    coerce_int,
    enforce_rules_product,
    validate_payload,
)

PRODUCT_FIELDS = frozenset({
    "name",
    "description",
    "category",
    "cost_price_cents",
    "sell_price_cents",
    "min_stock",
    "discount_percent",
    "barcode",
    "supplier",
})

PRODUCT_CREATE_POLICY = ModelValidationPolicy(
    writable_fields=PRODUCT_FIELDS | {"stock"},
    required_on_create=frozenset({"name", "category", "cost_price_cents", "sell_price_cents"}),
)

PRODUCT_UPDATE_POLICY = ModelValidationPolicy(writable_fields=PRODUCT_FIELDS)

products_bp = Blueprint("products", __name__, url_prefix="/api/products")


@products_bp.get("")
def list_products():
    """
    List products ordered by name.

    Query params:
    - category: str (optional)
    - low_stock: "true" to return only 0 < stock < LOW_STOCK_THRESHOLD
    - page: int (default 1), per_page: int (default 50, max 500)
    """
    try:
        page = request.args.get("page")
        per_page = request.args.get("per_page")
        result = products_service.list_products(
            category=request.args.get("category") or None,
            low_stock=(request.args.get("low_stock", "").lower() == "true"),
            page=1 if page in (None, "") else coerce_int(page, "page"),
            per_page=50 if per_page in (None, "") else coerce_int(per_page, "per_page"),
        )
        return result, 200
    except ValidationError as e:
        return e.to_dict(), e.status_code


@products_bp.get("/<int:product_id>")
def get_product_route(product_id: int):
    try:
        return products_service.get_product(product_id).to_dict(), 200
    except LedgerError as e:
        return e.to_dict(), e.status_code


@products_bp.post("")
def create_product_route():
    """Create a new product. `stock` defaults to 0."""
    payload = request.get_json(silent=True) or {}

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_CREATE_POLICY, partial=False)
        enforce_rules_product(patch)
        created = products_service.create_product(patch=patch)
    except LedgerError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to create product")
        return {"error": "Internal server error"}, 500

    return created.to_dict(), 201


@products_bp.put("/<int:product_id>")
def update_product_route(product_id: int):
    """Update catalog fields. Sending `stock` is rejected."""
    payload = request.get_json(silent=True) or {}

    if isinstance(payload, dict) and "stock" in payload:
        return {
            "error": "stock cannot be edited directly; record a stock transition instead",
            "kind": "ValidationFailure",
        }, 400

    try:
        patch = validate_payload(model=Product, payload=payload, policy=PRODUCT_UPDATE_POLICY, partial=True)
        enforce_rules_product(patch)
        updated = products_service.update_product(product_id, patch=patch)
    except LedgerError as e:
        return e.to_dict(), e.status_code
    except Exception:
        current_app.logger.exception("Failed to update product")
        return {"error": "Internal server error"}, 500

    return updated.to_dict(), 200
