# backend/stockledger/services/products_service.py
"""
Catalog operations for stockable products.

Stock may be seeded on creation. Updates never touch `stock`: every later
change goes through the ledger so that it leaves a StockTransition behind.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import Product
from ..validation import ConflictError, ItemNotFoundError

PRODUCT_MUTABLE_FIELDS = {
    "name",
    "description",
    "category",
    "cost_price_cents",
    "sell_price_cents",
    "min_stock",
    "discount_percent",
    "barcode",
    "supplier",
}


def _ensure_barcode_unique(barcode: str | None, *, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    q = db.session.query(Product.id).filter(Product.barcode == barcode)
    if exclude_id is not None:
        q = q.filter(Product.id != exclude_id)
    if q.first() is not None:
        raise ConflictError("Barcode already exists")


def _commit_product(product: Product) -> None:
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.warning("Product write rejected: %s", exc)
        raise ConflictError("Barcode already exists") from exc


def get_product(product_id: int) -> Product:
    product = db.session.query(Product).filter_by(id=product_id).first()
    if product is None:
        raise ItemNotFoundError(f"Product {product_id} not found")
    return product


def create_product(*, patch: dict) -> Product:
    """
    Create product using a validated patch dict.

    Raises:
        ConflictError: If the barcode is already used by another product
    """
    _ensure_barcode_unique(patch.get("barcode"))

    product = Product(**patch)
    db.session.add(product)
    _commit_product(product)
    return product


def update_product(product_id: int, *, patch: dict) -> Product:
    product = get_product(product_id)
    if "barcode" in patch:
        _ensure_barcode_unique(patch["barcode"], exclude_id=product.id)

    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(product, k, v)

    _commit_product(product)
    return product


def list_products(
    *,
    category: str | None = None,
    low_stock: bool = False,
    page: int = 1,
    per_page: int = 50,
) -> dict:
    """
    Product listing ordered by name, with optional category and low-stock filters.

    Low stock means 0 < stock < LOW_STOCK_THRESHOLD.
    """
    q = db.session.query(Product)
    if category:
        q = q.filter(Product.category == category)
    if low_stock:
        threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)
        q = q.filter(Product.stock > 0, Product.stock < threshold)

    per_page = max(1, min(per_page, 500))
    page = max(page, 1)

    total = q.count()
    total_pages = (total + per_page - 1) // per_page if total > 0 else 1
    products = (
        q.order_by(Product.name.asc(), Product.id.asc())
        .offset((page - 1) * per_page)
        .limit(per_page)
        .all()
    )

    return {
        "items": [p.to_dict() for p in products],
        "count": len(products),
        "pagination": {
            "page": page,
            "per_page": per_page,
            "total": total,
            "total_pages": total_pages,
            "has_next": page < total_pages,
            "has_prev": page > 1,
        },
    }
