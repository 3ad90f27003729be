# Overview: Read-only stock reporting over the ledger and the catalog.

from __future__ import annotations

from datetime import datetime

from flask import current_app
from sqlalchemy import func

from ..extensions import db
from ..models import Product, StockTransition
from .transition_rules import TRANSACTION_TYPES


def stock_movement_summary(start_date: datetime | None = None, end_date: datetime | None = None) -> list[dict]:
    """
    Count and total value of transitions per kind, inclusive date bounds.

    Every kind is present in the result, with zeros when nothing happened.
    """
    q = db.session.query(
        StockTransition.transaction_type,
        func.count(StockTransition.id),
        func.coalesce(func.sum(StockTransition.quantity), 0),
        func.coalesce(func.sum(StockTransition.total_value_cents), 0),
    )
    if start_date is not None:
        q = q.filter(StockTransition.created_at >= start_date)
    if end_date is not None:
        q = q.filter(StockTransition.created_at <= end_date)

    rows = {
        kind: (int(count), int(units), int(value))
        for kind, count, units, value in q.group_by(StockTransition.transaction_type).all()
    }

    summary = []
    for kind in TRANSACTION_TYPES:
        count, units, value = rows.get(kind, (0, 0, 0))
        summary.append({
            "transaction_type": kind,
            "count": count,
            "total_quantity": units,
            "total_value_cents": value,
        })
    return summary


def stock_report(start_date: datetime | None = None, end_date: datetime | None = None) -> dict:
    threshold = current_app.config.get("LOW_STOCK_THRESHOLD", 10)

    low_stock_items = (
        db.session.query(Product)
        .filter(Product.stock > 0, Product.stock < threshold)
        .order_by(Product.stock.asc(), Product.name.asc())
        .all()
    )
    out_of_stock = db.session.query(func.count(Product.id)).filter(Product.stock == 0).scalar() or 0
    total_units = db.session.query(func.coalesce(func.sum(Product.stock), 0)).scalar() or 0

    return {
        "summary": stock_movement_summary(start_date, end_date),
        "low_stock_threshold": threshold,
        "low_stock_products": len(low_stock_items),
        "out_of_stock_products": int(out_of_stock),
        "total_units_on_hand": int(total_units),
        "low_stock": [
            {"id": p.id, "name": p.name, "stock": p.stock, "min_stock": p.min_stock}
            for p in low_stock_items
        ],
    }
