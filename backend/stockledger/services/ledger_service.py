# Overview: Service-layer operations for the stock ledger; records transitions and answers ledger queries.

from __future__ import annotations

from datetime import datetime
from math import ceil

from flask import current_app
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..extensions import db
from ..models import Product, StockTransition
from ..validation import ItemNotFoundError, PersistenceError
from .concurrency import lock_for_update, run_with_retry
from .transition_rules import apply_transition, applied_quantity
"""
Stock Ledger Invariants (authoritative)

- StockTransition rows are append-only: never updated, never deleted.
- new_stock = previous_stock + signed delta (or the target, for adjustments).
- The ledger row and the Product.stock update commit in ONE transaction.
- Identical requests produce distinct rows; the ledger is not deduplicated.
- Product rows are version-checked; a concurrent writer loses with
  StaleDataError and the whole operation is re-run on fresh data.
"""


def load_product(product_id: int, *, lock: bool = False) -> Product:
    query = db.session.query(Product).filter_by(id=product_id)
    if lock:
        query = lock_for_update(query)
    product = query.first()
    if product is None:
        raise ItemNotFoundError(f"Product {product_id} not found")
    return product


def append_transition(
    *,
    product: Product,
    transaction_type: str,
    previous_stock: int,
    new_stock: int,
    user_id: str,
    user_name: str,
    unit_price_cents: int = 0,
    reference: str | None = None,
    party: dict | None = None,
    notes: str | None = None,
    created_at: datetime | None = None,
) -> StockTransition:
    """
    Stage one ledger row in the current session (no commit).

    Does not touch Product.stock; callers own the stock mutation and the
    commit. `party` is a mapping with optional name/type/id keys.
    """
    quantity = applied_quantity(previous_stock, new_stock)
    party = party or {}

    transition = StockTransition(
        product_id=product.id,
        product_name=product.name,
        transaction_type=transaction_type,
        quantity=quantity,
        previous_stock=previous_stock,
        new_stock=new_stock,
        unit_price_cents=unit_price_cents,
        total_value_cents=quantity * unit_price_cents,
        reference=reference,
        party_name=party.get("name"),
        party_type=party.get("type"),
        party_id=party.get("id"),
        user_id=user_id,
        user_name=user_name,
        notes=notes or "",
    )
    if created_at is not None:
        transition.created_at = created_at
    db.session.add(transition)
    db.session.flush()  # ensures transition.id is assigned without committing
    return transition


def commit_or_raise(what: str) -> None:
    """
    Commit the session; translate store failures into PersistenceError.

    StaleDataError / OperationalError pass through untouched so that
    run_with_retry can retry them.
    """
    try:
        db.session.commit()
    except IntegrityError as exc:
        db.session.rollback()
        current_app.logger.exception("Integrity failure while committing %s", what)
        raise PersistenceError(f"Failed to persist {what}") from exc


def record_transition(
    *,
    product_id: int,
    transaction_type: str,
    quantity: int,
    user_id: str,
    user_name: str,
    unit_price_cents: int | None = None,
    reference: str | None = None,
    party: dict | None = None,
    notes: str | None = None,
) -> StockTransition:
    """
    Record one stock-affecting event.

    1. Loads the product (locked where supported) or fails ItemNotFound.
    2. Classifies the event; classifier failures propagate untouched.
    3. Appends the StockTransition and sets Product.stock in one commit.

    For adjustments `quantity` is the target stock; the stored quantity is
    the magnitude actually applied.

    `unit_price_cents` defaults to the product's sell price, read from the
    locked row.

    Raises:
        ItemNotFoundError, InvalidTransactionTypeError, InvalidQuantityError,
        InsufficientStockError, ConflictError, PersistenceError
    """
    def _op() -> StockTransition:
        product = load_product(product_id, lock=True)
        previous_stock = product.stock
        new_stock = apply_transition(previous_stock, transaction_type, quantity)

        transition = append_transition(
            product=product,
            transaction_type=transaction_type,
            previous_stock=previous_stock,
            new_stock=new_stock,
            user_id=user_id,
            user_name=user_name,
            unit_price_cents=product.sell_price_cents if unit_price_cents is None else unit_price_cents,
            reference=reference,
            party=party,
            notes=notes,
        )
        product.stock = new_stock
        commit_or_raise("stock transition")
        return transition

    try:
        transition = run_with_retry(_op)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Failed to record stock transition") from exc

    current_app.logger.info(
        "Recorded %s for product %s: %s -> %s (transition %s)",
        transition.transaction_type,
        transition.product_id,
        transition.previous_stock,
        transition.new_stock,
        transition.id,
    )
    return transition


def list_transitions(
    *,
    page: int = 1,
    limit: int = 50,
    product_id: int | None = None,
    transaction_type: str | None = None,
    start_date: datetime | None = None,
    end_date: datetime | None = None,
) -> dict:
    """
    Paginated ledger read, newest first. Date bounds are inclusive on both ends.
    """
    q = db.session.query(StockTransition)

    if product_id is not None:
        q = q.filter(StockTransition.product_id == product_id)

    if transaction_type not in (None, "", "all"):
        q = q.filter(StockTransition.transaction_type == transaction_type)

    if start_date is not None:
        q = q.filter(StockTransition.created_at >= start_date)

    if end_date is not None:
        q = q.filter(StockTransition.created_at <= end_date)

    total = q.order_by(None).count()

    rows = (
        q.order_by(StockTransition.created_at.desc(), StockTransition.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return {
        "transitions": [r.to_dict() for r in rows],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": ceil(total / limit) if limit else 0,
        },
    }


def find_transition_by_reference(transaction_type: str, reference: str) -> StockTransition | None:
    return (
        db.session.query(StockTransition)
        .filter_by(transaction_type=transaction_type, reference=reference)
        .order_by(StockTransition.id.asc())
        .first()
    )
