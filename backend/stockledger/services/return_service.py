"""
Return Processing Service

Customer returns put stock back on the shelf; supplier returns send it back
to the vendor. Each processed return is a `Return` row plus a linked
`StockTransition` (reference = return id).

CONSISTENCY:
- The Return row and the Product.stock mutation commit together.
- The linked ledger row is written afterwards in its own transaction. If
  that write fails the failure is logged and swallowed: the return and the
  stock change stand, and the missing ledger row is repaired later by
  reconcile_missing_return_transitions().

STATUS:
Returns are written as COMPLETED. PENDING and CANCELLED exist in the
vocabulary but nothing in this service produces them.
"""

from __future__ import annotations

from flask import current_app
from sqlalchemy import and_, cast, String
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import Return, StockTransition
from ..validation import (
    InsufficientStockError,
    InvalidQuantityError,
    LedgerError,
    PersistenceError,
    ValidationError,
)
from . import ledger_service
from .concurrency import run_with_retry
from .transition_rules import RETURN_TRANSACTION_TYPES, apply_transition


RETURN_STATUS_PENDING = "pending"
RETURN_STATUS_COMPLETED = "completed"
RETURN_STATUS_CANCELLED = "cancelled"

RETURN_TYPE_CUSTOMER = "customer"
RETURN_TYPE_SUPPLIER = "supplier"


def _validate_return_type(return_type: str) -> None:
    if return_type not in RETURN_TRANSACTION_TYPES:
        raise ValidationError(f"Invalid return type: {return_type!r}")


def _validate_quantity(quantity) -> None:
    if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity <= 0:
        raise InvalidQuantityError("Invalid quantity")


def _append_linked_transition(return_doc: Return) -> StockTransition | None:
    """
    Best-effort ledger write for a committed return.

    Returns None when the write fails; never raises for store or ledger failures.
    """
    return_id = return_doc.id
    try:
        product = ledger_service.load_product(return_doc.product_id)
        transition = ledger_service.append_transition(
            product=product,
            transaction_type=RETURN_TRANSACTION_TYPES[return_doc.return_type],
            previous_stock=return_doc.previous_stock,
            new_stock=return_doc.new_stock,
            user_id=return_doc.user_id,
            user_name=return_doc.user_name,
            unit_price_cents=return_doc.unit_price_cents,
            reference=str(return_id),
            party={"type": return_doc.return_type},
            notes=f"Return: {return_doc.reason}",
            created_at=return_doc.created_at,
        )
        db.session.commit()
        return transition
    except (SQLAlchemyError, LedgerError):
        db.session.rollback()
        current_app.logger.exception(
            "Failed to record stock transition for return %s", return_id
        )
        return None


def process_return(
    *,
    product_id: int,
    return_type: str,
    quantity: int,
    reason: str,
    user_id: str,
    user_name: str,
    notes: str | None = None,
) -> dict:
    """
    Process a customer or supplier return.

    Args:
        product_id: Product being returned
        return_type: "customer" (adds stock) or "supplier" (removes stock)
        quantity: Positive number of units
        reason: Why the goods came back (required)
        user_id / user_name: Acting user
        notes: Optional free text

    Returns:
        {"return": <Return>, "new_stock": int, "transition": <StockTransition or None>}

    Raises:
        ItemNotFoundError, InvalidQuantityError, ValidationError,
        InsufficientStockError, ConflictError, PersistenceError
    """
    _validate_return_type(return_type)
    if not reason or not str(reason).strip():
        raise ValidationError("reason is required")

    def _op() -> Return:
        product = ledger_service.load_product(product_id, lock=True)
        _validate_quantity(quantity)
        previous_stock = product.stock

        if return_type == RETURN_TYPE_SUPPLIER and quantity > previous_stock:
            raise InsufficientStockError(
                f"Insufficient stock for return. Available: {previous_stock}, requested: {quantity}"
            )

        new_stock = apply_transition(previous_stock, RETURN_TRANSACTION_TYPES[return_type], quantity)

        unit_price_cents = product.sell_price_cents
        return_doc = Return(
            product_id=product.id,
            product_name=product.name,
            return_type=return_type,
            quantity=quantity,
            reason=str(reason).strip(),
            notes=notes or "",
            unit_price_cents=unit_price_cents,
            total_value_cents=unit_price_cents * quantity,
            previous_stock=previous_stock,
            new_stock=new_stock,
            user_id=user_id,
            user_name=user_name,
            status=RETURN_STATUS_COMPLETED,
        )
        db.session.add(return_doc)
        product.stock = new_stock
        ledger_service.commit_or_raise("return")
        return return_doc

    try:
        return_doc = run_with_retry(_op)
    except SQLAlchemyError as exc:
        db.session.rollback()
        raise PersistenceError("Failed to process return") from exc

    current_app.logger.info(
        "Processed %s return %s for product %s: %s -> %s",
        return_doc.return_type,
        return_doc.id,
        return_doc.product_id,
        return_doc.previous_stock,
        return_doc.new_stock,
    )

    new_stock = return_doc.new_stock
    transition = _append_linked_transition(return_doc)

    return {
        "return": return_doc,
        "new_stock": new_stock,
        "transition": transition,
    }


def get_return(return_id: int) -> Return | None:
    return db.session.query(Return).filter_by(id=return_id).first()


def get_linked_transition(return_doc: Return) -> StockTransition | None:
    return ledger_service.find_transition_by_reference(
        RETURN_TRANSACTION_TYPES[return_doc.return_type], str(return_doc.id)
    )


def list_returns(
    *,
    page: int = 1,
    limit: int = 50,
    return_type: str | None = None,
    product_id: int | None = None,
) -> dict:
    """Returns newest first, paginated."""
    q = db.session.query(Return)
    if return_type:
        q = q.filter(Return.return_type == return_type)
    if product_id is not None:
        q = q.filter(Return.product_id == product_id)

    total = q.order_by(None).count()
    rows = (
        q.order_by(Return.created_at.desc(), Return.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    pages = (total + limit - 1) // limit

    return {
        "returns": [r.to_dict() for r in rows],
        "pagination": {"page": page, "limit": limit, "total": total, "pages": pages},
    }


# =============================================================================
# RECONCILIATION
# =============================================================================

def find_returns_missing_transitions() -> list[Return]:
    """Completed returns that have no linked ledger row."""
    linked = and_(
        StockTransition.reference == cast(Return.id, String),
        StockTransition.transaction_type.in_(list(RETURN_TRANSACTION_TYPES.values())),
    )
    return (
        db.session.query(Return)
        .outerjoin(StockTransition, linked)
        .filter(
            Return.status == RETURN_STATUS_COMPLETED,
            StockTransition.id.is_(None),
        )
        .order_by(Return.id.asc())
        .all()
    )


def reconcile_missing_return_transitions(*, dry_run: bool = False) -> dict:
    """
    Append the ledger rows that process_return failed to write.

    Uses each Return's own snapshot (stock before/after, price, user, time),
    so the repaired row is identical to the one that would have been written.
    Product.stock is not touched; it already reflects the return.
    Safe to run repeatedly.
    """
    missing = find_returns_missing_transitions()
    missing_ids = [r.id for r in missing]
    if dry_run:
        return {"missing": missing_ids, "repaired": [], "failed": []}

    repaired: list[int] = []
    failed: list[int] = []
    for return_id, return_doc in zip(missing_ids, missing):
        if _append_linked_transition(return_doc) is None:
            failed.append(return_id)
        else:
            repaired.append(return_id)

    if repaired:
        current_app.logger.info("Repaired ledger rows for returns: %s", repaired)

    return {"missing": missing_ids, "repaired": repaired, "failed": failed}
