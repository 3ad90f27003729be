# Overview: Applies a completed order's cart to stock, one sale transition per line.

from __future__ import annotations

from flask import current_app

from ..validation import LedgerError
from . import ledger_service
from .transition_rules import SALE


def _order_notes(order_type: str | None, note: str | None) -> str:
    text = f"Order {order_type or 'sale'}"
    if note:
        text += f" - {note}"
    return text


def apply_order_stock(
    *,
    order_reference: str,
    lines,
    user_id: str,
    user_name: str,
    order_type: str | None = None,
    note: str | None = None,
    customer: dict | None = None,
) -> dict:
    """
    Record a SALE transition for every cart line of an order.

    Lines are independent: a line that fails (unknown product, not enough
    stock, concurrent write) is reported in `errors` and does not undo the
    lines that already succeeded. Each line is priced at the product's
    sell price as read inside its own locked write.

    Args:
        order_reference: Order id stored as the transition reference
        lines: iterable of objects with product_id / quantity
        customer: optional party mapping {"type": "customer", "name", "id"}

    Returns:
        {"updates": [...], "errors": [...]}
    """
    updates = []
    errors = []
    notes = _order_notes(order_type, note)

    for line in lines:
        try:
            transition = ledger_service.record_transition(
                product_id=line.product_id,
                transaction_type=SALE,
                quantity=line.quantity,
                user_id=user_id,
                user_name=user_name,
                reference=order_reference,
                party=customer,
                notes=notes,
            )
        except LedgerError as e:
            errors.append({
                "product_id": line.product_id,
                "kind": e.kind,
                "error": e.message,
            })
            continue

        updates.append({
            "product_id": transition.product_id,
            "product_name": transition.product_name,
            "previous_stock": transition.previous_stock,
            "sold_quantity": transition.quantity,
            "new_stock": transition.new_stock,
            "transition_id": transition.id,
        })

    if errors:
        current_app.logger.warning(
            "Order %s: %s of %s stock updates failed", order_reference, len(errors), len(errors) + len(updates)
        )

    return {"updates": updates, "errors": errors}
