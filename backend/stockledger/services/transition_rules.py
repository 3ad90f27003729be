"""
Stock transition classification.

Maps a business event to the stock level it produces. Pure functions only:
no database access, no clock, so every rule can be exercised directly.

Sign rules (authoritative):
- SALE, SUPPLIER_RETURN: stock goes down by `quantity`
- PURCHASE, CUSTOMER_RETURN: stock goes up by `quantity`
- ADJUSTMENT: `quantity` is the target absolute stock, not a delta
"""

from __future__ import annotations

from ..validation import (
    InsufficientStockError,
    InvalidQuantityError,
    InvalidTransactionTypeError,
)


SALE = "sale"
PURCHASE = "purchase"
CUSTOMER_RETURN = "customer_return"
SUPPLIER_RETURN = "supplier_return"
ADJUSTMENT = "adjustment"

OUTBOUND_TYPES = frozenset({SALE, SUPPLIER_RETURN})
INBOUND_TYPES = frozenset({PURCHASE, CUSTOMER_RETURN})
TRANSACTION_TYPES = (SALE, PURCHASE, CUSTOMER_RETURN, SUPPLIER_RETURN, ADJUSTMENT)

PARTY_CUSTOMER = "customer"
PARTY_SUPPLIER = "supplier"
PARTY_SYSTEM = "system"
PARTY_TYPES = (PARTY_CUSTOMER, PARTY_SUPPLIER, PARTY_SYSTEM)

# Return type -> ledger transaction type
RETURN_TRANSACTION_TYPES = {
    "customer": CUSTOMER_RETURN,
    "supplier": SUPPLIER_RETURN,
}


def require_transaction_type(transaction_type) -> str:
    if transaction_type not in TRANSACTION_TYPES:
        raise InvalidTransactionTypeError(
            f"Invalid transaction type: {transaction_type!r}. "
            f"Expected one of: {', '.join(TRANSACTION_TYPES)}"
        )
    return transaction_type


def _require_quantity(transaction_type: str, quantity) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise InvalidQuantityError("quantity must be an integer")
    if transaction_type == ADJUSTMENT:
        if quantity < 0:
            raise InvalidQuantityError("adjustment target stock must be >= 0")
    elif quantity <= 0:
        raise InvalidQuantityError("quantity must be a positive integer")
    return quantity


def signed_delta(transaction_type: str, quantity: int) -> int:
    """Directional change for delta kinds. Not defined for ADJUSTMENT."""
    if transaction_type in OUTBOUND_TYPES:
        return -quantity
    if transaction_type in INBOUND_TYPES:
        return quantity
    raise InvalidTransactionTypeError(f"{transaction_type!r} has no signed delta")


def apply_transition(current_stock: int, transaction_type: str, quantity: int) -> int:
    """
    Compute the stock level after applying one event.

    Raises:
        InvalidTransactionTypeError: unknown kind
        InvalidQuantityError: non-integer, non-positive (or negative target for ADJUSTMENT)
        InsufficientStockError: result would be negative
    """
    require_transaction_type(transaction_type)
    quantity = _require_quantity(transaction_type, quantity)

    if transaction_type == ADJUSTMENT:
        new_stock = quantity
    else:
        new_stock = current_stock + signed_delta(transaction_type, quantity)

    if new_stock < 0:
        raise InsufficientStockError(
            f"Insufficient stock for this transaction. Available: {current_stock}, required: {quantity}"
        )
    return new_stock


def applied_quantity(previous_stock: int, new_stock: int) -> int:
    """Magnitude actually applied to stock (what the ledger row stores)."""
    return abs(new_stock - previous_stock)
