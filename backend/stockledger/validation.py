from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sqlalchemy import Boolean, Integer, String, Text
from sqlalchemy.orm import DeclarativeMeta


# Maximum price: 9,999,999.99 in cents
MAX_PRICE_CENTS = 999_999_999


class LedgerError(Exception):
    """
    Base class for every failure the stock ledger reports to callers.

    `kind` is the stable machine-readable name, `status_code` the HTTP status
    the routes answer with.
    """
    kind = "LedgerError"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class ItemNotFoundError(LedgerError):
    kind = "ItemNotFound"
    status_code = 404


class InvalidQuantityError(LedgerError):
    kind = "InvalidQuantity"


class InvalidTransactionTypeError(LedgerError):
    kind = "InvalidTransactionType"


class InsufficientStockError(LedgerError):
    kind = "InsufficientStock"


class ValidationError(LedgerError):
    """400-level input problem (missing field, wrong shape)."""
    kind = "ValidationFailure"


class ConflictError(LedgerError):
    """409-level conflict (concurrent write, duplicate barcode)."""
    kind = "Conflict"
    status_code = 409


class PersistenceError(LedgerError):
    """The underlying store rejected or could not complete a write."""
    kind = "PersistenceFailure"
    status_code = 503


# =============================================================================
# SCALAR COERCION
# =============================================================================

def coerce_int(value: Any, field: str, *, error_cls: type[LedgerError] = ValidationError) -> int:
    """
    Strict integer coercion for JSON input.

    Accepts ints and plain digit strings. Rejects booleans, floats,
    decimals and scientific notation.
    """
    if isinstance(value, bool):
        raise error_cls(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise error_cls(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise error_cls(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise error_cls(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise error_cls(f"{field} must be an integer")
    if isinstance(value, float):
        raise error_cls(f"{field} must be an integer, not a decimal")
    raise error_cls(f"{field} must be an integer")


def coerce_text(value: Any, field: str, *, required: bool = False, max_length: int | None = None) -> str | None:
    if value is None:
        if required:
            raise ValidationError(f"{field} is required")
        return None
    if isinstance(value, (dict, list)):
        raise ValidationError(f"{field} must be a string")
    text = str(value).strip()
    if not text:
        if required:
            raise ValidationError(f"{field} cannot be blank")
        return None
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field} exceeds max length {max_length}")
    return text


def require_fields(payload: dict, fields: list[str]) -> None:
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required fields: {', '.join(missing)}")


# =============================================================================
# MODEL PAYLOADS (catalog)
# =============================================================================

@dataclass(frozen=True)
class ModelValidationPolicy:
    """
    - writable_fields: what clients are allowed to set
    - required_on_create: fields required for POST
    """
    writable_fields: frozenset[str]
    required_on_create: frozenset[str] = frozenset()


def _columns_by_key(model: DeclarativeMeta) -> dict[str, Any]:
    return {c.key: c for c in model.__mapper__.columns}


def _coerce_column_value(col, value: Any):
    coltype = col.type

    if isinstance(coltype, Integer):
        return coerce_int(value, col.key)

    if isinstance(coltype, Boolean):
        if isinstance(value, bool):
            return value
        if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
            return value.strip().lower() == "true"
        raise ValidationError(f"{col.key} must be a boolean")

    if isinstance(coltype, (String, Text)):
        if isinstance(value, (dict, list)):
            raise ValidationError(f"{col.key} must be a string")
        return str(value).strip()

    return value


def validate_payload(
    *,
    model: DeclarativeMeta,
    payload: Any,
    policy: ModelValidationPolicy,
    partial: bool,
) -> dict:
    """
    Validates + normalizes incoming JSON against SQLAlchemy column metadata
    and the policy allowlist. Returns a patch dict with only writable fields.

    partial=False: create semantics (enforce required_on_create)
    partial=True: patch semantics (validate only provided keys)
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise ValidationError("Invalid JSON payload")

    if not partial:
        missing = sorted(f for f in policy.required_on_create if payload.get(f) in (None, ""))
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    cols = _columns_by_key(model)
    patch: dict = {}

    for k, raw in payload.items():
        if k not in policy.writable_fields:
            raise ValidationError(f"Field not allowed: {k}")
        col = cols[k]

        if raw is None:
            if not col.nullable:
                raise ValidationError(f"{k} cannot be null")
            patch[k] = None
            continue

        val = _coerce_column_value(col, raw)

        if isinstance(col.type, (String, Text)) and isinstance(val, str):
            if val == "":
                if not col.nullable:
                    raise ValidationError(f"{k} cannot be blank")
                val = None
            elif isinstance(col.type, String) and col.type.length and len(val) > col.type.length:
                raise ValidationError(f"{k} exceeds max length {col.type.length}")

        patch[k] = val

    return patch


def enforce_rules_product(patch: dict) -> None:
    """Business rules for catalog fields not captured by column metadata."""
    for field in ("cost_price_cents", "sell_price_cents"):
        price = patch.get(field)
        if price is None:
            continue
        if price < 0:
            raise ValidationError(f"{field} must be >= 0")
        if price > MAX_PRICE_CENTS:
            raise ValidationError(f"{field} cannot exceed {MAX_PRICE_CENTS}")

    if patch.get("stock") is not None and patch["stock"] < 0:
        raise InvalidQuantityError("stock must be >= 0")

    if patch.get("min_stock") is not None and patch["min_stock"] < 0:
        raise ValidationError("min_stock must be >= 0")

    discount = patch.get("discount_percent")
    if discount is not None and not 0 <= discount <= 100:
        raise ValidationError("discount_percent must be between 0 and 100")
