# Overview: Per-operation request types; raw JSON / query args are validated here before reaching services.

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from .services.transition_rules import PARTY_CUSTOMER, PARTY_TYPES, require_transaction_type
from .time_utils import parse_iso_datetime
from .validation import (
    InvalidQuantityError,
    ValidationError,
    coerce_int,
    coerce_text,
    require_fields,
)


RETURN_TYPES = ("customer", "supplier")


def _require_object(payload: Any, what: str = "JSON payload") -> dict:
    if not isinstance(payload, dict):
        raise ValidationError(f"Invalid {what}")
    return payload


def _parse_date(value: Any, field_name: str) -> datetime | None:
    try:
        return parse_iso_datetime(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} must be an ISO-8601 date or datetime")


def _positive_quantity(value: Any, field_name: str = "quantity") -> int:
    quantity = coerce_int(value, field_name, error_cls=InvalidQuantityError)
    if quantity <= 0:
        raise InvalidQuantityError(f"{field_name} must be a positive integer")
    return quantity


@dataclass(frozen=True)
class Actor:
    """User performing a ledger operation, as identified by the caller."""
    id: str
    name: str

    @classmethod
    def from_header(cls, raw: str | None) -> "Actor":
        """Parse an `X-User-Info` header: {"id": ..., "username": ...}."""
        if not raw:
            raise ValidationError("User information required")
        try:
            data = json.loads(raw)
        except ValueError:
            raise ValidationError("Invalid user info format")
        if not isinstance(data, dict):
            raise ValidationError("Invalid user info format")

        user_id = data.get("id", data.get("_id"))
        return cls(
            id=coerce_text(user_id, "user id", required=True, max_length=64),
            name=coerce_text(data.get("username"), "username", required=True, max_length=128),
        )


@dataclass(frozen=True)
class Party:
    type: str
    name: str | None = None
    id: str | None = None

    @classmethod
    def from_json(cls, raw: Any) -> "Party | None":
        if raw is None:
            return None
        raw = _require_object(raw, "party")
        party_type = raw.get("type")
        if party_type not in PARTY_TYPES:
            raise ValidationError(f"party.type must be one of: {', '.join(PARTY_TYPES)}")
        party_id = raw.get("id")
        return cls(
            type=party_type,
            name=coerce_text(raw.get("name"), "party.name", max_length=255),
            id=coerce_text(party_id, "party.id", max_length=64),
        )


@dataclass(frozen=True)
class TransitionRequest:
    product_id: int
    transaction_type: str
    quantity: int
    user_id: str
    user_name: str
    unit_price_cents: int = 0
    reference: str | None = None
    party: Party | None = None
    notes: str = ""

    @classmethod
    def from_json(cls, payload: Any) -> "TransitionRequest":
        payload = _require_object(payload)
        require_fields(payload, ["product_id", "transaction_type", "quantity", "user_id", "user_name"])

        unit_price = payload.get("unit_price_cents")
        unit_price_cents = 0 if unit_price is None else coerce_int(unit_price, "unit_price_cents")
        if unit_price_cents < 0:
            raise ValidationError("unit_price_cents must be >= 0")

        return cls(
            product_id=coerce_int(payload["product_id"], "product_id"),
            transaction_type=require_transaction_type(payload["transaction_type"]),
            # sign / range rules depend on the kind and are enforced by the classifier
            quantity=coerce_int(payload["quantity"], "quantity", error_cls=InvalidQuantityError),
            user_id=coerce_text(payload["user_id"], "user_id", required=True, max_length=64),
            user_name=coerce_text(payload["user_name"], "user_name", required=True, max_length=128),
            unit_price_cents=unit_price_cents,
            reference=coerce_text(payload.get("reference"), "reference", max_length=64),
            party=Party.from_json(payload.get("party")),
            notes=coerce_text(payload.get("notes"), "notes") or "",
        )


@dataclass(frozen=True)
class ReturnRequest:
    product_id: int
    return_type: str
    quantity: int
    reason: str
    notes: str = ""

    @classmethod
    def from_json(cls, payload: Any) -> "ReturnRequest":
        payload = _require_object(payload)
        require_fields(payload, ["product_id", "return_type", "quantity", "reason"])

        return_type = payload["return_type"]
        if return_type not in RETURN_TYPES:
            raise ValidationError(f"return_type must be one of: {', '.join(RETURN_TYPES)}")

        return cls(
            product_id=coerce_int(payload["product_id"], "product_id"),
            return_type=return_type,
            quantity=_positive_quantity(payload["quantity"]),
            reason=coerce_text(payload["reason"], "reason", required=True),
            notes=coerce_text(payload.get("notes"), "notes") or "",
        )


def _page_args(args: Mapping[str, Any], default_limit: int, max_limit: int) -> tuple[int, int]:
    page = args.get("page")
    page = 1 if page in (None, "") else coerce_int(page, "page")
    limit = args.get("limit")
    limit = default_limit if limit in (None, "") else coerce_int(limit, "limit")
    return max(1, page), max(1, min(limit, max_limit))


@dataclass(frozen=True)
class TransitionQuery:
    page: int = 1
    limit: int = 50
    product_id: int | None = None
    transaction_type: str | None = None
    start_date: datetime | None = None
    end_date: datetime | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any], *, default_limit: int = 50, max_limit: int = 500) -> "TransitionQuery":
        page, limit = _page_args(args, default_limit, max_limit)

        product_id = args.get("product_id")
        transaction_type = args.get("transaction_type")
        if transaction_type in (None, "", "all"):
            transaction_type = None
        else:
            require_transaction_type(transaction_type)

        start_date = _parse_date(args.get("start_date"), "start_date")
        end_date = _parse_date(args.get("end_date"), "end_date")
        if start_date and end_date and start_date > end_date:
            raise ValidationError("start_date must not be after end_date")

        return cls(
            page=page,
            limit=limit,
            product_id=None if product_id in (None, "") else coerce_int(product_id, "product_id"),
            transaction_type=transaction_type,
            start_date=start_date,
            end_date=end_date,
        )


@dataclass(frozen=True)
class ReturnQuery:
    page: int = 1
    limit: int = 50
    return_type: str | None = None
    product_id: int | None = None

    @classmethod
    def from_args(cls, args: Mapping[str, Any], *, default_limit: int = 50, max_limit: int = 500) -> "ReturnQuery":
        page, limit = _page_args(args, default_limit, max_limit)
        return_type = args.get("return_type")
        if return_type in (None, "", "all"):
            return_type = None
        elif return_type not in RETURN_TYPES:
            raise ValidationError(f"return_type must be one of: {', '.join(RETURN_TYPES)}")
        product_id = args.get("product_id")
        return cls(
            page=page,
            limit=limit,
            return_type=return_type,
            product_id=None if product_id in (None, "") else coerce_int(product_id, "product_id"),
        )


@dataclass(frozen=True)
class OrderLine:
    product_id: int
    quantity: int


@dataclass(frozen=True)
class OrderStockRequest:
    order_reference: str
    user_id: str
    user_name: str
    lines: tuple[OrderLine, ...] = field(default_factory=tuple)
    order_type: str | None = None
    note: str | None = None
    customer: Party | None = None

    @classmethod
    def from_json(cls, payload: Any) -> "OrderStockRequest":
        payload = _require_object(payload)
        require_fields(payload, ["order_reference", "user_id", "user_name"])

        raw_lines = payload.get("lines")
        if not isinstance(raw_lines, list) or not raw_lines:
            raise ValidationError("lines is required and must contain items")

        lines = []
        for index, raw in enumerate(raw_lines):
            raw = _require_object(raw, f"line {index}")
            require_fields(raw, ["product_id", "quantity"])
            lines.append(OrderLine(
                product_id=coerce_int(raw["product_id"], f"lines[{index}].product_id"),
                quantity=_positive_quantity(raw["quantity"], f"lines[{index}].quantity"),
            ))

        customer = None
        raw_customer = payload.get("customer")
        if raw_customer is not None:
            raw_customer = _require_object(raw_customer, "customer")
            name = coerce_text(raw_customer.get("name"), "customer.name", max_length=255)
            if name:
                customer = Party(
                    type=PARTY_CUSTOMER,
                    name=name,
                    id=coerce_text(raw_customer.get("id"), "customer.id", max_length=64) or "walk-in",
                )

        return cls(
            order_reference=coerce_text(payload["order_reference"], "order_reference", required=True, max_length=64),
            user_id=coerce_text(payload["user_id"], "user_id", required=True, max_length=64),
            user_name=coerce_text(payload["user_name"], "user_name", required=True, max_length=128),
            lines=tuple(lines),
            order_type=coerce_text(payload.get("order_type"), "order_type", max_length=64),
            note=coerce_text(payload.get("note"), "note"),
            customer=customer,
        )
