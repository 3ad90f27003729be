"""
Request parsing: JSON bodies, query strings and the X-User-Info header.
"""

import json
from datetime import datetime

import pytest

from stockledger.schemas import (
    Actor,
    OrderStockRequest,
    Party,
    ReturnQuery,
    ReturnRequest,
    TransitionQuery,
    TransitionRequest,
)
from stockledger.validation import (
    InvalidQuantityError,
    InvalidTransactionTypeError,
    ValidationError,
)


def _transition_payload(**overrides):
    payload = {
        "product_id": 1,
        "transaction_type": "purchase",
        "quantity": 12,
        "user_id": "u-1",
        "user_name": "alice",
    }
    payload.update(overrides)
    return payload


class TestTransitionRequest:

    def test_minimal_payload(self):
        req = TransitionRequest.from_json(_transition_payload())
        assert req.product_id == 1
        assert req.quantity == 12
        assert req.unit_price_cents == 0
        assert req.party is None
        assert req.notes == ""

    def test_digit_strings_are_accepted(self):
        req = TransitionRequest.from_json(_transition_payload(product_id="7", quantity="3"))
        assert (req.product_id, req.quantity) == (7, 3)

    def test_party_is_parsed(self):
        req = TransitionRequest.from_json(_transition_payload(
            party={"type": "supplier", "name": "Acme Foods", "id": 42},
            reference="PO-1001",
        ))
        assert req.party == Party(type="supplier", name="Acme Foods", id="42")
        assert req.reference == "PO-1001"

    @pytest.mark.parametrize("missing", ["product_id", "transaction_type", "quantity", "user_id", "user_name"])
    def test_required_fields(self, missing):
        payload = _transition_payload()
        del payload[missing]
        with pytest.raises(ValidationError, match=missing):
            TransitionRequest.from_json(payload)

    def test_unknown_transaction_type(self):
        with pytest.raises(InvalidTransactionTypeError):
            TransitionRequest.from_json(_transition_payload(transaction_type="theft"))

    @pytest.mark.parametrize("quantity", [2.5, "1e3", "1.0", True, [1]])
    def test_non_integer_quantity(self, quantity):
        with pytest.raises(InvalidQuantityError):
            TransitionRequest.from_json(_transition_payload(quantity=quantity))

    def test_negative_unit_price(self):
        with pytest.raises(ValidationError):
            TransitionRequest.from_json(_transition_payload(unit_price_cents=-1))

    def test_bad_party_type(self):
        with pytest.raises(ValidationError):
            TransitionRequest.from_json(_transition_payload(party={"type": "friend"}))

    @pytest.mark.parametrize("payload", [None, [], "purchase"])
    def test_body_must_be_an_object(self, payload):
        with pytest.raises(ValidationError):
            TransitionRequest.from_json(payload)


class TestReturnRequest:

    def test_valid(self):
        req = ReturnRequest.from_json({
            "product_id": 3, "return_type": "supplier", "quantity": 2, "reason": " Expired ",
        })
        assert req.return_type == "supplier"
        assert req.reason == "Expired"

    def test_zero_quantity(self):
        with pytest.raises(InvalidQuantityError):
            ReturnRequest.from_json({"product_id": 3, "return_type": "customer", "quantity": -1, "reason": "x"})

    def test_unknown_return_type(self):
        with pytest.raises(ValidationError):
            ReturnRequest.from_json({"product_id": 3, "return_type": "store", "quantity": 1, "reason": "x"})

    def test_reason_required(self):
        with pytest.raises(ValidationError, match="reason"):
            ReturnRequest.from_json({"product_id": 3, "return_type": "customer", "quantity": 1})


class TestQueries:

    def test_transition_query_defaults(self):
        q = TransitionQuery.from_args({}, default_limit=50, max_limit=500)
        assert (q.page, q.limit) == (1, 50)
        assert q.transaction_type is None
        assert q.start_date is None

    def test_all_means_no_type_filter(self):
        assert TransitionQuery.from_args({"transaction_type": "all"}).transaction_type is None

    def test_limit_is_clamped(self):
        q = TransitionQuery.from_args({"page": "0", "limit": "10000"}, max_limit=500)
        assert (q.page, q.limit) == (1, 500)

    def test_dates_normalized_to_utc(self):
        q = TransitionQuery.from_args({
            "start_date": "2026-03-01",
            "end_date": "2026-03-01T12:00:00+02:00",
        })
        assert q.start_date == datetime(2026, 3, 1)
        assert q.end_date == datetime(2026, 3, 1, 10, 0)

    def test_inverted_range(self):
        with pytest.raises(ValidationError):
            TransitionQuery.from_args({"start_date": "2026-03-02", "end_date": "2026-03-01"})

    def test_unparseable_date(self):
        with pytest.raises(ValidationError):
            TransitionQuery.from_args({"start_date": "yesterday"})

    def test_unknown_type_filter(self):
        with pytest.raises(InvalidTransactionTypeError):
            TransitionQuery.from_args({"transaction_type": "gift"})

    def test_return_query(self):
        q = ReturnQuery.from_args({"return_type": "customer", "product_id": "5"})
        assert (q.return_type, q.product_id) == ("customer", 5)
        with pytest.raises(ValidationError):
            ReturnQuery.from_args({"return_type": "vendor"})


class TestOrderStockRequest:

    def test_walk_in_customer(self):
        req = OrderStockRequest.from_json({
            "order_reference": "ORD-1",
            "user_id": "u-1",
            "user_name": "alice",
            "customer": {"name": "Bob"},
            "lines": [{"product_id": 1, "quantity": 2}, {"product_id": "4", "quantity": "1"}],
        })
        assert [(line.product_id, line.quantity) for line in req.lines] == [(1, 2), (4, 1)]
        assert req.customer == Party(type="customer", name="Bob", id="walk-in")

    def test_nameless_customer_is_dropped(self):
        req = OrderStockRequest.from_json({
            "order_reference": "ORD-1", "user_id": "u-1", "user_name": "alice",
            "customer": {"id": "c-1"},
            "lines": [{"product_id": 1, "quantity": 1}],
        })
        assert req.customer is None

    @pytest.mark.parametrize("lines", [None, [], "1x milk"])
    def test_lines_required(self, lines):
        with pytest.raises(ValidationError):
            OrderStockRequest.from_json({
                "order_reference": "ORD-1", "user_id": "u-1", "user_name": "alice", "lines": lines,
            })

    def test_line_quantity_must_be_positive(self):
        with pytest.raises(InvalidQuantityError, match=r"lines\[0\]"):
            OrderStockRequest.from_json({
                "order_reference": "ORD-1", "user_id": "u-1", "user_name": "alice",
                "lines": [{"product_id": 1, "quantity": 0}],
            })


class TestActor:

    def test_from_header(self):
        actor = Actor.from_header(json.dumps({"id": 17, "username": "bob"}))
        assert actor == Actor(id="17", name="bob")

    def test_legacy_underscore_id(self):
        assert Actor.from_header(json.dumps({"_id": "abc", "username": "bob"})).id == "abc"

    def test_missing_header(self):
        with pytest.raises(ValidationError, match="User information required"):
            Actor.from_header(None)

    @pytest.mark.parametrize("raw", ["not json", "[1, 2]", '"bob"'])
    def test_malformed_header(self, raw):
        with pytest.raises(ValidationError, match="Invalid user info format"):
            Actor.from_header(raw)

    def test_username_required(self):
        with pytest.raises(ValidationError):
            Actor.from_header(json.dumps({"id": "u-1"}))
