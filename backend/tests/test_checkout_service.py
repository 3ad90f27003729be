"""
Order checkout tests: one SALE transition per cart line.
"""

from sqlalchemy.exc import OperationalError

from stockledger.models import Product, StockTransition
from stockledger.schemas import OrderLine
from stockledger.services import checkout_service, ledger_service


def _apply(lines, **extra):
    kwargs = {
        "order_reference": "ORD-1042",
        "user_id": "u-100",
        "user_name": "alice",
    }
    kwargs.update(extra)
    return checkout_service.apply_order_stock(lines=lines, **kwargs)


def test_every_line_recorded_as_sale(db_session, make_product, fresh):
    milk = make_product(name="Milk", stock=10, sell_price_cents=199)
    bread = make_product(name="Bread", stock=4, sell_price_cents=350)

    result = _apply(
        [OrderLine(milk.id, 3), OrderLine(bread.id, 4)],
        order_type="takeaway",
        note="no bag",
        customer={"type": "customer", "name": "Bob", "id": "c-9"},
    )

    assert result["errors"] == []
    assert [u["new_stock"] for u in result["updates"]] == [7, 0]
    assert result["updates"][0]["sold_quantity"] == 3
    assert fresh(Product, milk.id).stock == 7
    assert fresh(Product, bread.id).stock == 0

    rows = db_session.query(StockTransition).order_by(StockTransition.id).all()
    assert [r.transaction_type for r in rows] == ["sale", "sale"]
    assert {r.reference for r in rows} == {"ORD-1042"}
    assert rows[0].unit_price_cents == 199
    assert rows[0].total_value_cents == 597
    assert rows[1].notes == "Order takeaway - no bag"
    assert rows[1].party_dict() == {"name": "Bob", "type": "customer", "id": "c-9"}


def test_failed_lines_do_not_undo_applied_ones(db_session, make_product, fresh):
    milk = make_product(name="Milk", stock=10)
    bread = make_product(name="Bread", stock=1)

    result = _apply([
        OrderLine(milk.id, 2),
        OrderLine(bread.id, 5),
        OrderLine(987654, 1),
    ])

    assert len(result["updates"]) == 1
    assert result["updates"][0]["product_id"] == milk.id
    assert [(e["product_id"], e["kind"]) for e in result["errors"]] == [
        (bread.id, "InsufficientStock"),
        (987654, "ItemNotFound"),
    ]
    assert fresh(Product, milk.id).stock == 8
    assert fresh(Product, bread.id).stock == 1
    assert db_session.query(StockTransition).count() == 1


def test_default_notes_without_order_type(db_session, make_product):
    product = make_product(stock=3)

    _apply([OrderLine(product.id, 1)])

    assert db_session.query(StockTransition).one().notes == "Order sale"


def test_store_failure_on_one_line_is_reported_per_line(db_session, make_product, fresh, monkeypatch):
    milk = make_product(name="Milk", stock=10)
    bread = make_product(name="Bread", stock=10)
    bread_id = bread.id
    real_load = ledger_service.load_product

    def _load(product_id, *, lock=False):
        if product_id == bread_id:
            raise OperationalError("SELECT products", {}, Exception("database is locked"))
        return real_load(product_id, lock=lock)

    monkeypatch.setattr(ledger_service, "load_product", _load)
    monkeypatch.setattr("stockledger.services.concurrency.time.sleep", lambda _s: None)

    result = _apply([OrderLine(milk.id, 2), OrderLine(bread.id, 1)])

    assert [u["product_id"] for u in result["updates"]] == [milk.id]
    assert [(e["product_id"], e["kind"]) for e in result["errors"]] == [(bread.id, "PersistenceFailure")]
    assert fresh(Product, milk.id).stock == 8
    assert fresh(Product, bread.id).stock == 10
