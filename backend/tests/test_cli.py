"""
CLI command tests (flask ledger ...).
"""

from stockledger.models import StockTransition
from stockledger.services import ledger_service, return_service
from stockledger.validation import PersistenceError


def _raise_persistence(**_kwargs):
    raise PersistenceError("ledger store unavailable")


def test_repair_returns(app, db_session, make_product, monkeypatch):
    product = make_product(stock=4)
    monkeypatch.setattr(ledger_service, "append_transition", _raise_persistence)
    return_doc = return_service.process_return(
        product_id=product.id,
        return_type="customer",
        quantity=1,
        reason="Dented",
        user_id="u-100",
        user_name="alice",
    )["return"]
    monkeypatch.undo()

    runner = app.test_cli_runner()

    result = runner.invoke(args=["ledger", "repair-returns", "--dry-run"])
    assert result.exit_code == 0
    assert f"Returns missing stock transitions: {return_doc.id}" in result.output
    assert "Repaired" not in result.output

    result = runner.invoke(args=["ledger", "repair-returns"])
    assert result.exit_code == 0
    assert "Repaired: 1" in result.output
    db_session.expire_all()
    assert db_session.query(StockTransition).count() == 1

    result = runner.invoke(args=["ledger", "repair-returns"])
    assert "No returns are missing stock transitions." in result.output


def test_show_ledger(app, db_session, make_product):
    product = make_product(name="Tahini", stock=2)
    ledger_service.record_transition(
        product_id=product.id,
        transaction_type="purchase",
        quantity=3,
        user_id="u-100",
        user_name="alice",
    )

    result = app.test_cli_runner().invoke(args=["ledger", "show", "--product-id", str(product.id)])

    assert result.exit_code == 0
    assert "purchase" in result.output
    assert "Tahini" in result.output
    assert "2 -> 5" in result.output
    assert "1 transition(s) total" in result.output
