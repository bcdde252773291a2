# Overview: Flask CLI command coverage via the app's test CLI runner.

from stocktake.extensions import db
from stocktake.models import Product, Stocktake, Store


def _invoke(app, *args):
    return app.test_cli_runner().invoke(args=list(args))


def test_seed_is_idempotent(app, db_session):
    first = _invoke(app, "system", "seed")
    second = _invoke(app, "system", "seed")

    assert first.exit_code == 0, first.output
    assert "Created 4 product(s)" in first.output
    assert "Created 0 product(s)" in second.output
    assert db.session.query(Product).count() == 4


def test_stocktake_commands(app, db_session):
    _invoke(app, "system", "seed")
    store = db.session.query(Store).one()

    started = _invoke(app, "stocktakes", "start", "--store-id", str(store.id), "--actor-id", "1")
    assert started.exit_code == 0, started.output
    assert "with 4 item(s)" in started.output

    stocktake = db.session.query(Stocktake).one()
    duplicate = _invoke(app, "stocktakes", "start", "--store-id", str(store.id), "--actor-id", "1")
    assert duplicate.exit_code != 0
    assert "CONFLICT" in duplicate.output

    incomplete = _invoke(app, "stocktakes", "complete", str(stocktake.id))
    assert incomplete.exit_code != 0
    assert "INCOMPLETE_COUNT" in incomplete.output

    for product in db.session.query(Product).all():
        result = _invoke(
            app, "stocktakes", "count", str(stocktake.id),
            "--product-id", str(product.id), "--qty", "3",
        )
        assert result.exit_code == 0, result.output

    listed = _invoke(app, "stocktakes", "list", "--store-id", str(store.id))
    assert "4/4 counted" in listed.output

    completed = _invoke(app, "stocktakes", "complete", str(stocktake.id), "--actor-id", "1")
    assert completed.exit_code == 0, completed.output
    assert "4 item(s)" in completed.output

    db.session.expire_all()
    assert {p.quantity_on_hand for p in db.session.query(Product).all()} == {3}


def test_stores_list(app, db_session, store_a):
    result = _invoke(app, "stores", "list")

    assert result.exit_code == 0
    assert "Store A1" in result.output
