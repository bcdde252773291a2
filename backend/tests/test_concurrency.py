# Overview: Threaded races against a file-backed SQLite database.

"""
Each worker runs in its own app context, so it gets its own session and
connection. SQLite serializes writers; lock timeouts surface as
OperationalError, which run_with_retry retries before giving up with
InternalError.
"""
import threading

import pytest

from stocktake import create_app
from stocktake.errors import ConflictError, InternalError
from stocktake.extensions import db
from stocktake.models import Organization, Product, Stocktake, Store
from stocktake.services import count_service, reconciliation_service, snapshot_service, stock_service

ACTOR_ID = 42


@pytest.fixture
def file_app(tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'concurrency.db'}",
        "DB_RETRY_ATTEMPTS": 5,
        "DB_RETRY_BACKOFF": 0.01,
        "NOTIFY_WEBHOOK_URL": None,
    })
    with app.app_context():
        db.create_all()
        org = Organization(name="Race Org", code="RACE")
        db.session.add(org)
        db.session.commit()
        store = Store(org_id=org.id, name="Race Store", code="R1")
        db.session.add(store)
        db.session.commit()
        ids = {"store": store.id, "products": []}
        for n in range(3):
            product = stock_service.create_product(store.id, f"RACE-{n}", f"Race Product {n}", quantity_on_hand=10)
            ids["products"].append(product.id)
        db.session.remove()

    yield app, ids

    with app.app_context():
        db.drop_all()
        db.engine.dispose()


def _run_threads(targets):
    threads = [threading.Thread(target=t) for t in targets]
    for t in threads:
        t.start()
    for t in threads:
        t.join()


def test_concurrent_start_creates_one_draft(file_app):
    app, ids = file_app
    results = []
    errors = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            try:
                stocktake = snapshot_service.start_session(ids["store"], ACTOR_ID)
                with lock:
                    results.append(stocktake.id)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    _run_threads([worker] * 6)

    assert len(results) == 1
    assert len(errors) == 5
    assert all(isinstance(e, (ConflictError, InternalError)) for e in errors)

    with app.app_context():
        drafts = db.session.query(Stocktake).filter_by(store_id=ids["store"], status="draft").count()
        assert drafts == 1


def test_concurrent_completion_applies_once(file_app):
    app, ids = file_app
    with app.app_context():
        stocktake = snapshot_service.start_session(ids["store"], ACTOR_ID)
        stocktake_id = stocktake.id
        count_service.submit_counts(stocktake_id, {pid: 7 for pid in ids["products"]})
        db.session.remove()

    reports = []
    errors = []
    lock = threading.Lock()

    def worker():
        with app.app_context():
            try:
                report = reconciliation_service.complete_session(stocktake_id, actor_id=ACTOR_ID)
                with lock:
                    reports.append(report)
            except Exception as exc:
                with lock:
                    errors.append(exc)
            finally:
                db.session.remove()

    _run_threads([worker] * 4)

    assert len(reports) == 1
    assert len(errors) == 3

    with app.app_context():
        quantities = [db.session.get(Product, pid).quantity_on_hand for pid in ids["products"]]
        assert quantities == [7, 7, 7]
        for pid in ids["products"]:
            stocktake_moves = [m for m in stock_service.list_movements(pid) if m.type == "STOCKTAKE"]
            assert len(stocktake_moves) == 1
            assert stocktake_moves[0].quantity_delta == -3


def test_sale_racing_completion_is_not_lost(file_app):
    app, ids = file_app
    target = ids["products"][0]
    with app.app_context():
        stocktake = snapshot_service.start_session(ids["store"], ACTOR_ID)
        stocktake_id = stocktake.id
        count_service.submit_counts(stocktake_id, {pid: 10 for pid in ids["products"]})
        db.session.remove()

    outcomes = {}

    def complete():
        with app.app_context():
            try:
                outcomes["report"] = reconciliation_service.complete_session(stocktake_id)
            finally:
                db.session.remove()

    def sell():
        with app.app_context():
            try:
                outcomes["sale"] = stock_service.record_sale(ids["store"], target, 2).quantity_on_hand
            finally:
                db.session.remove()

    _run_threads([complete, sell])

    assert "report" in outcomes
    assert "sale" in outcomes

    with app.app_context():
        final = db.session.get(Product, target).quantity_on_hand
        moves = stock_service.list_movements(target)
        # Whichever order the two commits landed in, the ledger explains the final figure
        assert moves[0].quantity_after == final
        assert final in (8, 10)
        if final == 10:
            assert outcomes["report"].warnings[0].product_id == target
